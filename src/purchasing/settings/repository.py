from purchasing.domain import purchasing
from purchasing.settings.system_config import SystemConfig


@purchasing.repository(part_of=SystemConfig)
class SystemConfigRepository:
    def find_by_key(self, key: str) -> SystemConfig | None:
        results = self._dao.query.filter(key=key).all().items
        return results[0] if results else None
