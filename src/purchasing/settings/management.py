"""Config management — command, handler and default seeding."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import String, Text
from protean.utils.globals import current_domain

from purchasing.domain import logger, purchasing
from purchasing.settings.provider import get_config_provider
from purchasing.settings.system_config import DEFAULTS, SystemConfig


@purchasing.command(part_of="SystemConfig")
class UpdateConfigValue:
    key = String(required=True, max_length=100)
    value = Text(required=True)
    modified_by = String(max_length=255)


@purchasing.command_handler(part_of=SystemConfig)
class SystemConfigCommandHandler:
    @handle(UpdateConfigValue)
    def update_config_value(self, command):
        repo = current_domain.repository_for(SystemConfig)
        config = repo.find_by_key(command.key)
        if config is None:
            raise ObjectNotFoundError(f"Config key {command.key} does not exist")

        config.update_value(command.value, modified_by=command.modified_by)
        repo.add(config)

        logger.info("Config value updated", key=command.key, modified_by=command.modified_by)
        return config.typed_value


def update_config_value(key: str, value: str, modified_by: str | None = None):
    """Update a config value and drop its cached copy once the write has committed."""
    result = current_domain.process(
        UpdateConfigValue(key=key, value=value, modified_by=modified_by),
        asynchronous=False,
    )
    get_config_provider().invalidate(key)
    return result


def seed_defaults() -> list[str]:
    """Create any missing default config records. Returns the keys created."""
    repo = current_domain.repository_for(SystemConfig)
    created = []
    for key, definition in DEFAULTS.items():
        if repo.find_by_key(key) is not None:
            continue
        repo.add(SystemConfig.define(key=key, **definition))
        created.append(key)

    if created:
        logger.info("Seeded default config", keys=created)
    return created
