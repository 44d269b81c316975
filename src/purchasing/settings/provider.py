"""Read access to pricing configuration with a short-lived cache.

Pricing reads the tax rate and shipping thresholds on every checkout, so the
values are cached for ``ttl_seconds`` (five minutes by default). A write
through ``update_config_value`` invalidates the cache once it commits; the TTL
only bounds staleness for writes made by other processes.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from protean.utils.globals import current_domain

from purchasing.domain import logger
from purchasing.settings.system_config import (
    DEFAULT_SHIPPING_COST,
    DEFAULTS,
    FREE_SHIPPING_THRESHOLD,
    TAX_RATE,
    SystemConfig,
)

DEFAULT_TTL_SECONDS = 300


@dataclass(frozen=True)
class ShippingConfig:
    free_threshold: int
    default_cost: int


class ConfigProvider:
    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._cache: dict[str, tuple[float, object]] = {}

    def _load(self, key: str):
        record = current_domain.repository_for(SystemConfig).find_by_key(key)
        if record is None:
            logger.warning("Config key missing, using default", key=key)
            return DEFAULTS[key]["value"]
        return record.typed_value

    def get(self, key: str):
        now = self._clock()
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None and now - cached[0] < self.ttl_seconds:
                return cached[1]

        value = self._load(key)
        with self._lock:
            self._cache[key] = (now, value)
        return value

    def get_tax_rate(self) -> float:
        """Tax rate in percent, 0 to 100."""
        return self.get(TAX_RATE)

    def get_shipping_config(self) -> ShippingConfig:
        return ShippingConfig(
            free_threshold=int(self.get(FREE_SHIPPING_THRESHOLD)),
            default_cost=int(self.get(DEFAULT_SHIPPING_COST)),
        )

    def invalidate(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._cache.clear()
            else:
                self._cache.pop(key, None)


_current_provider: ConfigProvider | None = None


def get_config_provider() -> ConfigProvider:
    global _current_provider
    if _current_provider is None:
        _current_provider = ConfigProvider()
    return _current_provider


def set_config_provider(provider: ConfigProvider) -> None:
    global _current_provider
    _current_provider = provider


def reset_config_provider() -> None:
    global _current_provider
    _current_provider = None
