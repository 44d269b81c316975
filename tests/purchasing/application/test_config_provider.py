import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain, current_uow

from purchasing.settings.management import seed_defaults, update_config_value
from purchasing.settings.provider import ConfigProvider, get_config_provider, set_config_provider
from purchasing.settings.system_config import (
    DEFAULT_SHIPPING_COST,
    FREE_SHIPPING_THRESHOLD,
    TAX_RATE,
    SystemConfig,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _update(key, value, modified_by="admin-001"):
    return update_config_value(key, value, modified_by=modified_by)


def _store_directly(key, value):
    repo = current_domain.repository_for(SystemConfig)
    config = repo.find_by_key(key)
    config.value = value
    repo.add(config)


class TestSeeding:
    def test_seeds_all_defaults_once(self):
        assert sorted(seed_defaults()) == sorted([TAX_RATE, FREE_SHIPPING_THRESHOLD, DEFAULT_SHIPPING_COST])
        assert seed_defaults() == []


class TestProvider:
    def test_missing_keys_fall_back_to_defaults(self):
        provider = ConfigProvider()
        assert provider.get_tax_rate() == 19
        shipping = provider.get_shipping_config()
        assert shipping.free_threshold == 100000
        assert shipping.default_cost == 5000

    def test_values_are_cached_until_ttl(self):
        seed_defaults()
        clock = FakeClock()
        provider = ConfigProvider(ttl_seconds=300, clock=clock)
        assert provider.get_tax_rate() == 19

        _store_directly(TAX_RATE, "21")
        clock.now += 299
        assert provider.get_tax_rate() == 19

        clock.now += 1
        assert provider.get_tax_rate() == 21

    def test_update_invalidates_cache(self):
        seed_defaults()
        provider = ConfigProvider(ttl_seconds=300, clock=FakeClock())
        set_config_provider(provider)
        assert provider.get_tax_rate() == 19

        assert _update(TAX_RATE, "10") == 10
        assert get_config_provider().get_tax_rate() == 10

    def test_cache_is_dropped_after_the_write_commits(self, monkeypatch):
        seed_defaults()
        provider = ConfigProvider(ttl_seconds=300, clock=FakeClock())
        set_config_provider(provider)
        seen = []
        invalidate = provider.invalidate

        def _recording_invalidate(key=None):
            stored = current_domain.repository_for(SystemConfig).find_by_key(TAX_RATE).typed_value
            seen.append((key, bool(current_uow), stored))
            invalidate(key)

        monkeypatch.setattr(provider, "invalidate", _recording_invalidate)
        _update(TAX_RATE, "12")

        assert seen == [(TAX_RATE, False, 12)]


class TestUpdateConfigValue:
    def test_rejects_out_of_range_value(self):
        seed_defaults()
        with pytest.raises(ValidationError):
            _update(TAX_RATE, "150")
        assert ConfigProvider().get_tax_rate() == 19

    def test_unknown_key(self):
        with pytest.raises(ObjectNotFoundError):
            _update("does_not_exist", "1")

    def test_records_who_changed_it(self):
        seed_defaults()
        _update(DEFAULT_SHIPPING_COST, "3990", modified_by="admin-007")
        config = current_domain.repository_for(SystemConfig).find_by_key(DEFAULT_SHIPPING_COST)
        assert config.last_modified_by == "admin-007"
        assert config.typed_value == 3990

    def test_new_rate_applies_to_next_checkout(self, customer, add_product, place_order):
        seed_defaults()
        add_product("prod-001", price=10000)
        _update(TAX_RATE, "10")

        order = place_order(customer, [("prod-001", 1)])

        assert order.tax == 1000
        assert order.tax_rate == 10
