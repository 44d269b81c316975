import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain


def _reset_adapters():
    from purchasing.gateway import reset_gateway
    from purchasing.inventory.ledger import reset_stock_ledger
    from purchasing.notification import reset_notifier
    from purchasing.payment.correlation import reset_correlation_store
    from purchasing.settings.provider import reset_config_provider

    reset_gateway()
    reset_notifier()
    reset_config_provider()
    reset_correlation_store()
    reset_stock_ledger()


@pytest.fixture(scope="session")
def purchasing_bed():
    from purchasing.domain import purchasing

    bed = DomainFixture(purchasing)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(purchasing_bed):
    with purchasing_bed.domain_context():
        _reset_adapters()
        yield
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()
        _reset_adapters()


# ---------------------------------------------------------------------------
# Callers
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer():
    from purchasing.principal import Principal

    return Principal(user_id="cust-001", role="customer", email="ana@example.com")


@pytest.fixture()
def other_customer():
    from purchasing.principal import Principal

    return Principal(user_id="cust-002", role="customer", email="luis@example.com")


@pytest.fixture()
def distributor():
    from purchasing.principal import Principal

    return Principal(user_id="dist-001", role="distributor", email="ventas@distribuidora.cl")


@pytest.fixture()
def admin():
    from purchasing.principal import Principal

    return Principal(user_id="admin-001", role="admin", email="admin@example.com")


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
@pytest.fixture()
def gateway():
    from purchasing.gateway import set_gateway
    from purchasing.gateway.fake_adapter import FakeGateway

    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def notifier():
    from purchasing.notification import set_notifier
    from purchasing.notification.fake_adapter import FakeNotifier

    fake = FakeNotifier()
    set_notifier(fake)
    return fake


# ---------------------------------------------------------------------------
# Catalogue and orders
# ---------------------------------------------------------------------------
@pytest.fixture()
def add_product():
    """Factory that syncs a product snapshot into the catalogue."""
    from purchasing.catalogue.sync import apply_product_snapshot

    def _add(product_id="prod-001", name="Aceite de oliva 1L", price=10000, stock_quantity=10, **overrides):
        return apply_product_snapshot(
            product_id=product_id,
            name=name,
            price=price,
            stock_quantity=stock_quantity,
            **overrides,
        )

    return _add


@pytest.fixture()
def stock_of():
    from purchasing.catalogue.product import Product

    def _stock(product_id):
        return current_domain.repository_for(Product).get(product_id).stock_quantity

    return _stock


@pytest.fixture()
def place_order(notifier):
    """Factory that checks out a delivery order paid through the card gateway."""
    from purchasing.order.service import CheckoutLine, CheckoutRequest, OrderService

    def _place(principal, lines, fulfillment_mode="delivery", payment_method="webpay"):
        request = CheckoutRequest(
            lines=[CheckoutLine(product_id=pid, quantity=qty) for pid, qty in lines],
            fulfillment_mode=fulfillment_mode,
            payment_method=payment_method,
            shipping_address={"street": "Av. Providencia 1234", "city": "Santiago"}
            if fulfillment_mode == "delivery"
            else None,
            pickup_location={"name": "Tienda Centro", "address": "Huérfanos 1160"}
            if fulfillment_mode == "pickup"
            else None,
        )
        return OrderService().place_order(principal, request)

    return _place
