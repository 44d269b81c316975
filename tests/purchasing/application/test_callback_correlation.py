from datetime import UTC, datetime, timedelta

import pytest
from protean.utils.globals import current_domain

from purchasing.errors import OrderNotFound
from purchasing.order.order import Order, OrderItem, ShippingAddress
from purchasing.payment.adapter import PaymentGatewayAdapter
from purchasing.payment.correlation import get_correlation_store
from purchasing.payment.correlator import TransactionCorrelator


def _save_order(order_id, created_at=None, payment_method="webpay"):
    now = created_at or datetime.now(UTC)
    order = Order(
        id=order_id,
        customer_id="cust-001",
        items=[OrderItem(product_id="prod-001", name="Café", quantity=1, unit_price=1000)],
        fulfillment_mode="delivery",
        shipping_address=ShippingAddress(street="Av. Matta 100", city="Santiago"),
        payment_method=payment_method,
        items_subtotal=1000,
        tax=190,
        shipping=5000,
        total=6190,
        tax_rate=19,
        created_at=now,
        updated_at=now,
    )
    current_domain.repository_for(Order).add(order)
    return order_id


@pytest.fixture()
def open_transaction(customer, add_product, place_order, gateway):
    add_product("prod-001", price=10000)
    order = place_order(customer, [("prod-001", 1)])
    handle = PaymentGatewayAdapter().create_transaction(str(order.id), customer)
    return handle


class TestStrategies:
    def test_recorded_correlation_wins(self, open_transaction):
        resolution = TransactionCorrelator().resolve(token=None, buy_order=open_transaction.buy_order)
        assert resolution.order_id == open_transaction.order_id
        assert resolution.strategy == "store"

    def test_correlation_is_consumed_once(self, open_transaction):
        correlator = TransactionCorrelator()
        correlator.resolve(buy_order=open_transaction.buy_order)

        resolution = correlator.resolve(buy_order=open_transaction.buy_order)
        assert resolution.order_id == open_transaction.order_id
        assert resolution.strategy == "buy_order"

    def test_order_id_parsed_from_natural_buy_order(self):
        _save_order("ord-42")
        resolution = TransactionCorrelator().resolve(buy_order="ord-42_123456")
        assert resolution.order_id == "ord-42"
        assert resolution.strategy == "parsed"

    def test_parsed_id_must_exist(self):
        with pytest.raises(OrderNotFound):
            TransactionCorrelator().resolve(buy_order="ord-404_123456", allow_heuristic=False)

    def test_token_lookup(self, open_transaction):
        resolution = TransactionCorrelator().resolve(token=open_transaction.token)
        assert resolution.order_id == open_transaction.order_id
        assert resolution.strategy == "token"

    def test_heuristic_picks_newest_pending_card_order(self):
        _save_order("ord-old", created_at=datetime.now(UTC) - timedelta(minutes=30))
        _save_order("ord-new", created_at=datetime.now(UTC) - timedelta(minutes=1))
        _save_order("ord-cash", payment_method="cash")

        resolution = TransactionCorrelator().resolve(token="unknown", buy_order="unknown")
        assert resolution.order_id == "ord-new"
        assert resolution.strategy == "heuristic"

    def test_heuristic_ignores_orders_outside_window(self):
        _save_order("ord-stale", created_at=datetime.now(UTC) - timedelta(hours=3))
        with pytest.raises(OrderNotFound):
            TransactionCorrelator().resolve(token="unknown", buy_order="unknown")

    def test_heuristic_can_be_disabled(self):
        _save_order("ord-new")
        with pytest.raises(OrderNotFound):
            TransactionCorrelator().resolve(token="unknown", buy_order="unknown", allow_heuristic=False)

    def test_nothing_matches(self):
        with pytest.raises(OrderNotFound):
            TransactionCorrelator().resolve(token="unknown", buy_order="unknown")


class TestCorrelationStore:
    def test_consume_is_single_use(self):
        store = get_correlation_store()
        store.register("ord-1_123456", "ord-1", "tok-1")

        assert store.consume("ord-1_123456") == "ord-1"
        assert store.consume("ord-1_123456") is None

    def test_unknown_buy_order(self):
        assert get_correlation_store().consume("nope_1") is None
