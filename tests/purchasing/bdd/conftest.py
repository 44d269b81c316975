"""Shared BDD fixtures and step definitions for purchasing."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from purchasing.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    PaymentApproved,
    PaymentRejected,
)
from purchasing.order.order import Order

_ORDER_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderStatusChanged": OrderStatusChanged,
    "OrderCancelled": OrderCancelled,
    "PaymentApproved": PaymentApproved,
    "PaymentRejected": PaymentRejected,
}


@pytest.fixture()
def error():
    """Container for the exception raised by the last action."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a pending "{mode}" order'), target_fixture="order")
def _pending_order(mode):
    delivery = mode == "delivery"
    order = Order.place(
        customer_id="cust-001",
        items_data=[{"product_id": "prod-001", "name": "Aceite de oliva 1L", "quantity": 1, "unit_price": 10000}],
        fulfillment_mode=mode,
        payment_method="webpay",
        items_subtotal=10000,
        tax=1900,
        shipping=5000 if delivery else 0,
        total=16900 if delivery else 11900,
        tax_rate=19,
        shipping_address={"street": "Av. Providencia 1234", "city": "Santiago"} if delivery else None,
        pickup_location=None if delivery else {"name": "Tienda Centro", "address": "Huérfanos 1160"},
    )
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _order_status(order, status):
    assert order.status == status


@then("the action is rejected as an invalid transition")
def _rejected(error):
    assert error["exc"] is not None, "Expected the action to be rejected"
    assert isinstance(error["exc"], ValidationError)
    assert "status" in error["exc"].messages


def _assert_event(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(isinstance(event, event_cls) for event in order._events)


@then(parsers.cfparse("an {event_type} event is raised"))
def _an_event_raised(order, event_type):
    _assert_event(order, event_type)


@then(parsers.cfparse("a {event_type} event is raised"))
def _a_event_raised(order, event_type):
    _assert_event(order, event_type)
