"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from purchasing.domain import purchasing


@purchasing.event(part_of="Order")
class OrderPlaced:
    """An order was created from a priced checkout with its stock reserved."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    items_subtotal = Integer(required=True)
    tax = Integer(required=True)
    shipping = Integer(required=True)
    total = Integer(required=True)
    fulfillment_mode = String(required=True)
    payment_method = String(required=True)
    order_type = String(required=True)
    placed_at = DateTime(required=True)


@purchasing.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    marked_paid = Boolean(default=False)
    changed_at = DateTime(required=True)


@purchasing.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled; its reserved stock is due back."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    cancelled_by = String()
    cancelled_at = DateTime(required=True)


@purchasing.event(part_of="Order")
class PaymentTransactionCreated:
    __version__ = 1

    order_id = Identifier(required=True)
    token = String(required=True)
    buy_order = String(required=True)
    amount = Integer(required=True)
    created_at = DateTime(required=True)


@purchasing.event(part_of="Order")
class PaymentApproved:
    __version__ = 1

    order_id = Identifier(required=True)
    buy_order = String()
    authorization_code = String()
    amount = Integer()
    paid_at = DateTime(required=True)


@purchasing.event(part_of="Order")
class PaymentRejected:
    """The gateway declined the card; the order stays open for another attempt."""

    __version__ = 1

    order_id = Identifier(required=True)
    buy_order = String()
    response_code = Integer()
    rejected_at = DateTime(required=True)


@purchasing.event(part_of="Order")
class PaymentRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    refund_id = String(required=True)
    amount = Integer(required=True)
    refund_status = String()
    refunded_at = DateTime(required=True)
