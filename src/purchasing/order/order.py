"""Order aggregate — a priced purchase moving through fulfillment.

State Machine:
    pending → processing → shipped → delivered            (delivery)
    pending → processing → ready_for_pickup → delivered   (pickup)
    pending/processing → cancelled

``delivered`` and ``cancelled`` are terminal. Payment is tracked by
timestamps rather than flags: ``is_paid`` and ``is_delivered`` are derived
from ``paid_at`` and ``delivered_at`` so the flag and its timestamp can
never disagree.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from purchasing.domain import purchasing
from purchasing.errors import AlreadyPaid, InvalidTransition, WrongPaymentMethod
from purchasing.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    PaymentApproved,
    PaymentRefunded,
    PaymentRejected,
    PaymentTransactionCreated,
)
from purchasing.pricing.engine import FulfillmentMode


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    READY_FOR_PICKUP = "ready_for_pickup"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    WEBPAY = "webpay"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"


class OrderType(Enum):
    B2C = "B2C"
    B2B = "B2B"


class TransactionStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.READY_FOR_PICKUP: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Statuses that only make sense for one fulfillment mode
_MODE_ONLY_STATUSES = {
    OrderStatus.SHIPPED: FulfillmentMode.DELIVERY,
    OrderStatus.READY_FOR_PICKUP: FulfillmentMode.PICKUP,
}

_DELIVERY_STATUSES = {OrderStatus.DELIVERED, OrderStatus.READY_FOR_PICKUP}

# A pending gateway transaction younger than this is handed out again
# instead of creating a new one.
TRANSACTION_REUSE_WINDOW = timedelta(minutes=5)

_PAYMENT_RESULT_FIELDS = (
    "token",
    "buy_order",
    "session_id",
    "status",
    "authorization_code",
    "amount",
    "response_code",
    "card_number",
    "installments",
    "payment_type_code",
    "transaction_date",
    "redirect_url",
    "created_at",
    "refund_id",
    "refund_amount",
    "refund_status",
    "refunded_at",
)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@purchasing.value_object(part_of="Order")
class ShippingAddress:
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    region = String(max_length=100)
    postal_code = String(max_length=20)
    notes = String(max_length=500)


@purchasing.value_object(part_of="Order")
class PickupLocation:
    name = String(required=True, max_length=255)
    address = String(required=True, max_length=255)
    scheduled_date = String(max_length=10)  # ISO date string
    notes = String(max_length=500)


@purchasing.value_object(part_of="Order")
class PaymentResult:
    """The order's gateway transaction, as last reported by the gateway.

    Written at transaction creation, overwritten at confirmation, extended
    with the refund fields when a refund is processed.
    """

    token = String(max_length=255)
    buy_order = String(max_length=26)
    session_id = String(max_length=61)
    status = String(choices=TransactionStatus)
    authorization_code = String(max_length=50)
    amount = Integer()
    response_code = Integer()
    card_number = String(max_length=20)
    installments = Integer()
    payment_type_code = String(max_length=10)
    transaction_date = String(max_length=50)
    redirect_url = String(max_length=500)
    created_at = DateTime()
    refund_id = String(max_length=255)
    refund_amount = Integer()
    refund_status = String(max_length=50)
    refunded_at = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@purchasing.entity(part_of="Order")
class OrderItem:
    """A purchased line: the product, how many, and the unit price actually charged."""

    product_id = String(required=True, max_length=100)
    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@purchasing.aggregate
class Order:
    customer_id = Identifier(required=True)
    customer_email = String(max_length=255)
    items = HasMany(OrderItem)
    fulfillment_mode = String(required=True, choices=FulfillmentMode)
    shipping_address = ValueObject(ShippingAddress)
    pickup_location = ValueObject(PickupLocation)
    payment_method = String(required=True, choices=PaymentMethod)
    order_type = String(choices=OrderType, default=OrderType.B2C.value)
    items_subtotal = Integer(required=True, min_value=0)
    tax = Integer(required=True, min_value=0)
    shipping = Integer(required=True, min_value=0)
    total = Integer(required=True, min_value=0)
    tax_rate = Float(min_value=0.0, max_value=100.0)  # rate applied at checkout
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_result = ValueObject(PaymentResult)
    paid_at = DateTime()
    delivered_at = DateTime()
    cancelled_by = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_equal_its_parts(self):
        if self.total != (self.items_subtotal or 0) + (self.tax or 0) + (self.shipping or 0):
            raise ValidationError({"total": ["Total must equal items subtotal plus tax plus shipping"]})

    @invariant.post
    def destination_must_match_fulfillment_mode(self):
        if self.fulfillment_mode == FulfillmentMode.DELIVERY.value:
            if self.shipping_address is None or self.pickup_location is not None:
                raise ValidationError({"shipping_address": ["Delivery orders need a shipping address only"]})
        elif self.fulfillment_mode == FulfillmentMode.PICKUP.value:
            if self.pickup_location is None or self.shipping_address is not None:
                raise ValidationError({"pickup_location": ["Pickup orders need a pickup location only"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        items_data,
        fulfillment_mode,
        payment_method,
        items_subtotal,
        tax,
        shipping,
        total,
        tax_rate,
        shipping_address=None,
        pickup_location=None,
        order_type=OrderType.B2C.value,
        customer_email=None,
    ):
        """Create a pending order from server-computed pricing.

        Args:
            items_data: List of dicts with product_id, name, quantity, unit_price.
            shipping_address: Dict with street, city and optional region,
                postal_code, notes. Required for delivery orders.
            pickup_location: Dict with name, address and optional
                scheduled_date, notes. Required for pickup orders.
        """
        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            customer_email=customer_email,
            items=[OrderItem(**item) for item in items_data],
            fulfillment_mode=fulfillment_mode,
            shipping_address=ShippingAddress(**shipping_address) if shipping_address else None,
            pickup_location=PickupLocation(**pickup_location) if pickup_location else None,
            payment_method=payment_method,
            order_type=order_type,
            items_subtotal=items_subtotal,
            tax=tax,
            shipping=shipping,
            total=total,
            tax_rate=tax_rate,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                items=json.dumps(items_data),
                items_subtotal=items_subtotal,
                tax=tax,
                shipping=shipping,
                total=total,
                fulfillment_mode=fulfillment_mode,
                payment_method=payment_method,
                order_type=order_type,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def is_paid(self) -> bool:
        return self.paid_at is not None

    @property
    def is_delivered(self) -> bool:
        return self.delivered_at is not None

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[OrderStatus(self.status)]

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target.value)

        required_mode = _MODE_ONLY_STATUSES.get(target)
        if required_mode is not None and self.fulfillment_mode != required_mode.value:
            raise InvalidTransition(current.value, target.value)

    def change_status(self, status: str, mark_paid: bool = False) -> None:
        """Operator-driven status change.

        Passing the current status with ``mark_paid`` only records payment,
        which is how offline payments (bank transfer, cash) get settled.
        Cancellation goes through ``cancel`` so stock is released.
        """
        try:
            target = OrderStatus(status)
        except ValueError as exc:
            raise ValidationError({"status": [f"Unknown order status {status}"]}) from exc
        current = OrderStatus(self.status)
        if target == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Use order cancellation to cancel an order"]})

        if target != current:
            self._assert_can_transition(target)
        elif not mark_paid:
            return

        now = datetime.now(UTC)
        marked_paid = bool(mark_paid and self.paid_at is None)
        if marked_paid:
            self.paid_at = now
        if target in _DELIVERY_STATUSES and self.delivered_at is None:
            self.delivered_at = now

        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                marked_paid=marked_paid,
                changed_at=now,
            )
        )

    def cancel(self, cancelled_by: str | None = None) -> bool:
        """Cancel the order.

        Returns False when the order was already cancelled, so callers only
        release stock for a cancellation that actually happened.
        """
        current = OrderStatus(self.status)
        if current == OrderStatus.CANCELLED:
            return False
        self._assert_can_transition(OrderStatus.CANCELLED)

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancelled_by = cancelled_by
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                cancelled_by=cancelled_by,
                cancelled_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Gateway payment
    # -------------------------------------------------------------------
    def assert_payable(self) -> None:
        if self.is_paid:
            raise AlreadyPaid(str(self.id))
        if self.payment_method != PaymentMethod.WEBPAY.value:
            raise WrongPaymentMethod(str(self.id), self.payment_method)
        if OrderStatus(self.status) != OrderStatus.PENDING:
            raise InvalidTransition(self.status, "paid")

    def reusable_transaction(self, now: datetime | None = None) -> PaymentResult | None:
        """The live pending transaction, if it is still inside the reuse window."""
        result = self.payment_result
        if result is None or result.status != TransactionStatus.PENDING.value or not result.token:
            return None
        if result.created_at is None:
            return None

        now = now or datetime.now(UTC)
        if now - result.created_at >= TRANSACTION_REUSE_WINDOW:
            return None
        return result

    def _payment_result_with(self, **changes) -> PaymentResult:
        current = {}
        if self.payment_result is not None:
            current = {name: getattr(self.payment_result, name) for name in _PAYMENT_RESULT_FIELDS}
        current.update(changes)
        return PaymentResult(**current)

    def record_transaction(self, token, buy_order, session_id, amount, redirect_url=None) -> None:
        """Record a freshly created gateway transaction, replacing any previous one."""
        self.assert_payable()

        now = datetime.now(UTC)
        self.payment_result = PaymentResult(
            token=token,
            buy_order=buy_order,
            session_id=session_id,
            status=TransactionStatus.PENDING.value,
            amount=amount,
            redirect_url=redirect_url,
            created_at=now,
        )
        self.updated_at = now

        self.raise_(
            PaymentTransactionCreated(
                order_id=str(self.id),
                token=token,
                buy_order=buy_order,
                amount=amount,
                created_at=now,
            )
        )

    def apply_payment_outcome(
        self,
        approved: bool,
        response_code=None,
        authorization_code=None,
        amount=None,
        card_number=None,
        installments=None,
        payment_type_code=None,
        transaction_date=None,
        buy_order=None,
        token=None,
    ) -> bool:
        """Apply a confirmed gateway outcome. Returns False if nothing changed.

        An approval marks the order paid and moves it to processing. A
        rejection leaves it pending so the customer can try again. Outcomes
        arriving after the order is already paid are ignored.
        """
        if self.is_paid:
            return False

        now = datetime.now(UTC)
        status = TransactionStatus.APPROVED if approved else TransactionStatus.REJECTED
        self.payment_result = self._payment_result_with(
            token=token or (self.payment_result.token if self.payment_result else None),
            buy_order=buy_order or (self.payment_result.buy_order if self.payment_result else None),
            status=status.value,
            response_code=response_code,
            authorization_code=authorization_code,
            amount=amount,
            card_number=card_number,
            installments=installments,
            payment_type_code=payment_type_code,
            transaction_date=transaction_date,
        )
        self.updated_at = now

        if not approved:
            self.raise_(
                PaymentRejected(
                    order_id=str(self.id),
                    buy_order=self.payment_result.buy_order,
                    response_code=response_code,
                    rejected_at=now,
                )
            )
            return True

        self.paid_at = now
        if OrderStatus(self.status) == OrderStatus.PENDING:
            self.status = OrderStatus.PROCESSING.value

        self.raise_(
            PaymentApproved(
                order_id=str(self.id),
                buy_order=self.payment_result.buy_order,
                authorization_code=authorization_code,
                amount=amount,
                paid_at=now,
            )
        )
        return True

    def record_refund(self, refund_id, amount, refund_status) -> None:
        if not self.is_paid or self.payment_result is None:
            raise ValidationError({"payment": ["Only paid orders can be refunded"]})

        now = datetime.now(UTC)
        self.payment_result = self._payment_result_with(
            refund_id=refund_id,
            refund_amount=amount,
            refund_status=refund_status,
            refunded_at=now,
        )
        self.updated_at = now

        self.raise_(
            PaymentRefunded(
                order_id=str(self.id),
                refund_id=refund_id,
                amount=amount,
                refund_status=refund_status,
                refunded_at=now,
            )
        )
