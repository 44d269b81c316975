"""Order application service — checkout, cancellation and operator status changes.

Checkout spans two stores that share no transaction: product stock and the
order itself. Stock is reserved first and committed immediately; if
recording the order then fails, the reservations are released again before
the error propagates. This is why checkout runs here rather than inside a
single command handler, whose unit of work would hold back the stock writes
until the very end.
"""

import json
from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from purchasing.catalogue.product import Product
from purchasing.domain import logger
from purchasing.errors import OrderNotFound, ProductNotFound, Unauthorized
from purchasing.inventory.ledger import StockLedger, get_stock_ledger
from purchasing.notification.dispatch import send_order_created, send_order_status_changed
from purchasing.order.order import Order, OrderStatus, OrderType, PaymentMethod
from purchasing.order.placement import PlaceOrder
from purchasing.order.status import CancelOrder, ChangeOrderStatus
from purchasing.pricing.engine import FulfillmentMode, LineItem, PriceEngine, PriceTier, ProductSnapshot
from purchasing.principal import Principal
from purchasing.settings.provider import get_config_provider
from purchasing.utils.locks import KeyedLocks

# Shared by every caller that mutates an order outside its own handler
_order_locks = KeyedLocks()


def order_locks() -> KeyedLocks:
    return _order_locks


@dataclass(frozen=True)
class CheckoutLine:
    product_id: str
    quantity: int
    client_price: float | None = None  # advisory only, never charged


@dataclass(frozen=True)
class CheckoutRequest:
    lines: list[CheckoutLine]
    fulfillment_mode: str
    payment_method: str
    shipping_address: dict | None = None
    pickup_location: dict | None = None


def _validate_request(request: CheckoutRequest) -> None:
    errors: dict[str, list[str]] = {}

    if not request.lines:
        errors.setdefault("items", []).append("An order needs at least one item")
    for line in request.lines:
        if not line.quantity or line.quantity < 1:
            errors.setdefault("items", []).append(f"Quantity for product {line.product_id} must be at least 1")

    modes = {mode.value for mode in FulfillmentMode}
    if request.fulfillment_mode not in modes:
        errors.setdefault("fulfillment_mode", []).append(f"Must be one of {sorted(modes)}")
    elif request.fulfillment_mode == FulfillmentMode.DELIVERY.value:
        address = request.shipping_address or {}
        if not address.get("street") or not address.get("city"):
            errors.setdefault("shipping_address", []).append("Street and city are required for delivery")
    else:
        pickup = request.pickup_location or {}
        if not pickup.get("name") or not pickup.get("address"):
            errors.setdefault("pickup_location", []).append("Pickup name and address are required for pickup")

    methods = {method.value for method in PaymentMethod}
    if request.payment_method not in methods:
        errors.setdefault("payment_method", []).append(f"Must be one of {sorted(methods)}")

    if errors:
        raise ValidationError(errors)


def _snapshot(product: Product) -> ProductSnapshot:
    return ProductSnapshot(
        product_id=str(product.id),
        name=product.name,
        price=product.price,
        wholesale_price=product.wholesale_price,
        on_sale=bool(product.on_sale),
        discount_percentage=product.discount_percentage or 0,
    )


def _order_lines(order: Order) -> list[LineItem]:
    return [LineItem(product_id=item.product_id, quantity=item.quantity) for item in order.items]


def _owner_of(order: Order) -> Principal:
    return Principal(user_id=str(order.customer_id), email=order.customer_email)


class OrderService:
    def __init__(
        self,
        price_engine: PriceEngine | None = None,
        ledger: StockLedger | None = None,
        order_locks: KeyedLocks | None = None,
    ):
        self.price_engine = price_engine or PriceEngine(get_config_provider())
        self.ledger = ledger or get_stock_ledger()
        self.order_locks = order_locks or _order_locks

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get_order(self, order_id: str, principal: Principal) -> Order:
        try:
            order = current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError as exc:
            raise OrderNotFound(order_id) from exc

        if not principal.is_admin and not principal.owns(order):
            raise Unauthorized(f"Order {order_id} does not belong to user {principal.user_id}")
        return order

    def orders_for(self, principal: Principal) -> list[Order]:
        return current_domain.repository_for(Order).find_by_customer(principal.user_id)

    def all_orders(self) -> list[Order]:
        """Every order, newest first. Callers check the admin role."""
        return current_domain.repository_for(Order).find_all()

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def _load_catalog(self, lines: list[CheckoutLine]) -> dict[str, ProductSnapshot]:
        repo = current_domain.repository_for(Product)
        catalog = {}
        for line in lines:
            if line.product_id in catalog:
                continue
            try:
                product = repo.get(line.product_id)
            except ObjectNotFoundError as exc:
                raise ProductNotFound(line.product_id) from exc
            if not product.is_active:
                raise ValidationError({"items": [f"Product {line.product_id} is not available"]})
            catalog[line.product_id] = _snapshot(product)
        return catalog

    def place_order(self, principal: Principal, request: CheckoutRequest) -> Order:
        """Price, reserve and record an order. Stock is untouched on any failure."""
        _validate_request(request)

        catalog = self._load_catalog(request.lines)
        tier = PriceTier.WHOLESALE if principal.is_distributor else PriceTier.RETAIL
        line_items = [LineItem(product_id=line.product_id, quantity=line.quantity) for line in request.lines]

        breakdown = self.price_engine.price(
            line_items,
            tier,
            catalog,
            FulfillmentMode(request.fulfillment_mode),
            client_prices={line.product_id: line.client_price for line in request.lines if line.client_price is not None},
        )

        is_delivery = request.fulfillment_mode == FulfillmentMode.DELIVERY.value
        self.ledger.reserve_all(line_items)

        try:
            order_id = current_domain.process(
                PlaceOrder(
                    customer_id=principal.user_id,
                    customer_email=principal.email,
                    items=json.dumps(
                        [
                            {
                                "product_id": line.product_id,
                                "name": line.name,
                                "quantity": line.quantity,
                                "unit_price": line.unit_price,
                            }
                            for line in breakdown.lines
                        ]
                    ),
                    fulfillment_mode=request.fulfillment_mode,
                    shipping_address=json.dumps(request.shipping_address) if is_delivery else None,
                    pickup_location=None if is_delivery else json.dumps(request.pickup_location),
                    payment_method=request.payment_method,
                    order_type=OrderType.B2B.value if principal.is_distributor else OrderType.B2C.value,
                    items_subtotal=breakdown.items_subtotal,
                    tax=breakdown.tax,
                    shipping=breakdown.shipping,
                    total=breakdown.total,
                    tax_rate=breakdown.tax_rate,
                ),
                asynchronous=False,
            )
        except Exception:
            logger.warning("Order creation failed, releasing reserved stock", customer_id=principal.user_id)
            self.ledger.release_all(line_items)
            raise

        order = current_domain.repository_for(Order).get(order_id)
        logger.info("Order placed", order_id=order_id, customer_id=principal.user_id, total=order.total)
        send_order_created(order, principal)
        return order

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def cancel_order(self, order_id: str, principal: Principal) -> Order:
        """Cancel an order and return its stock. Repeating the call is harmless."""
        order = self.get_order(order_id, principal)

        with self.order_locks.hold(order_id):
            cancelled = current_domain.process(
                CancelOrder(order_id=order_id, cancelled_by=principal.user_id),
                asynchronous=False,
            )
            if cancelled:
                self.ledger.release_all(_order_lines(order))

        order = current_domain.repository_for(Order).get(order_id)
        if cancelled:
            logger.info("Order cancelled", order_id=order_id, cancelled_by=principal.user_id)
            send_order_status_changed(order, _owner_of(order))
        return order

    def change_status(self, order_id: str, status: str, principal: Principal, mark_paid: bool = False) -> Order:
        """Operator status change; ``cancelled`` is routed through cancellation."""
        if status == OrderStatus.CANCELLED.value:
            return self.cancel_order(order_id, principal)

        self.get_order(order_id, principal)
        with self.order_locks.hold(order_id):
            current_domain.process(
                ChangeOrderStatus(order_id=order_id, status=status, mark_paid=mark_paid),
                asynchronous=False,
            )

        order = current_domain.repository_for(Order).get(order_id)
        logger.info("Order status changed", order_id=order_id, status=order.status, changed_by=principal.user_id)
        send_order_status_changed(order, _owner_of(order))
        return order
