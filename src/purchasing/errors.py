"""Domain errors raised by the purchasing context.

Business rule violations extend Protean's ``ValidationError`` so they carry a
field-keyed ``messages`` dict like every other domain validation failure.
Missing records extend ``ObjectNotFoundError``, which is what repositories
raise on a failed ``get``.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class InsufficientStock(ValidationError):
    """A reservation asked for more units than are on hand."""

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            {"stock": [f"Insufficient stock for product {product_id}: {available} available, {requested} requested"]}
        )


class InvalidTransition(ValidationError):
    """An order was asked to move to a status its state machine does not allow."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__({"status": [f"Cannot transition from {current} to {target}"]})


class AlreadyPaid(ValidationError):
    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__({"payment": [f"Order {order_id} is already paid"]})


class WrongPaymentMethod(ValidationError):
    def __init__(self, order_id: str, payment_method: str) -> None:
        self.order_id = order_id
        self.payment_method = payment_method
        super().__init__({"payment_method": [f"Order {order_id} uses {payment_method}, not card gateway payment"]})


class OrderNotFound(ObjectNotFoundError):
    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"No order could be resolved for {reference}")


class ProductNotFound(ObjectNotFoundError):
    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} does not exist")


class Unauthorized(Exception):
    """The caller is not allowed to act on the resource."""


class Forbidden(Exception):
    """The caller's role does not permit the operation."""


class GatewayError(Exception):
    """The payment gateway failed or refused a request.

    ``detail`` keeps the raw gateway response for logs; it is never sent
    back to clients.
    """

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(message)


class GatewayTimeout(GatewayError):
    """The gateway did not answer within the configured timeout."""
