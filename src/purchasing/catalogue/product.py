"""Product aggregate — local snapshot of the external catalogue.

The catalogue service owns product data; it pushes price and stock
snapshots here so checkout can price and reserve without a remote call.
Stock quantity is the only field this context mutates.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Integer, String

from purchasing.domain import purchasing
from purchasing.errors import InsufficientStock


@purchasing.event(part_of="Product")
class StockReserved:
    __version__ = 1

    product_id = String(required=True)
    quantity = Integer(required=True)
    remaining = Integer(required=True)


@purchasing.event(part_of="Product")
class StockReleased:
    __version__ = 1

    product_id = String(required=True)
    quantity = Integer(required=True)
    remaining = Integer(required=True)


@purchasing.aggregate
class Product:
    id = String(identifier=True, max_length=100)
    name = String(required=True, max_length=255)
    price = Integer(required=True, min_value=0)
    wholesale_price = Integer(min_value=0)
    on_sale = Boolean(default=False)
    discount_percentage = Integer(default=0, min_value=0, max_value=100)
    stock_quantity = Integer(default=0)
    is_active = Boolean(default=True)
    synced_at = DateTime()

    @invariant.post
    def stock_cannot_go_negative(self):
        if self.stock_quantity is not None and self.stock_quantity < 0:
            raise ValidationError({"stock_quantity": ["Stock quantity cannot be negative"]})

    def sync(self, name, price, stock_quantity, wholesale_price=None, on_sale=False, discount_percentage=0, is_active=True):
        """Overwrite the snapshot with the catalogue's current view."""
        self.name = name
        self.price = price
        self.wholesale_price = wholesale_price
        self.on_sale = on_sale
        self.discount_percentage = discount_percentage
        self.stock_quantity = stock_quantity
        self.is_active = is_active
        self.synced_at = datetime.now(UTC)

    @staticmethod
    def _assert_positive(quantity: int) -> None:
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

    def reserve_stock(self, quantity: int) -> None:
        self._assert_positive(quantity)
        if quantity > self.stock_quantity:
            raise InsufficientStock(str(self.id), quantity, self.stock_quantity)

        self.stock_quantity -= quantity
        self.raise_(StockReserved(product_id=str(self.id), quantity=quantity, remaining=self.stock_quantity))

    def release_stock(self, quantity: int) -> None:
        self._assert_positive(quantity)
        self.stock_quantity += quantity
        self.raise_(StockReleased(product_id=str(self.id), quantity=quantity, remaining=self.stock_quantity))
