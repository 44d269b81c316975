"""Catalogue snapshot sync — command and handler.

Called by the catalogue service whenever a product's price, sale settings
or stock level change on its side.
"""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Integer, String
from protean.utils.globals import current_domain

from purchasing.catalogue.product import Product
from purchasing.domain import purchasing
from purchasing.inventory.ledger import get_stock_ledger


@purchasing.command(part_of="Product")
class SyncProduct:
    product_id = String(required=True, max_length=100)
    name = String(required=True, max_length=255)
    price = Integer(required=True, min_value=0)
    wholesale_price = Integer(min_value=0)
    on_sale = Boolean(default=False)
    discount_percentage = Integer(default=0, min_value=0, max_value=100)
    stock_quantity = Integer(required=True, min_value=0)
    is_active = Boolean(default=True)


@purchasing.command_handler(part_of=Product)
class SyncProductHandler:
    @handle(SyncProduct)
    def sync_product(self, command):
        repo = current_domain.repository_for(Product)
        fields = {
            "name": command.name,
            "price": command.price,
            "wholesale_price": command.wholesale_price,
            "on_sale": bool(command.on_sale),
            "discount_percentage": command.discount_percentage or 0,
            "stock_quantity": command.stock_quantity,
            "is_active": command.is_active is not False,
        }
        try:
            product = repo.get(command.product_id)
        except ObjectNotFoundError:
            product = Product(id=command.product_id, synced_at=datetime.now(UTC), **fields)
        else:
            product.sync(**fields)

        repo.add(product)
        return str(product.id)


def apply_product_snapshot(**snapshot) -> str:
    """Apply a catalogue snapshot while holding the product's stock lock.

    The lock is the one ``StockLedger`` takes for reservations, and it is held
    until the command's unit of work has committed, so an overwrite never
    interleaves with a concurrent reserve or release.
    """
    with get_stock_ledger().locks.hold(snapshot["product_id"]):
        return current_domain.process(SyncProduct(**snapshot), asynchronous=False)
