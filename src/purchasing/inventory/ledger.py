"""Stock ledger — per-product reservation with compensating rollback.

Every mutation holds the product's lock for the whole read-check-write and
is persisted immediately, outside any enclosing unit of work, so a later
failure elsewhere in checkout can be compensated by releasing what was
already reserved.
"""

from collections.abc import Iterable

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from purchasing.catalogue.product import Product
from purchasing.domain import logger
from purchasing.errors import ProductNotFound
from purchasing.pricing.engine import LineItem
from purchasing.utils.locks import KeyedLocks


class StockLedger:
    def __init__(self, locks: KeyedLocks | None = None):
        self.locks = locks or KeyedLocks()

    def _load(self, product_id: str) -> Product:
        try:
            return current_domain.repository_for(Product).get(product_id)
        except ObjectNotFoundError as exc:
            raise ProductNotFound(product_id) from exc

    def available(self, product_id: str) -> int:
        return self._load(product_id).stock_quantity

    def reserve(self, product_id: str, quantity: int) -> int:
        """Take ``quantity`` units out of stock. Returns the remaining quantity.

        Raises ``InsufficientStock`` (carrying the available quantity) and
        leaves stock untouched when there are not enough units.
        """
        with self.locks.hold(product_id):
            product = self._load(product_id)
            product.reserve_stock(quantity)
            current_domain.repository_for(Product).add(product)
            return product.stock_quantity

    def release(self, product_id: str, quantity: int) -> int:
        with self.locks.hold(product_id):
            product = self._load(product_id)
            product.release_stock(quantity)
            current_domain.repository_for(Product).add(product)
            return product.stock_quantity

    def reserve_all(self, lines: Iterable[LineItem]) -> None:
        """Reserve every line in order, or none of them.

        On the first failure the lines already reserved are released in
        reverse order before the error propagates.
        """
        reserved: list[LineItem] = []
        try:
            for line in lines:
                self.reserve(line.product_id, line.quantity)
                reserved.append(line)
        except Exception:
            if reserved:
                logger.info(
                    "Rolling back stock reservations",
                    product_ids=[line.product_id for line in reserved],
                )
            for line in reversed(reserved):
                self.release(line.product_id, line.quantity)
            raise

    def release_all(self, lines: Iterable[LineItem]) -> None:
        for line in lines:
            self.release(line.product_id, line.quantity)


_current_ledger: StockLedger | None = None


def get_stock_ledger() -> StockLedger:
    global _current_ledger
    if _current_ledger is None:
        _current_ledger = StockLedger()
    return _current_ledger


def reset_stock_ledger() -> None:
    global _current_ledger
    _current_ledger = None
