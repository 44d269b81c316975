"""Resolve a gateway callback to the order it pays for.

Strategies run in a fixed order and the first hit wins:

1. ``store``       the correlation recorded at transaction creation
2. ``parsed``      the order id embedded in a natural buy-order
3. ``buy_order``   an order whose payment result carries the buy-order
4. ``token``       an order whose payment result carries the token
5. ``heuristic``   the newest unpaid pending card order from the last two hours

The heuristic can attach a payment to the wrong order when two customers
pay at the same time; it is logged at warning level every time it is used
so those cases can be audited.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from purchasing.domain import logger
from purchasing.errors import OrderNotFound
from purchasing.order.order import Order
from purchasing.payment.correlation import CorrelationStore, get_correlation_store
from purchasing.payment.identifiers import order_id_from_buy_order

HEURISTIC_WINDOW = timedelta(hours=2)


@dataclass(frozen=True)
class Resolution:
    order_id: str
    strategy: str


class TransactionCorrelator:
    def __init__(self, store: CorrelationStore | None = None, heuristic_window: timedelta = HEURISTIC_WINDOW):
        self.store = store or get_correlation_store()
        self.heuristic_window = heuristic_window

    def _order_exists(self, order_id: str) -> bool:
        try:
            current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            return False
        return True

    def resolve(self, token: str | None = None, buy_order: str | None = None, allow_heuristic: bool = True) -> Resolution:
        repo = current_domain.repository_for(Order)

        if buy_order:
            order_id = self.store.consume(buy_order)
            if order_id:
                return Resolution(order_id, "store")

            parsed = order_id_from_buy_order(buy_order)
            if parsed and self._order_exists(parsed):
                return Resolution(parsed, "parsed")

            order = repo.find_by_buy_order(buy_order)
            if order is not None:
                return Resolution(str(order.id), "buy_order")

        if token:
            order = repo.find_by_token(token)
            if order is not None:
                return Resolution(str(order.id), "token")

        if allow_heuristic:
            since = datetime.now(UTC) - self.heuristic_window
            candidates = repo.find_recent_pending_gateway_orders(since)
            if candidates:
                order = candidates[0]
                logger.warning(
                    "Callback matched by recency heuristic",
                    order_id=str(order.id),
                    buy_order=buy_order,
                    token=token,
                    candidates=len(candidates),
                )
                return Resolution(str(order.id), "heuristic")

        logger.error("Callback could not be matched to an order", buy_order=buy_order, token=token)
        raise OrderNotFound(buy_order or token or "empty callback")
