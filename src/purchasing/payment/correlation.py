"""Durable buy-order → order correlation.

Written when a gateway transaction is created and consumed once when the
gateway's callback arrives. The durable record survives restarts and is
visible to every worker; the in-memory map mirrors the registrations made
by this process.
"""

import threading
from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from purchasing.domain import logger, purchasing


@purchasing.aggregate
class TransactionCorrelation:
    buy_order = String(identifier=True, max_length=26)
    order_id = Identifier(required=True)
    token = String(max_length=255)
    created_at = DateTime()
    consumed_at = DateTime()

    def consume(self) -> None:
        self.consumed_at = datetime.now(UTC)


class CorrelationStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cache: dict[str, str] = {}

    def register(self, buy_order: str, order_id: str, token: str | None = None) -> None:
        current_domain.repository_for(TransactionCorrelation).add(
            TransactionCorrelation(
                buy_order=buy_order,
                order_id=order_id,
                token=token,
                created_at=datetime.now(UTC),
            )
        )
        with self._lock:
            self._cache[buy_order] = str(order_id)

    def consume(self, buy_order: str) -> str | None:
        """Return the order id for ``buy_order`` and retire the mapping.

        Returns None when the buy-order is unknown or was already consumed.
        """
        if not buy_order:
            return None

        with self._lock:
            cached = self._cache.pop(buy_order, None)
            repo = current_domain.repository_for(TransactionCorrelation)
            try:
                record = repo.get(buy_order)
            except ObjectNotFoundError:
                if cached is not None:
                    logger.warning("Correlation cached but not persisted", buy_order=buy_order)
                return cached

            if record.consumed_at is not None:
                return None

            record.consume()
            repo.add(record)
            return str(record.order_id)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()


_current_store: CorrelationStore | None = None


def get_correlation_store() -> CorrelationStore:
    global _current_store
    if _current_store is None:
        _current_store = CorrelationStore()
    return _current_store


def reset_correlation_store() -> None:
    global _current_store
    _current_store = None
