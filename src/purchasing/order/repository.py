"""Order lookups used by the order history views and callback correlation."""

from datetime import datetime

from purchasing.domain import purchasing
from purchasing.order.order import Order, OrderStatus, PaymentMethod


def _newest_first(orders: list[Order]) -> list[Order]:
    return sorted(orders, key=lambda order: order.created_at, reverse=True)


@purchasing.repository(part_of=Order)
class OrderRepository:
    def find_all(self) -> list[Order]:
        return _newest_first(self._dao.query.limit(None).all().items)

    def find_by_customer(self, customer_id: str) -> list[Order]:
        return _newest_first(self._dao.query.filter(customer_id=str(customer_id)).all().items)

    def find_by_buy_order(self, buy_order: str) -> Order | None:
        results = self._dao.query.filter(payment_result_buy_order=buy_order).all().items
        return results[0] if results else None

    def find_by_token(self, token: str) -> Order | None:
        results = self._dao.query.filter(payment_result_token=token).all().items
        return results[0] if results else None

    def find_recent_pending_gateway_orders(self, since: datetime) -> list[Order]:
        """Unpaid pending card-gateway orders created at or after ``since``, newest first."""
        candidates = (
            self._dao.query.filter(
                status=OrderStatus.PENDING.value,
                payment_method=PaymentMethod.WEBPAY.value,
            )
            .all()
            .items
        )
        return _newest_first(
            [order for order in candidates if order.paid_at is None and order.created_at and order.created_at >= since]
        )
