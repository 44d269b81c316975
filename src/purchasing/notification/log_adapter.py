"""Notification adapter that only writes a log line.

Default adapter until an email delivery service is wired in.
"""

from purchasing.domain import logger
from purchasing.notification.port import NotificationPort


class LogNotifier(NotificationPort):
    def notify_order_created(self, order, user) -> None:
        logger.info(
            "Order created notification",
            order_id=str(order.id),
            email=user.email if user else None,
            total=order.total,
        )

    def notify_order_status_changed(self, order, user) -> None:
        logger.info(
            "Order status notification",
            order_id=str(order.id),
            email=user.email if user else None,
            status=order.status,
        )
