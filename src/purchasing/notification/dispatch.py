"""Fire-and-forget notification dispatch.

A failed notification is logged and dropped; it must never undo or fail the
order operation that triggered it.
"""

from purchasing.domain import logger
from purchasing.notification import get_notifier


def send_order_created(order, user) -> bool:
    try:
        get_notifier().notify_order_created(order, user)
    except Exception as exc:
        logger.error("Order created notification failed", order_id=str(order.id), error=str(exc))
        return False
    return True


def send_order_status_changed(order, user) -> bool:
    try:
        get_notifier().notify_order_status_changed(order, user)
    except Exception as exc:
        logger.error(
            "Order status notification failed",
            order_id=str(order.id),
            status=order.status,
            error=str(exc),
        )
        return False
    return True
