"""Recording notification adapter for tests.

Keeps every notification in ``sent`` and can be switched to fail so tests
can check that a broken notifier never breaks the order flow.
"""

from purchasing.notification.port import NotificationPort


class FakeNotifier(NotificationPort):
    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.should_fail: bool = False
        self.failure_message: str = "SMTP connection refused"

    def configure(self, should_fail: bool, failure_message: str = "SMTP connection refused") -> None:
        self.should_fail = should_fail
        self.failure_message = failure_message

    def _record(self, kind: str, order, user) -> None:
        if self.should_fail:
            raise ConnectionError(self.failure_message)
        self.sent.append(
            {
                "kind": kind,
                "order_id": str(order.id),
                "status": order.status,
                "user_id": user.user_id if user else None,
            }
        )

    def notify_order_created(self, order, user) -> None:
        self._record("order_created", order, user)

    def notify_order_status_changed(self, order, user) -> None:
        self._record("order_status_changed", order, user)
