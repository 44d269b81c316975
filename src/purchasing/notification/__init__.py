"""Notification adapter factory.

Provides get_notifier() / set_notifier() to swap implementations:
- LogNotifier by default (``NOTIFIER=log``)
- FakeNotifier for tests and local runs (``NOTIFIER=fake``)
"""

import os

from purchasing.notification.port import NotificationPort

_current_notifier: NotificationPort | None = None


def _from_environment() -> NotificationPort:
    kind = os.environ.get("NOTIFIER", "log").lower()
    if kind == "fake":
        from purchasing.notification.fake_adapter import FakeNotifier

        return FakeNotifier()
    if kind == "log":
        from purchasing.notification.log_adapter import LogNotifier

        return LogNotifier()
    raise ValueError(f"Unknown notifier: {kind}")


def get_notifier() -> NotificationPort:
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = _from_environment()
    return _current_notifier


def set_notifier(notifier: NotificationPort) -> None:
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None
