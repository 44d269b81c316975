"""Order notification port — abstract interface for customer notifications."""

from abc import ABC, abstractmethod

from purchasing.principal import Principal


class NotificationPort(ABC):
    @abstractmethod
    def notify_order_created(self, order, user: Principal) -> None:
        """Tell the customer their order was received."""
        ...

    @abstractmethod
    def notify_order_status_changed(self, order, user: Principal | None) -> None:
        """Tell the customer their order moved to a new status."""
        ...
