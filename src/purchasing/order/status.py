"""Order status changes and cancellation — commands and handler."""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from purchasing.domain import purchasing
from purchasing.order.order import Order


@purchasing.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    mark_paid = Boolean(default=False)


@purchasing.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    cancelled_by = String(max_length=255)


@purchasing.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.change_status(command.status, mark_paid=bool(command.mark_paid))
        repo.add(order)
        return order.status

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        cancelled = order.cancel(cancelled_by=command.cancelled_by)
        if cancelled:
            repo.add(order)
        return cancelled
