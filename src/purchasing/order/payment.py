"""Gateway payment bookkeeping on the order — commands and handler."""

from protean import handle
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from purchasing.domain import purchasing
from purchasing.order.order import Order


@purchasing.command(part_of="Order")
class RecordPaymentTransaction:
    order_id = Identifier(required=True)
    token = String(required=True, max_length=255)
    buy_order = String(required=True, max_length=26)
    session_id = String(required=True, max_length=61)
    amount = Integer(required=True)
    redirect_url = String(max_length=500)


@purchasing.command(part_of="Order")
class RecordPaymentOutcome:
    order_id = Identifier(required=True)
    approved = Boolean(required=True)
    response_code = Integer()
    authorization_code = String(max_length=50)
    amount = Integer()
    card_number = String(max_length=20)
    installments = Integer()
    payment_type_code = String(max_length=10)
    transaction_date = String(max_length=50)
    buy_order = String(max_length=26)
    token = String(max_length=255)


@purchasing.command(part_of="Order")
class RecordRefund:
    order_id = Identifier(required=True)
    refund_id = String(required=True, max_length=255)
    amount = Integer(required=True)
    refund_status = String(max_length=50)


@purchasing.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(RecordPaymentTransaction)
    def record_transaction(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_transaction(
            token=command.token,
            buy_order=command.buy_order,
            session_id=command.session_id,
            amount=command.amount,
            redirect_url=command.redirect_url,
        )
        repo.add(order)

    @handle(RecordPaymentOutcome)
    def record_outcome(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        changed = order.apply_payment_outcome(
            approved=bool(command.approved),
            response_code=command.response_code,
            authorization_code=command.authorization_code,
            amount=command.amount,
            card_number=command.card_number,
            installments=command.installments,
            payment_type_code=command.payment_type_code,
            transaction_date=command.transaction_date,
            buy_order=command.buy_order,
            token=command.token,
        )
        if changed:
            repo.add(order)
        return changed

    @handle(RecordRefund)
    def record_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_refund(
            refund_id=command.refund_id,
            amount=command.amount,
            refund_status=command.refund_status,
        )
        repo.add(order)
