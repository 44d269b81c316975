"""Payment gateway adapter — the order-facing side of the card gateway.

Wraps the raw gateway port with the rules that keep one live transaction
per order: who may pay, when an existing transaction is handed out again,
and what gets persisted before the customer is redirected.
"""

import os
from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from purchasing.domain import logger
from purchasing.errors import GatewayError, OrderNotFound, Unauthorized
from purchasing.gateway import get_gateway
from purchasing.gateway.port import CommitResult, PaymentGateway
from purchasing.order.order import Order
from purchasing.order.payment import RecordPaymentTransaction, RecordRefund
from purchasing.order.service import order_locks
from purchasing.payment.correlation import CorrelationStore, get_correlation_store
from purchasing.payment.identifiers import generate_buy_order, generate_session_id
from purchasing.principal import Principal
from purchasing.utils.locks import KeyedLocks

DEFAULT_RETURN_URL = "http://localhost:8000/payment/callback"


def return_url() -> str:
    return os.environ.get("PAYMENT_RETURN_URL", DEFAULT_RETURN_URL)


@dataclass(frozen=True)
class TransactionHandle:
    order_id: str
    token: str
    url: str
    buy_order: str
    amount: int
    reused: bool = False

    @property
    def redirect_url(self) -> str:
        return f"{self.url}?token_ws={self.token}"


@dataclass(frozen=True)
class TransactionOutcome:
    is_approved: bool
    response_code: int
    buy_order: str | None = None
    session_id: str | None = None
    amount: int | None = None
    authorization_code: str | None = None
    card_number: str | None = None
    installments: int | None = None
    payment_type_code: str | None = None
    transaction_date: str | None = None

    @classmethod
    def from_commit(cls, result: CommitResult) -> "TransactionOutcome":
        return cls(
            is_approved=result.is_approved,
            response_code=result.response_code,
            buy_order=result.buy_order,
            session_id=result.session_id,
            amount=int(result.amount) if result.amount is not None else None,
            authorization_code=result.authorization_code,
            card_number=result.card_number,
            installments=result.installments,
            payment_type_code=result.payment_type_code,
            transaction_date=result.transaction_date,
        )


@dataclass(frozen=True)
class RefundOutcome:
    order_id: str
    refund_id: str
    amount: int
    status: str
    already_refunded: bool = False


class PaymentGatewayAdapter:
    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        store: CorrelationStore | None = None,
        locks: KeyedLocks | None = None,
    ):
        self._gateway = gateway
        self.store = store or get_correlation_store()
        self.locks = locks or order_locks()

    @property
    def gateway(self) -> PaymentGateway:
        return self._gateway or get_gateway()

    def _load(self, order_id: str) -> Order:
        try:
            return current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError as exc:
            raise OrderNotFound(order_id) from exc

    def create_transaction(self, order_id: str, principal: Principal) -> TransactionHandle:
        """Open (or hand back) the gateway transaction for an order.

        All checks run before the gateway is contacted. The transaction is
        persisted on the order and registered for callback correlation
        before the handle is returned; if either write fails, the error
        propagates and the customer is never redirected.
        """
        order = self._load(order_id)
        if not principal.owns(order):
            raise Unauthorized(f"Order {order_id} does not belong to user {principal.user_id}")
        order.assert_payable()

        with self.locks.hold(order_id):
            order = self._load(order_id)
            order.assert_payable()

            existing = order.reusable_transaction()
            if existing is not None:
                logger.info("Reusing pending gateway transaction", order_id=order_id, buy_order=existing.buy_order)
                return TransactionHandle(
                    order_id=order_id,
                    token=existing.token,
                    url=existing.redirect_url,
                    buy_order=existing.buy_order,
                    amount=existing.amount,
                    reused=True,
                )

            buy_order = generate_buy_order(order_id)
            session_id = generate_session_id(principal.user_id)
            creation = self.gateway.create_transaction(buy_order, session_id, order.total, return_url())

            current_domain.process(
                RecordPaymentTransaction(
                    order_id=order_id,
                    token=creation.token,
                    buy_order=buy_order,
                    session_id=session_id,
                    amount=order.total,
                    redirect_url=creation.url,
                ),
                asynchronous=False,
            )
            self.store.register(buy_order, order_id, creation.token)

        logger.info("Gateway transaction created", order_id=order_id, buy_order=buy_order, amount=order.total)
        return TransactionHandle(
            order_id=order_id,
            token=creation.token,
            url=creation.url,
            buy_order=buy_order,
            amount=order.total,
        )

    def confirm_transaction(self, token: str) -> TransactionOutcome:
        """Commit the transaction with the gateway. Response code 0 means approved."""
        outcome = TransactionOutcome.from_commit(self.gateway.commit_transaction(token))
        logger.info(
            "Gateway transaction confirmed",
            buy_order=outcome.buy_order,
            approved=outcome.is_approved,
            response_code=outcome.response_code,
        )
        return outcome

    def refund(self, order_id: str, amount: int | None = None) -> RefundOutcome:
        """Refund a paid order. A second call returns the first refund untouched."""
        with self.locks.hold(order_id):
            order = self._load(order_id)
            result = order.payment_result
            if not order.is_paid or result is None or not result.token:
                raise ValidationError({"payment": [f"Order {order_id} has no paid gateway transaction"]})

            if result.refund_id:
                logger.info("Refund already processed", order_id=order_id, refund_id=result.refund_id)
                return RefundOutcome(
                    order_id=order_id,
                    refund_id=result.refund_id,
                    amount=result.refund_amount,
                    status=result.refund_status,
                    already_refunded=True,
                )

            paid_amount = result.amount if result.amount is not None else order.total
            amount = paid_amount if amount is None else amount
            if amount <= 0 or amount > paid_amount:
                raise ValidationError({"amount": [f"Refund amount must be between 1 and {paid_amount}"]})

            refund = self.gateway.refund_transaction(result.token, amount)
            if not refund.success:
                logger.error("Gateway refused refund", order_id=order_id, reason=refund.failure_reason)
                raise GatewayError("Refund was not accepted by the gateway", detail=refund.failure_reason)

            current_domain.process(
                RecordRefund(
                    order_id=order_id,
                    refund_id=refund.refund_id,
                    amount=refund.amount or amount,
                    refund_status=refund.refund_type,
                ),
                asynchronous=False,
            )

        logger.info("Order refunded", order_id=order_id, refund_id=refund.refund_id, amount=amount)
        return RefundOutcome(
            order_id=order_id,
            refund_id=refund.refund_id,
            amount=refund.amount or amount,
            status=refund.refund_type,
        )
