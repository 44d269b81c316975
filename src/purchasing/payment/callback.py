"""Gateway return callback.

The gateway sends the browser back either as a GET with query parameters or
as a POST with form fields, depending on the flow. Both are normalized into
one ``CallbackPayload`` and handled by the same code path. Every outcome,
including failures, ends in a redirect to the storefront; the ``code``
query parameter tells the storefront what happened.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlencode

from protean.utils.globals import current_domain

from purchasing.domain import logger
from purchasing.errors import GatewayError, GatewayTimeout, OrderNotFound
from purchasing.notification.dispatch import send_order_status_changed
from purchasing.order.order import Order, OrderStatus, TransactionStatus
from purchasing.order.payment import RecordPaymentOutcome
from purchasing.payment.adapter import PaymentGatewayAdapter, TransactionOutcome
from purchasing.payment.correlator import TransactionCorrelator
from purchasing.principal import Principal

DEFAULT_STOREFRONT_URL = "http://localhost:3000"


class CallbackCode:
    APPROVED = "approved"
    ALREADY_PROCESSED = "already_processed"
    REJECTED = "payment_rejected"
    ABORTED = "payment_aborted"
    ORDER_NOT_FOUND = "order_not_found"
    PENDING = "confirmation_pending"
    GATEWAY_ERROR = "gateway_error"
    AMOUNT_MISMATCH = "amount_mismatch"


@dataclass(frozen=True)
class CallbackPayload:
    token: str | None = None
    aborted_token: str | None = None
    buy_order: str | None = None
    session_id: str | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "CallbackPayload":
        """Build from GET query parameters or POST form fields alike."""

        def pick(name):
            value = params.get(name)
            return value.strip() if isinstance(value, str) and value.strip() else None

        return cls(
            token=pick("token_ws"),
            aborted_token=pick("TBK_TOKEN"),
            buy_order=pick("TBK_ORDEN_COMPRA"),
            session_id=pick("TBK_ID_SESION"),
        )

    @property
    def is_aborted(self) -> bool:
        """The customer cancelled or timed out on the payment page."""
        return self.token is None


@dataclass(frozen=True)
class CallbackResult:
    code: str
    order_id: str | None = None
    approved: bool = False

    @property
    def redirect_url(self) -> str:
        storefront = os.environ.get("STOREFRONT_URL", DEFAULT_STOREFRONT_URL).rstrip("/")
        page = "success" if self.approved or self.code == CallbackCode.ALREADY_PROCESSED else "failure"
        query = {"code": self.code}
        if self.order_id:
            query["order_id"] = self.order_id
        return f"{storefront}/payment/{page}?{urlencode(query)}"


class CallbackHandler:
    def __init__(
        self,
        adapter: PaymentGatewayAdapter | None = None,
        correlator: TransactionCorrelator | None = None,
    ):
        self.adapter = adapter or PaymentGatewayAdapter()
        self.correlator = correlator or TransactionCorrelator(store=self.adapter.store)

    def handle(self, payload: CallbackPayload) -> CallbackResult:
        if payload.is_aborted:
            logger.info(
                "Payment aborted by customer",
                buy_order=payload.buy_order,
                token=payload.aborted_token,
            )
            order_id = None
            if payload.buy_order or payload.aborted_token:
                try:
                    order_id = self.correlator.resolve(
                        token=payload.aborted_token,
                        buy_order=payload.buy_order,
                        allow_heuristic=False,
                    ).order_id
                except OrderNotFound:
                    order_id = None
            return CallbackResult(CallbackCode.ABORTED, order_id)

        try:
            resolution = self.correlator.resolve(token=payload.token, buy_order=payload.buy_order)
        except OrderNotFound:
            return CallbackResult(CallbackCode.ORDER_NOT_FOUND)

        order_id = resolution.order_id
        order = current_domain.repository_for(Order).get(order_id)
        if order.is_paid:
            logger.info("Duplicate callback for paid order", order_id=order_id)
            return CallbackResult(CallbackCode.ALREADY_PROCESSED, order_id, approved=True)

        result = order.payment_result
        if result and result.token == payload.token and result.status == TransactionStatus.REJECTED.value:
            logger.info("Duplicate callback for rejected transaction", order_id=order_id)
            return CallbackResult(CallbackCode.REJECTED, order_id)

        try:
            outcome = self.adapter.confirm_transaction(payload.token)
        except GatewayTimeout:
            logger.warning("Gateway confirmation timed out, order left unconfirmed", order_id=order_id)
            return CallbackResult(CallbackCode.PENDING, order_id)
        except GatewayError as exc:
            logger.error("Gateway confirmation failed", order_id=order_id, detail=exc.detail)
            return CallbackResult(CallbackCode.GATEWAY_ERROR, order_id)

        if outcome.buy_order and order.payment_result and outcome.buy_order != order.payment_result.buy_order:
            logger.warning(
                "Confirmed buy order differs from resolved order",
                order_id=order_id,
                strategy=resolution.strategy,
                confirmed_buy_order=outcome.buy_order,
            )
            try:
                order_id = self.correlator.resolve(
                    token=payload.token,
                    buy_order=outcome.buy_order,
                    allow_heuristic=False,
                ).order_id
            except OrderNotFound:
                return CallbackResult(CallbackCode.ORDER_NOT_FOUND)

        return self._apply(order_id, outcome, payload.token)

    def _apply(self, order_id: str, outcome: TransactionOutcome, token: str) -> CallbackResult:
        repo = current_domain.repository_for(Order)

        with self.adapter.locks.hold(order_id):
            order = repo.get(order_id)
            if order.is_paid:
                return CallbackResult(CallbackCode.ALREADY_PROCESSED, order_id, approved=True)

            approved = outcome.is_approved
            code = CallbackCode.APPROVED if approved else CallbackCode.REJECTED
            if approved and outcome.amount is not None and outcome.amount != order.total:
                logger.error(
                    "Confirmed amount does not match order total",
                    order_id=order_id,
                    confirmed_amount=outcome.amount,
                    order_total=order.total,
                )
                approved = False
                code = CallbackCode.AMOUNT_MISMATCH

            if approved and order.status == OrderStatus.CANCELLED.value:
                logger.error("Payment approved for cancelled order, refund required", order_id=order_id)

            current_domain.process(
                RecordPaymentOutcome(
                    order_id=order_id,
                    approved=approved,
                    response_code=outcome.response_code,
                    authorization_code=outcome.authorization_code,
                    amount=outcome.amount,
                    card_number=outcome.card_number,
                    installments=outcome.installments,
                    payment_type_code=outcome.payment_type_code,
                    transaction_date=outcome.transaction_date,
                    buy_order=outcome.buy_order,
                    token=token,
                ),
                asynchronous=False,
            )

        order = repo.get(order_id)
        send_order_status_changed(order, Principal(user_id=str(order.customer_id), email=order.customer_email))
        logger.info("Payment callback applied", order_id=order_id, code=code)
        return CallbackResult(code, order_id, approved=approved)


def handle_callback(params: Mapping[str, str]) -> CallbackResult:
    return CallbackHandler().handle(CallbackPayload.from_params(params))
