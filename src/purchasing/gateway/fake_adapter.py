"""Configurable fake card gateway for development and testing.

Simulates the redirect flow without network calls. It can be told to
approve or reject commits, to time out, or to refuse refunds, which makes
it usable from automated tests and from ``/payment/gateway/configure``
when poking the API by hand.
"""

from datetime import UTC, datetime
from uuid import uuid4

from purchasing.errors import GatewayError, GatewayTimeout
from purchasing.gateway.port import CommitResult, PaymentGateway, RefundResult, TransactionCreation

FAKE_PAYMENT_URL = "https://gateway.invalid/webpayserver/initTransaction"
REJECTED_RESPONSE_CODE = -1


class FakeGateway(PaymentGateway):
    def __init__(self) -> None:
        self.should_approve: bool = True
        self.response_code: int = REJECTED_RESPONSE_CODE
        self.simulate_timeout: bool = False
        self.refund_should_succeed: bool = True
        self.calls: list[dict] = []
        self.transactions: dict[str, dict] = {}

    def configure(
        self,
        should_approve: bool = True,
        response_code: int = REJECTED_RESPONSE_CODE,
        simulate_timeout: bool = False,
        refund_should_succeed: bool = True,
    ) -> None:
        self.should_approve = should_approve
        self.response_code = response_code
        self.simulate_timeout = simulate_timeout
        self.refund_should_succeed = refund_should_succeed

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def create_transaction(self, buy_order, session_id, amount, return_url) -> TransactionCreation:
        self.calls.append(
            {
                "method": "create_transaction",
                "buy_order": buy_order,
                "session_id": session_id,
                "amount": amount,
                "return_url": return_url,
            }
        )
        token = f"fake_tok_{uuid4().hex}"
        self.transactions[token] = {"buy_order": buy_order, "session_id": session_id, "amount": amount}
        return TransactionCreation(token=token, url=FAKE_PAYMENT_URL)

    def commit_transaction(self, token) -> CommitResult:
        self.calls.append({"method": "commit_transaction", "token": token})
        if self.simulate_timeout:
            raise GatewayTimeout("Gateway did not answer in time")

        transaction = self.transactions.get(token)
        if transaction is None:
            raise GatewayError("Unknown transaction token", detail=f"token={token}")

        if self.should_approve:
            return CommitResult(
                response_code=0,
                buy_order=transaction["buy_order"],
                session_id=transaction["session_id"],
                amount=transaction["amount"],
                authorization_code=uuid4().hex[:6].upper(),
                card_number="6623",
                installments=0,
                payment_type_code="VD",
                transaction_date=datetime.now(UTC).isoformat(),
                status="AUTHORIZED",
            )
        return CommitResult(
            response_code=self.response_code,
            buy_order=transaction["buy_order"],
            session_id=transaction["session_id"],
            amount=transaction["amount"],
            status="FAILED",
        )

    def refund_transaction(self, token, amount) -> RefundResult:
        self.calls.append({"method": "refund_transaction", "token": token, "amount": amount})
        if not self.refund_should_succeed:
            return RefundResult(success=False, failure_reason="Refund rejected by gateway")

        transaction = self.transactions.get(token, {})
        full = transaction.get("amount") == amount
        return RefundResult(
            success=True,
            refund_id=f"fake_ref_{uuid4().hex[:12]}",
            refund_type="REVERSED" if full else "NULLIFIED",
            amount=amount,
        )
