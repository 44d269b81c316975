"""Card gateway port (abstract interface).

Models a redirect-based gateway: the merchant creates a transaction and gets
a token plus a URL to send the browser to; the gateway later sends the
browser back with the token, and the merchant commits the transaction to
learn the outcome.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

APPROVED_RESPONSE_CODE = 0


@dataclass(frozen=True)
class TransactionCreation:
    token: str
    url: str

    @property
    def redirect_url(self) -> str:
        return f"{self.url}?token_ws={self.token}"


@dataclass(frozen=True)
class CommitResult:
    """The gateway's answer to a commit, as reported by the gateway."""

    response_code: int
    buy_order: str | None = None
    session_id: str | None = None
    amount: int | None = None
    authorization_code: str | None = None
    card_number: str | None = None
    installments: int | None = None
    payment_type_code: str | None = None
    transaction_date: str | None = None
    status: str | None = None

    @property
    def is_approved(self) -> bool:
        return self.response_code == APPROVED_RESPONSE_CODE


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_id: str | None = None
    refund_type: str | None = None  # REVERSED or NULLIFIED
    amount: int | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    @abstractmethod
    def create_transaction(self, buy_order: str, session_id: str, amount: int, return_url: str) -> TransactionCreation:
        """Open a transaction and return the token and payment page URL."""
        ...

    @abstractmethod
    def commit_transaction(self, token: str) -> CommitResult:
        """Confirm a transaction after the browser returns from the gateway."""
        ...

    @abstractmethod
    def refund_transaction(self, token: str, amount: int) -> RefundResult:
        """Reverse or nullify all or part of an approved transaction."""
        ...
