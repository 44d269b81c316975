"""Transbank Webpay Plus adapter (REST API v1.2).

Every call is bounded by ``timeout`` seconds. A timeout surfaces as
``GatewayTimeout`` so callers can treat the transaction as unconfirmed
rather than failed; any other transport or HTTP error surfaces as
``GatewayError`` with the raw response kept for the logs.
"""

import os

import httpx

from purchasing.domain import logger
from purchasing.errors import GatewayError, GatewayTimeout
from purchasing.gateway.port import CommitResult, PaymentGateway, RefundResult, TransactionCreation

INTEGRATION_URL = "https://webpay3gint.transbank.cl"
PRODUCTION_URL = "https://webpay3g.transbank.cl"
TRANSACTIONS_PATH = "/rswebpaytransaction/api/webpay/v1.2/transactions"

# Public integration credentials published by Transbank for Webpay Plus
INTEGRATION_COMMERCE_CODE = "597055555532"
INTEGRATION_API_KEY = "579B532A7440BB0C9079DED94D31EA1615BACEB56610332264630D42D0A36B1C"

DEFAULT_TIMEOUT_SECONDS = 10.0

# Webpay's generic rejection code
REJECTED_RESPONSE_CODE = -1


def _response_code(value) -> int:
    """Missing, null or non-numeric codes count as a rejection."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return REJECTED_RESPONSE_CODE


class WebpayGateway(PaymentGateway):
    def __init__(
        self,
        commerce_code: str,
        api_key: str,
        base_url: str = INTEGRATION_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.commerce_code = commerce_code
        self.client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Tbk-Api-Key-Id": commerce_code,
                "Tbk-Api-Key-Secret": api_key,
                "Content-Type": "application/json",
            },
        )

    @classmethod
    def from_environment(cls) -> "WebpayGateway":
        """Build from WEBPAY_* variables, defaulting to the integration sandbox."""
        environment = os.environ.get("WEBPAY_ENVIRONMENT", "integration").lower()
        if environment == "production":
            commerce_code = os.environ["WEBPAY_COMMERCE_CODE"]
            api_key = os.environ["WEBPAY_API_KEY"]
            base_url = PRODUCTION_URL
        else:
            commerce_code = os.environ.get("WEBPAY_COMMERCE_CODE", INTEGRATION_COMMERCE_CODE)
            api_key = os.environ.get("WEBPAY_API_KEY", INTEGRATION_API_KEY)
            base_url = INTEGRATION_URL

        timeout = float(os.environ.get("WEBPAY_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
        return cls(commerce_code=commerce_code, api_key=api_key, base_url=base_url, timeout=timeout)

    def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        try:
            response = self.client.request(method, f"{TRANSACTIONS_PATH}{path}", json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("Webpay request timed out", method=method, path=path)
            raise GatewayTimeout("Payment gateway did not answer in time") from exc
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Webpay request rejected",
                method=method,
                path=path,
                status_code=exc.response.status_code,
                body=exc.response.text,
            )
            raise GatewayError("Payment gateway rejected the request", detail=exc.response.text) from exc
        except httpx.HTTPError as exc:
            logger.error("Webpay request failed", method=method, path=path, error=str(exc))
            raise GatewayError("Payment gateway unreachable", detail=str(exc)) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError("Payment gateway returned an unreadable response", detail=response.text) from exc

    def create_transaction(self, buy_order, session_id, amount, return_url) -> TransactionCreation:
        body = self._request(
            "POST",
            "",
            {
                "buy_order": buy_order,
                "session_id": session_id,
                "amount": amount,
                "return_url": return_url,
            },
        )
        if not body.get("token") or not body.get("url"):
            raise GatewayError("Payment gateway did not return a token", detail=str(body))
        return TransactionCreation(token=body["token"], url=body["url"])

    def commit_transaction(self, token) -> CommitResult:
        body = self._request("PUT", f"/{token}")
        card_detail = body.get("card_detail") or {}
        return CommitResult(
            response_code=_response_code(body.get("response_code")),
            buy_order=body.get("buy_order"),
            session_id=body.get("session_id"),
            amount=body.get("amount"),
            authorization_code=body.get("authorization_code"),
            card_number=card_detail.get("card_number"),
            installments=body.get("installments_number"),
            payment_type_code=body.get("payment_type_code"),
            transaction_date=body.get("transaction_date"),
            status=body.get("status"),
        )

    def refund_transaction(self, token, amount) -> RefundResult:
        body = self._request("POST", f"/{token}/refunds", {"amount": amount})
        refund_type = body.get("type")
        if refund_type not in ("REVERSED", "NULLIFIED"):
            return RefundResult(success=False, failure_reason=f"Unexpected refund type {refund_type}")

        if refund_type == "NULLIFIED" and body.get("response_code", 0) != 0:
            return RefundResult(success=False, refund_type=refund_type, failure_reason="Refund not authorized")

        return RefundResult(
            success=True,
            refund_id=body.get("authorization_code") or token,
            refund_type=refund_type,
            amount=int(body["nullified_amount"]) if body.get("nullified_amount") is not None else amount,
        )

    def close(self) -> None:
        self.client.close()
