"""WebpayGateway against a mocked HTTP transport."""

import json

import httpx
import pytest

from purchasing.errors import GatewayError, GatewayTimeout
from purchasing.gateway import get_gateway, reset_gateway
from purchasing.gateway.fake_adapter import FakeGateway
from purchasing.gateway.webpay_adapter import (
    INTEGRATION_API_KEY,
    INTEGRATION_COMMERCE_CODE,
    INTEGRATION_URL,
    TRANSACTIONS_PATH,
    WebpayGateway,
)


class Recorder:
    def __init__(self, responder):
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


def _gateway(responder):
    recorder = Recorder(responder)
    gateway = WebpayGateway(
        commerce_code=INTEGRATION_COMMERCE_CODE,
        api_key=INTEGRATION_API_KEY,
        transport=httpx.MockTransport(recorder),
    )
    return gateway, recorder


class TestCreateTransaction:
    def test_posts_transaction_and_returns_token(self):
        gateway, recorder = _gateway(
            lambda request: httpx.Response(200, json={"token": "tok-123", "url": "https://webpay/init"})
        )

        creation = gateway.create_transaction("ord-1_123456", "S1T1", 119000, "https://api/callback")

        assert creation.token == "tok-123"
        assert creation.redirect_url == "https://webpay/init?token_ws=tok-123"
        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == TRANSACTIONS_PATH
        assert request.headers["Tbk-Api-Key-Id"] == INTEGRATION_COMMERCE_CODE
        assert request.headers["Tbk-Api-Key-Secret"] == INTEGRATION_API_KEY
        assert json.loads(request.content) == {
            "buy_order": "ord-1_123456",
            "session_id": "S1T1",
            "amount": 119000,
            "return_url": "https://api/callback",
        }

    def test_missing_token_is_an_error(self):
        gateway, _ = _gateway(lambda request: httpx.Response(200, json={"url": "https://webpay/init"}))
        with pytest.raises(GatewayError):
            gateway.create_transaction("ord-1_123456", "S1T1", 1000, "https://api/callback")


class TestCommitTransaction:
    def test_approved_commit(self):
        gateway, recorder = _gateway(
            lambda request: httpx.Response(
                200,
                json={
                    "vci": "TSY",
                    "amount": 119000,
                    "status": "AUTHORIZED",
                    "buy_order": "ord-1_123456",
                    "session_id": "S1T1",
                    "card_detail": {"card_number": "6623"},
                    "accounting_date": "1019",
                    "transaction_date": "2026-10-19T15:00:00.000Z",
                    "authorization_code": "1213",
                    "payment_type_code": "VN",
                    "response_code": 0,
                    "installments_number": 0,
                },
            )
        )

        result = gateway.commit_transaction("tok-123")

        assert result.is_approved is True
        assert result.amount == 119000
        assert result.card_number == "6623"
        assert result.authorization_code == "1213"
        assert recorder.requests[0].method == "PUT"
        assert recorder.requests[0].url.path == f"{TRANSACTIONS_PATH}/tok-123"

    def test_rejected_commit(self):
        gateway, _ = _gateway(
            lambda request: httpx.Response(200, json={"status": "FAILED", "response_code": -1, "buy_order": "b"})
        )
        result = gateway.commit_transaction("tok-123")
        assert result.is_approved is False
        assert result.response_code == -1

    @pytest.mark.parametrize("body", [{"response_code": None}, {"response_code": "n/a"}, {}])
    def test_unusable_response_code_is_a_rejection(self, body):
        gateway, _ = _gateway(lambda request: httpx.Response(200, json={"status": "FAILED", "buy_order": "b", **body}))
        result = gateway.commit_transaction("tok-123")
        assert result.is_approved is False
        assert result.response_code == -1

    def test_timeout(self):
        def _timeout(request):
            raise httpx.ReadTimeout("timed out", request=request)

        gateway, _ = _gateway(_timeout)
        with pytest.raises(GatewayTimeout):
            gateway.commit_transaction("tok-123")

    def test_http_error_keeps_gateway_body_as_detail(self):
        gateway, _ = _gateway(
            lambda request: httpx.Response(422, json={"error_message": "Transaction already locked"})
        )
        with pytest.raises(GatewayError) as exc:
            gateway.commit_transaction("tok-123")
        assert not isinstance(exc.value, GatewayTimeout)
        assert "already locked" in exc.value.detail

    def test_connection_error(self):
        def _refused(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway, _ = _gateway(_refused)
        with pytest.raises(GatewayError):
            gateway.commit_transaction("tok-123")


class TestRefundTransaction:
    def test_reversal(self):
        gateway, recorder = _gateway(lambda request: httpx.Response(200, json={"type": "REVERSED"}))

        result = gateway.refund_transaction("tok-123", 119000)

        assert result.success is True
        assert result.refund_type == "REVERSED"
        assert result.amount == 119000
        assert recorder.requests[0].url.path == f"{TRANSACTIONS_PATH}/tok-123/refunds"

    def test_nullification(self):
        gateway, _ = _gateway(
            lambda request: httpx.Response(
                200,
                json={
                    "type": "NULLIFIED",
                    "authorization_code": "123456",
                    "nullified_amount": 1000,
                    "balance": 118000,
                    "response_code": 0,
                },
            )
        )
        result = gateway.refund_transaction("tok-123", 1000)
        assert result.success is True
        assert result.refund_id == "123456"
        assert result.amount == 1000

    def test_unauthorized_nullification(self):
        gateway, _ = _gateway(lambda request: httpx.Response(200, json={"type": "NULLIFIED", "response_code": -1}))
        result = gateway.refund_transaction("tok-123", 1000)
        assert result.success is False


class TestGatewayFactory:
    def test_fake_by_default(self, monkeypatch):
        monkeypatch.delenv("PAYMENT_GATEWAY", raising=False)
        reset_gateway()
        assert isinstance(get_gateway(), FakeGateway)

    def test_webpay_from_environment(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY", "webpay")
        reset_gateway()
        gateway = get_gateway()
        assert isinstance(gateway, WebpayGateway)
        assert str(gateway.client.base_url).startswith(INTEGRATION_URL)
        gateway.close()

    def test_unknown_gateway(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY", "paypal")
        reset_gateway()
        with pytest.raises(ValueError):
            get_gateway()
