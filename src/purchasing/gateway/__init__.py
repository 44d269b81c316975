"""Card gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (``PAYMENT_GATEWAY=fake``, the default)
- WebpayGateway for Transbank Webpay Plus (``PAYMENT_GATEWAY=webpay``)
"""

import os

from purchasing.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _from_environment() -> PaymentGateway:
    kind = os.environ.get("PAYMENT_GATEWAY", "fake").lower()
    if kind == "webpay":
        from purchasing.gateway.webpay_adapter import WebpayGateway

        return WebpayGateway.from_environment()
    if kind == "fake":
        from purchasing.gateway.fake_adapter import FakeGateway

        return FakeGateway()
    raise ValueError(f"Unknown payment gateway: {kind}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from the environment on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _from_environment()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
