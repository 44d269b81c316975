import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from purchasing.api import catalogue_router, config_router, order_router, payment_router
from purchasing.api.errors import register_error_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(payment_router)
    app.include_router(config_router)
    app.include_router(catalogue_router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def auth():
    """Headers the upstream auth layer would set for a caller."""

    def _headers(principal):
        headers = {"X-User-Id": principal.user_id, "X-User-Role": principal.role}
        if principal.email:
            headers["X-User-Email"] = principal.email
        return headers

    return _headers
