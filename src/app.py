"""Storefront purchasing FastAPI application.

Processes commands synchronously over HTTP. Every request runs inside the
purchasing domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from purchasing/domain.toml.
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from purchasing.domain import logger, purchasing
from purchasing.utils.logging import bind_request_context, clear_request_context, configure_logging

configure_logging()
purchasing.init()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed missing default settings before serving requests."""
    from purchasing.settings.management import seed_defaults

    with purchasing.domain_context():
        created = seed_defaults()
    logger.info("Purchasing API started", seeded_config=created)
    yield


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Purchasing API",
    description="Order pricing, order lifecycle and card payment reconciliation",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the purchasing domain context and bind request details for logging."""
    bind_request_context(path=request.url.path, method=request.method, user_id=request.headers.get("x-user-id"))
    try:
        with purchasing.domain_context():
            return await call_next(request)
    finally:
        clear_request_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from purchasing.api import catalogue_router, config_router, order_router, payment_router  # noqa: E402
from purchasing.api.errors import register_error_handlers  # noqa: E402

app.include_router(order_router)
app.include_router(payment_router)
app.include_router(config_router)
app.include_router(catalogue_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domains": {"purchasing": {"name": purchasing.name}}})
