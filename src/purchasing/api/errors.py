"""Map domain errors onto HTTP responses.

Gateway failures are answered with a generic message; the gateway's own
response is only ever written to the logs.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from purchasing.domain import logger
from purchasing.errors import (
    AlreadyPaid,
    Forbidden,
    GatewayError,
    GatewayTimeout,
    InsufficientStock,
    InvalidTransition,
    Unauthorized,
)


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"errors": exc.messages})


async def _conflict(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"errors": exc.messages})


async def _insufficient_stock(request: Request, exc: InsufficientStock) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "errors": exc.messages,
            "product_id": exc.product_id,
            "requested": exc.requested,
            "available": exc.available,
        },
    )


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
    return JSONResponse(status_code=401, content={"detail": str(exc)})


async def _forbidden(request: Request, exc: Forbidden) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": str(exc)})


async def _gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    logger.error("Payment gateway error", path=request.url.path, error=str(exc), detail=exc.detail)
    status_code = 504 if isinstance(exc, GatewayTimeout) else 502
    return JSONResponse(status_code=status_code, content={"detail": "Payment gateway unavailable, try again later"})


def register_error_handlers(app: FastAPI) -> None:
    # Starlette resolves handlers by walking the exception's MRO, so the
    # subclasses registered here win over their ValidationError base.
    app.add_exception_handler(InsufficientStock, _insufficient_stock)
    app.add_exception_handler(InvalidTransition, _conflict)
    app.add_exception_handler(AlreadyPaid, _conflict)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(Unauthorized, _unauthorized)
    app.add_exception_handler(Forbidden, _forbidden)
    app.add_exception_handler(GatewayError, _gateway_error)
