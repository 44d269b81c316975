"""Purchasing API package."""

from purchasing.api.routes import catalogue_router, config_router, order_router, payment_router

__all__ = ["order_router", "payment_router", "config_router", "catalogue_router"]
