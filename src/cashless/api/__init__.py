"""Cashless API package."""

from cashless.api.connections import connection_router
from cashless.api.errors import register_error_handlers
from cashless.api.routes import pos_router
from cashless.api.webhooks import webhook_router

__all__ = ["pos_router", "webhook_router", "connection_router", "register_error_handlers"]
