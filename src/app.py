"""Cashless FastAPI application.

Web server for POS cashless payments, provider webhooks and integration
connections. Every request runs inside the cashless domain context.

Usage (needs the ``serve`` extra):
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay and the log format.
from cashless.domain import cashless  # noqa: E402

cashless.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
from cashless.api.application import build_app  # noqa: E402

app = build_app()
