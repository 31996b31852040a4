"""Cashless payments bounded context: POS payment attempts and provider integrations.

Owns the lifecycle of a cashless payment attempt (started synchronously, advanced by
provider webhooks and by client-triggered polling), the gateway abstraction over
payment providers, and the integration connections that hold provider credentials.
"""

from protean.domain import Domain

from cashless.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
cashless = Domain(name="cashless")
