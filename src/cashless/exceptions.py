"""Error taxonomy for the cashless context.

Bad input and unknown records use Protean's own ``ValidationError`` and
``ObjectNotFoundError``. The classes here cover what Protean has no name for.
"""

from protean.exceptions import ValidationError


class ConflictError(Exception):
    """The request collides with existing state (duplicate key race, unusable connection)."""

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class IllegalTransitionError(RuntimeError):
    """A status change outside the attempt state graph.

    Never a user error: it means a bug, or a provider report that contradicts
    what was observed before.
    """

    def __init__(self, attempt_id: str, current: str, target: str) -> None:
        super().__init__(f"Payment attempt {attempt_id} cannot transition from {current} to {target}")
        self.attempt_id = attempt_id
        self.current = current
        self.target = target


class InvalidEnvelopeError(ValidationError):
    """An encrypted credential envelope is malformed or fails authentication."""


class WebhookSignatureError(ValidationError):
    """A webhook request could not be authenticated."""


class ProviderError(Exception):
    """A payment provider call failed."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status = status
        if retryable is None:
            retryable = status is None or status >= 500 or status == 429
        self.retryable = retryable


class ProviderTimeoutError(ProviderError):
    """A payment provider did not answer within the configured bound."""

    def __init__(self, message: str, *, provider: str) -> None:
        super().__init__(message, provider=provider, retryable=True)
