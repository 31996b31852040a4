"""Request scope every protocol runs under."""

from dataclasses import dataclass

from protean.exceptions import ValidationError


@dataclass(frozen=True)
class RequestContext:
    tenant_id: str
    workspace_id: str
    user_id: str | None = None
    request_id: str | None = None


def require_context(ctx: RequestContext | None) -> RequestContext:
    """Reject a call that lacks its isolation scope.

    Invoked at the top of each protocol instead of relying on the HTTP layer.
    """
    if ctx is None:
        raise ValidationError({"context": ["Request context is required"]})

    errors = {}
    if not (ctx.tenant_id or "").strip():
        errors["tenant_id"] = ["Tenant id is required"]
    if not (ctx.workspace_id or "").strip():
        errors["workspace_id"] = ["Workspace id is required"]
    if errors:
        raise ValidationError(errors)
    return ctx
