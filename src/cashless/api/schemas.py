"""Pydantic request/response schemas for the cashless API.

These are external contracts (anti-corruption layer), separate from the
internal protocol inputs and Protean commands. Field names are camelCase on the
wire; snake_case is accepted on input as well.
"""

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Next-action variants
# ---------------------------------------------------------------------------
class NoActionSchema(CamelModel):
    type: Literal["none"] = "none"


class RedirectUrlSchema(CamelModel):
    type: Literal["redirect_url"] = "redirect_url"
    url: str


class QrPayloadSchema(CamelModel):
    type: Literal["qr_payload"] = "qr_payload"
    payload: str


class TerminalActionSchema(CamelModel):
    type: Literal["terminal_action"] = "terminal_action"
    instruction: str


ActionSchema = Annotated[
    NoActionSchema | RedirectUrlSchema | QrPayloadSchema | TerminalActionSchema,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# POS payment schemas
# ---------------------------------------------------------------------------
class StartPaymentBody(CamelModel):
    register_id: str
    sale_id: str | None = None
    amount_cents: int
    currency: str
    idempotency_key: str | None = None
    provider_hint: str | None = None
    reference: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "registerId": "reg-001",
                    "saleId": "sale-001",
                    "amountCents": 2400,
                    "currency": "EUR",
                    "idempotencyKey": "idem-001",
                    "providerHint": "sumup",
                }
            ]
        },
    )


class StartPaymentResponse(CamelModel):
    attempt_id: str
    provider_kind: str
    provider_ref: str
    status: str
    action: ActionSchema
    expires_at: datetime | None = None


class AttemptStatusResponse(CamelModel):
    attempt_id: str
    provider_kind: str
    provider_ref: str
    status: str
    action: ActionSchema
    paid_at: datetime | None = None
    failure_reason: str | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Integration connection schemas
# ---------------------------------------------------------------------------
class CreateConnectionBody(CamelModel):
    kind: str
    workspace_id: str | None = None
    auth_method: str = "api_key"
    status: str = "active"
    config: dict[str, Any] = Field(default_factory=dict)
    secret: str | None = None


class UpdateConnectionBody(CamelModel):
    status: str | None = None
    config: dict[str, Any] | None = None
    secret: str | None = None


class ConnectionResponse(CamelModel):
    id: str
    workspace_id: str
    kind: str
    auth_method: str
    status: str
    config: dict[str, Any] = Field(default_factory=dict)
    has_secret: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ConnectionTestResponse(CamelModel):
    ok: bool
    error: str | None = None


class StatusResponse(CamelModel):
    status: str
