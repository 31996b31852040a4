"""Environment-driven settings for the cashless context."""

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}

DEFAULT_STALENESS_MS = 15_000
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 10.0


def _flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUTHY


def _optional(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    credential_vault_key: str | None = None
    sumup_webhook_secret: str | None = None
    adyen_hmac_key: str | None = None
    allow_unsigned_webhooks: bool = False
    default_provider: str = "sumup"
    staleness_ms: int = DEFAULT_STALENESS_MS
    provider_timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=os.environ.get("PROTEAN_ENV", "development").strip().lower() or "development",
            credential_vault_key=_optional("CREDENTIAL_VAULT_KEY"),
            sumup_webhook_secret=_optional("SUMUP_WEBHOOK_SECRET"),
            adyen_hmac_key=_optional("ADYEN_HMAC_KEY"),
            allow_unsigned_webhooks=_flag("ALLOW_UNSIGNED_WEBHOOKS"),
            default_provider=(_optional("CASHLESS_DEFAULT_PROVIDER") or "sumup").lower(),
            staleness_ms=int(os.environ.get("CASHLESS_STALENESS_MS", DEFAULT_STALENESS_MS)),
            provider_timeout_seconds=float(
                os.environ.get("PROVIDER_TIMEOUT_SECONDS", DEFAULT_PROVIDER_TIMEOUT_SECONDS)
            ),
        )


_current_settings: Settings | None = None


def get_settings() -> Settings:
    """Return process settings, read from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = Settings.from_env()
    return _current_settings


def set_settings(settings: Settings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Drop cached settings so the next read goes back to the environment."""
    global _current_settings
    _current_settings = None
