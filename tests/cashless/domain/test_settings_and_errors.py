"""Tests for environment settings, request context and the error taxonomy."""

import pytest
from cashless.config import DEFAULT_STALENESS_MS, Settings
from cashless.context import RequestContext, require_context
from cashless.exceptions import (
    IllegalTransitionError,
    InvalidEnvelopeError,
    ProviderError,
    ProviderTimeoutError,
    WebhookSignatureError,
)
from protean.exceptions import ValidationError


class TestSettingsFromEnv:
    def test_defaults(self, monkeypatch):
        for name in (
            "PROTEAN_ENV",
            "CREDENTIAL_VAULT_KEY",
            "SUMUP_WEBHOOK_SECRET",
            "ADYEN_HMAC_KEY",
            "ALLOW_UNSIGNED_WEBHOOKS",
            "CASHLESS_DEFAULT_PROVIDER",
            "CASHLESS_STALENESS_MS",
            "PROVIDER_TIMEOUT_SECONDS",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()
        assert settings.environment == "development"
        assert settings.credential_vault_key is None
        assert settings.allow_unsigned_webhooks is False
        assert settings.default_provider == "sumup"
        assert settings.staleness_ms == DEFAULT_STALENESS_MS == 15_000
        assert settings.provider_timeout_seconds == 10.0
        assert settings.is_production is False

    def test_reads_overrides(self, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "Production")
        monkeypatch.setenv("CREDENTIAL_VAULT_KEY", "k")
        monkeypatch.setenv("ALLOW_UNSIGNED_WEBHOOKS", "yes")
        monkeypatch.setenv("CASHLESS_DEFAULT_PROVIDER", "ADYEN")
        monkeypatch.setenv("CASHLESS_STALENESS_MS", "5000")
        monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "2.5")

        settings = Settings.from_env()
        assert settings.is_production is True
        assert settings.credential_vault_key == "k"
        assert settings.allow_unsigned_webhooks is True
        assert settings.default_provider == "adyen"
        assert settings.staleness_ms == 5000
        assert settings.provider_timeout_seconds == 2.5


class TestRequireContext:
    def test_accepts_a_complete_context(self):
        ctx = RequestContext(tenant_id="t1", workspace_id="w1")
        assert require_context(ctx) is ctx

    def test_missing_context(self):
        with pytest.raises(ValidationError) as exc_info:
            require_context(None)
        assert "context" in exc_info.value.messages

    def test_blank_scoping_ids(self):
        with pytest.raises(ValidationError) as exc_info:
            require_context(RequestContext(tenant_id=" ", workspace_id=""))
        assert set(exc_info.value.messages) == {"tenant_id", "workspace_id"}


class TestProviderError:
    @pytest.mark.parametrize(
        "status,retryable",
        [(None, True), (500, True), (503, True), (429, True), (400, False), (401, False), (404, False)],
    )
    def test_retryable_follows_upstream_status(self, status, retryable):
        assert ProviderError("boom", provider="sumup", status=status).retryable is retryable

    def test_explicit_retryable_wins(self):
        assert ProviderError("bad json", provider="sumup", status=None, retryable=False).retryable is False

    def test_timeouts_are_retryable_provider_errors(self):
        exc = ProviderTimeoutError("slow", provider="adyen")
        assert isinstance(exc, ProviderError)
        assert exc.retryable is True
        assert exc.status is None


class TestTaxonomy:
    def test_illegal_transition_is_not_a_validation_error(self):
        exc = IllegalTransitionError("att-1", "paid", "pending")
        assert isinstance(exc, RuntimeError)
        assert not isinstance(exc, ValidationError)
        assert "att-1" in str(exc)

    def test_envelope_and_signature_errors_are_validation_errors(self):
        assert issubclass(InvalidEnvelopeError, ValidationError)
        assert issubclass(WebhookSignatureError, ValidationError)
