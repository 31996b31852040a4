"""Integration tests for the POS cashless payment API via TestClient."""

import pytest
from cashless.api.application import build_app
from cashless.attempt.attempt import PaymentAttempt
from fastapi.testclient import TestClient
from protean.utils.globals import current_domain

HEADERS = {"X-Tenant-Id": "t1", "X-Workspace-Id": "w1", "X-User-Id": "cashier-1"}


@pytest.fixture()
def client(registry, sumup_connection):
    return TestClient(build_app())


def _start(client, headers=None, **overrides):
    body = {
        "registerId": "reg-1",
        "saleId": "sale-1",
        "amountCents": 2400,
        "currency": "EUR",
        "idempotencyKey": "idem-api-1",
    }
    body.update(overrides)
    return client.post("/pos/payments/cashless/start", json=body, headers=headers or HEADERS)


class TestStartPaymentAPI:
    def test_start_returns_201_with_the_action(self, client):
        response = _start(client)

        assert response.status_code == 201
        data = response.json()
        assert set(data) == {"attemptId", "providerKind", "providerRef", "status", "action", "expiresAt"}
        assert data["providerKind"] == "sumup"
        assert data["status"] == "pending"
        assert data["action"] == {"type": "redirect_url", "url": f"https://pay.example.test/{data['providerRef']}"}

    def test_replay_returns_200_and_the_same_attempt(self, client, fake_client):
        first = _start(client).json()
        response = _start(client, amountCents=9900)

        assert response.status_code == 200
        assert response.json()["attemptId"] == first["attemptId"]
        assert len(fake_client.calls) == 1

    def test_idempotency_key_header_fallback(self, client):
        headers = {**HEADERS, "Idempotency-Key": "hdr-key"}
        first = _start(client, headers=headers, idempotencyKey=None).json()
        second = _start(client, headers=headers, idempotencyKey=None).json()

        assert first["attemptId"] == second["attemptId"]
        attempt = current_domain.repository_for(PaymentAttempt).get(first["attemptId"])
        assert attempt.idempotency_key == "hdr-key"

    def test_request_id_is_the_last_fallback(self, client):
        headers = {**HEADERS, "X-Request-Id": "req-77"}
        response = _start(client, headers=headers, idempotencyKey=None)

        assert response.headers["X-Request-Id"] == "req-77"
        attempt = current_domain.repository_for(PaymentAttempt).get(response.json()["attemptId"])
        assert attempt.idempotency_key == "req-77"

    def test_snake_case_body_is_accepted(self, client):
        response = client.post(
            "/pos/payments/cashless/start",
            json={"register_id": "reg-1", "amount_cents": 100, "currency": "EUR", "idempotency_key": "snake"},
            headers=HEADERS,
        )
        assert response.status_code == 201

    def test_missing_tenant_is_400(self, client):
        response = _start(client, headers={"X-Workspace-Id": "w1"})
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"
        assert "tenant_id" in response.json()["detail"]

    def test_non_positive_amount_is_400(self, client, fake_client):
        response = _start(client, amountCents=0)
        assert response.status_code == 400
        assert "amount_cents" in response.json()["detail"]
        assert fake_client.calls == []

    def test_provider_outage_is_502(self, client, fake_client):
        fake_client.configure(should_succeed=False, failure_reason="SumUp down", failure_status=503)

        response = _start(client)

        assert response.status_code == 502
        assert response.json()["detail"] == {"message": "SumUp down", "provider": "sumup", "retryable": True}

    def test_workspace_without_connection_is_404(self, client):
        response = _start(client, headers={"X-Tenant-Id": "t1", "X-Workspace-Id": "w-none"})
        assert response.status_code == 404

    def test_corrupted_stored_secret_is_500(self, client, sumup_connection):
        from cashless.connection.connection import IntegrationConnection

        sumup_connection.update(secret_encrypted="garbage.envelope.value")
        current_domain.repository_for(IntegrationConnection).add(sumup_connection)

        response = _start(client)

        assert response.status_code == 500
        assert response.json()["error"] == "InvalidEnvelopeError"
        assert "garbage" not in response.text


class TestStatusAPI:
    def test_get_status(self, client):
        started = _start(client).json()

        response = client.get(f"/pos/payments/cashless/{started['attemptId']}", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["attemptId"] == started["attemptId"]
        assert data["status"] == "pending"
        assert data["paidAt"] is None
        assert data["failureReason"] is None
        assert data["updatedAt"] is not None

    def test_unknown_attempt_is_404(self, client):
        response = client.get("/pos/payments/cashless/nope", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["error"] == "ObjectNotFoundError"

    def test_other_workspace_cannot_read(self, client):
        started = _start(client).json()
        response = client.get(
            f"/pos/payments/cashless/{started['attemptId']}",
            headers={"X-Tenant-Id": "t1", "X-Workspace-Id": "w2"},
        )
        assert response.status_code == 404


class TestCancelAPI:
    def test_cancel(self, client):
        started = _start(client).json()

        response = client.post(f"/pos/payments/cashless/{started['attemptId']}/cancel", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["action"] == {"type": "none"}

    def test_cancel_after_payment_is_409(self, client):
        from cashless.attempt.provider_status import ApplyProviderStatus

        started = _start(client).json()
        current_domain.process(
            ApplyProviderStatus(
                workspace_id="w1",
                provider_kind="sumup",
                provider_ref=started["providerRef"],
                status="paid",
            ),
            asynchronous=False,
        )

        response = client.post(f"/pos/payments/cashless/{started['attemptId']}/cancel", headers=HEADERS)

        assert response.status_code == 409
        assert response.json()["error"] == "ConflictError"


class TestApplication:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["domains"] == {"cashless": {"name": "cashless"}}
        assert response.json()["providers"] == ["sumup"]

    def test_startup_refuses_a_missing_vault_key(self, settings):
        from dataclasses import replace

        from cashless.config import set_settings
        from protean.exceptions import ValidationError

        set_settings(replace(settings, credential_vault_key=None))
        with pytest.raises(ValidationError):
            with TestClient(build_app()):
                pass

    def test_startup_with_a_vault_key(self, registry):
        with TestClient(build_app()) as client:
            assert client.get("/health").status_code == 200
