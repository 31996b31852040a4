"""Integration tests for the provider webhook endpoints."""

import base64
import json
from datetime import UTC, datetime

import pytest
from cashless.api.application import build_app
from cashless.attempt.attempt import PaymentAttempt
from cashless.webhook.adyen import signing_string
from cashless.webhook.signature import compute_adyen_signature, compute_hmac_signature
from fastapi.testclient import TestClient
from protean.utils.globals import current_domain

T0 = datetime(2026, 3, 2, 12, 0, 0, tzinfo=UTC)
SECRET = "whsec-test"
ADYEN_KEY = "44782DEF547AAA06C910C43932B1EB0C71FC68D9D0C057550C48EC2ACF6BA056"


@pytest.fixture()
def client():
    return TestClient(build_app())


@pytest.fixture()
def attempt():
    attempt = PaymentAttempt.start(
        tenant_id="t1",
        workspace_id="w1",
        register_id="reg-1",
        amount_cents=2400,
        currency="EUR",
        idempotency_key="idem-webhook",
        provider_kind="sumup",
        provider_ref="chk-1",
        now=T0,
    )
    current_domain.repository_for(PaymentAttempt).add_new(attempt)
    return attempt


def _reload(attempt):
    return current_domain.repository_for(PaymentAttempt).get(attempt.id)


def _post_sumup(client, payload, secret=SECRET):
    raw = json.dumps(payload).encode()
    return client.post(
        "/integrations/webhooks/sumup",
        content=raw,
        headers={"Content-Type": "application/json", "X-SumUp-Signature": compute_hmac_signature(secret, raw)},
    )


class TestSumUpWebhookAPI:
    def test_signed_event_is_processed(self, client, attempt):
        response = _post_sumup(client, {"id": "chk-1", "workspaceId": "w1", "status": "PAID"})

        assert response.status_code == 200
        assert response.json() == {"status": "processed"}
        assert _reload(attempt).status == "paid"

    def test_unknown_vocabulary_is_ignored(self, client, attempt):
        response = _post_sumup(client, {"id": "chk-1", "workspaceId": "w1", "status": "checkout.created"})

        assert response.json() == {"status": "ignored"}
        assert _reload(attempt).status == "pending"

    def test_bad_signature_is_401(self, client, attempt):
        response = _post_sumup(client, {"id": "chk-1", "workspaceId": "w1", "status": "paid"}, secret="wrong")

        assert response.status_code == 401
        assert response.json()["error"] == "WebhookSignatureError"
        assert _reload(attempt).status == "pending"

    def test_missing_signature_is_401(self, client):
        response = client.post("/integrations/webhooks/sumup", json={"id": "chk-1", "status": "paid"})
        assert response.status_code == 401

    def test_unknown_attempt_is_404(self, client):
        response = _post_sumup(client, {"id": "chk-missing", "workspaceId": "w1", "status": "paid"})
        assert response.status_code == 404

    def test_missing_correlation_is_400(self, client):
        response = _post_sumup(client, {"status": "paid"})
        assert response.status_code == 400


class TestAdyenWebhookAPI:
    def _item(self, link="PL1", event_code="CAPTURE"):
        item = {
            "pspReference": "7914073381342284",
            "originalReference": "",
            "merchantAccountCode": "ShopPOS",
            "merchantReference": "pos:w1:reg-1:-:2400",
            "amount": {"value": 2400, "currency": "EUR"},
            "eventCode": event_code,
            "success": "true",
            "additionalData": {"paymentLinkId": link},
        }
        item["additionalData"]["hmacSignature"] = compute_adyen_signature(ADYEN_KEY, signing_string(item))
        return {"live": "false", "notificationItems": [{"NotificationRequestItem": item}]}

    def test_notification_is_applied_and_acknowledged(self, client):
        attempt = PaymentAttempt.start(
            tenant_id="t1",
            workspace_id="w1",
            register_id="reg-1",
            amount_cents=2400,
            currency="EUR",
            idempotency_key="idem-adyen",
            provider_kind="adyen",
            provider_ref="PL1",
            now=T0,
        )
        current_domain.repository_for(PaymentAttempt).add_new(attempt)

        response = client.post("/integrations/webhooks/adyen", json=self._item())

        assert response.status_code == 200
        assert response.text == "[accepted]"
        assert _reload(attempt).status == "paid"

    def test_unknown_link_is_still_acknowledged(self, client):
        response = client.post("/integrations/webhooks/adyen", json=self._item(link="PL-unknown"))
        assert response.status_code == 200
        assert response.text == "[accepted]"

    def test_garbage_is_still_acknowledged(self, client):
        response = client.post("/integrations/webhooks/adyen", content=b"not json")
        assert response.text == "[accepted]"

    @pytest.mark.parametrize(
        "body", [{"notificationItems": ["junk", {"NotificationRequestItem": 7}]}, {"notificationItems": "junk"}, []]
    )
    def test_malformed_items_are_still_acknowledged(self, client, body):
        response = client.post("/integrations/webhooks/adyen", json=body)

        assert response.status_code == 200
        assert response.text == "[accepted]"


class TestMailWebhookAPI:
    def test_graph_handshake_echoes_the_token(self, client):
        response = client.post("/integrations/webhooks/microsoft-graph", params={"validationToken": "tok-123"})

        assert response.status_code == 200
        assert response.text == "tok-123"
        assert response.headers["content-type"].startswith("text/plain")

    def test_graph_notification_is_accepted(self, client):
        response = client.post(
            "/integrations/webhooks/microsoft-graph",
            json={"value": [{"subscriptionId": "s1", "changeType": "created"}]},
        )
        assert response.status_code == 202

    def test_graph_notification_with_junk_entries_is_accepted(self, client):
        response = client.post("/integrations/webhooks/microsoft-graph", json={"value": ["junk", 3]})
        assert response.status_code == 202

    def test_gmail_push_is_acknowledged(self, client):
        data = base64.urlsafe_b64encode(json.dumps({"emailAddress": "a@b.c", "historyId": 1}).encode()).decode()
        response = client.post("/integrations/webhooks/gmail", json={"message": {"data": data}})

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
