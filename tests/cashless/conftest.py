from datetime import UTC, datetime

import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain

TENANT_ID = "t1"
WORKSPACE_ID = "w1"
VAULT_KEY = "test-vault-key"
SUMUP_WEBHOOK_SECRET = "whsec-test"
ADYEN_HMAC_KEY = "44782DEF547AAA06C910C43932B1EB0C71FC68D9D0C057550C48EC2ACF6BA056"
T0 = datetime(2026, 3, 2, 12, 0, 0, tzinfo=UTC)


@pytest.fixture(scope="session")
def cashless_bed():
    from cashless.domain import cashless

    bed = DomainFixture(cashless)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(cashless_bed):
    with cashless_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def settings():
    from cashless.config import Settings, reset_settings, set_settings
    from cashless.gateway import reset_registry

    settings = Settings(
        environment="test",
        credential_vault_key=VAULT_KEY,
        sumup_webhook_secret=SUMUP_WEBHOOK_SECRET,
        adyen_hmac_key=ADYEN_HMAC_KEY,
    )
    set_settings(settings)
    reset_registry()
    yield settings
    reset_settings()
    reset_registry()


@pytest.fixture()
def vault(settings):
    from cashless.connection.vault import CredentialVault

    return CredentialVault.from_settings(settings)


@pytest.fixture()
def ctx():
    from cashless.context import RequestContext

    return RequestContext(tenant_id=TENANT_ID, workspace_id=WORKSPACE_ID, user_id="u1", request_id="req-1")


@pytest.fixture()
def fake_client():
    from cashless.gateway.fake_adapter import FakeProviderClient

    return FakeProviderClient(kind="sumup")


@pytest.fixture()
def registry(fake_client):
    from cashless.gateway import set_registry
    from cashless.gateway.registry import ProviderRegistry

    registry = ProviderRegistry()
    registry.register("sumup", lambda connection, secret, timeout_seconds: fake_client)
    set_registry(registry)
    return registry


@pytest.fixture()
def sumup_connection(vault):
    from cashless.connection.connection import IntegrationConnection

    connection = IntegrationConnection.register(
        tenant_id=TENANT_ID,
        workspace_id=WORKSPACE_ID,
        kind="sumup",
        config={"merchant_code": "MC123"},
        secret_encrypted=vault.encrypt("sup_sk_test"),
    )
    current_domain.repository_for(IntegrationConnection).add(connection)
    return connection


@pytest.fixture()
def gateway(registry, sumup_connection, vault):
    from cashless.connection.resolver import ConnectionResolver
    from cashless.gateway.integrations import IntegrationsCashlessGateway

    return IntegrationsCashlessGateway(
        ConnectionResolver(vault),
        registry,
        tenant_id=TENANT_ID,
        default_kind="sumup",
        timeout_seconds=2.0,
    )
