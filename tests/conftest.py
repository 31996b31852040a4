import os

import pytest

# Test layer markers, keyed by the directory a test module lives in
_LAYER_MARKERS = {
    "domain": pytest.mark.domain,
    "application": pytest.mark.application,
    "integration": pytest.mark.integration,
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Environment name the cashless settings and logging are read for",
    )


def pytest_sessionstart(session):
    """Pin the environment before any cashless module reads it."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("CREDENTIAL_VAULT_KEY", "test-vault-key")


def pytest_collection_modifyitems(config, items):
    """Mark every test with its layer; HTTP-level tests also count as slow."""
    for item in items:
        layer = item.path.parent.name
        marker = _LAYER_MARKERS.get(layer)
        if marker is None:
            continue

        item.add_marker(marker)
        if layer == "integration" and item.get_closest_marker("fast") is None:
            item.add_marker(pytest.mark.slow)
