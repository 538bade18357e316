"""Unit test environment helpers."""

import pytest

_STATE_ENV_VARS = (
    "BOT_STATE_STORE_PROVIDER",
    "BOT_STATE_DATABASE_ID",
    "BOT_STATE_COLLECTION_ID",
    "BOT_STATE_INIT_TIMEOUT_SECONDS",
    "BOT_STATE_OPERATION_TIMEOUT_SECONDS",
    "BOT_STATE_POSTGRES_URL",
    "BOT_STATE_METRICS_ENABLED",
    "POSTGRES_URL",
    "DAL_TRACE_QUERIES",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
)


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Unit tests run against the in-memory backend with telemetry off."""
    for name in _STATE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_factory_singletons():
    """Reset DAL factory singletons around each test."""
    from dal import factory

    factory.reset_singletons()
    yield
    factory.reset_singletons()
