"""Tests for OTEL-aware metrics enablement defaults."""

from unittest.mock import MagicMock, patch

from common.observability.metrics import OptionalMetrics, is_metrics_enabled


def test_metrics_disabled_without_exporter_or_flag():
    """No exporter and no explicit flag leaves metrics off."""
    assert is_metrics_enabled("BOT_STATE_METRICS_ENABLED") is False


def test_metrics_enabled_when_exporter_configured_without_explicit_flag(monkeypatch):
    """Exporter configuration should enable metrics by default."""
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")

    assert is_metrics_enabled("BOT_STATE_METRICS_ENABLED") is True


def test_metrics_explicit_false_overrides_exporter_default(monkeypatch):
    """Explicit false must disable metrics even when exporter is configured."""
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")
    monkeypatch.setenv("BOT_STATE_METRICS_ENABLED", "false")

    assert is_metrics_enabled("BOT_STATE_METRICS_ENABLED") is False


def test_invalid_flag_disables_metrics(monkeypatch):
    """Unparseable flags fail closed."""
    monkeypatch.setenv("BOT_STATE_METRICS_ENABLED", "sometimes")

    assert is_metrics_enabled("BOT_STATE_METRICS_ENABLED") is False


def test_optional_metrics_emits_counter_with_normalized_attributes(monkeypatch):
    """Counters are emitted with bool attributes stringified and None dropped."""
    monkeypatch.setenv("BOT_STATE_METRICS_ENABLED", "true")

    metric = OptionalMetrics(meter_name="test-state", enabled_env_var="BOT_STATE_METRICS_ENABLED")
    fake_meter = MagicMock()
    fake_counter = MagicMock()
    fake_meter.create_counter.return_value = fake_counter

    with patch("common.observability.metrics.metrics.get_meter", return_value=fake_meter):
        metric.add_counter("bot_state.conflicts", attributes={"retry": True, "x": None})
        metric.add_counter("bot_state.conflicts")

    fake_meter.create_counter.assert_called_once()
    assert fake_counter.add.call_count == 2
    assert fake_counter.add.call_args_list[0].args == (1, {"retry": "true"})


def test_optional_metrics_skips_when_disabled():
    """Disabled metrics never create a meter."""
    metric = OptionalMetrics(meter_name="test-state", enabled_env_var="BOT_STATE_METRICS_ENABLED")

    with patch("common.observability.metrics.metrics.get_meter") as get_meter:
        metric.record_histogram("bot_state.operation.duration_ms", 1.0)

    get_meter.assert_not_called()
