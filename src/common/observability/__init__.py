"""Shared observability helpers."""

from common.observability.metrics import state_store_metrics

__all__ = ["state_store_metrics"]
