"""Sanitization utilities."""

from .keys import restore_key_component, sanitize_key_component

__all__ = ["restore_key_component", "sanitize_key_component"]
