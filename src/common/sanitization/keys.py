"""Sanitization of identity components used in document ids.

Document stores reserve ``/``, ``\\``, ``?`` and ``#`` in ids, and the state
key format uses ``:`` as its separator. Every character outside the unreserved
set ``[A-Za-z0-9._~-]`` is percent-encoded from its UTF-8 bytes, including
``%`` itself, so the mapping is injective and the output never contains a
reserved character or a separator.
"""

from urllib.parse import quote, unquote

KEY_RESERVED_CHARACTERS = frozenset("/\\?#:%")


def sanitize_key_component(value: str) -> str:
    """Return ``value`` percent-encoded for use inside a document id."""
    if value is None:
        return ""
    return quote(str(value), safe="", encoding="utf-8", errors="strict")


def restore_key_component(value: str) -> str:
    """Inverse of ``sanitize_key_component``."""
    return unquote(value, encoding="utf-8", errors="strict")
