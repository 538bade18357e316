"""Provider normalization and environment variable helpers.

Canonical Provider IDs (internal, lowercase):
- "memory" - process-local document client
- "postgres" - asyncpg-backed document client

User-Facing Aliases (case-insensitive):
- Memory: "memory", "in-memory", "inmemory", "local"
- PostgreSQL: "postgresql", "postgres", "pg"

Example:
    >>> normalize_provider("PostgreSQL")
    'postgres'
    >>> get_provider_env("BOT_STATE_STORE_PROVIDER", "memory", {"memory", "postgres"})
    'memory'
"""

from typing import Optional, Set

from common.config.env import get_env_str

PROVIDER_ALIASES: dict[str, str] = {
    "memory": "memory",
    "in-memory": "memory",
    "inmemory": "memory",
    "local": "memory",
    "postgresql": "postgres",
    "postgres": "postgres",
    "pg": "postgres",
}


def normalize_provider(value: str) -> str:
    """Normalize a provider value to its canonical form.

    Unknown values pass through stripped and lowercased; validation happens
    separately.

    Example:
        >>> normalize_provider("  PG  ")
        'postgres'
        >>> normalize_provider("custom-provider")
        'custom-provider'
    """
    cleaned = value.strip().lower()
    return PROVIDER_ALIASES.get(cleaned, cleaned)


def validate_provider(var_name: str, raw_value: str, allowed: Set[str]) -> str:
    """Normalize ``raw_value`` and check it against the allowed provider IDs.

    Raises:
        ValueError: If the normalized value is not in the allowed set. The
            message names the variable, the provided value and the allowed values.
    """
    normalized = normalize_provider(raw_value)
    if normalized not in allowed:
        allowed_list = ", ".join(sorted(allowed))
        raise ValueError(
            f"Invalid provider for {var_name}: '{raw_value}'. Allowed values: {allowed_list}"
        )
    return normalized


def get_provider_env(
    var_name: str, default: str, allowed: Set[str], value: Optional[str] = None
) -> str:
    """Read and validate a provider environment variable.

    Args:
        var_name: Name of the environment variable (e.g., "BOT_STATE_STORE_PROVIDER").
        default: Canonical provider ID used when the variable is not set.
        allowed: Set of valid canonical provider IDs.
        value: Already-resolved raw value; skips the environment lookup when given.

    Returns:
        The normalized, validated canonical provider ID.
    """
    raw_value = value if value is not None else get_env_str(var_name)
    if raw_value is None:
        return default
    return validate_provider(var_name, raw_value, allowed)
