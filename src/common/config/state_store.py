"""Bot-state store settings resolved from the environment.

Environment Variables:
    BOT_STATE_STORE_PROVIDER: Document backend ("memory" or "postgres", default: "memory")
    BOT_STATE_DATABASE_ID: Logical database name (default: "botdb")
    BOT_STATE_COLLECTION_ID: Logical collection name (default: "botcollection")
    BOT_STATE_INIT_TIMEOUT_SECONDS: Upper bound for container provisioning (default: 5)
    BOT_STATE_OPERATION_TIMEOUT_SECONDS: Per-operation timeout, unset or 0 disables it
    BOT_STATE_POSTGRES_URL: asyncpg DSN for the postgres provider (falls back to POSTGRES_URL)
"""

from dataclasses import dataclass
from typing import Optional

from common.config.env import get_env_float, get_env_str

DEFAULT_DATABASE_ID = "botdb"
DEFAULT_COLLECTION_ID = "botcollection"
DEFAULT_INIT_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class StateStoreSettings:
    """Resolved configuration for the bot-state store."""

    provider: str = "memory"
    database_id: str = DEFAULT_DATABASE_ID
    collection_id: str = DEFAULT_COLLECTION_ID
    init_timeout_seconds: float = DEFAULT_INIT_TIMEOUT_SECONDS
    operation_timeout_seconds: Optional[float] = None
    postgres_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "StateStoreSettings":
        """Build settings from environment variables.

        The provider value is returned raw; validation against the registered
        providers happens in the DAL factory.
        """
        init_timeout = get_env_float("BOT_STATE_INIT_TIMEOUT_SECONDS", DEFAULT_INIT_TIMEOUT_SECONDS)
        if init_timeout is None or init_timeout <= 0:
            raise ValueError("BOT_STATE_INIT_TIMEOUT_SECONDS must be a positive number.")

        op_timeout = get_env_float("BOT_STATE_OPERATION_TIMEOUT_SECONDS")
        if op_timeout is not None and op_timeout <= 0:
            op_timeout = None

        return cls(
            provider=get_env_str("BOT_STATE_STORE_PROVIDER", "memory") or "memory",
            database_id=get_env_str("BOT_STATE_DATABASE_ID", DEFAULT_DATABASE_ID)
            or DEFAULT_DATABASE_ID,
            collection_id=get_env_str("BOT_STATE_COLLECTION_ID", DEFAULT_COLLECTION_ID)
            or DEFAULT_COLLECTION_ID,
            init_timeout_seconds=init_timeout,
            operation_timeout_seconds=op_timeout,
            postgres_url=get_env_str("BOT_STATE_POSTGRES_URL") or get_env_str("POSTGRES_URL"),
        )
