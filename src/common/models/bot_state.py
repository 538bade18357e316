"""Bot-state data model shared by the store protocol and its implementations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.errors.state_errors import StateConflictError, StateStoreError

WILDCARD_TOKEN = "*"


class StoreScope(str, Enum):
    """Which identity fields compose a state key."""

    CONVERSATION_DATA = "conversation"
    USER_DATA = "user"
    PRIVATE_CONVERSATION_DATA = "private"


@dataclass(frozen=True)
class BotIdentity:
    """Caller-supplied address of a piece of bot state.

    ``conversation_id`` and ``user_id`` may be empty depending on scope.
    """

    bot_id: str
    channel_id: str
    conversation_id: str = ""
    user_id: str = ""


@dataclass(frozen=True)
class VersionedValue:
    """Opaque state blob guarded by a version token.

    - version_token: "" when not yet persisted, "*" to skip the precondition,
      otherwise the ETag last observed for the record.
    - data: any JSON-serializable value; ``None`` marks a delete on save.
    """

    version_token: str = ""
    data: Optional[Any] = None

    @classmethod
    def empty(cls) -> "VersionedValue":
        """Return the value reported for keys that were never saved."""
        return cls(version_token="", data=None)

    @property
    def is_empty(self) -> bool:
        """True when no record backs this value."""
        return not self.version_token and self.data is None


class BotStateDocument(BaseModel):
    """Persisted record body; the ETag is kept by the document client, not here."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Entity key derived from identity and scope")
    bot_id: Optional[str] = Field("", alias="botId")
    channel_id: Optional[str] = Field("", alias="channelId")
    conversation_id: Optional[str] = Field("", alias="conversationId")
    user_id: Optional[str] = Field("", alias="userId")
    data: Any = Field(None, description="Opaque caller payload")

    @field_validator("bot_id", "channel_id", "conversation_id", "user_id", mode="before")
    @classmethod
    def absent_id_as_empty(cls, value: Any) -> Any:
        """Stored bodies may carry null for ids that do not apply to the scope."""
        return "" if value is None else value

    def to_body(self) -> Dict[str, Any]:
        """Serialize using the stored JSON field names."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_body(cls, body: Dict[str, Any]) -> "BotStateDocument":
        """Parse a stored JSON body."""
        return cls.model_validate(body)


class SaveStatus(str, Enum):
    """Explicit outcome variants of a save."""

    SAVED = "saved"
    DELETED = "deleted"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class SaveResult:
    """Result of ``save_async``.

    A conflict is a normal outcome rather than an exception; callers branch
    on ``status`` or call ``raise_for_conflict`` to get exception semantics.
    """

    status: SaveStatus
    entity_key: str
    version_token: str = ""
    error: Optional[StateStoreError] = None

    @property
    def ok(self) -> bool:
        """True for saved and deleted outcomes."""
        return self.status is not SaveStatus.CONFLICT

    def raise_for_conflict(self) -> "SaveResult":
        """Raise ``StateConflictError`` for a conflict, otherwise return self."""
        if self.status is SaveStatus.CONFLICT:
            if isinstance(self.error, StateConflictError):
                raise self.error
            raise StateConflictError(
                f"Precondition failed for {self.entity_key}", entity_key=self.entity_key
            )
        return self
