from typing import Protocol, runtime_checkable

from common.models.bot_state import BotIdentity, SaveResult, StoreScope, VersionedValue


@runtime_checkable
class BotDataStore(Protocol):
    """Protocol for per-conversation bot state persistence."""

    async def load_async(self, identity: BotIdentity, scope: StoreScope) -> VersionedValue:
        """Load state; an empty value when nothing was saved."""
        ...

    async def save_async(
        self, identity: BotIdentity, scope: StoreScope, value: VersionedValue
    ) -> SaveResult:
        """Create, replace or delete state under optimistic concurrency."""
        ...

    async def flush_async(self, identity: BotIdentity) -> bool:
        """Persist buffered writes for an identity."""
        ...
