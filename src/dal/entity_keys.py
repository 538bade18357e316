"""Entity key derivation for bot state documents.

Key formats per scope (every identity component is sanitized):

    CONVERSATION_DATA:          {channel}:conversation{conversation_id}
    USER_DATA:                  {channel}:user{user_id}
    PRIVATE_CONVERSATION_DATA:  {channel}:private{conversation_id}:{user_id}

Sanitized components never contain ``:``, so a key parses back into exactly
one (channel, scope, conversation, user) tuple.
"""

from typing import Any

from common.errors.state_errors import InvalidStoreScopeError
from common.models.bot_state import BotIdentity, BotStateDocument, StoreScope
from common.sanitization.keys import sanitize_key_component


def _coerce_scope(scope: Any) -> StoreScope:
    if isinstance(scope, StoreScope):
        return scope
    try:
        return StoreScope(scope)
    except ValueError:
        raise InvalidStoreScopeError(scope) from None


def get_entity_key(identity: BotIdentity, scope: StoreScope) -> str:
    """Derive the document id for an identity within a scope.

    Raises:
        InvalidStoreScopeError: If ``scope`` is not a supported ``StoreScope``.
    """
    scope = _coerce_scope(scope)
    channel = sanitize_key_component(identity.channel_id)

    if scope is StoreScope.CONVERSATION_DATA:
        return f"{channel}:conversation{sanitize_key_component(identity.conversation_id)}"
    if scope is StoreScope.USER_DATA:
        return f"{channel}:user{sanitize_key_component(identity.user_id)}"
    if scope is StoreScope.PRIVATE_CONVERSATION_DATA:
        conversation = sanitize_key_component(identity.conversation_id)
        user = sanitize_key_component(identity.user_id)
        return f"{channel}:private{conversation}:{user}"

    raise InvalidStoreScopeError(scope)


def build_document(identity: BotIdentity, scope: StoreScope, data: Any) -> BotStateDocument:
    """Build the persisted record for a save."""
    return BotStateDocument(
        id=get_entity_key(identity, scope),
        bot_id=identity.bot_id,
        channel_id=identity.channel_id,
        conversation_id=identity.conversation_id,
        user_id=identity.user_id,
        data=data,
    )
