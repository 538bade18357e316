"""Data Abstraction Layer (DAL) for bot state.

This package exposes the optimistic-concurrency bot-state store and the
document clients it runs on.
"""

from dal.bot_data_store import DocumentBotDataStore
from dal.entity_keys import build_document, get_entity_key

__all__ = [
    "DocumentBotDataStore",
    "build_document",
    "get_entity_key",
]
