"""Persistence layer: reference implementations of the StateStore protocol."""

from chatbrain.persistence.json_store import JsonStateStore
from chatbrain.persistence.memory_store import InMemoryStore

__all__ = [
    "InMemoryStore",
    "JsonStateStore",
]
