"""
Dependency Injection Container for ChatBrain.

Wires settings, the state store and a shared random source together so
every component of one engine sees the same state tree and the same RNG.
"""

import logging
import random
from typing import Optional

from chatbrain.config.settings import Settings, settings as default_settings
from chatbrain.conversation.brain import ChatBrain
from chatbrain.persistence.json_store import JsonStateStore
from chatbrain.persistence.memory_store import InMemoryStore
from chatbrain.protocols.store import StateStore


class BrainContainer:
    """
    Dependency injection container for the chat engine.

    Manages the shared store and RNG and provides a factory for brains
    that use them.

    Attributes:
        _settings: Settings used by every created component
        _store: Shared StateStore
        _rng: Shared random source (seeded for reproducible runs)

    Example:
        >>> container = BrainContainer(seed=42)
        >>> brain = container.create_brain()
        >>> brain.chat("s1", "what is (2+5)*3").reply
        'Math result: (2+5)*3 = 21.'
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[StateStore] = None,
        seed: Optional[int] = None,
    ):
        """
        Initialize container with shared dependencies.

        Args:
            settings: Runtime settings (default: environment-driven settings)
            store: State store (default: in-memory)
            seed: Seed for the shared random source (default: unseeded)
        """
        self._settings = settings or default_settings
        self._store = store if store is not None else InMemoryStore(neural_dim=self._settings.neural_dim)
        self._rng = random.Random(seed)

        if self._settings.debug:
            logging.getLogger("chatbrain").setLevel(logging.DEBUG)

    @classmethod
    def from_disk(cls, settings: Optional[Settings] = None, seed: Optional[int] = None) -> "BrainContainer":
        """Container backed by a JsonStateStore at `settings.state_path`."""
        settings = settings or default_settings
        store = JsonStateStore(settings.state_path, neural_dim=settings.neural_dim)
        return cls(settings=settings, store=store, seed=seed)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def rng(self) -> random.Random:
        return self._rng

    def create_brain(self) -> ChatBrain:
        return ChatBrain(self._store, settings=self._settings, rng=self._rng)
