"""
InMemoryStore: Test implementation of the StateStore protocol.

Keeps the state tree in memory and records every save hint so tests can
assert which subsystems a call marked as changed. Nothing is written to
disk.
"""

from typing import Any, Dict, Iterable, List, Optional, Set

from chatbrain.config.constants import NEURAL_DIM
from chatbrain.state import ensure_state, new_state


class InMemoryStore:
    """
    In-memory state store for tests and short-lived sessions.

    Attributes:
        state: The state tree (repaired on construction)
        saves: Every tag set passed to `schedule_save`, in call order

    Example:
        >>> store = InMemoryStore()
        >>> store.schedule_save(["core", "neural"])
        >>> store.saved_tags
        {'core', 'neural'}
    """

    def __init__(self, state: Optional[Dict[str, Any]] = None, neural_dim: int = NEURAL_DIM):
        self.state = ensure_state(state if state is not None else new_state(neural_dim), neural_dim)
        self.saves: List[Set[str]] = []

    def schedule_save(self, tags: Iterable[str]) -> None:
        self.saves.append(set(tags))

    @property
    def saved_tags(self) -> Set[str]:
        """Union of every tag scheduled so far."""
        merged: Set[str] = set()
        for tags in self.saves:
            merged |= tags
        return merged

    def clear(self) -> None:
        self.saves.clear()

    def __repr__(self) -> str:
        return f"InMemoryStore(interactions={len(self.state['interactions'])}, saves={len(self.saves)})"
