"""
StateStore Protocol: the durable home of the engine's state tree.

The engine mutates `store.state` in place and calls `schedule_save(tags)`
to say which subsystems changed. Persisting is entirely the store's
business: a store may write immediately, batch, debounce or never write.

Tags:
    core          sessions, stats, trainer cursor
    interactions  interaction log
    language      token, concept and association graphs, response bank
    neural        prototype memory
    knowledge     learned facts, web knowledge, starter lessons
"""

import logging
from typing import Any, Dict, Iterable, Protocol

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    """
    Abstract protocol for the state tree owner.

    Implementations must:
    1. Expose a mutable, JSON-serializable `state` dict
    2. Accept save hints without blocking the caller for long

    Properties:
    - The engine never replaces `state`; it only mutates it
    - A save hint is advisory, never a guarantee of durability
    """

    state: Dict[str, Any]

    def schedule_save(self, tags: Iterable[str]) -> None:
        """
        Hint that the subsystems named by `tags` changed.

        Args:
            tags: Subset of {"core", "interactions", "language", "neural", "knowledge"}

        Example:
            >>> store.state["stats"]["messages"] += 1
            >>> store.schedule_save(["core"])
        """
        ...


def request_save(store: StateStore, tags: Iterable[str]) -> None:
    """Pass a save hint to the store; store failures are logged, never raised."""
    tags = list(tags)
    try:
        store.schedule_save(tags)
    except Exception as e:
        logger.warning("Store rejected save hint %s: %s", sorted(tags), e)
