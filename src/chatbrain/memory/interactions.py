"""
Append-only interaction log with bounded size.

The log is trimmed to the most recent `max_memory` entries after each
append. The trainer cursor is moved back by the number of trimmed entries
(clamped at 0) so it never points past the live log.
"""

import logging
from typing import Dict, List, Optional, Sequence

from chatbrain.config.constants import MAX_MEMORY
from chatbrain.state import now_iso

logger = logging.getLogger(__name__)


class InteractionLog:
    """
    Bounded view over `state["interactions"]` and the trainer cursor.

    Example:
        >>> log = InteractionLog(state, max_memory=2)
        >>> for text in ("a", "b", "c"):
        ...     log.append(session_id="s", user=text, bot=text, source="chat", confidence=0.5)
        >>> [item["user"] for item in log.items]
        ['b', 'c']
    """

    def __init__(self, state: Dict, max_memory: int = MAX_MEMORY):
        self._state = state
        self._max_memory = max_memory

    @property
    def items(self) -> List[Dict]:
        return self._state["interactions"]

    @property
    def max_memory(self) -> int:
        return self._max_memory

    def append(
        self,
        session_id: Optional[str],
        user: str,
        bot: str,
        source: str,
        confidence: float,
        concepts: Sequence[str] = (),
        math_meta: Optional[Dict] = None,
    ) -> Dict:
        """Record one interaction and trim the log. Returns the stored entry."""
        entry = {
            "session_id": session_id,
            "user": user,
            "bot": bot,
            "source": source,
            "confidence": confidence,
            "math_meta": math_meta,
            "concepts": list(concepts),
            "at": now_iso(),
        }
        self.items.append(entry)
        self.trim()
        return entry

    def trim(self) -> int:
        """Drop the oldest entries beyond `max_memory`. Returns how many were dropped."""
        overflow = len(self.items) - self._max_memory
        if overflow <= 0:
            return 0

        del self.items[:overflow]
        trainer = self._state["trainer"]
        trainer["processed_until"] = max(0, int(trainer.get("processed_until") or 0) - overflow)
        logger.debug("Trimmed %d interactions from the log", overflow)
        return overflow

    def remove(self, index: int) -> Dict:
        """Remove one entry; the trainer cursor moves back only if it was already processed."""
        removed = self.items.pop(index)
        trainer = self._state["trainer"]
        cursor = int(trainer.get("processed_until") or 0)
        if index < cursor:
            trainer["processed_until"] = cursor - 1
        return removed

    def latest_math(self, session_id: Optional[str]) -> Optional[Dict]:
        """Most recent solved math interaction of the session."""
        if not session_id:
            return None
        for item in reversed(self.items):
            if item.get("session_id") != session_id:
                continue
            if item.get("source") == "math_solver" and item.get("math_meta"):
                return item
        return None

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        return f"InteractionLog(entries={len(self)}, max={self._max_memory})"
