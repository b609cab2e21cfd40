"""
Bulk re-import of every memory into the prototype memory.

The prototypes are reset and rebuilt by replaying, in order:

1. the most recent interactions (default 120000)
2. every response-bank entry
3. every learned fact, as "remember that X" and "what is X"
4. every web page summary

Pairs are deduplicated by (source, user[:500], bot[:500]). Low-signal
prompts, polluted replies and replies over 1600 characters are skipped.

Two forms are offered. `import_all` runs to completion. `import_all_async`
awaits `asyncio.sleep(0)` every `yield_every` considered pairs so a single
event loop keeps serving other requests during a long import, and reports
progress through an optional callback.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Iterator, Optional, Set, Tuple

from chatbrain.config.constants import (
    NEURAL_IMPORT_KEY_CHARS,
    NEURAL_IMPORT_MAX_INTERACTIONS,
    NEURAL_IMPORT_MAX_REPLY_CHARS,
    NEURAL_IMPORT_YIELD_EVERY,
)
from chatbrain.memory.knowledge import UNTITLED_PAGE
from chatbrain.memory.neural import NeuralMemory
from chatbrain.protocols.store import StateStore, request_save
from chatbrain.text.normalizer import is_polluted_web_text

logger = logging.getLogger(__name__)

Pair = Tuple[object, object, str, float]


@dataclass
class ImportProgress:
    """Snapshot passed to the progress callback."""

    considered_samples: int
    imported_samples: int
    trained_samples: int
    neural_prototypes: int
    done: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class ImportResult:
    imported_samples: int
    trained_samples: int
    neural_prototypes: int
    neural_dim: int

    def to_dict(self) -> Dict:
        return asdict(self)


ProgressCallback = Callable[[ImportProgress], None]


class NeuralImporter:
    """
    Rebuilds the prototype memory from everything the engine remembers.

    Example:
        >>> importer = NeuralImporter(store, neural, is_low_signal)
        >>> importer.import_all().neural_prototypes
        42
        >>> asyncio.run(importer.import_all_async(on_progress=print, yield_every=100))
    """

    def __init__(
        self,
        store: StateStore,
        neural: NeuralMemory,
        is_low_signal: Callable[[str], bool],
        max_interactions: int = NEURAL_IMPORT_MAX_INTERACTIONS,
        yield_every: int = NEURAL_IMPORT_YIELD_EVERY,
    ):
        self._store = store
        self._neural = neural
        self._is_low_signal = is_low_signal
        self._max_interactions = max_interactions
        self._yield_every = yield_every

    def iter_pairs(self) -> Iterator[Pair]:
        """Every (user, bot, source, confidence) pair to replay, in import order."""
        state = self._store.state

        # Snapshot each collection; the tree can change while an async import is paused.
        interactions = list(state.get("interactions") or [])
        for item in interactions[max(0, len(interactions) - self._max_interactions):]:
            item = item or {}
            yield (
                item.get("user"),
                item.get("bot"),
                item.get("source") or "interaction_memory",
                item.get("confidence") or 0.7,
            )

        for prompt, entries in list((state.get("response_bank") or {}).items()):
            if not isinstance(entries, list):
                continue
            for entry in list(entries):
                yield prompt, (entry or {}).get("reply"), "response_bank", 0.72

        for fact in list(state.get("learned_facts") or {}):
            yield f"remember that {fact}", fact, "learned_fact", 0.74
            yield f"what is {fact}", fact, "learned_fact", 0.74

        for url, page in list((state.get("web_knowledge") or {}).items()):
            page = page or {}
            title = str(page.get("title") or UNTITLED_PAGE).strip()
            yield f"[WEB:{url}] {title}", page.get("last_summary"), "web_knowledge", 0.78

    def _import_pair(self, pair: Pair, seen: Set[Tuple[str, str, str]]) -> bool:
        """Train one pair. Returns True when the pair was imported."""
        user, bot, source, confidence = pair
        user_text = str(user or "").strip()
        bot_text = str(bot or "").strip()
        if not user_text or not bot_text:
            return False

        key = (source, user_text[:NEURAL_IMPORT_KEY_CHARS], bot_text[:NEURAL_IMPORT_KEY_CHARS])
        if key in seen:
            return False
        seen.add(key)

        if (
            self._is_low_signal(user_text)
            or is_polluted_web_text(bot_text)
            or len(bot_text) > NEURAL_IMPORT_MAX_REPLY_CHARS
        ):
            return False

        self._neural.train({"user": user_text, "bot": bot_text, "source": source, "confidence": confidence})
        return True

    def _progress(self, considered: int, imported: int, done: bool = False) -> ImportProgress:
        neural = self._neural.neural
        return ImportProgress(
            considered_samples=considered,
            imported_samples=imported,
            trained_samples=int(neural.get("trained_samples") or 0),
            neural_prototypes=len(neural["prototypes"]),
            done=done,
        )

    def _finish(self, imported: int) -> ImportResult:
        request_save(self._store, ["neural"])
        neural = self._neural.neural
        result = ImportResult(
            imported_samples=imported,
            trained_samples=int(neural.get("trained_samples") or 0),
            neural_prototypes=len(neural["prototypes"]),
            neural_dim=neural["dim"],
        )
        logger.info(
            "Neural import finished: imported=%d prototypes=%d",
            result.imported_samples,
            result.neural_prototypes,
        )
        return result

    def import_all(self) -> ImportResult:
        """Reset the prototypes and replay every memory, blocking until done."""
        self._neural.reset()
        seen: Set[Tuple[str, str, str]] = set()
        imported = 0
        for pair in self.iter_pairs():
            if self._import_pair(pair, seen):
                imported += 1
        return self._finish(imported)

    async def import_all_async(
        self,
        on_progress: Optional[ProgressCallback] = None,
        yield_every: Optional[int] = None,
    ) -> ImportResult:
        """
        Cooperative form of `import_all`.

        Every `yield_every` considered pairs the callback receives a progress
        snapshot and control returns to the event loop. A final snapshot with
        `done=True` follows the last pair. Callback errors are logged and
        do not stop the import.
        """
        cadence = yield_every if yield_every and yield_every > 0 else self._yield_every

        self._neural.reset()
        seen: Set[Tuple[str, str, str]] = set()
        imported = 0
        considered = 0
        for pair in self.iter_pairs():
            considered += 1
            if self._import_pair(pair, seen):
                imported += 1
            if considered % cadence == 0:
                self._report(on_progress, self._progress(considered, imported))
                await asyncio.sleep(0)

        result = self._finish(imported)
        self._report(on_progress, self._progress(considered, imported, done=True))
        return result

    @staticmethod
    def _report(on_progress: Optional[ProgressCallback], progress: ImportProgress) -> None:
        if on_progress is None:
            return
        try:
            on_progress(progress)
        except Exception as e:
            logger.warning("Import progress callback failed: %s", e)
