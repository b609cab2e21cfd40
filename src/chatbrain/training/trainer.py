"""
Resumable background trainer.

The trainer folds historical interactions into the token graph, concept
and association graphs, response bank and prototype memory, a bounded
batch per tick. Its cursor (`state["trainer"]["processed_until"]`) is part
of the persisted state, so an interrupted run resumes where it stopped.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from chatbrain.config.constants import TRAINER_BATCH_SIZE
from chatbrain.graphs.concepts import AssociationGraph, ConceptGraph
from chatbrain.graphs.token_graph import TokenGraph
from chatbrain.memory.interactions import InteractionLog
from chatbrain.memory.neural import NeuralMemory
from chatbrain.memory.response_bank import ResponseBank
from chatbrain.protocols.store import StateStore, request_save
from chatbrain.state import now_iso
from chatbrain.text.normalizer import extract_concepts, tokenize

logger = logging.getLogger(__name__)


@dataclass
class TrainerTick:
    """Outcome of one tick."""

    processed: int
    remaining: int


class Trainer:
    """
    Incremental replay of the interaction log.

    Attributes:
        _store: State owner (receives a save hint after productive ticks)
        _log: Interaction log being replayed
        _token_graph, _concepts, _associations: Graphs fed per interaction
        _bank: Response bank fed with (user, bot) pairs
        _neural: Prototype memory trained per interaction

    Example:
        >>> trainer = Trainer(store, log, token_graph, concepts, associations, bank, neural)
        >>> trainer.run_tick(30)
        TrainerTick(processed=30, remaining=12)
    """

    def __init__(
        self,
        store: StateStore,
        log: InteractionLog,
        token_graph: TokenGraph,
        concepts: ConceptGraph,
        associations: AssociationGraph,
        bank: ResponseBank,
        neural: NeuralMemory,
    ):
        self._store = store
        self._log = log
        self._token_graph = token_graph
        self._concepts = concepts
        self._associations = associations
        self._bank = bank
        self._neural = neural

    @property
    def cursor(self) -> int:
        return int(self._store.state["trainer"].get("processed_until") or 0)

    @property
    def remaining(self) -> int:
        return max(0, len(self._log) - self.cursor)

    def learn_from_interaction(self, interaction: Optional[Dict]) -> None:
        """Feed one logged interaction into every learning structure."""
        if not interaction or not interaction.get("user"):
            return

        user = interaction["user"]
        self._token_graph.learn(tokenize(user))

        concepts = extract_concepts(user)
        self._concepts.update(concepts)
        self._associations.update(concepts)

        if interaction.get("bot"):
            self._bank.remember(user, interaction["bot"])

        self._neural.train(interaction)

    def run_tick(self, batch_size: int = TRAINER_BATCH_SIZE) -> TrainerTick:
        """
        Process up to `batch_size` interactions from the cursor.

        Every tick counts as an iteration, even when nothing was left to
        process.
        """
        state = self._store.state
        trainer = state["trainer"]
        stats = state["stats"]
        items = self._log.items

        start = self.cursor
        if start >= len(items):
            trainer["last_run_at"] = now_iso()
            stats["trainer_iterations"] += 1
            return TrainerTick(processed=0, remaining=0)

        end = min(start + max(0, int(batch_size)), len(items))
        for index in range(start, end):
            self.learn_from_interaction(items[index])

        processed = end - start
        trainer["processed_until"] = end
        trainer["last_run_at"] = now_iso()
        stats["trainer_iterations"] += 1
        stats["trainer_processed_interactions"] += processed
        if processed > 0:
            request_save(self._store, ["core", "language", "neural"])

        remaining = len(items) - end
        logger.debug("Trainer tick processed=%d remaining=%d", processed, remaining)
        return TrainerTick(processed=processed, remaining=remaining)
