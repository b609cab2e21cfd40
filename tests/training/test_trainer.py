"""
Tests for the resumable trainer.
"""

import random

import pytest

from chatbrain.graphs.concepts import AssociationGraph, ConceptGraph
from chatbrain.graphs.token_graph import TokenGraph
from chatbrain.memory.interactions import InteractionLog
from chatbrain.memory.neural import NeuralMemory
from chatbrain.memory.response_bank import ResponseBank
from chatbrain.persistence.memory_store import InMemoryStore
from chatbrain.training.trainer import Trainer


class TestTrainer:
    @pytest.fixture
    def store(self):
        return InMemoryStore()

    @pytest.fixture
    def log(self, store):
        log = InteractionLog(store.state)
        for i in range(5):
            log.append(
                session_id="s1",
                user=f"tell me about topic{i} today",
                bot=f"Topic{i} is a subject worth learning about.",
                source="chat",
                confidence=0.8,
            )
        return log

    @pytest.fixture
    def trainer(self, store, log):
        state = store.state
        return Trainer(
            store,
            log,
            TokenGraph(state["token_graph"], random.Random(1)),
            ConceptGraph(state["concept_graph"]),
            AssociationGraph(state["association_graph"]),
            ResponseBank(state["response_bank"]),
            NeuralMemory(state),
        )

    def test_tick_processes_batch(self, trainer, store):
        tick = trainer.run_tick(2)

        assert tick.processed == 2
        assert tick.remaining == 3
        assert store.state["trainer"]["processed_until"] == 2
        assert store.state["stats"]["trainer_processed_interactions"] == 2

    def test_resumes_from_cursor(self, trainer, store):
        trainer.run_tick(2)
        tick = trainer.run_tick(10)

        assert tick.processed == 3
        assert tick.remaining == 0
        assert trainer.cursor == 5
        assert store.state["stats"]["trainer_iterations"] == 2

    def test_idle_tick_still_counts(self, trainer, store):
        trainer.run_tick(10)
        store.clear()

        tick = trainer.run_tick(10)

        assert tick.processed == 0
        assert store.state["stats"]["trainer_iterations"] == 2
        assert store.saves == []

    def test_save_hint_after_work(self, trainer, store):
        trainer.run_tick(1)
        assert store.saves == [{"core", "language", "neural"}]

    def test_learning_feeds_every_structure(self, trainer, store):
        trainer.run_tick(1)
        state = store.state

        assert "topic0" in state["concept_graph"]
        assert state["association_graph"]["topic0"]["today"] == 1
        assert state["response_bank"]["tell me about topic0 today"][0]["reply"] == (
            "Topic0 is a subject worth learning about."
        )
        assert len(state["neural"]["prototypes"]) == 1
        assert "<START>" in state["token_graph"]

    def test_cursor_follows_trim(self, store, trainer, log):
        trainer.run_tick(5)
        small = InteractionLog(store.state, max_memory=3)

        small.append(session_id="s1", user="new question here", bot="New answer.", source="chat", confidence=0.5)

        assert trainer.cursor == 2
        assert trainer.remaining == 1

    def test_learn_from_empty_interaction_is_noop(self, trainer, store):
        trainer.learn_from_interaction({"user": ""})
        trainer.learn_from_interaction(None)

        assert store.state["concept_graph"] == {}
