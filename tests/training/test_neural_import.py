"""
Tests for the bulk neural re-import (blocking and asyncio forms).
"""

import asyncio

import pytest

from chatbrain.memory.neural import NeuralMemory
from chatbrain.persistence.memory_store import InMemoryStore
from chatbrain.text.signals import is_low_signal_input
from chatbrain.training.neural_import import NeuralImporter


def _interaction(user, bot, source="chat"):
    return {"session_id": "s1", "user": user, "bot": bot, "source": source, "confidence": 0.8, "at": "t"}


@pytest.fixture
def store():
    store = InMemoryStore()
    state = store.state
    state["interactions"] = [
        _interaction("what is gravity", "Gravity pulls masses together."),
        _interaction("what is gravity", "Gravity pulls masses together."),
        _interaction("asdf", "Noise reply."),
        _interaction("what is rust", "x" * 1700),
    ]
    state["response_bank"] = {"what is rust": [{"reply": "Rust is a systems language.", "count": 1}]}
    state["learned_facts"] = {"the sky is blue": {"count": 1}}
    state["web_knowledge"] = {
        "https://example.com/v": {"title": "Volcanoes", "last_summary": "Volcanoes erupt molten rock."},
        "https://example.com/nav": {"title": "Nav", "last_summary": "Jump to content Main menu Move to sidebar"},
    }
    return store


@pytest.fixture
def importer(store):
    return NeuralImporter(store, NeuralMemory(store.state), is_low_signal_input, yield_every=2)


class TestIterPairs:
    def test_order_and_sources(self, importer):
        sources = [pair[2] for pair in importer.iter_pairs()]

        assert sources == ["chat"] * 4 + ["response_bank"] + ["learned_fact"] * 2 + ["web_knowledge"] * 2

    def test_fact_prompts(self, importer):
        prompts = [pair[0] for pair in importer.iter_pairs() if pair[2] == "learned_fact"]
        assert prompts == ["remember that the sky is blue", "what is the sky is blue"]

    def test_max_interactions(self, store):
        importer = NeuralImporter(store, NeuralMemory(store.state), is_low_signal_input, max_interactions=1)
        interaction_pairs = [pair for pair in importer.iter_pairs() if pair[2] == "chat"]
        assert len(interaction_pairs) == 1


class TestImportAll:
    def test_filters_and_dedupes(self, importer, store):
        result = importer.import_all()

        # gravity (once), rust bank entry, two fact prompts, volcano page
        assert result.imported_samples == 5
        assert result.trained_samples == 5
        assert result.neural_dim == 48
        assert store.saves[-1] == {"neural"}

    def test_resets_previous_prototypes(self, importer, store):
        store.state["neural"]["prototypes"].append(
            {"reply": "stale", "vector": [0.0] * 48, "count": 9, "source": "old"}
        )

        importer.import_all()

        assert all(prototype["reply"] != "stale" for prototype in store.state["neural"]["prototypes"])

    def test_result_to_dict(self, importer):
        data = importer.import_all().to_dict()
        assert set(data) == {"imported_samples", "trained_samples", "neural_prototypes", "neural_dim"}


class TestImportAllAsync:
    def test_progress_cadence(self, importer):
        reports = []

        result = asyncio.run(importer.import_all_async(on_progress=reports.append))

        # 9 pairs considered, a report every 2, then the final one
        assert [report.considered_samples for report in reports] == [2, 4, 6, 8, 9]
        assert reports[-1].done
        assert result.imported_samples == 5

    def test_explicit_cadence(self, importer):
        reports = []

        asyncio.run(importer.import_all_async(on_progress=reports.append, yield_every=100))

        assert len(reports) == 1
        assert reports[0].done

    def test_callback_errors_do_not_stop_import(self, importer):
        def explode(progress):
            raise RuntimeError("boom")

        result = asyncio.run(importer.import_all_async(on_progress=explode))

        assert result.imported_samples == 5

    def test_matches_blocking_import(self, store):
        blocking = NeuralImporter(store, NeuralMemory(store.state), is_low_signal_input).import_all()
        cooperative = asyncio.run(
            NeuralImporter(store, NeuralMemory(store.state), is_low_signal_input).import_all_async()
        )

        assert cooperative == blocking


class TestImportWhileServingRequests:
    PLANETS = ["mercury", "venus", "mars", "jupiter", "saturn", "neptune"]

    def test_bank_grows_while_import_is_paused(self, brain):
        for name in self.PLANETS:
            assert brain.response_bank.remember(
                f"facts about planet {name}", f"{name.title()} is a planet of the solar system."
            )
        reports = []

        async def scenario():
            paused = asyncio.Event()

            def on_progress(progress):
                reports.append(progress)
                paused.set()

            async def request():
                await paused.wait()
                served_after = len(reports)
                brain.ingest_external_reply("s2", "tell me about volcanoes", "Volcanoes erupt molten rock.")
                return served_after

            side = asyncio.create_task(request())
            result = await brain.import_all_memory_to_neural_async(on_progress=on_progress, yield_every=1)
            return result, await side

        result, served_after = asyncio.run(scenario())

        # no interactions yet, so every paused report falls inside the response-bank pass
        assert 1 <= served_after < len(self.PLANETS)
        assert result.imported_samples == len(self.PLANETS)
        assert brain.response_bank.lookup("tell me about volcanoes") == "Volcanoes erupt molten rock."
