"""
End-to-end tests for ChatBrain turns and teaching operations.
"""

import asyncio

import pytest

from chatbrain.conversation.candidates import MemoryRef
from chatbrain.text.signals import NEW_TOPIC_REPLY

OCEAN_REPLY = "The ocean looks blue because water absorbs red light."


class TestChatTurns:
    """Test the per-turn pipeline."""

    def test_fact_learning(self, brain):
        result = brain.chat("s1", "Remember that the sky is blue")

        assert result.reply == "Got it. I will remember this: the sky is blue"
        assert result.debug.source == "fact_learning"
        assert result.debug.confidence == 0.95
        assert result.debug.learned_facts == 1
        assert result.debug.memories == 2

    def test_arithmetic(self, brain):
        result = brain.chat("s1", "what is (2+5)*3")

        assert result.reply == "Math result: (2+5)*3 = 21."
        assert result.debug.source == "math_solver"
        assert brain.interactions.items[-1]["math_meta"]["result"] == 21

    def test_linear_equation(self, brain):
        result = brain.chat("s1", "Solve 2x+4=10")

        assert result.reply == "Math result: for 2x+4=10, x = 3."
        assert result.debug.source == "math_solver"

    def test_math_followup_explains_steps(self, brain):
        brain.chat("s1", "what is (2+5)*3")

        result = brain.chat("s1", "why")

        assert result.debug.source == "math_explain"
        assert result.reply.startswith("Great follow-up. For (2+5)*3, here is why:")
        assert result.reply.endswith("So the answer is 21.")

    def test_greeting_is_answered_by_clarification_table(self, brain):
        result = brain.chat("s1", "hi")

        assert result.debug.source == "smalltalk_greeting"
        assert result.reply.startswith("Hey. I am here and ready.")

    def test_smalltalk(self, brain):
        result = brain.chat("s1", "how are you")

        assert result.debug.source == "smalltalk"
        assert result.reply.startswith("I am good and ready to help.")

    def test_low_signal_sets_pending_clarification(self, brain):
        brain.chat("s1", "plants need sunlight to grow")

        result = brain.chat("s1", "asdf")

        assert result.debug.source == "clarification_needed"
        pending = brain.state["sessions"]["s1"]["pending_clarification"]
        assert pending["anchor_user"] == "plants need sunlight to grow"

    def test_clear_turn_resets_pending(self, brain):
        brain.chat("s1", "asdf")
        brain.chat("s1", "plants need sunlight to grow")

        assert brain.state["sessions"]["s1"]["pending_clarification"] is None

    def test_repeated_reply_to_new_topic_is_suppressed(self, brain):
        brain.ingest_external_reply("s1", "tell me about oceans", OCEAN_REPLY)
        brain.response_bank.remember("blue ocean light facts", OCEAN_REPLY)

        result = brain.chat("s1", "blue ocean light facts")

        assert result.reply == NEW_TOPIC_REPLY
        assert result.debug.source == "clarification_needed"

    def test_web_contexts_are_proposed(self, brain):
        pages = [{"url": "https://example.com/a", "title": "Granite", "text": "Granite is an igneous rock."}]

        result = brain.chat("s1", "granite composition facts", web_contexts=pages)

        assert result.debug.source == "web_context"
        assert result.reply.startswith("From Granite: Granite is an igneous rock.")

    def test_turn_bookkeeping(self, brain, store):
        brain.chat("s1", "plants need sunlight to grow")

        assert brain.state["stats"]["messages"] == 1
        assert brain.state["stats"]["sessions"] == 1
        assert brain.state["sessions"]["s1"]["turns"] == 1
        assert brain.context.last_turn("s1")["user"] == "plants need sunlight to grow"
        assert {"core", "interactions", "language", "knowledge"} <= store.saved_tags

    def test_trainer_runs_after_turn(self, brain):
        result = brain.chat("s1", "plants need sunlight to grow")

        assert result.debug.trainer_remaining == 0
        assert result.debug.trainer_processed == 1
        assert brain.state["trainer"]["processed_until"] == 1

    def test_result_to_dict(self, brain):
        data = brain.chat("s1", "how are you").to_dict()

        assert data["debug"]["source"] == "smalltalk"
        assert data["debug"]["memory_ref"] is None
        assert set(data) == {"reply", "debug"}


class TestExternalReplies:
    def test_ingest_external_reply(self, brain):
        result = brain.ingest_external_reply("s1", "tell me about oceans", OCEAN_REPLY)

        assert result.reply == OCEAN_REPLY
        assert result.debug.source == "neural_primary"
        assert result.debug.confidence == 0.72
        assert brain.response_bank.lookup("tell me about oceans") == OCEAN_REPLY

    def test_external_rephrase_request_sets_pending(self, brain):
        brain.ingest_external_reply("s1", "blorp", "Could you rephrase that?")
        assert brain.state["sessions"]["s1"]["pending_clarification"] is not None

    def test_reinforce_with_mentor(self, brain):
        assert not brain.reinforce_with_mentor("s1", "what is rust", "")

        assert brain.reinforce_with_mentor("s1", "what is rust", "Rust is a systems language.", "be concise")
        assert brain.response_bank.lookup("what is rust") == "Rust is a systems language."
        assert brain.state["stats"]["mentor_guidances"] == 1
        assert brain.interactions.items[-1]["user"] == "what is rust [MENTOR]"
        assert brain.interactions.items[-1]["source"] == "mentor_guided"


class TestTeaching:
    def test_ingest_fact(self, brain, store):
        result = brain.ingest_fact("Water boils at 100 C")

        assert result.learned
        assert result.fact == "water boils at 100 c"
        assert "knowledge" in store.saved_tags
        assert brain.interactions.items[-1]["session_id"] == "fact-seed"

    def test_ingest_empty_fact(self, brain):
        result = brain.ingest_fact("?!")

        assert not result.learned
        assert result.reason == "empty_fact"

    def test_ingest_website_knowledge_and_recall(self, brain):
        assert brain.ingest_website_knowledge(
            "https://example.com/volcano",
            "Volcano basics",
            "Volcanoes erupt molten rock from deep inside the earth.",
        )
        assert brain.state["stats"]["web_ingestions"] == 1

        result = brain.chat("s2", "what is a volcano")

        assert result.debug.source == "web_knowledge_recall"
        assert "(Learned from web source: Volcano basics.)" in result.reply
        assert result.debug.web_sources == 1

    def test_polluted_web_page_rejected(self, brain):
        assert not brain.ingest_website_knowledge("https://x", "Nav", "Jump to content Main menu Move to sidebar")
        assert not brain.ingest_website_knowledge("https://x", "Empty", "   ")
        assert brain.state["web_knowledge"] == {}

    def test_starter_lessons(self, brain):
        lesson = {"id": "g1", "topic": "grammar", "content": "Nouns name people, places and things."}

        first = brain.ingest_starter_lesson(lesson)
        second = brain.ingest_starter_lesson(lesson)

        assert first.loaded and first.id == "g1"
        assert not second.loaded and second.reason == "already_loaded"
        assert brain.state["stats"]["starter_lessons_loaded"] == 1
        assert brain.interactions.items[-1]["user"] == "[STARTER:grammar] g1"

    @pytest.mark.parametrize(
        "lesson,reason",
        [
            (None, "invalid_lesson"),
            ("grammar", "invalid_lesson"),
            ({"id": "", "content": "text"}, "missing_id_or_content"),
            ({"id": "g2", "content": "  "}, "missing_id_or_content"),
        ],
    )
    def test_invalid_lessons(self, brain, lesson, reason):
        result = brain.ingest_starter_lesson(lesson)

        assert not result.loaded
        assert result.reason == reason


class TestReplaceIncorrectMemory:
    @pytest.fixture
    def taught(self, brain):
        brain.ingest_external_reply("s1", "how do plants make food", "Plants eat dirt.")
        return brain

    @pytest.mark.parametrize(
        "ref,reason",
        [
            (None, "missing_memory_ref"),
            ({"interaction_index": True, "at": None, "user": ""}, "missing_memory_ref"),
            ({"interaction_index": "0", "at": None, "user": ""}, "missing_memory_ref"),
            ({"interaction_index": 99, "at": None, "user": ""}, "memory_index_out_of_range"),
            ({"interaction_index": -1, "at": None, "user": ""}, "memory_index_out_of_range"),
            ({"interaction_index": 0, "at": "stale", "user": "how do plants make food"}, "memory_reference_mismatch"),
        ],
    )
    def test_rejected_references(self, taught, ref, reason):
        result = taught.replace_incorrect_memory(ref)

        assert not result.removed
        assert result.reason == reason
        assert len(taught.interactions) == 1

    def test_removes_and_rebanks(self, taught):
        item = taught.interactions.items[0]
        ref = MemoryRef(interaction_index=0, at=item["at"], user="HOW do plants make food")

        result = taught.replace_incorrect_memory(
            ref,
            message="how do plants make food",
            bad_reply="Plants eat dirt.",
            corrected_reply="Plants use photosynthesis.",
        )

        assert result.removed
        assert len(taught.interactions) == 0
        assert taught.state["trainer"]["processed_until"] == 0
        assert taught.response_bank.lookup("how do plants make food") == "Plants use photosynthesis."

    def test_accepts_dict_reference(self, taught):
        item = taught.interactions.items[0]
        ref = {"interaction_index": 0, "at": item["at"], "user": item["user"]}

        assert taught.replace_incorrect_memory(ref).removed


class TestTraining:
    def test_run_trainer_tick_with_nothing_to_do(self, brain):
        tick = brain.run_trainer_tick()

        assert tick.processed == 0
        assert tick.remaining == 0
        assert brain.state["stats"]["trainer_iterations"] == 1

    def test_import_all_memory_to_neural(self, brain):
        brain.ingest_external_reply("s1", "tell me about oceans", OCEAN_REPLY)
        brain.ingest_fact("water boils at 100 c")

        result = brain.import_all_memory_to_neural()

        assert result.imported_samples > 0
        assert result.neural_dim == 48
        assert result.neural_prototypes == len(brain.neural)

    def test_import_async_reports_completion(self, brain):
        brain.ingest_external_reply("s1", "tell me about oceans", OCEAN_REPLY)
        reports = []

        result = asyncio.run(brain.import_all_memory_to_neural_async(on_progress=reports.append, yield_every=1))

        assert reports[-1].done
        assert reports[-1].imported_samples == result.imported_samples
        assert all(not report.done for report in reports[:-1])
