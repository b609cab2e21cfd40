"""
Tests for session context and follow-up rewriting.
"""

import pytest

from chatbrain.conversation.context import ContextResolver


class TestSessions:
    @pytest.fixture
    def resolver(self, state):
        return ContextResolver(state["sessions"], state["stats"])

    def test_ensure_session_counts_once(self, resolver, state):
        resolver.ensure_session("s1")
        resolver.ensure_session("s1")

        assert state["stats"]["sessions"] == 1
        assert state["sessions"]["s1"]["turns"] == 0
        assert state["sessions"]["s1"]["pending_clarification"] is None

    def test_ensure_session_repairs_fields(self, resolver, state):
        state["sessions"]["s9"] = {"turns": "many", "recent_turns": "oops"}

        session = resolver.ensure_session("s9")

        assert session["turns"] == 0
        assert session["recent_turns"] == []
        assert state["stats"]["sessions"] == 0

    def test_ring_keeps_six_turns(self, resolver):
        resolver.ensure_session("s1")
        for i in range(8):
            resolver.remember_turn("s1", f"question {i}", f"answer {i}", "chat")

        turns = resolver.get("s1")["recent_turns"]
        assert len(turns) == 6
        assert turns[0]["user"] == "question 2"
        assert resolver.last_turn("s1")["bot"] == "answer 7"

    def test_empty_turns_ignored(self, resolver):
        resolver.ensure_session("s1")
        resolver.remember_turn("s1", "question", "   ", "chat")

        assert resolver.last_turn("s1") is None

    def test_unknown_session(self, resolver):
        resolver.remember_turn("missing", "q", "a")
        assert resolver.get("missing") is None
        assert resolver.last_turn(None) is None

    def test_anchor_skips_clarifications_and_noise(self, state):
        resolver = ContextResolver(state["sessions"], state["stats"], is_low_signal=lambda text: text == "hmm")
        resolver.ensure_session("s1")
        resolver.remember_turn("s1", "what is photosynthesis", "Plants make food.", "memory_match")
        resolver.remember_turn("s1", "hmm", "Please clarify.", "chat")
        resolver.remember_turn("s1", "blorp", "Rephrase please.", "clarification_needed")

        assert resolver.anchor_turn("s1")["user"] == "what is photosynthesis"

    def test_pending_clarification(self, resolver, state):
        resolver.ensure_session("s1")
        resolver.remember_turn("s1", "what is photosynthesis", "Plants make food.", "memory_match")

        resolver.set_pending_clarification("s1", True)
        assert state["sessions"]["s1"]["pending_clarification"]["anchor_user"] == "what is photosynthesis"

        resolver.set_pending_clarification("s1", False)
        assert state["sessions"]["s1"]["pending_clarification"] is None


class TestBuildQuery:
    @pytest.fixture
    def resolver(self, state):
        resolver = ContextResolver(state["sessions"], state["stats"])
        resolver.ensure_session("s1")
        resolver.remember_turn("s1", "what is photosynthesis", "Plants make food from light.", "memory_match")
        return resolver

    def test_no_history_returns_raw(self, state):
        resolver = ContextResolver(state["sessions"], state["stats"])
        resolver.ensure_session("fresh")

        assert resolver.build_query("fresh", "  why is that  ") == "why is that"

    def test_what_about_becomes_definition(self, resolver):
        assert resolver.build_query("s1", "what about chlorophyll") == "define chlorophyll"
        assert resolver.build_query("s1", "What about the moon?") == "define moon"

    def test_followup_prefixed_with_anchor(self, resolver):
        assert resolver.build_query("s1", "why is that") == "what is photosynthesis why is that"

    def test_new_topic_prompt_untouched(self, resolver):
        assert resolver.build_query("s1", "define gravity") == "define gravity"

    def test_plain_message_untouched(self, resolver):
        assert resolver.build_query("s1", "tell me a story about dragons") == "tell me a story about dragons"

    def test_long_unrelated_followup_untouched(self, resolver):
        assert resolver.build_query("s1", "how do volcanoes erupt lava") == "how do volcanoes erupt lava"

    def test_self_contained_followup_untouched(self, resolver):
        assert resolver.build_query("s1", "photosynthesis is what then") == "photosynthesis is what then"

    def test_pending_clarification_uses_stored_anchor(self, resolver):
        resolver.set_pending_clarification("s1", True)
        resolver.remember_turn("s1", "asdf", "Could you rephrase?", "clarification_needed")

        assert resolver.build_query("s1", "define it") == "what is photosynthesis define it"
