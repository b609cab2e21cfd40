"""
Tests for memory recall over the interaction log.
"""

from chatbrain.memory.recall import find_best_memory


def _item(user, bot, session_id="s1", source="chat"):
    return {"session_id": session_id, "user": user, "bot": bot, "source": source, "at": "t"}


PLANTS = _item("how do plants make food", "Plants use photosynthesis to make food.")


class TestFindBestMemory:
    def test_same_session_exact_match(self):
        match = find_best_memory([PLANTS], "how do plants make food", "s1")

        assert match is not None
        assert match.index == 0
        assert match.score == 1.0
        assert match.boosted_score == 1.0 + 0.08

    def test_cross_session_strong_match(self):
        match = find_best_memory([PLANTS], "how do plants make food", "s2")
        assert match is not None
        assert match.boosted_score == match.score

    def test_cross_session_weak_match_rejected(self):
        assert find_best_memory([PLANTS], "how do plants grow tall", "s2") is None

    def test_same_session_partial_match(self):
        match = find_best_memory([PLANTS], "how do plants grow tall", "s1")

        assert match is not None
        assert match.score == 3 / 7

    def test_no_session_searches_everything(self):
        assert find_best_memory([PLANTS], "how do plants grow tall") is not None

    def test_synthetic_sources_skipped(self):
        generated = _item("how do plants make food", "Some thought.", source="generated")
        assert find_best_memory([generated], "how do plants make food", "s1") is None

    def test_polluted_reply_skipped(self):
        polluted = _item("how do plants make food", "Jump to content Main menu Move to sidebar")
        assert find_best_memory([polluted], "how do plants make food", "s1") is None

    def test_requires_shared_concept(self):
        item = _item("what is the time now", "It is noon.")
        assert find_best_memory([item], "what is gravity", "s1") is None

    def test_newest_best_wins(self):
        older = _item("how do plants make food", "Old answer.")
        newer = _item("how do plants make food", "New answer.")

        match = find_best_memory([older, newer], "how do plants make food", "s1")

        assert match.item["bot"] == "New answer."
        assert match.index == 1

    def test_window_limits_scan(self):
        other = _item("unrelated chatter here", "Sure.")
        assert find_best_memory([PLANTS, other], "how do plants make food", "s1", window=1) is None

    def test_below_minimum_similarity(self):
        item = _item("plants make food in leaves using sunlight and water daily", "Yes.")
        assert find_best_memory([item], "plants make", "s1") is None
