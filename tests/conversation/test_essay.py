"""
Tests for the essay writer and the English sentence builder.
"""

import random

import pytest

from chatbrain.conversation.candidates import CandidateSource
from chatbrain.conversation.essay import (
    BRIDGE,
    DEFAULT_ESSAY_TOPIC,
    RANDOM_ESSAY_TOPIC,
    EssayWriter,
    build_english_sentence_candidate,
    extract_sentence_topic,
    generate_english_sentences,
    pick_by_temperature,
    requested_sentence_count,
)
from chatbrain.graphs.token_graph import TokenGraph


class FixedRandom:
    """Returns a scripted sequence of draws."""

    def __init__(self, values):
        self._values = iter(values)

    def random(self):
        return next(self._values)


class TestPickByTemperature:
    def test_empty(self):
        assert pick_by_temperature([], 0.5, random.Random(1)) is None

    def test_low_temperature_is_deterministic(self):
        assert pick_by_temperature(["a", "b", "c"], 0.1, FixedRandom([])) == "a"

    def test_anchored_pick(self):
        # random index 4, anchored index floor(4 * 0.5 * 0.3) = 0
        assert pick_by_temperature(list("abcde"), 0.5, FixedRandom([0.9, 0.1])) == "a"

    def test_random_pick(self):
        assert pick_by_temperature(list("abcde"), 0.5, FixedRandom([0.9, 0.5])) == "e"


class TestEssayWriter:
    @pytest.fixture
    def interactions(self):
        return [
            {
                "user": "tell me about black holes",
                "bot": "Black holes form when massive stars collapse under their own gravity. Nice.",
                "source": "chat",
                "confidence": 0.8,
            },
            {
                "user": "lesson",
                "bot": "Black holes are covered by a starter lesson that should never be quoted here.",
                "source": "starter_bootstrap",
                "confidence": 0.9,
            },
        ]

    @pytest.fixture
    def writer(self, interactions):
        rng = random.Random(11)
        return EssayWriter(interactions, TokenGraph({}, rng), rng)

    def test_is_request(self):
        assert EssayWriter.is_request("write an essay about cats")
        assert EssayWriter.is_request("essey on dogs")
        assert not EssayWriter.is_request("tell me about cats")

    @pytest.mark.parametrize(
        "message,topic",
        [
            ("write an essay about black holes", "black holes"),
            ("Write an essay on the ocean!", "the ocean"),
            ("write a random essay", RANDOM_ESSAY_TOPIC),
            ("write an essay", DEFAULT_ESSAY_TOPIC),
        ],
    )
    def test_extract_topic(self, message, topic):
        assert EssayWriter.extract_topic(message) == topic

    def test_resolve_temperature(self, writer):
        assert writer.resolve_temperature("essay about cats temperature 0.3") == pytest.approx(0.3)
        assert writer.resolve_temperature("essay about cats temperature 5") == 1.0
        assert writer.resolve_temperature("creative essay about cats") == pytest.approx(0.85)
        assert writer.resolve_temperature("formal essay about cats") == pytest.approx(0.45)
        assert writer.resolve_temperature("essay about cats") == pytest.approx(0.65)

    def test_topic_evidence_skips_starter_lessons(self, writer):
        evidence = writer.topic_evidence("black holes")
        assert evidence == ["Black holes form when massive stars collapse under their own gravity."]

    def test_topic_evidence_empty_topic(self, writer):
        assert writer.topic_evidence("") == []

    def test_build_candidate(self, writer):
        candidate = writer.build_candidate("write an essay about black holes")

        assert candidate.source is CandidateSource.ESSAY
        assert candidate.base_score == 0.96
        assert candidate.text.startswith("Black Holes\n\n")
        assert "In conclusion, black holes are important for clear thinking" in candidate.text
        assert len(candidate.text.split("\n\n")) == 4

    def test_bridge_only_at_high_temperature(self, writer):
        creative = writer.build_candidate("write a creative essay about black holes")
        formal = writer.build_candidate("write a formal essay about black holes")

        assert BRIDGE in creative.text
        assert BRIDGE not in formal.text

    def test_not_a_request(self, writer):
        assert writer.build_candidate("what is gravity") is None


class TestEnglishSentences:
    def test_requested_count(self):
        assert requested_sentence_count("make 2 sentences about dogs") == 2
        assert requested_sentence_count("give me 20 examples") == 8
        assert requested_sentence_count("write 0 sentences") == 3
        assert requested_sentence_count("write sentences") == 3

    def test_extract_topic(self):
        assert extract_sentence_topic("make sentences about dogs") == "dogs"
        assert extract_sentence_topic("write english sentences") == "daily life"

    def test_generate(self):
        sentences = generate_english_sentences("dogs", 2)
        assert sentences == [
            "The topic of dogs is important in everyday communication.",
            "I am learning how to explain dogs in clear English sentences.",
        ]

    def test_candidate(self):
        candidate = build_english_sentence_candidate("make 2 sentences about dogs")

        assert candidate.source is CandidateSource.ENGLISH_SENTENCES
        assert candidate.text.startswith("Here are 2 English sentence example(s) about dogs: The topic of dogs")

    def test_not_a_request(self):
        assert build_english_sentence_candidate("what is a dog") is None
