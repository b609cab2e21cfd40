"""
Tests for the token, concept and association graphs.
"""

import random

import pytest

from chatbrain.config.constants import END_TOKEN, START_TOKEN
from chatbrain.graphs.concepts import AssociationGraph, ConceptGraph
from chatbrain.graphs.token_graph import TokenGraph, is_low_quality_thought


class TestTokenGraph:
    @pytest.fixture
    def graph(self):
        return TokenGraph({}, random.Random(7))

    def test_learn_wraps_in_sentinels(self, graph):
        graph.learn(["plants", "need", "light"])

        assert graph.edge_weight(START_TOKEN, "plants") == 1
        assert graph.edge_weight("plants", "need") == 1
        assert graph.edge_weight("light", END_TOKEN) == 1

    def test_weights_accumulate(self, graph):
        graph.learn(["a1", "b1"])
        graph.learn(["a1", "b1"])

        assert graph.edge_weight("a1", "b1") == 2

    def test_empty_sequence_ignored(self, graph):
        graph.learn([])
        assert len(graph) == 0

    def test_single_path_walk_is_deterministic(self, graph):
        graph.learn(["plants", "need", "light"])

        assert graph.generate(["plants"]) == "need light"
        assert graph.generate([]) == "plants need light"

    def test_unknown_seed_starts_at_start(self, graph):
        graph.learn(["plants", "need", "light"])
        assert graph.generate(["rocks"]) == "plants need light"

    def test_max_steps(self, graph):
        graph.learn(["loop"] * 3)
        words = graph.generate(["loop"], max_steps=5).split()
        assert len(words) <= 5

    def test_pick_weighted_empty(self, graph):
        assert graph.pick_weighted({}) is None
        assert graph.pick_weighted(None) is None

    def test_empty_graph_generates_nothing(self, graph):
        assert graph.generate(["anything"]) == ""


class TestThoughtQuality:
    def test_short_thought(self):
        assert is_low_quality_thought("too short")

    def test_numeric_noise(self):
        assert is_low_quality_thought("12345 67890 11111 22222 plants grow")

    def test_readable_thought(self):
        assert not is_low_quality_thought("plants use light to make their food")


class TestConceptGraph:
    def test_counts(self):
        graph = ConceptGraph({})
        graph.update(["plants", "light"])
        graph.update(["plants"])

        assert graph.count("plants") == 2
        assert graph.count("missing") == 0
        assert "light" in graph
        assert len(graph) == 2


class TestAssociationGraph:
    def test_symmetric(self):
        graph = AssociationGraph({})
        graph.update(["plants", "light", "water"])

        assert graph.weight("plants", "light") == graph.weight("light", "plants") == 1
        assert graph.weight("water", "plants") == 1

    def test_single_concept_ignored(self):
        graph = AssociationGraph({})
        graph.update(["plants"])
        assert len(graph) == 0

    def test_associated_ranks_and_excludes_query(self):
        graph = AssociationGraph({})
        graph.update(["plants", "light"])
        graph.update(["plants", "light"])
        graph.update(["plants", "water"])

        assert graph.associated(["plants"]) == ["light", "water"]
        assert graph.associated(["plants", "light"]) == ["water"]
