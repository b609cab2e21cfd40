"""
Graphs package: Markov token transitions and concept co-occurrence.

Components:
    - TokenGraph: Weighted transitions and random-walk generation
    - ConceptGraph: Concept occurrence counts
    - AssociationGraph: Symmetric concept co-occurrence weights
"""

from chatbrain.graphs.concepts import AssociationGraph, ConceptGraph
from chatbrain.graphs.token_graph import TokenGraph, is_low_quality_thought

__all__ = [
    "AssociationGraph",
    "ConceptGraph",
    "TokenGraph",
    "is_low_quality_thought",
]
