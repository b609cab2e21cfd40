"""
Memory package: everything the engine remembers between turns.

Components:
    - InteractionLog: Bounded append-only exchange log
    - ResponseBank: Exact-prompt reply memory
    - LearnedFacts, WebKnowledge, StarterLessons: Taught knowledge
    - NeuralMemory: Hashed bag-of-words prototype memory
    - find_best_memory: Similarity recall over the interaction log
"""

from chatbrain.memory.interactions import InteractionLog
from chatbrain.memory.knowledge import (
    FactResult,
    LearnedFacts,
    LessonResult,
    StarterLessons,
    WebKnowledge,
    WebRecall,
)
from chatbrain.memory.neural import NeuralMatch, NeuralMemory, embed_text, hash_token_to_index
from chatbrain.memory.recall import MemoryMatch, find_best_memory
from chatbrain.memory.response_bank import ResponseBank

__all__ = [
    "FactResult",
    "InteractionLog",
    "LearnedFacts",
    "LessonResult",
    "MemoryMatch",
    "NeuralMatch",
    "NeuralMemory",
    "ResponseBank",
    "StarterLessons",
    "WebKnowledge",
    "WebRecall",
    "embed_text",
    "find_best_memory",
    "hash_token_to_index",
]
