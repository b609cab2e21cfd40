"""
ChatBrain: a self-learning conversational response engine.

Every turn the engine proposes replies from many small generators (canned
smalltalk, web and memory recall, math, essays, a hashed prototype memory
and a Markov fallback), scores them, answers with the best one, and learns
from the exchange.

The system includes:
- Context-aware rewriting of follow-up questions
- Memory recall, a response bank and a prototype memory
- A safe arithmetic and linear-equation solver
- A resumable background trainer and bulk prototype re-import
"""

__version__ = "0.1.0"

from chatbrain.config.settings import Settings
from chatbrain.container import BrainContainer
from chatbrain.conversation.brain import ChatBrain, ChatResult, CorrectionResult, TurnDebug
from chatbrain.conversation.candidates import CandidateSource, MemoryRef, NeuralRef
from chatbrain.memory.knowledge import FactResult, LessonResult
from chatbrain.persistence.json_store import JsonStateStore
from chatbrain.persistence.memory_store import InMemoryStore
from chatbrain.protocols.store import StateStore
from chatbrain.training.neural_import import ImportProgress, ImportResult
from chatbrain.training.trainer import TrainerTick

__all__ = [
    "BrainContainer",
    "CandidateSource",
    "ChatBrain",
    "ChatResult",
    "CorrectionResult",
    "FactResult",
    "ImportProgress",
    "ImportResult",
    "InMemoryStore",
    "JsonStateStore",
    "LessonResult",
    "MemoryRef",
    "NeuralRef",
    "Settings",
    "StateStore",
    "TrainerTick",
    "TurnDebug",
]
