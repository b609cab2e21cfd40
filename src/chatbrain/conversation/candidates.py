"""
Reply candidates.

Every generator proposes a Candidate tagged with a CandidateSource.
Sources that carry extra metadata use their own subclass, so the
selection code can tell exactly which metadata is available.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from chatbrain.arithmetic.engine import MathSolution


class CandidateSource(str, Enum):
    """Closed set of reply sources."""

    SMALLTALK = "smalltalk"
    SMALLTALK_CONFUSION = "smalltalk_confusion"
    SMALLTALK_GREETING = "smalltalk_greeting"
    SMALLTALK_FRUSTRATION = "smalltalk_frustration"
    CLARIFICATION_NEEDED = "clarification_needed"
    WEB_KNOWLEDGE_RECALL = "web_knowledge_recall"
    WEB_CONTEXT = "web_context"
    KNOWLEDGE_GAP = "knowledge_gap"
    ESSAY = "essay_brain_writer"
    ENGLISH_SENTENCES = "english_sentence_builder"
    MATH_EXPLAIN = "math_explain"
    LESSON = "lesson_ingest"
    IDENTITY = "identity_explain"
    MATH_SOLVER = "math_solver"
    RESPONSE_BANK = "response_bank"
    MEMORY_MATCH = "memory_match"
    NEURAL_MEMORY = "neural_memory"
    CONCEPT_ASSOCIATION = "concept_association"
    GENERATED = "generated"
    FACT_LEARNING = "fact_learning"


@dataclass
class Candidate:
    """A proposed reply with its base score and, once scored, its confidence."""

    text: str
    source: CandidateSource
    base_score: float
    confidence: float = 0.0

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.source.value}, conf={self.confidence:.2f}, '{self.text[:30]}...')"


@dataclass
class MemoryRef:
    """Points back at the recalled interaction so a reviewer can correct it."""

    interaction_index: int
    at: Optional[str]
    user: str

    def to_dict(self) -> Dict[str, Any]:
        return {"interaction_index": self.interaction_index, "at": self.at, "user": self.user}


@dataclass
class NeuralRef:
    prototype_index: int
    cosine: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"prototype_index": self.prototype_index, "cosine": self.cosine, "count": self.count}


@dataclass
class MemoryCandidate(Candidate):
    memory_ref: MemoryRef = field(default=None)  # type: ignore[assignment]


@dataclass
class NeuralCandidate(Candidate):
    neural_ref: NeuralRef = field(default=None)  # type: ignore[assignment]


@dataclass
class MathCandidate(Candidate):
    """Math answer or explanation. `solution` is None for failed evaluations."""

    solution: Optional[MathSolution] = None


def memory_ref_of(candidate: Candidate) -> Optional[MemoryRef]:
    return candidate.memory_ref if isinstance(candidate, MemoryCandidate) else None


def neural_ref_of(candidate: Candidate) -> Optional[NeuralRef]:
    return candidate.neural_ref if isinstance(candidate, NeuralCandidate) else None


def math_meta_of(candidate: Candidate) -> Optional[Dict[str, Any]]:
    if isinstance(candidate, MathCandidate) and candidate.solution is not None:
        return candidate.solution.to_dict()
    return None
