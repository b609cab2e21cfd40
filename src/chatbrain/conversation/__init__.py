"""
Conversation package: turning a message into a reply.

This package implements the per-turn pipeline that:
- Rewrites ambiguous follow-ups into self-contained queries
- Proposes reply candidates from many independent generators
- Scores candidates and suppresses repeated answers
- Learns from every exchange it produces or is given

Components:
    - ContextResolver: Session turns, anchors and follow-up rewriting
    - CandidateGenerators: Every reply generator over engine memory
    - EssayWriter: Evidence-stitched essays with temperature control
    - choose_best: Scoring and final selection
    - ChatBrain: Main orchestrator
"""

from chatbrain.conversation.brain import ChatBrain, ChatResult, CorrectionResult, TurnDebug
from chatbrain.conversation.candidates import (
    Candidate,
    CandidateSource,
    MathCandidate,
    MemoryCandidate,
    MemoryRef,
    NeuralCandidate,
    NeuralRef,
)
from chatbrain.conversation.context import ContextResolver
from chatbrain.conversation.essay import EssayWriter, pick_by_temperature
from chatbrain.conversation.generators import CandidateGenerators
from chatbrain.conversation.scorer import choose_best, score_candidate

__all__ = [
    "Candidate",
    "CandidateGenerators",
    "CandidateSource",
    "ChatBrain",
    "ChatResult",
    "ContextResolver",
    "CorrectionResult",
    "EssayWriter",
    "MathCandidate",
    "MemoryCandidate",
    "MemoryRef",
    "NeuralCandidate",
    "NeuralRef",
    "TurnDebug",
    "choose_best",
    "pick_by_temperature",
    "score_candidate",
]
