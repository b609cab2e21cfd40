"""
Candidate scoring and final selection.
"""

from typing import Dict, List, Optional, Sequence

from chatbrain.config.constants import (
    CONCEPT_HIT_CAP,
    CONCEPT_HIT_WEIGHT,
    DEFINITION_ASSOCIATION_PENALTY,
    DEFINITION_GENERATED_PENALTY,
    DEFINITION_WEAK_MEMORY_PENALTY,
    MESSAGE_OVERLAP_WEIGHT,
    NEURAL_SOURCE_BONUS,
    REPEAT_CONTINUITY,
    REPEAT_PENALTY,
    REPEAT_SIMILARITY,
    RESPONSE_BANK_BONUS,
    SCORE_CEILING,
    SCORE_FLOOR,
    WEAK_MEMORY_OVERLAP,
)
from chatbrain.conversation.candidates import Candidate, CandidateSource
from chatbrain.text.normalizer import clamp, normalize, score_similarity
from chatbrain.text.signals import DEFINITION_REQUEST, REPEAT_FOLLOWUP_CUE

REPEAT_EXEMPT_SOURCES = frozenset([CandidateSource.CLARIFICATION_NEEDED, CandidateSource.KNOWLEDGE_GAP])


def score_candidate(candidate: Candidate, message, concepts: Sequence[str]) -> float:
    """
    Confidence of one candidate for `message`, clamped to [0.01, 0.99].

    Starts from the base score, rewards overlap with the message and
    concept mentions, and penalizes weak source kinds on definition
    requests.
    """
    score = candidate.base_score
    if candidate.source is CandidateSource.RESPONSE_BANK:
        score += RESPONSE_BANK_BONUS

    overlap = score_similarity(message, candidate.text)
    score += overlap * MESSAGE_OVERLAP_WEIGHT

    normalized_text = normalize(candidate.text)
    concept_hits = sum(1 for concept in concepts if concept in normalized_text)
    score += min(CONCEPT_HIT_CAP, concept_hits * CONCEPT_HIT_WEIGHT)

    if DEFINITION_REQUEST.search(normalize(message)):
        if candidate.source is CandidateSource.CONCEPT_ASSOCIATION:
            score -= DEFINITION_ASSOCIATION_PENALTY
        elif candidate.source is CandidateSource.GENERATED:
            score -= DEFINITION_GENERATED_PENALTY
        elif candidate.source is CandidateSource.MEMORY_MATCH and overlap < WEAK_MEMORY_OVERLAP:
            score -= DEFINITION_WEAK_MEMORY_PENALTY

    if candidate.source is CandidateSource.NEURAL_MEMORY:
        score += NEURAL_SOURCE_BONUS

    return clamp(score, SCORE_FLOOR, SCORE_CEILING)


def apply_repetition_penalty(candidates: List[Candidate], message, last_turn: Optional[Dict]) -> None:
    """
    Penalize candidates that would echo the previous reply to an unrelated
    message (no follow-up cue, low continuity with the previous question).
    """
    if not last_turn or not last_turn.get("bot"):
        return

    continuity = score_similarity(message, last_turn.get("user") or "")
    if continuity >= REPEAT_CONTINUITY or REPEAT_FOLLOWUP_CUE.search(normalize(message)):
        return

    for candidate in candidates:
        if candidate.source in REPEAT_EXEMPT_SOURCES:
            continue
        if score_similarity(candidate.text, last_turn["bot"]) >= REPEAT_SIMILARITY:
            candidate.confidence = max(SCORE_FLOOR, candidate.confidence - REPEAT_PENALTY)


def choose_best(
    candidates: List[Candidate],
    message,
    concepts: Sequence[str],
    last_turn: Optional[Dict] = None,
) -> Candidate:
    """
    Score, de-duplicate against the previous reply, and pick the winner.

    A concept-association winner for a definition request yields to a
    knowledge-gap admission when one was proposed.
    """
    for candidate in candidates:
        candidate.confidence = score_candidate(candidate, message, concepts)

    apply_repetition_penalty(candidates, message, last_turn)
    ranked = sorted(candidates, key=lambda item: item.confidence, reverse=True)

    best = ranked[0]
    if best.source is CandidateSource.CONCEPT_ASSOCIATION and DEFINITION_REQUEST.search(normalize(message)):
        gap = next((item for item in ranked if item.source is CandidateSource.KNOWLEDGE_GAP), None)
        if gap is not None:
            return gap
    return best
