"""
Memory recall over the interaction log.

Scans interactions from newest to oldest within a bounded window and
returns the past exchange whose user text best matches the query.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from chatbrain.config.constants import (
    MEMORY_SEARCH_WINDOW,
    RECALL_CROSS_SESSION_CONCEPTS,
    RECALL_CROSS_SESSION_OVERLAP,
    RECALL_CROSS_SESSION_SIMILARITY,
    RECALL_MIN_SIMILARITY,
    RECALL_SAME_SESSION_BOOST,
    RECALL_SKIP_SOURCES,
)
from chatbrain.text.normalizer import (
    extract_concepts,
    is_polluted_web_text,
    normalize,
    score_similarity,
    token_overlap_count,
)
from chatbrain.text.signals import NAVIGATION_CHROME


@dataclass
class MemoryMatch:
    """A recalled interaction and how well it matched."""

    item: Dict
    index: int
    score: float
    boosted_score: float
    overlap_count: int
    concept_overlap: int

    def __repr__(self) -> str:
        return f"MemoryMatch(#{self.index}, score={self.score:.2f}, boosted={self.boosted_score:.2f})"


def find_best_memory(
    interactions: List[Dict],
    message: str,
    session_id: Optional[str] = None,
    window: int = MEMORY_SEARCH_WINDOW,
) -> Optional[MemoryMatch]:
    """
    Find the best past interaction for `message`.

    Eligibility:
    - same session, or a web ingestion (when a session is given)
    - source is not synthetic (generated, recall echoes, bootstrap, facts)
    - reply is not scraped navigation chrome
    - shares at least one concept with the query, when the query has any
    - shares at least 2 tokens (1 for web ingestions)
    - cross-session: similarity >= 0.66, 2+ shared concepts, 3+ shared tokens

    Same-session matches rank with a +0.08 boost. The best match must have
    a raw similarity above 0.33.

    Args:
        interactions: Interaction log (oldest first)
        message: Query text
        session_id: Asking session, or None to search every session
        window: Maximum interactions to scan

    Returns:
        MemoryMatch or None
    """
    message_concepts = extract_concepts(message)
    best: Optional[MemoryMatch] = None

    start = len(interactions) - 1
    stop = max(-1, start - window)
    for index in range(start, stop, -1):
        item = interactions[index]
        if not item or not item.get("user") or not item.get("bot"):
            continue

        source = item.get("source")
        same_session = bool(session_id) and item.get("session_id") == session_id
        if session_id and not same_session and source != "web_ingest":
            continue
        if source in RECALL_SKIP_SOURCES:
            continue

        bot = item["bot"]
        if NAVIGATION_CHROME.search(normalize(bot)) or is_polluted_web_text(bot):
            continue

        concept_overlap = 0
        if message_concepts:
            item_concepts = extract_concepts(item["user"])
            concept_overlap = sum(1 for concept in message_concepts if concept in item_concepts)
            if concept_overlap < 1:
                continue

        score = score_similarity(message, item["user"])
        overlap_count = token_overlap_count(message, item["user"])
        min_overlap = 1 if source == "web_ingest" else 2
        if overlap_count < min_overlap:
            continue

        if session_id and not same_session:
            if (
                score < RECALL_CROSS_SESSION_SIMILARITY
                or concept_overlap < RECALL_CROSS_SESSION_CONCEPTS
                or overlap_count < RECALL_CROSS_SESSION_OVERLAP
            ):
                continue

        boosted = score + RECALL_SAME_SESSION_BOOST if same_session else score
        if best is None or score > best.score or boosted > best.boosted_score:
            best = MemoryMatch(
                item=item,
                index=index,
                score=score,
                boosted_score=boosted,
                overlap_count=overlap_count,
                concept_overlap=concept_overlap,
            )

    if best is not None and best.score > RECALL_MIN_SIMILARITY:
        return best
    return None
