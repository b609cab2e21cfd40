"""
Text normalization and token-level similarity.

Every component compares text through these functions, so they are kept
deterministic and free of side effects.
"""

import math
import re
from typing import List

from chatbrain.config.constants import (
    MAX_CONCEPTS,
    POLLUTED_WEB_SIGNALS,
    SENTENCE_MAX_CHARS,
    SENTENCE_MIN_CHARS,
    STOPWORDS,
)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


def normalize(text) -> str:
    """
    Lowercase, replace anything outside [a-z0-9 whitespace] with a space,
    collapse whitespace and trim.

    Example:
        >>> normalize("  What's   UP, Doc? ")
        'what s up doc'
    """
    lowered = str(text or "").lower()
    return _WHITESPACE.sub(" ", _NON_ALNUM.sub(" ", lowered)).strip()


def tokenize(text) -> List[str]:
    """Split normalized text on spaces, dropping single-character tokens."""
    return [token for token in normalize(text).split(" ") if len(token) > 1]


def extract_concepts(text, limit: int = MAX_CONCEPTS) -> List[str]:
    """
    Extract concept tags from text.

    Tokens that are stopwords or shorter than three characters are dropped;
    the rest are deduplicated in first-seen order and capped at `limit`.
    """
    concepts: List[str] = []
    seen = set()
    for token in tokenize(text):
        if len(token) <= 2 or token in STOPWORDS or token in seen:
            continue
        seen.add(token)
        concepts.append(token)
    return concepts[:limit]


def score_similarity(a, b) -> float:
    """Jaccard similarity of the token sets of `a` and `b` (0 when either is empty)."""
    tokens_a = set(tokenize(a))
    tokens_b = set(tokenize(b))
    if not tokens_a or not tokens_b:
        return 0.0

    overlap = len(tokens_a & tokens_b)
    return overlap / (len(tokens_a) + len(tokens_b) - overlap)


def token_overlap_count(a, b) -> int:
    """Number of distinct tokens shared by `a` and `b`."""
    tokens_a = set(tokenize(a))
    tokens_b = set(tokenize(b))
    if not tokens_a or not tokens_b:
        return 0
    return len(tokens_a & tokens_b)


def is_polluted_web_text(text) -> bool:
    """
    True for empty text or text carrying two or more navigation-chrome phrases
    (the residue of scraping a page without extracting its article body).
    """
    sample = normalize(text)
    if not sample:
        return True

    hits = sum(1 for signal in POLLUTED_WEB_SIGNALS if signal in sample)
    return hits >= 2


def split_into_sentences(text) -> List[str]:
    """Split on sentence punctuation, keeping sentences of a quotable length."""
    sentences = []
    for line in _SENTENCE_BREAK.split(str(text or "")):
        line = line.strip()
        if SENTENCE_MIN_CHARS <= len(line) <= SENTENCE_MAX_CHARS:
            sentences.append(line)
    return sentences


def collapse_whitespace(text) -> str:
    return _WHITESPACE.sub(" ", str(text or "")).strip()


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def format_number(value: float) -> str:
    """
    Render a numeric result the way replies show it: rounded to 8 decimals
    in fixed-point notation, integers without a trailing ".0".
    """
    if value is None or not math.isfinite(value):
        return "undefined"

    rounded = round(float(value), 8)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.8f}".rstrip("0")


def title_case(text: str) -> str:
    """Uppercase the first letter of every space-separated word."""
    return " ".join(word[:1].upper() + word[1:] if word else word for word in text.split(" "))
