"""Text package: normalization, tokenization and rule-table classification."""

from chatbrain.text.normalizer import (
    extract_concepts,
    is_polluted_web_text,
    normalize,
    score_similarity,
    token_overlap_count,
    tokenize,
)
from chatbrain.text.signals import classify_low_signal, infer_intent, is_low_signal_input

__all__ = [
    "classify_low_signal",
    "extract_concepts",
    "infer_intent",
    "is_low_signal_input",
    "is_polluted_web_text",
    "normalize",
    "score_similarity",
    "token_overlap_count",
    "tokenize",
]
