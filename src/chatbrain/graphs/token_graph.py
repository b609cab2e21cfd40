"""
Token transition graph for Markov-style generation.

Each learned sequence is wrapped in <START>/<END> sentinels and every
adjacent pair increments a directed edge weight. Generation is a weighted
random walk over those edges.
"""

import random
import re
from typing import Dict, List, Optional, Sequence

from chatbrain.config.constants import (
    END_TOKEN,
    MARKOV_MAX_STEPS,
    START_TOKEN,
    THOUGHT_MAX_WEIRD_RATIO,
    THOUGHT_MIN_WORDS,
    THOUGHT_WEIRD_WORD_CHARS,
)

_LONG_NUMBER = re.compile(r"\d{3,}")


class TokenGraph:
    """
    Weighted token-to-next-token transitions.

    Attributes:
        _graph: token -> next token -> weight (lives in the store's state tree)
        _rng: Random source used for weighted picks

    Example:
        >>> graph = TokenGraph({}, random.Random(7))
        >>> graph.learn(["plants", "need", "light"])
        >>> graph.generate(["plants"])
        'need light'
    """

    def __init__(self, graph: Dict[str, Dict[str, int]], rng: Optional[random.Random] = None):
        self._graph = graph
        self._rng = rng or random.Random()

    def learn(self, tokens: Sequence[str]) -> None:
        """Add one sequence; empty sequences are ignored."""
        if not tokens:
            return

        sequence = [START_TOKEN, *tokens, END_TOKEN]
        for current, following in zip(sequence, sequence[1:]):
            edges = self._graph.setdefault(current, {})
            edges[following] = edges.get(following, 0) + 1

    def pick_weighted(self, next_map: Optional[Dict[str, int]]) -> Optional[str]:
        """Pick a next token with probability proportional to its edge weight."""
        entries = list((next_map or {}).items())
        if not entries:
            return None

        total = sum(weight for _, weight in entries)
        cursor = self._rng.random() * total
        for token, weight in entries:
            cursor -= weight
            if cursor <= 0:
                return token

        return entries[-1][0]

    def generate(self, seed_tokens: Sequence[str] = (), max_steps: int = MARKOV_MAX_STEPS) -> str:
        """
        Walk the graph and return the emitted words.

        The walk starts at the first seed token when the graph knows it,
        otherwise at <START>. It stops at <END>, at a dead end, or after
        `max_steps` steps. <START> is never emitted.
        """
        words: List[str] = []
        current = seed_tokens[0] if seed_tokens and seed_tokens[0] in self._graph else START_TOKEN

        for _ in range(max_steps):
            next_token = self.pick_weighted(self._graph.get(current))
            if not next_token or next_token == END_TOKEN:
                break
            if next_token != START_TOKEN:
                words.append(next_token)
            current = next_token

        return " ".join(words).strip()

    def edge_weight(self, source: str, target: str) -> int:
        return self._graph.get(source, {}).get(target, 0)

    def __len__(self) -> int:
        return len(self._graph)

    def __repr__(self) -> str:
        return f"TokenGraph(nodes={len(self._graph)})"


def is_low_quality_thought(text) -> bool:
    """
    True for thoughts too short to read as a sentence, or where more than a
    quarter of the words are long numbers or abnormally long tokens.
    """
    sample = str(text or "").strip()
    if not sample:
        return True

    words = sample.split()
    if len(words) < THOUGHT_MIN_WORDS:
        return True

    weird = sum(1 for word in words if _LONG_NUMBER.search(word) or len(word) > THOUGHT_WEIRD_WORD_CHARS)
    return weird / len(words) > THOUGHT_MAX_WEIRD_RATIO
