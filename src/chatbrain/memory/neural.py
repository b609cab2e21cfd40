"""
NeuralMemory: Hashed bag-of-words prototype memory.

Despite the name this is not a trained network. Each input is embedded by
hashing its tokens into a fixed-length count vector (FNV-1a, 32-bit) and
L2-normalizing it. Prototypes pair such a vector with a representative
reply and are updated online:

- Training finds the prototype whose reply text is most similar to the new
  reply. At or above the merge threshold the prototype vector moves toward
  the new input by an exponential moving average with rate
  max(0.08, 1 / (count + 1)); otherwise a new prototype is created.
- Retrieval embeds the query and returns the prototype with the highest
  cosine similarity, if it clears the match threshold.

Prototype vectors are stored as plain float lists so the state tree stays
JSON-serializable; torch is used for the vector arithmetic.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import torch
import torch.nn.functional as F

from chatbrain.config.constants import (
    FNV_OFFSET_BASIS,
    FNV_PRIME,
    MAX_BANKED_REPLY_CHARS,
    NEURAL_CONFIDENCE_CEILING,
    NEURAL_CONFIDENCE_FLOOR,
    NEURAL_CONFIDENCE_SLOPE,
    NEURAL_DIM,
    NEURAL_MATCH_THRESHOLD,
    NEURAL_MAX_PROTOTYPES,
    NEURAL_MERGE_THRESHOLD,
    NEURAL_MIN_LEARNING_RATE,
    NEURAL_SHORT_REPLY_CHARS,
    NEURAL_SKIP_SOURCES,
)
from chatbrain.state import ensure_neural_state, new_neural_state, now_iso
from chatbrain.text.normalizer import clamp, is_polluted_web_text, normalize, score_similarity, tokenize
from chatbrain.text.signals import NAVIGATION_CHROME

logger = logging.getLogger(__name__)

DTYPE = torch.float64


def hash_token_to_index(token: str, dim: int) -> int:
    """32-bit FNV-1a over UTF-16 code units, reduced modulo `dim`."""
    text = str(token or "")
    value = FNV_OFFSET_BASIS
    for unit in _utf16_units(text):
        value ^= unit
        value = (value * FNV_PRIME) & 0xFFFFFFFF
    return value % dim


def _utf16_units(text: str) -> List[int]:
    data = text.encode("utf-16-le")
    return [data[i] | (data[i + 1] << 8) for i in range(0, len(data), 2)]


def embed_text(text, dim: int = NEURAL_DIM) -> torch.Tensor:
    """
    Hashed term-count vector of `text`, L2-normalized.

    Text without tokens embeds to the zero vector.
    """
    vector = torch.zeros(dim, dtype=DTYPE)
    for token in tokenize(text):
        vector[hash_token_to_index(token, dim)] += 1.0

    magnitude = torch.linalg.vector_norm(vector)
    if magnitude <= 0:
        return vector
    return vector / magnitude


def cosine_similarity(a, b) -> float:
    """Cosine of two equal-length vectors; 0 for mismatched lengths or zero vectors."""
    left = torch.as_tensor(a, dtype=DTYPE)
    right = torch.as_tensor(b, dtype=DTYPE)
    if left.numel() == 0 or left.shape != right.shape:
        return 0.0
    if torch.linalg.vector_norm(left) <= 0 or torch.linalg.vector_norm(right) <= 0:
        return 0.0
    return float(F.cosine_similarity(left, right, dim=0))


@dataclass
class NeuralMatch:
    """Best prototype for a query."""

    reply: str
    prototype_index: int
    cosine: float
    count: int

    @property
    def confidence(self) -> float:
        return clamp(
            NEURAL_CONFIDENCE_FLOOR + self.cosine * NEURAL_CONFIDENCE_SLOPE,
            NEURAL_CONFIDENCE_FLOOR,
            NEURAL_CONFIDENCE_CEILING,
        )

    def __repr__(self) -> str:
        return f"NeuralMatch(#{self.prototype_index}, cos={self.cosine:.3f}, count={self.count})"


class NeuralMemory:
    """
    Prototype memory over the `neural` subtree of the state tree.

    Attributes:
        _state: Full state tree (the neural subtree is repaired on access)
        _dim: Embedding length used when the subtree must be recreated
        _is_low_signal: Predicate rejecting noise inputs from training

    Example:
        >>> memory = NeuralMemory(state, is_low_signal=lambda text: False)
        >>> memory.train({"user": "what is gravity", "bot": "Gravity pulls masses together.",
        ...               "source": "chat"})
        True
        >>> memory.best_match("explain gravity please").prototype_index
        0
    """

    def __init__(
        self,
        state: Dict,
        dim: int = NEURAL_DIM,
        is_low_signal: Optional[Callable[[str], bool]] = None,
    ):
        self._state = state
        self._dim = dim
        self._is_low_signal = is_low_signal or (lambda _text: False)

    @property
    def neural(self) -> Dict:
        return ensure_neural_state(self._state, self._dim)

    @property
    def dim(self) -> int:
        return self.neural["dim"]

    @property
    def prototypes(self) -> List[Dict]:
        return self.neural["prototypes"]

    def reset(self) -> None:
        """Drop every prototype and the training counters."""
        self._state["neural"] = new_neural_state(self.dim)

    def should_skip(self, interaction: Optional[Dict], force: bool = False) -> bool:
        """
        Decide whether an interaction is unfit for training.

        Forced training only requires both sides to be non-empty. Otherwise
        synthetic sources, low-signal inputs, and polluted, empty or
        over-long replies are skipped.
        """
        if not interaction or not interaction.get("user") or not interaction.get("bot"):
            return True

        user = str(interaction.get("user") or "").strip()
        bot = str(interaction.get("bot") or "")
        if force:
            return not user or not bot.strip()

        if str(interaction.get("source") or "") in NEURAL_SKIP_SOURCES:
            return True
        if self._is_low_signal(user):
            return True
        return not bot.strip() or is_polluted_web_text(bot) or len(bot) > MAX_BANKED_REPLY_CHARS

    def train(self, interaction: Dict, force: bool = False) -> bool:
        """
        Fold one (user, bot) interaction into the prototypes.

        Returns:
            True when the interaction was trained, False when skipped
        """
        if self.should_skip(interaction, force=force):
            return False

        neural = self.neural
        dim = neural["dim"]
        input_vector = embed_text(interaction["user"], dim)
        reply = str(interaction.get("bot") or "").strip()

        target = None
        best_similarity = 0.0
        for prototype in neural["prototypes"]:
            similarity = score_similarity(reply, prototype.get("reply") or "")
            if similarity > best_similarity:
                best_similarity = similarity
                target = prototype

        stamp = now_iso()
        if target is None or best_similarity < NEURAL_MERGE_THRESHOLD:
            neural["prototypes"].append({
                "reply": reply,
                "source": str(interaction.get("source") or "neural_memory"),
                "vector": input_vector.tolist(),
                "count": 1,
                "updated_at": stamp,
            })
        else:
            self._merge(target, input_vector, reply, stamp)

        neural["trained_samples"] = int(neural.get("trained_samples") or 0) + 1
        neural["last_train_at"] = stamp
        self._evict()
        return True

    def _merge(self, target: Dict, input_vector: torch.Tensor, reply: str, stamp: str) -> None:
        old_count = int(target.get("count") or 1)
        rate = max(NEURAL_MIN_LEARNING_RATE, 1.0 / (old_count + 1))
        current = torch.tensor(target["vector"], dtype=DTYPE)
        target["vector"] = (current * (1.0 - rate) + input_vector * rate).tolist()
        target["count"] = old_count + 1
        target["updated_at"] = stamp

        stored = target.get("reply") or ""
        if len(stored) < NEURAL_SHORT_REPLY_CHARS and len(reply) > len(stored):
            target["reply"] = reply

    def _evict(self) -> None:
        neural = self._state["neural"]
        if len(neural["prototypes"]) <= NEURAL_MAX_PROTOTYPES:
            return
        ranked = sorted(neural["prototypes"], key=lambda item: int(item.get("count") or 0), reverse=True)
        evicted = len(ranked) - NEURAL_MAX_PROTOTYPES
        neural["prototypes"] = ranked[:NEURAL_MAX_PROTOTYPES]
        logger.debug("Evicted %d low-count neural prototypes", evicted)

    def best_match(self, message) -> Optional[NeuralMatch]:
        """
        Nearest prototype by cosine similarity, regardless of threshold.

        Prototypes without a reply are ignored.
        """
        prototypes = self.prototypes
        indices = [index for index, item in enumerate(prototypes) if item.get("reply")]
        if not indices:
            return None

        query = embed_text(message, self.dim)
        matrix = torch.tensor([prototypes[index]["vector"] for index in indices], dtype=DTYPE)
        if torch.linalg.vector_norm(query) <= 0:
            scores = torch.zeros(len(indices), dtype=DTYPE)
        else:
            scores = F.cosine_similarity(matrix, query.unsqueeze(0), dim=1)
            scores = torch.where(torch.linalg.vector_norm(matrix, dim=1) > 0, scores, torch.zeros_like(scores))

        position = int(torch.argmax(scores))
        best = prototypes[indices[position]]
        return NeuralMatch(
            reply=best["reply"],
            prototype_index=indices[position],
            cosine=float(scores[position]),
            count=int(best.get("count") or 1),
        )

    def recall(self, message) -> Optional[NeuralMatch]:
        """Best prototype if it clears the match threshold and its reply is clean."""
        match = self.best_match(message)
        if match is None or match.cosine < NEURAL_MATCH_THRESHOLD:
            return None
        if NAVIGATION_CHROME.search(normalize(match.reply)) or is_polluted_web_text(match.reply):
            return None
        return match

    def __len__(self) -> int:
        return len(self.prototypes)

    def __repr__(self) -> str:
        return f"NeuralMemory(dim={self.dim}, prototypes={len(self)})"
