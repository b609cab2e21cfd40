"""
Composition generators: the essay writer and the English sentence builder.

The essay writer stitches evidence sentences recalled from past replies
with Markov-generated filler. A temperature in [0, 1] controls how often
the best-ranked evidence is chosen over a random pick.
"""

import random
import re
from typing import List, Optional, Sequence, TypeVar

from chatbrain.config.constants import (
    DEFAULT_REQUESTED_SENTENCES,
    ESSAY_ANCHOR_PROBABILITY,
    ESSAY_BRIDGE_TEMPERATURE,
    ESSAY_DETERMINISTIC_TEMPERATURE,
    ESSAY_EVIDENCE_LIMIT,
    ESSAY_TEMPERATURE,
    ESSAY_TEMPERATURE_SHIFT,
    MAX_REQUESTED_SENTENCES,
)
from chatbrain.conversation.candidates import Candidate, CandidateSource
from chatbrain.graphs.token_graph import TokenGraph, is_low_quality_thought
from chatbrain.text.normalizer import clamp, normalize, split_into_sentences, title_case, tokenize
from chatbrain.text.signals import DIRECT_SENTENCE_REQUEST, ESSAY_REQUEST, SENTENCE_REQUEST

T = TypeVar("T")

_ESSAY_TOPIC = re.compile(r"(essay|essey|essy|esay)\s+(about|on|regarding)\s+([a-z0-9\s-]{2,120})")
_TRAILING_TOPIC = re.compile(r"(about|on|regarding)\s+([a-z0-9\s-]{2,120})$")
_RANDOM_ESSAY = re.compile(r"random\s+essay")
_EXPLICIT_TEMPERATURE = re.compile(r"temperature\s*(\d(?:\.\d+)?)")
_CREATIVE = re.compile(r"(creative|imaginative|fun|vivid|poetic)")
_FORMAL = re.compile(r"(formal|academic|strict|concise)")

_SENTENCE_TOPIC = re.compile(r"(about|on|regarding|for)\s+([a-z0-9\s-]{2,80})$")
_SENTENCE_FILLER = re.compile(
    r"\b(make|create|write|give|generate|build|english|sentence|sentences|example|examples|please)\b"
)
_COUNT = re.compile(r"\b(\d{1,2})\b")

RANDOM_ESSAY_TOPIC = "continuous learning and growth mindset"
DEFAULT_ESSAY_TOPIC = "effective communication and learning"
DEFAULT_SENTENCE_TOPIC = "daily life"

BRIDGE = (
    "A key lesson here is that understanding improves when we compare multiple "
    "viewpoints and update beliefs based on stronger evidence."
)

SENTENCE_TEMPLATES = (
    "The topic of {topic} is important in everyday communication.",
    "I am learning how to explain {topic} in clear English sentences.",
    "Many students improve quickly when they practice writing about {topic}.",
    "A simple sentence about {topic} can still be precise and meaningful.",
    "To understand {topic}, it helps to read and write regularly.",
    "Clear grammar makes ideas about {topic} easier to follow.",
    "You can build confidence by speaking about {topic} step by step.",
    "Short, accurate sentences about {topic} are often best for beginners.",
)


def pick_by_temperature(items: Sequence[T], temperature: float, rng: random.Random) -> Optional[T]:
    """
    Pick one item, anchored on the front of `items` at low temperature.

    At or below 0.12 the first item is always returned. Otherwise a random
    index is drawn, and with probability 0.22 the "anchored" index
    floor((n - 1) * (1 - t) * 0.3) is used instead.
    """
    if not items:
        return None

    t = clamp(float(temperature or 0), 0.0, 1.0)
    if t <= ESSAY_DETERMINISTIC_TEMPERATURE:
        return items[0]

    random_index = int(rng.random() * len(items))
    anchored_index = int((len(items) - 1) * (1 - t) * 0.3)
    if rng.random() < ESSAY_ANCHOR_PROBABILITY:
        return items[anchored_index]
    return items[random_index]


class EssayWriter:
    """
    Multi-paragraph essays built from recalled evidence and Markov thoughts.

    Attributes:
        _interactions: Interaction log searched for evidence (oldest first)
        _token_graph: Source of generated filler
        _default_temperature: Used when the request does not set a tone
        _rng: Random source for temperature picks

    Example:
        >>> writer = EssayWriter(state["interactions"], token_graph, random.Random(3))
        >>> writer.build_candidate("write an essay about volcanoes").source
        <CandidateSource.ESSAY: 'essay_brain_writer'>
    """

    def __init__(
        self,
        interactions: List[dict],
        token_graph: TokenGraph,
        rng: random.Random,
        default_temperature: float = ESSAY_TEMPERATURE,
    ):
        self._interactions = interactions
        self._token_graph = token_graph
        self._rng = rng
        self._default_temperature = clamp(default_temperature, 0.0, 1.0)

    @staticmethod
    def is_request(message) -> bool:
        return bool(ESSAY_REQUEST.search(normalize(message)))

    @staticmethod
    def extract_topic(message) -> str:
        normalized = normalize(message)

        about = _ESSAY_TOPIC.search(normalized)
        if about and about.group(3).strip():
            return about.group(3).strip()

        trailing = _TRAILING_TOPIC.search(normalized)
        if trailing and trailing.group(2).strip():
            return trailing.group(2).strip()

        if _RANDOM_ESSAY.search(normalized):
            return RANDOM_ESSAY_TOPIC
        return DEFAULT_ESSAY_TOPIC

    def resolve_temperature(self, message) -> float:
        """Explicit "temperature 0.3" wins; tone words shift the default by 0.2."""
        normalized = normalize(message)

        # Raw text keeps the decimal point that normalize() would split.
        explicit = _EXPLICIT_TEMPERATURE.search(str(message or "").lower())
        if explicit:
            return clamp(float(explicit.group(1)), 0.0, 1.0)
        if _CREATIVE.search(normalized):
            return clamp(self._default_temperature + ESSAY_TEMPERATURE_SHIFT, 0.0, 1.0)
        if _FORMAL.search(normalized):
            return clamp(self._default_temperature - ESSAY_TEMPERATURE_SHIFT, 0.0, 1.0)
        return self._default_temperature

    def topic_evidence(self, topic: str, limit: int = ESSAY_EVIDENCE_LIMIT) -> List[str]:
        """
        Quotable sentences from past replies that mention the topic.

        Each sentence scores 2 per topic token it contains plus the
        confidence of its interaction. Starter lessons are not quoted.
        """
        topic_tokens = tokenize(topic)
        if not topic_tokens:
            return []

        scored = []
        for item in reversed(self._interactions):
            if not item or not item.get("bot"):
                continue
            if item.get("source") == "starter_bootstrap":
                continue

            haystack = normalize(f"{item.get('user')} {item['bot']}")
            if not any(token in haystack for token in topic_tokens):
                continue

            for sentence in split_into_sentences(item["bot"]):
                normalized_sentence = normalize(sentence)
                overlap = sum(1 for token in topic_tokens if token in normalized_sentence)
                if overlap <= 0:
                    continue
                scored.append((sentence, overlap * 2 + float(item.get("confidence") or 0)))

        scored.sort(key=lambda entry: entry[1], reverse=True)

        evidence: List[str] = []
        for sentence, _ in scored:
            if sentence not in evidence:
                evidence.append(sentence)
        return evidence[:limit]

    def _paragraph(self, topic: str, evidence: List[str], temperature: float, purpose: str) -> str:
        selected = pick_by_temperature(evidence, temperature, self._rng)
        thought = self._token_graph.generate(tokenize(f"{topic} {purpose}"))
        if is_low_quality_thought(thought):
            thought = f"This part of the essay focuses on {topic} from a practical and reasoning-based perspective."
        else:
            thought = thought[0].upper() + thought[1:]

        if selected is None:
            return thought

        lead_ins = [
            f"A useful idea from prior learning is that {selected}",
            f"From memory, one strong point is: {selected}",
            f"Evidence from earlier conversations suggests that {selected}",
        ]
        return f"{pick_by_temperature(lead_ins, temperature, self._rng)} {thought}"

    def build_candidate(self, message) -> Optional[Candidate]:
        if not self.is_request(message):
            return None

        topic = self.extract_topic(message)
        temperature = self.resolve_temperature(message)
        evidence = self.topic_evidence(topic)
        title = title_case(topic)
        be_verb = "are" if topic.strip().endswith("s") else "is"

        opener = pick_by_temperature(
            [
                f"{title} {be_verb} worth studying because it influences how we reason and make decisions.",
                f"An essay about {topic} should combine evidence, interpretation, and practical implications.",
                f"To understand {topic}, we should connect learned knowledge with clear explanation.",
            ],
            temperature,
            self._rng,
        )

        introduction = f"{opener} {self._paragraph(topic, evidence, temperature, 'introduction')}"
        analysis = self._paragraph(topic, evidence, temperature, "analysis")
        conclusion = (
            f"{self._paragraph(topic, evidence, temperature, 'conclusion')} In conclusion, {topic} {be_verb} "
            "important for clear thinking, communication, and better decisions."
        )
        bridge = f"\n\n{BRIDGE}" if temperature >= ESSAY_BRIDGE_TEMPERATURE else ""

        return Candidate(
            text=f"{title}\n\n{introduction}\n\n{analysis}{bridge}\n\n{conclusion}",
            source=CandidateSource.ESSAY,
            base_score=0.96,
        )


# =============================================================================
# English Sentence Builder
# =============================================================================

def is_sentence_request(message) -> bool:
    normalized = normalize(message)
    return bool(SENTENCE_REQUEST.search(normalized) or DIRECT_SENTENCE_REQUEST.search(normalized))


def requested_sentence_count(message) -> int:
    """First one- or two-digit number in the message, capped at 8 (default 3)."""
    found = _COUNT.search(normalize(message))
    if not found:
        return DEFAULT_REQUESTED_SENTENCES

    count = int(found.group(1))
    if count <= 0:
        return DEFAULT_REQUESTED_SENTENCES
    return min(MAX_REQUESTED_SENTENCES, count)


def extract_sentence_topic(message) -> str:
    raw = str(message or "").strip()
    if not raw:
        return DEFAULT_SENTENCE_TOPIC

    normalized = normalize(raw)
    found = _SENTENCE_TOPIC.search(normalized)
    if found and found.group(2).strip():
        return found.group(2).strip()

    cleaned = " ".join(_SENTENCE_FILLER.sub(" ", normalized).split())
    return cleaned or DEFAULT_SENTENCE_TOPIC


def generate_english_sentences(topic: str, count: int) -> List[str]:
    safe_topic = topic.strip() or DEFAULT_SENTENCE_TOPIC
    size = max(1, min(count, len(SENTENCE_TEMPLATES)))
    return [template.format(topic=safe_topic) for template in SENTENCE_TEMPLATES[:size]]


def build_english_sentence_candidate(message) -> Optional[Candidate]:
    if not is_sentence_request(message):
        return None

    topic = extract_sentence_topic(message)
    sentences = generate_english_sentences(topic, requested_sentence_count(message))
    return Candidate(
        text=f"Here are {len(sentences)} English sentence example(s) about {topic}: {' '.join(sentences)}",
        source=CandidateSource.ENGLISH_SENTENCES,
        base_score=0.95,
    )
