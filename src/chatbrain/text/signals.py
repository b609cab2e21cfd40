"""
Ordered rule tables for message classification.

Intent inference, low-signal detection, smalltalk and clarification replies
are cascades where the first matching rule wins. Keeping them as tables
makes the precedence explicit and lets each rule be tested on its own.
"""

import re
from dataclasses import dataclass
from typing import Callable, Container, List, Optional, Tuple

from chatbrain.text.normalizer import normalize, tokenize

# ==============================================================================
# Cue Patterns (matched against normalized text unless noted)
# ==============================================================================

FOLLOWUP_CUE = re.compile(
    r"(it|that|this|they|them|those|these|he|she|why|how|explain more|what about|and then|continue)"
)
EXPLICIT_FOLLOWUP_CUE = re.compile(
    r"(like i said|as i said|from above|from before|based on that|using that|what i said|the previous one|above)"
)
SHORT_REFERENCE_CUE = re.compile(r"(it|that|this|they|them|those|these|same|again|more|continue|then)")
REPEAT_FOLLOWUP_CUE = re.compile(r"(it|that|this|they|them|those|these|same|again|continue|more|why|how)")
NEW_TOPIC_PROMPT = re.compile(r"^(define|what is|whats|what's|who is|tell me about|explain|describe)\b")
WHAT_ABOUT = re.compile(r"^what about (.+)$")
LEADING_ARTICLE = re.compile(r"^(an|a|the)\s+")

DEFINITION_REQUEST = re.compile(r"(what is|whats|what's|tell me about|explain|define)")
WEB_DEFINITION_REQUEST = re.compile(r"(what is|whats|what's|define|who is|tell me about|explain|describe)")
UNKNOWN_TOPIC_REQUEST = re.compile(r"(what is|whats|what's|tell me about|about|explain)")
PLAIN_SMALLTALK = re.compile(
    r"^(hi|hello|hey|yo|sup|whats up|what's up|how are you|hru|good morning|good afternoon|good evening)$"
)

ESSAY_REQUEST = re.compile(r"(write|create|generate|make).*(essay|essey|essy|esay)|\b(essay|essey|essy|esay)\b")
SENTENCE_REQUEST = re.compile(r"(make|create|write|generate|give).*(sentence|sentences|example|examples)")
DIRECT_SENTENCE_REQUEST = re.compile(r"(sentence|sentences)\s+(about|for|on)")
IDENTITY_QUESTION = re.compile(r"(what|which).*(model|ai model)|your ai model|what are you|who are you")
MATH_FOLLOWUP_CUE = re.compile(r"(why|how|explain|show steps|what happened|how come|equal to)")
ASSOCIATION_REQUEST = re.compile(
    r"(connect|related to|related|associate|associat|similar to|what about|connections|related topics|also)"
)
REMEMBER_FACT = re.compile(r"^remember that (.+)$")

# Matched against raw text
TEACHING_VOCABULARY = re.compile(
    r"(grammar|english|math|algebra|tense|sentence|subject|verb|noun|equation|conditional|punctuation)",
    re.IGNORECASE,
)
SENTENCE_END = re.compile(r"[.!?](\s|$)")
CLARIFICATION_REQUEST_REPLY = re.compile(
    r"(could you please rephrase|could you rephrase|can you clarify|please clarify|i don'?t understand|do not understand)",
    re.IGNORECASE,
)
MEMORY_RECALL_SUFFIX = re.compile(r"\(I used a similar memory from past chats\.\)", re.IGNORECASE)
MEMORY_RECALL_SUFFIX_SPACED = re.compile(r"\s*\(I used a similar memory from past chats\.\)\s*", re.IGNORECASE)
NAVIGATION_CHROME = re.compile(r"jump to content\s+main menu", re.IGNORECASE)
SPAM_PHRASES = re.compile(
    r"(another related source says|node\.js.? download archive|very low trust score|scam warnings online)",
    re.IGNORECASE,
)

EXCLAMATION_PHRASE = re.compile(r"^what the (sigma|heck|hell|frick|fuck|fudge)\b")
PROFANITY = re.compile(r"(fuck|frick|wtf|faj)")
CONSONANT_RUN = re.compile(r"[^aeiou]{4,}")
VOWEL = re.compile(r"[aeiou]")
KEYBOARD_MASH = re.compile(r"(asdf|qwer|zxcv|hjkl|poiuy|mnbv)", re.IGNORECASE)
WORD_CHARS = re.compile(r"[a-z0-9\s]", re.IGNORECASE)
MONTH_NAME = re.compile(
    r"\b(january|february|march|april|may|june|july|august|september|october|november|december)\b",
    re.IGNORECASE,
)
DAY_NUMBER = re.compile(r"\b\d{1,2}\b")
YEAR_NUMBER = re.compile(r"\b\d{4}\b")
QUESTION_CUE = re.compile(r"(what|why|how|when|who|explain|define|tell me)", re.IGNORECASE)

SINGLE_TOKEN_AMBIGUOUS = frozenset(["what", "huh", "wut", "uh", "um", "hmm", "hmmm", "why", "how"])
GREETING_TOKENS = frozenset(["hi", "hello", "hey", "yo", "sup", "hola"])


# ==============================================================================
# Low-Signal Detection
# ==============================================================================

@dataclass(frozen=True)
class SignalSample:
    """A message prepared once for every low-signal rule."""

    raw: str
    normalized: str
    tokens: List[str]
    is_known_concept: Callable[[str], bool]


def _single_token_with_consonant_run(sample: SignalSample) -> bool:
    return len(sample.tokens) == 1 and bool(CONSONANT_RUN.search(sample.tokens[0]))


def _single_token_vowel_starved(sample: SignalSample) -> bool:
    if len(sample.tokens) != 1:
        return False
    token = sample.tokens[0]
    return len(token) >= 6 and len(VOWEL.findall(token)) <= 1


def _single_unknown_long_token(sample: SignalSample) -> bool:
    if len(sample.tokens) != 1:
        return False
    token = sample.tokens[0]
    return len(token) >= 8 and not sample.is_known_concept(token)


def _no_meaningful_tokens(sample: SignalSample) -> bool:
    meaningful = [token for token in sample.tokens if VOWEL.search(token) and len(token) >= 3]
    return len(sample.tokens) <= 2 and not meaningful


def _mostly_symbols(sample: SignalSample) -> bool:
    return len(WORD_CHARS.sub("", sample.raw)) > len(sample.raw) * 0.45


def _date_only(sample: SignalSample) -> bool:
    looks_like_date = (
        bool(MONTH_NAME.search(sample.raw))
        and bool(DAY_NUMBER.search(sample.raw))
        and bool(YEAR_NUMBER.search(sample.raw))
    )
    return looks_like_date and not QUESTION_CUE.search(sample.raw)


LOW_SIGNAL_RULES: Tuple[Tuple[str, Callable[[SignalSample], bool]], ...] = (
    ("ambiguous_single_token", lambda s: len(s.tokens) == 1 and s.tokens[0] in SINGLE_TOKEN_AMBIGUOUS),
    ("exclamation", lambda s: bool(EXCLAMATION_PHRASE.search(s.normalized))),
    ("short_profanity", lambda s: len(s.tokens) <= 3 and bool(PROFANITY.search(s.normalized))),
    ("consonant_run", _single_token_with_consonant_run),
    ("vowel_starved", _single_token_vowel_starved),
    ("unknown_long_token", _single_unknown_long_token),
    ("keyboard_mash", lambda s: bool(KEYBOARD_MASH.search(re.sub(r"\s+", "", s.raw)))),
    ("no_meaningful_tokens", _no_meaningful_tokens),
    ("mostly_symbols", _mostly_symbols),
    ("date_only", _date_only),
)
"""Evaluated in order; the first rule that fires names the classification."""


def _never_known(_token: str) -> bool:
    return False


def classify_low_signal(
    message,
    known_concepts: Optional[Container[str]] = None,
) -> Optional[str]:
    """
    Name the low-signal rule a message trips, or None for a usable message.

    Args:
        message: Raw user text
        known_concepts: Concepts already learned; long single tokens that
            are known concepts are not treated as noise

    Returns:
        Rule name ("empty", "keyboard_mash", ...) or None
    """
    raw = str(message or "").strip()
    if not raw:
        return "empty"

    tokens = tokenize(raw)
    if not tokens:
        return "empty"

    is_known = (lambda token: token in known_concepts) if known_concepts is not None else _never_known
    sample = SignalSample(raw=raw, normalized=normalize(raw), tokens=tokens, is_known_concept=is_known)

    for name, rule in LOW_SIGNAL_RULES:
        if rule(sample):
            return name
    return None


def is_low_signal_input(message, known_concepts: Optional[Container[str]] = None) -> bool:
    """True when the message carries too little signal to answer."""
    return classify_low_signal(message, known_concepts) is not None


# ==============================================================================
# Intent
# ==============================================================================

INTENT_RULES: Tuple[Tuple[str, re.Pattern, bool], ...] = (
    ("question", re.compile(r"\?"), True),
    ("emotion", re.compile(r"(sad|angry|upset|frustrated|anxious|depressed)"), False),
    ("builder", re.compile(r"(build|create|make|code|project|develop|ship)"), False),
    ("english", re.compile(r"(sentence|grammar|english|write|paragraph|essay)"), False),
)
"""(intent, pattern, match_raw). Anything unmatched is plain chat."""


def infer_intent(message) -> str:
    raw = str(message or "")
    normalized = normalize(raw)
    for intent, pattern, match_raw in INTENT_RULES:
        if pattern.search(raw if match_raw else normalized):
            return intent
    return "chat"


# ==============================================================================
# Canned Replies
# ==============================================================================

@dataclass(frozen=True)
class CannedReply:
    pattern: re.Pattern
    text: str
    source: str
    base_score: float


GREETING_REPLY = (
    'Hey! I am doing well. Ask me a topic like "what is photosynthesis" or '
    '"define algebra" and I will help.'
)

SMALLTALK_RULES: Tuple[CannedReply, ...] = (
    CannedReply(re.compile(r"^(hi|hello|hey|yo|sup|whats up|what's up)$"), GREETING_REPLY, "smalltalk", 0.99),
    CannedReply(
        re.compile(r"^(how are you|hru)$"),
        "I am good and ready to help. What do you want to learn right now?",
        "smalltalk",
        0.99,
    ),
    CannedReply(
        re.compile(r"^(what are you doing|what are you up to|what are u doing|are you okay|are you ok)$"),
        "I am here helping you and learning from this chat. If you want, ask me a topic and I will explain it clearly.",
        "smalltalk",
        0.99,
    ),
    CannedReply(
        re.compile(r"^what no i ment you as in the ai$"),
        "I am your local AI chat assistant in this project. I can explain topics, answer questions, "
        "and learn from your lessons and facts.",
        "smalltalk",
        0.99,
    ),
    CannedReply(
        re.compile(r"^(whatever|what ever)$"),
        "No worries. If you want to continue, give me any topic and I will keep it short and clear.",
        "smalltalk",
        0.98,
    ),
    CannedReply(
        EXCLAMATION_PHRASE,
        'I get what you mean. If you want slang help, ask like "what does sigma mean?" or give me a topic to explain.',
        "smalltalk_confusion",
        0.99,
    ),
)


def is_repeated_greeting(tokens: List[str]) -> bool:
    """"hey hey", "hi hello yo" and the like (one to four greeting tokens)."""
    return 1 <= len(tokens) <= 4 and all(token in GREETING_TOKENS for token in tokens)


CLARIFICATION_RULES: Tuple[CannedReply, ...] = (
    CannedReply(
        re.compile(r"^(hi|hello|hey|yo|sup|hola)$"),
        'Hey. I am here and ready. Ask a specific question like "what is a hat" or "explain algebra".',
        "smalltalk_greeting",
        0.98,
    ),
    CannedReply(
        re.compile(r"^(what|huh|wut|eh|um|uh)$"),
        'I might have missed your intent. Tell me the topic in one line, for example: "define cat", '
        '"what is gravity", or "explain tenses".',
        "smalltalk_confusion",
        0.98,
    ),
    CannedReply(
        PROFANITY,
        "I get the frustration. Give me the exact question or topic and I will answer directly "
        "without repeating old context.",
        "smalltalk_frustration",
        0.98,
    ),
)

CLARIFICATION_FALLBACK = CannedReply(
    re.compile(r""),
    "I could not understand that input clearly yet. Please ask a full question or share a topic "
    '(for example: "Explain English tenses" or "Solve 2x+4=10").',
    "clarification_needed",
    0.97,
)

NEW_TOPIC_REPLY = (
    'That seems like a new topic. Ask it directly (for example: "define apple"), and I will answer '
    "that instead of repeating the previous response."
)


def first_matching(rules: Tuple[CannedReply, ...], normalized: str) -> Optional[CannedReply]:
    for rule in rules:
        if rule.pattern.search(normalized):
            return rule
    return None
