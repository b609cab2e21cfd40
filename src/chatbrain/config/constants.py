"""
Engine constants.

These values were tuned empirically against real chat logs. They are kept
exactly as tuned so replies stay reproducible; treat them as tunable
parameters rather than derived quantities.
"""

# ==============================================================================
# Memory Bounds
# ==============================================================================

MAX_MEMORY = 5000
"""Maximum interactions kept in the log. Oldest entries are dropped first."""

MEMORY_SEARCH_WINDOW = 1500
"""How many interactions memory recall scans backwards from the newest."""

MAX_RECENT_TURNS = 6
"""Size of the per-session ring of recent turns."""

RESPONSE_BANK_MAX_ENTRIES = 8
"""Replies kept per normalized prompt in the response bank."""

MAX_BANKED_REPLY_CHARS = 1400
"""Replies longer than this are never banked or trained."""

MAX_CONCEPTS = 16
"""Concepts extracted from a single text."""

WEB_SUMMARY_CHARS = 600
"""Characters kept as the summary of a web page."""

WEB_INTERACTION_CHARS = 280
"""Characters of page text logged as the web-ingest interaction reply."""

LESSON_INTERACTION_CHARS = 300
"""Characters of lesson content logged as the bootstrap interaction reply."""

# ==============================================================================
# Similarity Thresholds
# ==============================================================================

CONTEXT_SELF_CONTAINED_OVERLAP = 0.72
"""Anchor/message overlap at or above which a follow-up is left as is."""

CONTEXT_NEW_TOPIC_OVERLAP = 0.18
"""Below this overlap a long message is treated as a brand new topic."""

CONTEXT_NEW_TOPIC_MIN_TOKENS = 4
"""Token count from which the new-topic overlap rule applies."""

FOLLOWUP_SHORT_TOKENS = 5
"""Messages with at most this many tokens count as short references."""

RECALL_MIN_SIMILARITY = 0.33
"""Best memory match must exceed this Jaccard similarity."""

RECALL_CROSS_SESSION_SIMILARITY = 0.66
"""Cross-session matches need at least this similarity."""

RECALL_CROSS_SESSION_CONCEPTS = 2
"""Cross-session matches need at least this many shared concepts."""

RECALL_CROSS_SESSION_OVERLAP = 3
"""Cross-session matches need at least this many shared tokens."""

RECALL_SAME_SESSION_BOOST = 0.08
"""Ranking bonus for memories from the asking session."""

# ==============================================================================
# Neural Prototype Memory
# ==============================================================================

NEURAL_DIM = 48
"""Length of the hashed bag-of-words embedding."""

NEURAL_MERGE_THRESHOLD = 0.78
"""Reply similarity at which a sample merges into an existing prototype."""

NEURAL_MIN_LEARNING_RATE = 0.08
"""Lower bound of the running-average rate max(0.08, 1 / (count + 1))."""

NEURAL_MAX_PROTOTYPES = 900
"""Prototype cap. Lowest-count prototypes are evicted first."""

NEURAL_SHORT_REPLY_CHARS = 50
"""Stored replies shorter than this are replaced by longer merged replies."""

NEURAL_MATCH_THRESHOLD = 0.5
"""Minimum cosine similarity for a neural recall candidate."""

NEURAL_CONFIDENCE_FLOOR = 0.56
NEURAL_CONFIDENCE_SLOPE = 0.36
NEURAL_CONFIDENCE_CEILING = 0.97

NEURAL_IMPORT_MAX_INTERACTIONS = 120000
"""Most recent interactions replayed by a bulk neural import."""

NEURAL_IMPORT_YIELD_EVERY = 400
"""Considered items between cooperative yields during a bulk import."""

NEURAL_IMPORT_MAX_REPLY_CHARS = 1600
"""Bulk import skips pairs whose reply is longer than this."""

NEURAL_IMPORT_KEY_CHARS = 500
"""Characters of each side used to deduplicate bulk-import pairs."""

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619

# ==============================================================================
# Markov Generation
# ==============================================================================

START_TOKEN = "<START>"
END_TOKEN = "<END>"

MARKOV_MAX_STEPS = 22
"""Upper bound on steps in one weighted random walk."""

THOUGHT_MIN_WORDS = 6
"""Generated thoughts with fewer words are discarded."""

THOUGHT_MAX_WEIRD_RATIO = 0.25
"""Share of long or numeric words above which a thought is discarded."""

THOUGHT_WEIRD_WORD_CHARS = 22

# ==============================================================================
# Scoring
# ==============================================================================

RESPONSE_BANK_BONUS = 0.15
MESSAGE_OVERLAP_WEIGHT = 0.35
CONCEPT_HIT_WEIGHT = 0.06
CONCEPT_HIT_CAP = 0.25
NEURAL_SOURCE_BONUS = 0.08

DEFINITION_ASSOCIATION_PENALTY = 0.28
DEFINITION_GENERATED_PENALTY = 0.18
DEFINITION_WEAK_MEMORY_PENALTY = 0.2
WEAK_MEMORY_OVERLAP = 0.4

SCORE_FLOOR = 0.01
SCORE_CEILING = 0.99

REPEAT_SIMILARITY = 0.86
"""Candidate/previous-reply similarity that counts as a repeat."""

REPEAT_CONTINUITY = 0.25
"""User continuity below this marks the message as unrelated."""

REPEAT_PENALTY = 0.42

REPEAT_GUARD_SIMILARITY = 0.88
"""Final reply/previous-reply similarity that forces the new-topic reply."""

REPEAT_GUARD_CONTINUITY = 0.2

# ==============================================================================
# Trainer
# ==============================================================================

TRAINER_BATCH_SIZE = 30
"""Default interactions per trainer tick."""

TRAINER_LIVE_BATCH_SIZE = 15
"""Interactions per trainer tick run after a live turn."""

# ==============================================================================
# Essay Writer
# ==============================================================================

ESSAY_TEMPERATURE = 0.65
"""Default essay temperature: 0 anchors on the best evidence, 1 picks freely."""

ESSAY_TEMPERATURE_SHIFT = 0.2
ESSAY_DETERMINISTIC_TEMPERATURE = 0.12
ESSAY_ANCHOR_PROBABILITY = 0.22
ESSAY_BRIDGE_TEMPERATURE = 0.72
ESSAY_EVIDENCE_LIMIT = 10

SENTENCE_MIN_CHARS = 40
SENTENCE_MAX_CHARS = 260

MAX_REQUESTED_SENTENCES = 8
DEFAULT_REQUESTED_SENTENCES = 3

# ==============================================================================
# Vocabulary
# ==============================================================================

STOPWORDS = frozenset([
    "the", "and", "that", "this", "with", "from", "your", "you", "are",
    "was", "were", "have", "has", "had", "for", "but", "not", "all", "can",
    "how", "what", "when", "where", "why", "who", "about", "into", "then",
    "than", "just", "like", "they", "them", "their", "our", "out", "will",
    "would", "could", "should", "been", "being",
])
"""Words never treated as concepts."""

POLLUTED_WEB_SIGNALS = (
    "jump to content",
    "main menu",
    "move to sidebar",
    "create account",
    "log in personal tools",
    "special pages search",
    "toggle history subsection",
)
"""Navigation chrome phrases. Two or more hits mark text as polluted."""

# ==============================================================================
# Interaction Sources
# ==============================================================================

NEURAL_SKIP_SOURCES = frozenset([
    "web_ingest",
    "starter_bootstrap",
    "concept_association",
    "generated",
    "clarification",
    "knowledge_gap",
])
"""Sources never trained into the prototype memory."""

RECALL_SKIP_SOURCES = frozenset([
    "memory_match",
    "concept_association",
    "generated",
    "starter_bootstrap",
    "api_fact_ingest",
    "curriculum_fact",
    "fact_learning",
])
"""Sources never offered back by memory recall."""

ANCHOR_SKIP_SOURCES = frozenset(["clarification_needed", "knowledge_gap"])
"""Turns with these sources never serve as context anchors."""

# ==============================================================================
# Persistence Tags
# ==============================================================================

SAVE_TAGS = frozenset(["core", "interactions", "language", "neural", "knowledge"])

DEFAULT_STATE_PATH = "./data/chatbrain/state.json"
