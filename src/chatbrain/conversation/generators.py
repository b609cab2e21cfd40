"""
Candidate generators.

Each generator looks at the message (and the engine's memories) and either
proposes one Candidate or returns None. `CandidateGenerators.build` runs
them in a fixed order; a clarification candidate for low-signal input is
returned alone and no other generator runs.
"""

import logging
from typing import Callable, List, Mapping, Optional, Sequence

from chatbrain.arithmetic.engine import (
    MathError,
    MathSolution,
    extract_arithmetic_expression,
    is_likely_math_message,
    solve_arithmetic,
    solve_linear_equation,
)
from chatbrain.config.constants import MEMORY_SEARCH_WINDOW
from chatbrain.conversation.candidates import (
    Candidate,
    CandidateSource,
    MathCandidate,
    MemoryCandidate,
    MemoryRef,
    NeuralCandidate,
    NeuralRef,
)
from chatbrain.conversation.essay import EssayWriter, build_english_sentence_candidate
from chatbrain.graphs.concepts import AssociationGraph
from chatbrain.graphs.token_graph import TokenGraph, is_low_quality_thought
from chatbrain.memory.interactions import InteractionLog
from chatbrain.memory.knowledge import LearnedFacts, WebKnowledge, clean_web_summary
from chatbrain.memory.neural import NeuralMemory
from chatbrain.memory.recall import find_best_memory
from chatbrain.memory.response_bank import ResponseBank
from chatbrain.text.normalizer import collapse_whitespace, extract_concepts, format_number, normalize, tokenize
from chatbrain.text.signals import (
    ASSOCIATION_REQUEST,
    CLARIFICATION_FALLBACK,
    CLARIFICATION_RULES,
    GREETING_REPLY,
    IDENTITY_QUESTION,
    MATH_FOLLOWUP_CUE,
    MEMORY_RECALL_SUFFIX_SPACED,
    PLAIN_SMALLTALK,
    SENTENCE_END,
    SMALLTALK_RULES,
    TEACHING_VOCABULARY,
    UNKNOWN_TOPIC_REQUEST,
    WEB_DEFINITION_REQUEST,
    first_matching,
    infer_intent,
    is_repeated_greeting,
)

logger = logging.getLogger(__name__)

MEMORY_RECALL_NOTE = "(I used a similar memory from past chats.)"

IDENTITY_REPLY = (
    "I am your local learning student bot. I generate the main reply from my own memory and training. "
    "A separate mentor AI may review and improve quality, but I am still the one speaking to you."
)

GENERATED_OPENERS = {
    "question": "Great question. I am still training, and my current reasoning is:",
    "builder": "I can help you build this. My learned pattern suggests:",
    "emotion": "I hear you. I am learning to respond better, and my current thought is:",
}
DEFAULT_OPENER = "I am continuously training from conversations, and my current reasoning is:"
DEFAULT_INSIGHT = "I understood the topic and stored it in memory for better future answers"

LESSON_MIN_CHARS = 280
LESSON_MIN_SENTENCES = 5
WEB_CONTEXT_SNIPPET_CHARS = 220


# =============================================================================
# Stateless generators
# =============================================================================

def build_smalltalk_candidate(message) -> Optional[Candidate]:
    """Canned replies for greetings and conversational fillers."""
    normalized = normalize(message)
    if is_repeated_greeting(tokenize(normalized)):
        return Candidate(text=GREETING_REPLY, source=CandidateSource.SMALLTALK, base_score=0.99)

    rule = first_matching(SMALLTALK_RULES, normalized)
    if rule is None:
        return None
    return Candidate(text=rule.text, source=CandidateSource(rule.source), base_score=rule.base_score)


def build_honest_unknown_candidate(message, concepts: Sequence[str]) -> Optional[Candidate]:
    """Admit the gap when a definition is asked for and the topic is concrete."""
    normalized = normalize(message)
    if PLAIN_SMALLTALK.search(normalized):
        return None
    if not UNKNOWN_TOPIC_REQUEST.search(normalized):
        return None
    if len(tokenize(message)) <= 2:
        return None

    meaningful = [concept for concept in concepts if len(concept) >= 3][:3]
    if not meaningful:
        return None

    topic = " ".join(meaningful)
    return Candidate(
        text=(
            f"I do not have reliable knowledge about {topic} yet. Share a URL or a short lesson "
            "and I will learn it, then explain it back clearly."
        ),
        source=CandidateSource.KNOWLEDGE_GAP,
        base_score=0.85,
    )


def build_clarification_candidate(message, is_low_signal: Callable[[str], bool]) -> Optional[Candidate]:
    if not is_low_signal(message):
        return None

    rule = first_matching(CLARIFICATION_RULES, normalize(message)) or CLARIFICATION_FALLBACK
    return Candidate(text=rule.text, source=CandidateSource(rule.source), base_score=rule.base_score)


def is_lesson_message(message) -> bool:
    """Long, punctuation-dense text that uses teaching vocabulary."""
    source = str(message or "").strip()
    if not source:
        return False
    sentence_count = len(SENTENCE_END.findall(source))
    return len(source) >= LESSON_MIN_CHARS and sentence_count >= LESSON_MIN_SENTENCES and bool(
        TEACHING_VOCABULARY.search(source)
    )


def build_lesson_candidate(message, concepts: Sequence[str]) -> Optional[Candidate]:
    if not is_lesson_message(message):
        return None

    sentence_count = len(SENTENCE_END.findall(str(message)))
    return Candidate(
        text=(
            f"Thanks, this is a strong teaching lesson. I learned {sentence_count} key statements and "
            f"extracted concepts like: {', '.join(concepts[:8])}. Ask me to quiz you, summarize this, "
            "or apply these rules to examples."
        ),
        source=CandidateSource.LESSON,
        base_score=0.9,
    )


def build_identity_candidate(message) -> Optional[Candidate]:
    if not IDENTITY_QUESTION.search(normalize(message)):
        return None
    return Candidate(text=IDENTITY_REPLY, source=CandidateSource.IDENTITY, base_score=0.88)


def build_math_candidate(message) -> Optional[MathCandidate]:
    """
    Solve the message as a linear equation, else as arithmetic.

    Evaluation failures become a low-confidence apology naming the error
    code; they are never propagated.
    """
    if not is_likely_math_message(message):
        return None

    linear = solve_linear_equation(message)
    if linear is not None:
        return MathCandidate(
            text=f"Math result: for {linear.expression}, x = {format_number(linear.result)}.",
            source=CandidateSource.MATH_SOLVER,
            base_score=0.84,
            solution=linear,
        )

    expression = extract_arithmetic_expression(message)
    if not expression:
        return None

    try:
        solution = solve_arithmetic(expression)
    except MathError as error:
        logger.debug("Could not evaluate %r: %s", expression, error.code)
        return MathCandidate(
            text=(
                f"I detected a math expression ({expression}) but could not solve it safely ({error.code}). "
                "Try a simpler arithmetic form like (2+5)*3 or an equation like 2x+4=10."
            ),
            source=CandidateSource.MATH_SOLVER,
            base_score=0.52,
        )

    return MathCandidate(
        text=f"Math result: {expression} = {format_number(solution.result)}.",
        source=CandidateSource.MATH_SOLVER,
        base_score=0.82,
        solution=solution,
    )


def build_web_context_candidate(web_contexts: Sequence[Mapping]) -> Optional[Candidate]:
    """Summarise up to two pages supplied alongside the message."""
    if not web_contexts:
        return None

    summaries = []
    for item in list(web_contexts)[:2]:
        title = str(item.get("title") or "Web source").strip()
        snippet = collapse_whitespace(item.get("text"))[:WEB_CONTEXT_SNIPPET_CHARS]
        summaries.append(f"From {title}: {snippet}")

    joined = " ".join(summaries)
    if not joined.strip():
        return None

    return Candidate(
        text=f"{joined}. I can use more links like this to keep improving my understanding.",
        source=CandidateSource.WEB_CONTEXT,
        base_score=0.66,
    )


def strip_memory_note(reply) -> str:
    return collapse_whitespace(MEMORY_RECALL_SUFFIX_SPACED.sub(" ", str(reply or "")))


# =============================================================================
# Generators over engine memory
# =============================================================================

class CandidateGenerators:
    """
    All generators that read engine memory, wired to one state tree.

    Attributes:
        _log: Interaction log (memory recall, math follow-ups)
        _bank: Exact-prompt response bank
        _facts: Learned facts (generated replies quote relevant ones)
        _web: Web knowledge (definition recall)
        _neural: Prototype memory
        _token_graph: Markov source for generated thoughts
        _associations: Concept co-occurrence graph
        _essay: Essay writer
        _is_low_signal: Low-signal predicate (aware of known concepts)
        _search_window: Interactions scanned by memory recall
    """

    def __init__(
        self,
        log: InteractionLog,
        bank: ResponseBank,
        facts: LearnedFacts,
        web: WebKnowledge,
        neural: NeuralMemory,
        token_graph: TokenGraph,
        associations: AssociationGraph,
        essay: EssayWriter,
        is_low_signal: Callable[[str], bool],
        search_window: int = MEMORY_SEARCH_WINDOW,
    ):
        self._log = log
        self._bank = bank
        self._facts = facts
        self._web = web
        self._neural = neural
        self._token_graph = token_graph
        self._associations = associations
        self._essay = essay
        self._is_low_signal = is_low_signal
        self._search_window = search_window

    def web_recall(self, message) -> Optional[Candidate]:
        """Answer a definition request from a stored page summary."""
        if not WEB_DEFINITION_REQUEST.search(normalize(message)):
            return None

        match = self._web.best_match(extract_concepts(message))
        if match is None:
            return None

        summary = clean_web_summary(match.summary)
        if not summary:
            return None

        return Candidate(
            text=f"{summary} (Learned from web source: {match.title}.)",
            source=CandidateSource.WEB_KNOWLEDGE_RECALL,
            base_score=0.96 if match.exact_title_hits > 0 else 0.9,
        )

    def math_followup(self, message, session_id: Optional[str]) -> Optional[MathCandidate]:
        """Re-explain the session's latest math answer on "why"/"how"."""
        if not MATH_FOLLOWUP_CUE.search(normalize(message)):
            return None

        recent = self._log.latest_math(session_id)
        if recent is None:
            return None

        solution = MathSolution.from_dict(recent["math_meta"])
        if solution.steps:
            step_text = " ".join(f"{index}) {step}" for index, step in enumerate(solution.steps, start=1))
        else:
            step_text = "I applied standard math steps to isolate and evaluate the expression."

        return MathCandidate(
            text=(
                f"Great follow-up. For {solution.expression}, here is why: {step_text} "
                f"So the answer is {format_number(solution.result)}."
            ),
            source=CandidateSource.MATH_EXPLAIN,
            base_score=0.93,
            solution=solution,
        )

    def response_bank(self, message) -> Optional[Candidate]:
        reply = self._bank.lookup(message)
        if not reply:
            return None
        return Candidate(text=reply, source=CandidateSource.RESPONSE_BANK, base_score=0.62)

    def memory_match(self, message, session_id: Optional[str]) -> Optional[MemoryCandidate]:
        recalled = find_best_memory(self._log.items, message, session_id, window=self._search_window)
        if recalled is None:
            return None

        return MemoryCandidate(
            text=f"{strip_memory_note(recalled.item['bot'])} {MEMORY_RECALL_NOTE}",
            source=CandidateSource.MEMORY_MATCH,
            base_score=0.5 + recalled.score * 0.3,
            memory_ref=MemoryRef(
                interaction_index=recalled.index,
                at=recalled.item.get("at"),
                user=recalled.item["user"],
            ),
        )

    def neural_memory(self, message) -> Optional[NeuralCandidate]:
        match = self._neural.recall(message)
        if match is None:
            return None

        return NeuralCandidate(
            text=match.reply,
            source=CandidateSource.NEURAL_MEMORY,
            base_score=match.confidence,
            neural_ref=NeuralRef(
                prototype_index=match.prototype_index,
                cosine=round(match.cosine, 3),
                count=match.count,
            ),
        )

    def concept_association(self, message, concepts: Sequence[str]) -> Optional[Candidate]:
        """Suggest related topics, only when the user asks for connections."""
        if len(concepts) < 2:
            return None

        related = self._associations.associated(concepts, limit=3)
        if not related or not ASSOCIATION_REQUEST.search(normalize(message)):
            return None

        return Candidate(
            text=f"I think this relates to: {', '.join(related)}. Tell me if you want me to expand on any of those.",
            source=CandidateSource.CONCEPT_ASSOCIATION,
            base_score=0.55,
        )

    def generated(self, message) -> Candidate:
        """Catch-all reply: intent opener, Markov thought and remembered facts."""
        thought = self._token_graph.generate(tokenize(message))
        quality_thought = "" if is_low_quality_thought(thought) else thought
        facts = self._facts.relevant(message, limit=2)

        opener = GENERATED_OPENERS.get(infer_intent(message), DEFAULT_OPENER)
        insight = quality_thought or DEFAULT_INSIGHT
        fact_line = f" I currently remember: {'; '.join(facts)}." if facts else ""

        return Candidate(
            text=f"{opener} {insight}.{fact_line} Share another example so I can improve.",
            source=CandidateSource.GENERATED,
            base_score=0.48 if quality_thought else 0.43,
        )

    def build(self, message, concepts: Sequence[str], session_id: Optional[str]) -> List[Candidate]:
        """
        Run every generator in order and collect the proposals.

        The list is never empty: the generated reply is always appended,
        unless low-signal input produced a clarification, which is then
        the only candidate.
        """
        clarification = build_clarification_candidate(message, self._is_low_signal)
        if clarification is not None:
            return [clarification]

        proposals = [
            build_smalltalk_candidate(message),
            self.web_recall(message),
            build_honest_unknown_candidate(message, concepts),
            self._essay.build_candidate(message),
            build_english_sentence_candidate(message),
            self.math_followup(message, session_id),
            build_lesson_candidate(message, concepts),
            build_identity_candidate(message),
            build_math_candidate(message),
            self.response_bank(message),
            self.memory_match(message, session_id),
            self.neural_memory(message),
            self.concept_association(message, concepts),
            self.generated(message),
        ]
        return [candidate for candidate in proposals if candidate is not None]
