"""
ChatBrain: the turn orchestrator.

One chat turn runs start to finish before it returns:

    normalize -> resolve context -> generate candidates -> score ->
    mutate state -> save hint -> trainer tick

All learning structures live in the store's state tree, which the brain
owns for the duration of a call. Callers must serialize mutating calls;
nothing here takes a lock.
"""

import logging
import random
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from chatbrain.config.constants import (
    LESSON_INTERACTION_CHARS,
    REPEAT_GUARD_CONTINUITY,
    REPEAT_GUARD_SIMILARITY,
    WEB_INTERACTION_CHARS,
)
from chatbrain.config.settings import Settings, settings as default_settings
from chatbrain.conversation.candidates import (
    Candidate,
    CandidateSource,
    MemoryRef,
    math_meta_of,
    memory_ref_of,
    neural_ref_of,
)
from chatbrain.conversation.context import ContextResolver
from chatbrain.conversation.essay import EssayWriter
from chatbrain.conversation.generators import CandidateGenerators, build_web_context_candidate
from chatbrain.conversation.scorer import choose_best
from chatbrain.graphs.concepts import AssociationGraph, ConceptGraph
from chatbrain.graphs.token_graph import TokenGraph
from chatbrain.memory.interactions import InteractionLog
from chatbrain.memory.knowledge import (
    UNTITLED_PAGE,
    FactResult,
    LearnedFacts,
    LessonResult,
    StarterLessons,
    WebKnowledge,
)
from chatbrain.memory.neural import NeuralMemory
from chatbrain.memory.response_bank import ResponseBank
from chatbrain.protocols.store import StateStore, request_save
from chatbrain.state import ensure_state
from chatbrain.text.normalizer import extract_concepts, normalize, score_similarity, tokenize
from chatbrain.text.signals import (
    CLARIFICATION_REQUEST_REPLY,
    NEW_TOPIC_REPLY,
    REMEMBER_FACT,
    REPEAT_FOLLOWUP_CUE,
    is_low_signal_input,
)
from chatbrain.training.neural_import import ImportResult, NeuralImporter, ProgressCallback
from chatbrain.training.trainer import Trainer, TrainerTick

logger = logging.getLogger(__name__)

TURN_SAVE_TAGS = ("core", "interactions", "language", "knowledge")

WebContext = Mapping[str, Any]


@dataclass
class TurnDebug:
    """Diagnostics returned with every reply."""

    source: str
    confidence: float
    learned_facts: int
    memories: int
    concepts: int
    web_sources: int
    neural_prototypes: int
    memory_ref: Optional[Dict[str, Any]]
    neural_ref: Optional[Dict[str, Any]]
    trainer_processed: int
    trainer_remaining: int


@dataclass
class ChatResult:
    reply: str
    debug: TurnDebug

    def to_dict(self) -> Dict[str, Any]:
        return {"reply": self.reply, "debug": asdict(self.debug)}


@dataclass
class CorrectionResult:
    removed: bool
    reason: Optional[str] = None


class ChatBrain:
    """
    Self-learning conversational engine over a StateStore.

    Attributes:
        _store: Owner of the state tree
        _settings: Runtime settings
        _rng: Random source shared by Markov walks and essay picks

    Example:
        >>> brain = ChatBrain(InMemoryStore(), rng=random.Random(7))
        >>> brain.chat("s1", "remember that the sky is blue").reply
        'Got it. I will remember this: the sky is blue'
        >>> brain.chat("s1", "Solve 2x+4=10").debug.source
        'math_solver'
    """

    def __init__(
        self,
        store: StateStore,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self._settings = settings or default_settings
        self._rng = rng or random.Random()

        state = ensure_state(store.state, self._settings.neural_dim)
        self._concepts = ConceptGraph(state["concept_graph"])
        self._associations = AssociationGraph(state["association_graph"])
        self._token_graph = TokenGraph(state["token_graph"], self._rng)
        self._log = InteractionLog(state, max_memory=self._settings.max_memory)
        self._bank = ResponseBank(state["response_bank"], self.is_low_signal)
        self._facts = LearnedFacts(state["learned_facts"])
        self._web = WebKnowledge(state["web_knowledge"])
        self._lessons = StarterLessons(state["starter_lessons"])
        self._neural = NeuralMemory(state, self._settings.neural_dim, self.is_low_signal)
        self._context = ContextResolver(state["sessions"], state["stats"], self.is_low_signal)

        essay = EssayWriter(self._log.items, self._token_graph, self._rng, self._settings.essay_temperature)
        self._generators = CandidateGenerators(
            log=self._log,
            bank=self._bank,
            facts=self._facts,
            web=self._web,
            neural=self._neural,
            token_graph=self._token_graph,
            associations=self._associations,
            essay=essay,
            is_low_signal=self.is_low_signal,
            search_window=self._settings.memory_search_window,
        )
        self._trainer = Trainer(
            store, self._log, self._token_graph, self._concepts, self._associations, self._bank, self._neural
        )
        self._importer = NeuralImporter(
            store,
            self._neural,
            self.is_low_signal,
            max_interactions=self._settings.neural_import_max_interactions,
            yield_every=self._settings.neural_import_yield_every,
        )

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def state(self) -> Dict[str, Any]:
        return self._store.state

    @property
    def interactions(self) -> InteractionLog:
        return self._log

    @property
    def response_bank(self) -> ResponseBank:
        return self._bank

    @property
    def neural(self) -> NeuralMemory:
        return self._neural

    @property
    def context(self) -> ContextResolver:
        return self._context

    @property
    def token_graph(self) -> TokenGraph:
        return self._token_graph

    @property
    def trainer(self) -> Trainer:
        return self._trainer

    def is_low_signal(self, message) -> bool:
        """Low-signal check that treats already-learned concepts as meaningful."""
        return is_low_signal_input(message, self._concepts)

    # =========================================================================
    # Turns
    # =========================================================================

    def chat(
        self,
        session_id: str,
        message: str,
        web_contexts: Optional[Sequence[WebContext]] = None,
    ) -> ChatResult:
        """
        Answer one message and learn from the exchange.

        Args:
            session_id: Conversation id (created on first use)
            message: Raw user text
            web_contexts: Pages fetched for this message ({"url", "title", "text"})

        Returns:
            ChatResult with the reply and turn diagnostics
        """
        web_contexts = list(web_contexts or [])
        self._context.ensure_session(session_id)

        fact = self._maybe_learn_fact(message)
        query = self._context.build_query(session_id, message)
        concepts = extract_concepts(f"{query} {_context_text(web_contexts)}")

        if fact is not None and fact.learned:
            winner = Candidate(
                text=f"Got it. I will remember this: {fact.fact}",
                source=CandidateSource.FACT_LEARNING,
                base_score=0.95,
                confidence=0.95,
            )
        else:
            winner = self._choose(session_id, message, query, concepts, web_contexts)

        tick = self._record_turn(
            session_id=session_id,
            message=message,
            reply=winner.text,
            source=winner.source.value,
            confidence=winner.confidence,
            concepts=concepts,
            math_meta=math_meta_of(winner),
            pending_clarification=winner.source is CandidateSource.CLARIFICATION_NEEDED,
        )

        memory_ref = memory_ref_of(winner)
        neural_ref = neural_ref_of(winner)
        logger.debug(
            "Reply source=%s confidence=%.2f session=%s", winner.source.value, winner.confidence, session_id
        )
        return ChatResult(
            reply=winner.text,
            debug=self._debug(
                winner.source.value,
                winner.confidence,
                tick,
                memory_ref=memory_ref.to_dict() if memory_ref else None,
                neural_ref=neural_ref.to_dict() if neural_ref else None,
            ),
        )

    def _choose(
        self,
        session_id: str,
        message: str,
        query: str,
        concepts: List[str],
        web_contexts: List[WebContext],
    ) -> Candidate:
        candidates = self._generators.build(query, concepts, session_id)
        web_candidate = build_web_context_candidate(web_contexts)
        if web_candidate is not None:
            candidates.insert(0, web_candidate)

        last_turn = self._context.last_turn(session_id)
        winner = choose_best(candidates, query, concepts, last_turn)

        if last_turn and last_turn.get("bot"):
            repeated = score_similarity(winner.text, last_turn["bot"]) >= REPEAT_GUARD_SIMILARITY
            continuity = score_similarity(query, last_turn.get("user") or "")
            followup = REPEAT_FOLLOWUP_CUE.search(normalize(message))
            if repeated and continuity < REPEAT_GUARD_CONTINUITY and not followup:
                logger.debug("Suppressed repeated reply from %s", winner.source.value)
                return Candidate(
                    text=NEW_TOPIC_REPLY,
                    source=CandidateSource.CLARIFICATION_NEEDED,
                    base_score=0.82,
                    confidence=0.82,
                )
        return winner

    def ingest_external_reply(
        self,
        session_id: str,
        message: str,
        reply: str,
        source: str = "neural_primary",
        confidence: float = 0.72,
        math_meta: Optional[Dict[str, Any]] = None,
        web_contexts: Optional[Sequence[WebContext]] = None,
    ) -> ChatResult:
        """
        Record a reply chosen outside the ranker (e.g. by a reviewer) as the
        turn's answer, learning from it exactly as from a chat turn.
        """
        web_contexts = list(web_contexts or [])
        self._context.ensure_session(session_id)
        self._maybe_learn_fact(message)
        concepts = extract_concepts(f"{message} {_context_text(web_contexts)}")

        tick = self._record_turn(
            session_id=session_id,
            message=message,
            reply=reply,
            source=source,
            confidence=confidence,
            concepts=concepts,
            math_meta=math_meta,
            pending_clarification=bool(CLARIFICATION_REQUEST_REPLY.search(str(reply or ""))),
        )
        return ChatResult(reply=reply, debug=self._debug(source, confidence, tick))

    def _record_turn(
        self,
        session_id: str,
        message: str,
        reply: str,
        source: str,
        confidence: float,
        concepts: List[str],
        math_meta: Optional[Dict[str, Any]],
        pending_clarification: bool,
    ) -> TrainerTick:
        self._token_graph.learn(tokenize(message))
        self._concepts.update(concepts)
        self._associations.update(concepts)
        self._bank.remember(message, reply)

        self._log.append(
            session_id=session_id,
            user=message,
            bot=reply,
            source=source,
            confidence=confidence,
            concepts=concepts,
            math_meta=math_meta,
        )

        self.state["stats"]["messages"] += 1
        session = self._context.ensure_session(session_id)
        session["turns"] += 1
        self._context.remember_turn(session_id, message, reply, source)
        self._context.set_pending_clarification(session_id, pending_clarification)

        request_save(self._store, TURN_SAVE_TAGS)
        return self._trainer.run_tick(self._settings.trainer_live_batch_size)

    def _debug(
        self,
        source: str,
        confidence: float,
        tick: TrainerTick,
        memory_ref: Optional[Dict[str, Any]] = None,
        neural_ref: Optional[Dict[str, Any]] = None,
    ) -> TurnDebug:
        state = self.state
        return TurnDebug(
            source=source,
            confidence=confidence,
            learned_facts=len(self._facts),
            memories=len(self._log),
            concepts=len(self._concepts),
            web_sources=len(self._web),
            neural_prototypes=len(self._neural),
            memory_ref=memory_ref,
            neural_ref=neural_ref,
            trainer_processed=state["stats"]["trainer_processed_interactions"],
            trainer_remaining=tick.remaining,
        )

    # =========================================================================
    # Teaching
    # =========================================================================

    def _maybe_learn_fact(self, message) -> Optional[FactResult]:
        found = REMEMBER_FACT.search(normalize(message))
        if not found:
            return None
        return self._learn_fact(found.group(1).strip())

    def _learn_fact(self, fact_text, source: str = "fact_learning", session_id: str = "fact-seed") -> FactResult:
        result = self._facts.learn(fact_text)
        if not result.learned:
            return result

        fact = result.fact
        concepts = extract_concepts(fact)
        self._concepts.update(concepts)
        self._associations.update(concepts)
        self._token_graph.learn(tokenize(fact))

        self._log.append(
            session_id=session_id,
            user=f"remember that {fact}",
            bot=f"Got it. I will remember this: {fact}",
            source=source,
            confidence=0.95,
            concepts=concepts,
        )
        return result

    def ingest_fact(self, fact, source: str = "fact_learning", session_id: Optional[str] = None) -> FactResult:
        """
        Learn a fact directly (outside a chat turn).

        Returns:
            FactResult; `reason="empty_fact"` when nothing remains after normalizing
        """
        result = self._learn_fact(fact, source=source or "fact_learning", session_id=session_id or "fact-seed")
        if result.learned:
            request_save(self._store, ["interactions", "language", "knowledge"])
        return result

    def ingest_website_knowledge(
        self,
        url: str,
        title: Optional[str] = None,
        text: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> bool:
        """
        Record a fetched page and learn from its text.

        Returns:
            False (and changes nothing) for empty or navigation-only text
        """
        cleaned = str(text or "").strip()
        if not WebKnowledge.accepts(cleaned):
            logger.debug("Skipped web ingestion of %s: empty or polluted text", url)
            return False

        self._web.record(url, title, cleaned)
        concepts = extract_concepts(cleaned)
        self._concepts.update(concepts)
        self._associations.update(concepts)
        self._token_graph.learn(tokenize(cleaned))
        self.state["stats"]["web_ingestions"] += 1

        self._log.append(
            session_id=session_id,
            user=f"[WEB:{url}] {title or UNTITLED_PAGE}",
            bot=cleaned[:WEB_INTERACTION_CHARS],
            source="web_ingest",
            confidence=0.86,
            concepts=concepts,
        )
        request_save(self._store, TURN_SAVE_TAGS)
        return True

    def ingest_starter_lesson(self, lesson: Optional[Mapping[str, Any]]) -> LessonResult:
        """
        Load a bootstrap lesson ({"id", "topic", "content"}) once per id.

        Returns:
            LessonResult with reason "invalid_lesson", "missing_id_or_content"
            or "already_loaded" when nothing was loaded
        """
        if not isinstance(lesson, Mapping):
            return LessonResult(loaded=False, reason="invalid_lesson")

        lesson_id = str(lesson.get("id") or "").strip()
        topic = str(lesson.get("topic") or "").strip() or "general"
        content = str(lesson.get("content") or "").strip()
        if not lesson_id or not content:
            return LessonResult(loaded=False, reason="missing_id_or_content")
        if lesson_id in self._lessons:
            return LessonResult(loaded=False, reason="already_loaded")

        concepts = extract_concepts(content)
        self._concepts.update(concepts)
        self._associations.update(concepts)
        self._token_graph.learn(tokenize(content))

        self._lessons.record(lesson_id, topic, content)
        self.state["stats"]["starter_lessons_loaded"] += 1
        self._log.append(
            session_id="starter-seed",
            user=f"[STARTER:{topic}] {lesson_id}",
            bot=content[:LESSON_INTERACTION_CHARS],
            source="starter_bootstrap",
            confidence=0.9,
            concepts=concepts,
        )
        request_save(self._store, TURN_SAVE_TAGS)
        return LessonResult(loaded=True, id=lesson_id)

    def reinforce_with_mentor(
        self,
        session_id: str,
        message: str,
        final_reply: Optional[str],
        feedback: Optional[str] = None,
    ) -> bool:
        """Bank a reviewer-approved reply and log it as a high-confidence interaction."""
        if not final_reply:
            return False

        self._bank.remember(message, final_reply)
        self.state["stats"]["mentor_guidances"] += 1
        self._log.append(
            session_id=session_id,
            user=f"{message} [MENTOR]",
            bot=final_reply,
            source="mentor_guided",
            confidence=0.93,
            concepts=extract_concepts(f"{message} {feedback or ''}"),
        )
        request_save(self._store, TURN_SAVE_TAGS)
        return True

    def replace_incorrect_memory(
        self,
        memory_ref: Union[MemoryRef, Mapping[str, Any], None],
        message: Optional[str] = None,
        bad_reply: Optional[str] = None,
        corrected_reply: Optional[str] = None,
    ) -> CorrectionResult:
        """
        Remove a recalled interaction that turned out to be wrong.

        The reference must still point at the same interaction: same index,
        same timestamp and (case-insensitively) the same user text. The bad
        reply is also dropped from the response bank, and the corrected
        reply, when given, is banked in its place.
        """
        ref = _as_memory_ref(memory_ref)
        if ref is None:
            return CorrectionResult(removed=False, reason="missing_memory_ref")

        items = self._log.items
        if ref.interaction_index < 0 or ref.interaction_index >= len(items):
            return CorrectionResult(removed=False, reason="memory_index_out_of_range")

        target = items[ref.interaction_index]
        same_memory = (
            bool(target)
            and target.get("at") == ref.at
            and str(target.get("user") or "").lower() == str(ref.user or "").lower()
        )
        if not same_memory:
            return CorrectionResult(removed=False, reason="memory_reference_mismatch")

        self._log.remove(ref.interaction_index)

        prompt = message or ref.user or ""
        key = normalize(prompt)
        if key:
            self._bank.forget(key, bad_reply)
            if corrected_reply:
                self._bank.remember(prompt, corrected_reply)

        logger.info("Removed incorrect memory #%d", ref.interaction_index)
        request_save(self._store, ["core", "interactions", "language"])
        return CorrectionResult(removed=True)

    # =========================================================================
    # Training
    # =========================================================================

    def run_trainer_tick(self, batch_size: Optional[int] = None) -> TrainerTick:
        return self._trainer.run_tick(batch_size or self._settings.trainer_batch_size)

    def import_all_memory_to_neural(self) -> ImportResult:
        return self._importer.import_all()

    async def import_all_memory_to_neural_async(
        self,
        on_progress: Optional[ProgressCallback] = None,
        yield_every: Optional[int] = None,
    ) -> ImportResult:
        return await self._importer.import_all_async(on_progress=on_progress, yield_every=yield_every)

    def __repr__(self) -> str:
        return f"ChatBrain(memories={len(self._log)}, prototypes={len(self._neural)})"


def _context_text(web_contexts: Sequence[WebContext]) -> str:
    return " ".join(str(item.get("text") or "") for item in web_contexts)


def _as_memory_ref(value: Union[MemoryRef, Mapping[str, Any], None]) -> Optional[MemoryRef]:
    if isinstance(value, MemoryRef):
        return value
    if not isinstance(value, Mapping):
        return None

    index = value.get("interaction_index")
    if isinstance(index, bool) or not isinstance(index, int):
        return None
    return MemoryRef(interaction_index=index, at=value.get("at"), user=str(value.get("user") or ""))
