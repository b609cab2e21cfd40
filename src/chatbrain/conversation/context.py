"""
Per-session context: recent turns, anchors and follow-up rewriting.

A session keeps a ring of its last six turns and a pending-clarification
marker. Ambiguous follow-ups ("why is that?", "and them?") are rewritten by
prefixing the user text of an anchor turn so the rest of the pipeline sees
a self-contained query.
"""

from typing import Callable, Dict, Optional

from chatbrain.config.constants import (
    ANCHOR_SKIP_SOURCES,
    CONTEXT_NEW_TOPIC_MIN_TOKENS,
    CONTEXT_NEW_TOPIC_OVERLAP,
    CONTEXT_SELF_CONTAINED_OVERLAP,
    FOLLOWUP_SHORT_TOKENS,
    MAX_RECENT_TURNS,
)
from chatbrain.state import now_iso
from chatbrain.text.normalizer import normalize, score_similarity, tokenize
from chatbrain.text.signals import (
    EXPLICIT_FOLLOWUP_CUE,
    FOLLOWUP_CUE,
    LEADING_ARTICLE,
    NEW_TOPIC_PROMPT,
    SHORT_REFERENCE_CUE,
    WHAT_ABOUT,
)


class ContextResolver:
    """
    Session bookkeeping over `state["sessions"]`.

    Attributes:
        _sessions: session id -> session dict
        _stats: Shared stats counters (sessions are counted on creation)
        _is_low_signal: Predicate; low-signal turns never become anchors

    Example:
        >>> resolver = ContextResolver(state["sessions"], state["stats"])
        >>> resolver.ensure_session("s1")
        >>> resolver.remember_turn("s1", "what is photosynthesis", "It is ...", "memory_match")
        >>> resolver.build_query("s1", "what about chlorophyll")
        'define chlorophyll'
    """

    def __init__(
        self,
        sessions: Dict[str, Dict],
        stats: Dict[str, int],
        is_low_signal: Optional[Callable[[str], bool]] = None,
    ):
        self._sessions = sessions
        self._stats = stats
        self._is_low_signal = is_low_signal or (lambda _text: False)

    def ensure_session(self, session_id: str) -> Dict:
        """Create the session on first contact and refresh its last-seen time."""
        session = self._sessions.get(session_id)
        if not isinstance(session, dict):
            stamp = now_iso()
            session = {
                "turns": 0,
                "first_seen": stamp,
                "last_seen": stamp,
                "recent_turns": [],
                "pending_clarification": None,
            }
            self._sessions[session_id] = session
            self._stats["sessions"] = int(self._stats.get("sessions") or 0) + 1

        if not isinstance(session.get("recent_turns"), list):
            session["recent_turns"] = []
        if not session.get("pending_clarification"):
            session["pending_clarification"] = None
        if not isinstance(session.get("turns"), int):
            session["turns"] = 0

        session["last_seen"] = now_iso()
        return session

    def get(self, session_id: Optional[str]) -> Optional[Dict]:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        return session if isinstance(session, dict) else None

    def remember_turn(self, session_id: str, user, bot, source: str = "generated") -> None:
        """Push a turn onto the session ring (both sides must be non-empty)."""
        session = self.get(session_id)
        if session is None:
            return

        user_text = str(user or "").strip()
        bot_text = str(bot or "").strip()
        if not user_text or not bot_text:
            return

        turns = session.setdefault("recent_turns", [])
        turns.append({
            "user": user_text,
            "bot": bot_text,
            "source": str(source or "generated"),
            "at": now_iso(),
        })
        del turns[:-MAX_RECENT_TURNS]

    def last_turn(self, session_id: Optional[str]) -> Optional[Dict]:
        session = self.get(session_id)
        if session is None or not session.get("recent_turns"):
            return None
        return session["recent_turns"][-1]

    def anchor_turn(self, session_id: Optional[str]) -> Optional[Dict]:
        """Most recent turn that is neither low-signal nor a clarification/knowledge gap."""
        session = self.get(session_id)
        if session is None:
            return None

        for turn in reversed(session.get("recent_turns") or []):
            if not turn or not turn.get("user"):
                continue
            if str(turn.get("source") or "") in ANCHOR_SKIP_SOURCES:
                continue
            if self._is_low_signal(turn["user"]):
                continue
            return turn
        return None

    def set_pending_clarification(self, session_id: str, pending: bool) -> None:
        """Remember (or clear) that the last reply asked the user to rephrase."""
        session = self.get(session_id)
        if session is None:
            return
        if pending:
            anchor = self.anchor_turn(session_id)
            session["pending_clarification"] = {
                "anchor_user": anchor["user"] if anchor else None,
                "at": now_iso(),
            }
        else:
            session["pending_clarification"] = None

    def build_query(self, session_id: str, message) -> str:
        """
        Rewrite a follow-up into a self-contained query.

        "what about X" always becomes "define X". Otherwise the message is a
        follow-up when it has anaphoric cues, is a short reference, or a
        clarification is pending; explicit new-topic prompts ("define",
        "what is", ...) are never follow-ups unless a clarification is
        pending. Follow-ups are prefixed with the anchor's user text unless
        the message already overlaps the anchor strongly (>= 0.72) or is a
        long message with almost no overlap (a new topic).
        """
        raw = str(message or "").strip()
        session = self.get(session_id)
        if session is None or not session.get("recent_turns"):
            return raw

        normalized = normalize(raw)
        what_about = WHAT_ABOUT.search(normalized)
        if what_about:
            subject = LEADING_ARTICLE.sub("", what_about.group(1)).strip()
            if len(subject) >= 2:
                return f"define {subject}"
            return raw

        pending = session.get("pending_clarification")
        token_count = len(tokenize(raw))
        looks_followup = bool(FOLLOWUP_CUE.search(normalized))
        explicit_followup = bool(EXPLICIT_FOLLOWUP_CUE.search(normalized))
        short_reference = token_count <= FOLLOWUP_SHORT_TOKENS and bool(SHORT_REFERENCE_CUE.search(normalized))

        if NEW_TOPIC_PROMPT.search(normalized) and not pending:
            return raw
        if not (looks_followup or explicit_followup or short_reference or pending):
            return raw

        anchor_user = None
        if pending and pending.get("anchor_user"):
            anchor_user = pending["anchor_user"]
        else:
            anchor = self.anchor_turn(session_id)
            anchor_user = anchor["user"] if anchor else None
        if not anchor_user:
            return raw

        overlap = score_similarity(anchor_user, raw)
        if overlap >= CONTEXT_SELF_CONTAINED_OVERLAP:
            return raw
        if token_count >= CONTEXT_NEW_TOPIC_MIN_TOKENS and overlap < CONTEXT_NEW_TOPIC_OVERLAP and not pending:
            return raw

        return f"{anchor_user} {raw}"
