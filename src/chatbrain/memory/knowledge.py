"""
Taught knowledge: learned facts, web page summaries and starter lessons.

These stores only record what was taught. Graph updates and interaction
logging for each teaching event are done by the brain, which owns all of
the subsystems.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from chatbrain.config.constants import WEB_SUMMARY_CHARS
from chatbrain.state import now_iso
from chatbrain.text.normalizer import collapse_whitespace, is_polluted_web_text, normalize, tokenize

UNTITLED_PAGE = "Untitled Page"

_GENERIC_TOPIC_TOKENS = frozenset([
    "learn", "learning", "tell", "explain", "topic", "general", "please",
    "about", "history", "information", "details",
])


@dataclass
class FactResult:
    learned: bool
    fact: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class LessonResult:
    loaded: bool
    id: Optional[str] = None
    reason: Optional[str] = None


class LearnedFacts:
    """Normalized fact -> {count, last_seen}."""

    def __init__(self, facts: Dict[str, Dict]):
        self._facts = facts

    def learn(self, fact_text) -> FactResult:
        fact = normalize(fact_text)
        if not fact:
            return FactResult(learned=False, reason="empty_fact")

        previous = self._facts.get(fact) or {}
        self._facts[fact] = {
            "count": int(previous.get("count") or 0) + 1,
            "last_seen": now_iso(),
        }
        return FactResult(learned=True, fact=fact)

    def top(self, limit: int = 2) -> List[str]:
        ranked = sorted(self._facts.items(), key=lambda item: int(item[1].get("count") or 0), reverse=True)
        return [fact for fact, _ in ranked[:limit]]

    def relevant(self, message, limit: int = 2) -> List[str]:
        """Facts sharing the most tokens with `message` (at least one)."""
        message_tokens = set(tokenize(message))
        scored = []
        for fact in self._facts:
            score = sum(1 for token in tokenize(fact) if token in message_tokens)
            if score > 0:
                scored.append((fact, score))
        scored.sort(key=lambda item: item[1], reverse=True)
        return [fact for fact, _ in scored[:limit]]

    def __contains__(self, fact: object) -> bool:
        return fact in self._facts

    def __iter__(self):
        return iter(self._facts)

    def __len__(self) -> int:
        return len(self._facts)


@dataclass
class WebRecall:
    url: str
    title: str
    summary: str
    overlap: int
    exact_title_hits: int


class WebKnowledge:
    """
    URL -> {title, fetch_count, learned_chars, last_seen, last_summary}.
    """

    def __init__(self, pages: Dict[str, Dict]):
        self._pages = pages

    @staticmethod
    def accepts(text) -> bool:
        """Empty text and scraped navigation chrome are never recorded."""
        cleaned = str(text or "").strip()
        return bool(cleaned) and not is_polluted_web_text(cleaned)

    def record(self, url: str, title: Optional[str], text: str) -> Dict:
        page = self._pages.get(url)
        if page is None:
            page = {
                "title": title or UNTITLED_PAGE,
                "fetch_count": 0,
                "learned_chars": 0,
                "last_seen": None,
                "last_summary": "",
            }
            self._pages[url] = page

        page["title"] = title or page.get("title") or UNTITLED_PAGE
        page["fetch_count"] = int(page.get("fetch_count") or 0) + 1
        page["learned_chars"] = int(page.get("learned_chars") or 0) + len(text)
        page["last_seen"] = now_iso()
        page["last_summary"] = text[:WEB_SUMMARY_CHARS]
        return page

    def best_match(self, concepts: List[str]) -> Optional[WebRecall]:
        """
        Rank pages by title hits, then by overall keyword overlap.

        Generic request words ("explain", "topic", ...) are ignored unless
        they are the only concepts. A page qualifies with a title hit or
        with min(2, len(required)) overlapping keywords.
        """
        if not concepts or not self._pages:
            return None

        focus = [token for token in concepts if token not in _GENERIC_TOPIC_TOKENS]
        required = focus or list(concepts)

        scored: List[WebRecall] = []
        for url, page in self._pages.items():
            title = str((page or {}).get("title") or UNTITLED_PAGE)
            summary = str((page or {}).get("last_summary") or "")
            if is_polluted_web_text(summary):
                continue
            normalized_title = normalize(title)
            haystack = normalize(f"{title} {summary} {url}")
            overlap = sum(1 for token in required if token in haystack)
            if overlap <= 0:
                continue
            title_hits = sum(1 for token in required if token in normalized_title)
            scored.append(WebRecall(url, title, summary, overlap, title_hits))

        if not scored:
            return None

        scored.sort(key=lambda item: (item.exact_title_hits, item.overlap), reverse=True)
        best = scored[0]
        if best.overlap < min(2, len(required)) and best.exact_title_hits < 1:
            return None
        return best

    def __len__(self) -> int:
        return len(self._pages)


def clean_web_summary(summary: str, limit: int = 460) -> str:
    """Strip aggregator lead-ins and collapse whitespace."""
    without_leadin = re.sub(r"another related source says\s*:", " ", summary, flags=re.IGNORECASE)
    return collapse_whitespace(without_leadin)[:limit]


class StarterLessons:
    """lesson id -> {topic, loaded_at, chars}. Ids are never overwritten."""

    def __init__(self, lessons: Dict[str, Dict]):
        self._lessons = lessons

    def __contains__(self, lesson_id: object) -> bool:
        return lesson_id in self._lessons

    def record(self, lesson_id: str, topic: str, content: str) -> None:
        self._lessons[lesson_id] = {
            "topic": topic,
            "loaded_at": now_iso(),
            "chars": len(content),
        }

    def __len__(self) -> int:
        return len(self._lessons)
