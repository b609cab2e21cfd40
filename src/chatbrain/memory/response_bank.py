"""
Response bank: exact-prompt reply memory.

Maps a normalized prompt to at most eight replies, deduplicated by exact
text and kept sorted by use count (descending).
"""

from typing import Callable, Dict, List, Optional

from chatbrain.config.constants import MAX_BANKED_REPLY_CHARS, RESPONSE_BANK_MAX_ENTRIES
from chatbrain.state import now_iso
from chatbrain.text.normalizer import normalize
from chatbrain.text.signals import MEMORY_RECALL_SUFFIX, NAVIGATION_CHROME, SPAM_PHRASES


class ResponseBank:
    """
    Prompt -> ranked replies, stored in `state["response_bank"]`.

    Attributes:
        _bank: Normalized prompt -> list of {reply, count, last_used}
        _is_low_signal: Predicate rejecting noise prompts

    Example:
        >>> bank = ResponseBank({})
        >>> bank.remember("What is Rust?", "A systems language.")
        True
        >>> bank.remember("what is rust", "A systems language.")
        True
        >>> bank.entries("what is rust")[0]["count"]
        2
    """

    def __init__(self, bank: Dict[str, List[Dict]], is_low_signal: Optional[Callable[[str], bool]] = None):
        self._bank = bank
        self._is_low_signal = is_low_signal or (lambda _text: False)

    @staticmethod
    def is_bankable_reply(reply) -> bool:
        """Recall echoes, scraped navigation, spam and over-long replies are not banked."""
        text = str(reply or "")
        if MEMORY_RECALL_SUFFIX.search(text):
            return False
        if NAVIGATION_CHROME.search(normalize(text)):
            return False
        if SPAM_PHRASES.search(text):
            return False
        return len(text) <= MAX_BANKED_REPLY_CHARS

    def remember(self, message, reply) -> bool:
        """
        Bank `reply` for `message`.

        Returns:
            True when the bank changed
        """
        if self._is_low_signal(message) or not self.is_bankable_reply(reply):
            return False

        key = normalize(message)
        if not key:
            return False

        entries = self._bank.setdefault(key, [])
        existing = next((entry for entry in entries if entry.get("reply") == reply), None)
        if existing:
            existing["count"] = int(existing.get("count") or 0) + 1
            existing["last_used"] = now_iso()
        else:
            entries.append({"reply": reply, "count": 1, "last_used": now_iso()})

        entries.sort(key=lambda entry: int(entry.get("count") or 0), reverse=True)
        del entries[RESPONSE_BANK_MAX_ENTRIES:]
        return True

    def lookup(self, message) -> Optional[str]:
        """Top reply for the exact normalized prompt."""
        entries = self._bank.get(normalize(message))
        if not entries:
            return None
        return entries[0].get("reply")

    def entries(self, message) -> List[Dict]:
        return list(self._bank.get(normalize(message), []))

    def forget(self, key: str, reply) -> None:
        """Remove `reply` under the normalized `key`, deleting the key when empty."""
        if key not in self._bank:
            return
        remaining = [entry for entry in self._bank[key] if entry.get("reply") != reply]
        if remaining:
            self._bank[key] = remaining
        else:
            del self._bank[key]

    def items(self):
        return self._bank.items()

    def __len__(self) -> int:
        return len(self._bank)
