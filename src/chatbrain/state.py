"""
State tree defaults and in-place repair.

The engine works on a plain, JSON-serializable dict owned by the store.
Anything missing or malformed is replaced with a safe default so a turn
never fails because of partially initialized state.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from chatbrain.config.constants import NEURAL_DIM

logger = logging.getLogger(__name__)

STAT_COUNTERS = (
    "sessions",
    "messages",
    "web_ingestions",
    "mentor_guidances",
    "starter_lessons_loaded",
    "trainer_iterations",
    "trainer_processed_interactions",
)


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def new_neural_state(dim: int = NEURAL_DIM) -> Dict[str, Any]:
    return {
        "dim": dim,
        "trained_samples": 0,
        "last_train_at": None,
        "prototypes": [],
    }


def new_state(neural_dim: int = NEURAL_DIM) -> Dict[str, Any]:
    """Build an empty state tree."""
    return {
        "interactions": [],
        "sessions": {},
        "response_bank": {},
        "learned_facts": {},
        "token_graph": {},
        "concept_graph": {},
        "association_graph": {},
        "web_knowledge": {},
        "starter_lessons": {},
        "neural": new_neural_state(neural_dim),
        "trainer": {"processed_until": 0, "last_run_at": None},
        "stats": {name: 0 for name in STAT_COUNTERS},
    }


_MAPPINGS = (
    "sessions",
    "response_bank",
    "learned_facts",
    "token_graph",
    "concept_graph",
    "association_graph",
    "web_knowledge",
    "starter_lessons",
)


def _ensure(container: Dict[str, Any], key: str, valid: Callable[[Any], bool], default: Callable[[], Any]) -> None:
    if not valid(container.get(key)):
        if key in container:
            logger.warning("Repairing malformed state entry %r", key)
        container[key] = default()


def ensure_neural_state(state: Dict[str, Any], dim: int = NEURAL_DIM) -> Dict[str, Any]:
    """
    Repair the neural subtree in place and return it.

    Prototypes that are not dicts, or whose vector length differs from the
    configured dimension, are dropped.
    """
    _ensure(state, "neural", lambda v: isinstance(v, dict), lambda: new_neural_state(dim))
    neural = state["neural"]

    try:
        neural["dim"] = int(neural.get("dim"))
        if neural["dim"] <= 0:
            raise ValueError(neural["dim"])
    except (TypeError, ValueError):
        neural["dim"] = dim

    _ensure(neural, "prototypes", lambda v: isinstance(v, list), list)
    size = neural["dim"]
    valid = [
        prototype
        for prototype in neural["prototypes"]
        if isinstance(prototype, dict)
        and isinstance(prototype.get("vector"), list)
        and len(prototype["vector"]) == size
    ]
    if len(valid) != len(neural["prototypes"]):
        logger.warning("Dropped %d malformed neural prototypes", len(neural["prototypes"]) - len(valid))
        neural["prototypes"] = valid

    neural.setdefault("trained_samples", 0)
    neural.setdefault("last_train_at", None)
    return neural


def ensure_state(state: Dict[str, Any], neural_dim: int = NEURAL_DIM) -> Dict[str, Any]:
    """Repair every subtree of `state` in place and return it."""
    _ensure(state, "interactions", lambda v: isinstance(v, list), list)
    for key in _MAPPINGS:
        _ensure(state, key, lambda v: isinstance(v, dict), dict)

    _ensure(state, "trainer", lambda v: isinstance(v, dict), lambda: {"processed_until": 0, "last_run_at": None})
    trainer = state["trainer"]
    cursor = trainer.get("processed_until")
    if not isinstance(cursor, int) or cursor < 0:
        trainer["processed_until"] = 0
    trainer["processed_until"] = min(trainer["processed_until"], len(state["interactions"]))
    trainer.setdefault("last_run_at", None)

    _ensure(state, "stats", lambda v: isinstance(v, dict), dict)
    for name in STAT_COUNTERS:
        if not isinstance(state["stats"].get(name), int):
            state["stats"][name] = 0

    ensure_neural_state(state, neural_dim)
    return state
