"""
JsonStateStore: State tree persisted as a single JSON document.

Save hints only mark tags dirty; `flush()` writes the whole tree when
anything is dirty. Writes go to a temporary file that then replaces the
target, so a crash mid-write never leaves a truncated state file.

File structure:
```
state.json            # the state tree
state.manifest.json   # version, saved_at, tags flushed
state.json.corrupt-*  # backups of files that failed to parse
```
"""

import json
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set

from chatbrain.config.constants import NEURAL_DIM, SAVE_TAGS
from chatbrain.state import ensure_state, new_state

logger = logging.getLogger(__name__)


class JsonStateStore:
    """
    JSON-on-disk state store.

    Loading never fails on bad data: a missing file starts a fresh tree,
    and a file that cannot be parsed is copied aside and replaced by a
    fresh tree.

    Example:
        >>> store = JsonStateStore(Path("./data/chatbrain/state.json"))
        >>> store.state["stats"]["messages"] += 1
        >>> store.schedule_save(["core"])
        >>> store.flush()
        True
    """

    VERSION = "1.0.0"

    def __init__(self, path: Path, neural_dim: int = NEURAL_DIM, autoflush: bool = False):
        """
        Args:
            path: State file location (parent directories are created on flush)
            neural_dim: Embedding length for a fresh neural subtree
            autoflush: Write on every save hint instead of waiting for flush()
        """
        self.path = Path(path)
        self._neural_dim = neural_dim
        self._autoflush = autoflush
        self._dirty: Set[str] = set()
        self.state: Dict[str, Any] = self._load()

    @property
    def manifest_path(self) -> Path:
        return self.path.with_name(f"{self.path.stem}.manifest.json")

    @property
    def dirty_tags(self) -> Set[str]:
        return set(self._dirty)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.info("No state file at %s, starting fresh", self.path)
            return new_state(self._neural_dim)

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        except (OSError, ValueError) as e:
            backup = self._backup_corrupt_file()
            logger.warning("Could not read state file %s (%s); backed up to %s", self.path, e, backup)
            return new_state(self._neural_dim)

        return ensure_state(data, self._neural_dim)

    def _backup_corrupt_file(self) -> Optional[Path]:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            shutil.copy2(self.path, backup)
        except OSError as e:
            logger.warning("Could not back up corrupt state file: %s", e)
            return None
        return backup

    def schedule_save(self, tags: Iterable[str]) -> None:
        tags = set(tags)
        unknown = tags - SAVE_TAGS
        if unknown:
            logger.debug("Ignoring unknown save tags: %s", sorted(unknown))
        self._dirty |= tags & SAVE_TAGS
        if self._autoflush:
            self.flush()

    def flush(self, force: bool = False) -> bool:
        """
        Write the state tree if anything is dirty (or `force` is set).

        Returns:
            True when a file was written
        """
        if not self._dirty and not force:
            return False

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._write_atomic(self.path, self.state)

        manifest = {
            "version": self.VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "tags": sorted(self._dirty),
            "stats": {
                "interactions": len(self.state.get("interactions") or []),
                "prototypes": len((self.state.get("neural") or {}).get("prototypes") or []),
            },
        }
        self._write_atomic(self.manifest_path, manifest)

        logger.info("Saved state to %s (tags=%s)", self.path, ",".join(sorted(self._dirty)) or "-")
        self._dirty.clear()
        return True

    @staticmethod
    def _write_atomic(path: Path, payload: Any) -> None:
        temp_path = path.with_name(f".{path.name}.tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False)
        os.replace(temp_path, path)

    def __repr__(self) -> str:
        return f"JsonStateStore(path={str(self.path)!r}, dirty={sorted(self._dirty)})"
