"""Transcript persistence: the latest snapshot overwrites the previous one."""

import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from roundtable.export import deserialize, serialize
from roundtable.models import Turn

logger = logging.getLogger(__name__)


class TranscriptStore(Protocol):
    def save(self, transcript: Sequence[Turn]) -> None:
        ...

    def load(self) -> list[Turn] | None:
        ...


class MemoryStore:
    """Keeps the latest snapshot in memory."""

    def __init__(self, transcript: Sequence[Turn] | None = None) -> None:
        self._snapshot: list[Turn] | None = list(transcript) if transcript is not None else None
        self.saves = 0

    def save(self, transcript: Sequence[Turn]) -> None:
        self._snapshot = list(transcript)
        self.saves += 1

    def load(self) -> list[Turn] | None:
        return list(self._snapshot) if self._snapshot is not None else None


class JsonFileStore:
    """Persist snapshots as a JSON file, replaced atomically on each save."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def save(self, transcript: Sequence[Turn]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(serialize(transcript))
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def load(self) -> list[Turn] | None:
        if not self.path.exists():
            return None
        try:
            return deserialize(self.path.read_bytes())
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable transcript at %s: %s", self.path, exc)
            return None
