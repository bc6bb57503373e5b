"""JSON-file conversation store (newest first, one file, serialized writes)."""
from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, List

from pydantic import ValidationError

from .models import ConversationSummary

logger = logging.getLogger(__name__)


# -----------------------------
# Helpers
# -----------------------------
def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", encoding="utf-8", delete=False, dir=str(path.parent)) as tmp:
        tmp.write(text)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_name = tmp.name
    os.replace(tmp_name, path)


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: Path, obj: Any) -> None:
    _atomic_write_text(path, json.dumps(obj, ensure_ascii=False, indent=2))


def _parse_summaries(raw: Any) -> List[ConversationSummary]:
    if not isinstance(raw, list):
        raise ValueError(f"expected a JSON array, got {type(raw).__name__}")
    return [ConversationSummary.model_validate(item) for item in raw]


# -----------------------------
# ConversationStore
# -----------------------------
class ConversationStore:
    """Ordered list of known conversations mirrored to a single JSON file.

    The in-memory list is the source of truth while the process runs; the
    file is rewritten wholesale after every mutation. Writes are serialized
    by one lock and each write snapshots the list when it gets the lock, so
    overlapping appends all reach disk.

    Layout::

        [ {"id": ..., "title": ..., "created_at": ...}, ... ]   # newest first
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._items: List[ConversationSummary] = []
        self._write_lock = asyncio.Lock()

    # --------- core API ----------
    async def load(self) -> None:
        """Populate memory from disk. Never raises; falls back to empty."""
        if not self.path.exists():
            logger.info("No conversation file at %s, creating an empty one.", self.path)
            self._items = []
            await self._persist()
            return

        try:
            raw = await asyncio.to_thread(_read_json, self.path)
            self._items = _parse_summaries(raw)
        except (OSError, ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError.
            logger.error("Conversation file %s is unreadable (%s); starting empty.", self.path, e)
            self._items = []
            self._move_aside()
            await self._persist()
            return

        logger.info("Loaded %d conversation(s) from %s", len(self._items), self.path)

    async def append(self, summary: ConversationSummary) -> ConversationSummary:
        """Insert ``summary`` at the front and rewrite the file.

        A summary whose id is already stored is not inserted again; the
        existing entry is returned instead.
        """
        for existing in self._items:
            if existing.id == summary.id:
                logger.info("Conversation %s already stored, skipping append.", summary.id)
                return existing

        self._items.insert(0, summary)
        await self._persist()
        return summary

    def list(self) -> List[ConversationSummary]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    # --------- internals ----------
    async def _persist(self) -> None:
        async with self._write_lock:
            payload = [item.model_dump() for item in self._items]
            try:
                await asyncio.to_thread(_write_json, self.path, payload)
            except OSError:
                # Memory keeps the new entry; the log records the divergence.
                logger.exception("Failed to write conversation file %s", self.path)

    def _move_aside(self) -> None:
        stamp = time.strftime("%Y%m%d-%H%M%S")
        bad = self.path.with_name(f"{self.path.stem}.corrupt-{stamp}.json")
        n = 1
        while bad.exists():
            bad = self.path.with_name(f"{self.path.stem}.corrupt-{stamp}-{n}.json")
            n += 1
        try:
            self.path.replace(bad)
            logger.warning("Moved unreadable conversation file to %s", bad)
        except OSError as e:
            logger.error("Could not move %s aside: %s", self.path, e)
