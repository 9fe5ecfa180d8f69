"""JSON-file history of recent suggestions, capped to the newest entries."""
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List

from trip_suggester.config import get_logger
from trip_suggester.schemas import HistoryEntry

logger = get_logger(__name__)

MAX_ENTRIES = 10


class HistoryStore:
    """Append-only log of past requests, shared by concurrent handlers.

    Appends hold ``_lock`` across read, append, truncate and write so readers
    never observe an uncapped or half-written list.
    """

    def __init__(self, path: Path | str, *, max_entries: int = MAX_ENTRIES):
        self.path = Path(path)
        self.max_entries = max_entries
        self._lock = asyncio.Lock()

    def init(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.warning("Unable to create history directory %s", self.path.parent, exc_info=True)

    async def entries(self) -> List[Dict[str, Any]]:
        """Return stored entries oldest first; empty on a missing or corrupt file."""
        return await asyncio.to_thread(self._load)

    async def read(self) -> List[Dict[str, Any]]:
        """Return past requests oldest first.

        Rows written before entries were wrapped are plain request dicts, so an
        entry without a ``request`` key is returned as is.
        """
        queries: List[Dict[str, Any]] = []
        for entry in await self.entries():
            if not isinstance(entry, dict):
                continue
            request = entry.get("request", entry)
            if isinstance(request, dict):
                queries.append(request)
        return queries

    async def append(self, entry: HistoryEntry | Dict[str, Any]) -> None:
        row = entry.model_dump(mode="json") if isinstance(entry, HistoryEntry) else dict(entry)
        async with self._lock:
            try:
                await asyncio.to_thread(self._append_sync, row)
            except (OSError, TypeError, ValueError) as exc:
                logger.warning("persistHistory failed for %s: %s", self.path, exc, exc_info=True)

    def _append_sync(self, row: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rows = self._load()
        rows.append(row)
        if len(rows) > self.max_entries:
            rows = rows[-self.max_entries:]
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(rows, indent=2), encoding="utf-8")
        tmp.replace(self.path)
        logger.debug("History now holds %d entries", len(rows))

    def _load(self) -> List[Dict[str, Any]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError:
            logger.warning("Unable to read history file %s", self.path, exc_info=True)
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("History file %s is not valid JSON; treating as empty", self.path)
            return []
        return data if isinstance(data, list) else []
