"""Best-effort CSV metrics for suggestion latency and token usage."""
from __future__ import annotations

import asyncio
import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping

from trip_suggester.config import get_logger

logger = get_logger(__name__)

HEADER = ["timestamp", "latency_ms", "input_tokens", "output_tokens", "total_tokens", "model", "ok", "error"]


def normalise_usage(usage: Any) -> Dict[str, Any]:
    """Map either responses-style or chat-style token counts onto one shape."""
    if usage is None:
        return {}
    if hasattr(usage, "model_dump"):
        usage = usage.model_dump()
    if not isinstance(usage, Mapping):
        return {}
    input_tokens = usage.get("input_tokens")
    if input_tokens is None:
        input_tokens = usage.get("prompt_tokens")
    output_tokens = usage.get("output_tokens")
    if output_tokens is None:
        output_tokens = usage.get("completion_tokens")
    total = usage.get("total_tokens")
    if total is None and (input_tokens is not None or output_tokens is not None):
        total = (input_tokens or 0) + (output_tokens or 0)
    return {"input_tokens": input_tokens, "output_tokens": output_tokens, "total_tokens": total}


class MetricsSink:
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def record(
        self,
        latency_ms: int,
        usage: Any = None,
        model: str = "",
        ok: bool = True,
        error: str = "",
    ) -> None:
        tokens = normalise_usage(usage)
        row = [
            datetime.now(timezone.utc).isoformat(),
            int(latency_ms),
            _blank(tokens.get("input_tokens")),
            _blank(tokens.get("output_tokens")),
            _blank(tokens.get("total_tokens")),
            model,
            1 if ok else 0,
            str(error).replace("\n", " ").replace(",", ";"),
        ]
        async with self._lock:
            try:
                await asyncio.to_thread(self._write_row, row)
            except OSError:
                logger.warning("Unable to write metrics row to %s", self.path, exc_info=True)

    def _write_row(self, row: list) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        is_new = not self.path.exists()
        with self.path.open("a", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            if is_new:
                writer.writerow(HEADER)
            writer.writerow(row)


def _blank(value: Any) -> Any:
    return "" if value is None else value
