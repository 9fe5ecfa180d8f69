"""Environment driven settings shared by the API and its collaborators."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)
    level = os.getenv("TRIP_SUGGESTER_LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.propagate = False
    return logger


def _flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


def _origins() -> List[str]:
    raw = os.getenv("TRIP_SUGGESTER_ALLOWED_ORIGINS") or "*"
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


@dataclass
class Settings:
    openai_api_key: str | None = None
    mock_llm: bool = False
    model: str = "gpt-5-mini"
    fallback_model: str = "gpt-4o-mini"
    history_file: Path = _PROJECT_ROOT / "data" / "history.json"
    metrics_file: Path = _PROJECT_ROOT / "logs" / "metrics.csv"
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    scheduler_enabled: bool = True
    suggestion_refresh_seconds: float = 3600.0
    suggestion_horizon_days: int = 30

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings at call time so tests can override via monkeypatch.setenv."""
        history = os.getenv("TRIP_SUGGESTER_HISTORY_FILE")
        metrics = os.getenv("TRIP_SUGGESTER_METRICS_FILE")
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            mock_llm=_flag("TRIP_SUGGESTER_MOCK_LLM"),
            model=os.getenv("TRIP_SUGGESTER_MODEL") or "gpt-5-mini",
            fallback_model=os.getenv("TRIP_SUGGESTER_FALLBACK_MODEL") or "gpt-4o-mini",
            history_file=Path(history) if history else _PROJECT_ROOT / "data" / "history.json",
            metrics_file=Path(metrics) if metrics else _PROJECT_ROOT / "logs" / "metrics.csv",
            allowed_origins=_origins(),
            scheduler_enabled=not _flag("TRIP_SUGGESTER_DISABLE_SCHEDULER"),
        )
