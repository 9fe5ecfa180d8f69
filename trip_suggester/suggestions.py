"""Ambient suggestions: precomputed plans for trips starting soon."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List

from apscheduler.job import Job
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from trip_suggester.config import get_logger
from trip_suggester.context import PastQuerySource
from trip_suggester.planner import mock_plan
from trip_suggester.validation import validate_suggest_request

logger = get_logger(__name__)

SCHEDULED_REASONING = "Scheduled suggestion"
JOB_ID = "refresh_suggestions"


class SuggestionCache:
    """Owns the list served by ``GET /suggestions``.

    ``refresh`` is the only writer and swaps in a new list in one assignment;
    ``snapshot`` hands readers a copy. ``register`` puts ``refresh`` on a
    scheduler as an interval job.
    """

    def __init__(
        self,
        history: PastQuerySource,
        *,
        horizon_days: int = 30,
        refresh_seconds: float = 3600.0,
        today: Callable[[], date] = date.today,
    ):
        self.history = history
        self.horizon_days = horizon_days
        self.refresh_seconds = refresh_seconds
        self._today = today
        self._items: List[Dict[str, Any]] = []

    def snapshot(self) -> List[Dict[str, Any]]:
        return list(self._items)

    async def refresh(self) -> int:
        past = await self.history.read()
        today = self._today()
        horizon = today + timedelta(days=self.horizon_days)
        items: List[Dict[str, Any]] = []
        for query in past:
            result = validate_suggest_request(query)
            if not result.valid or result.request is None:
                continue
            start = date.fromisoformat(result.request.dates.start)
            if start <= today or start > horizon:
                continue
            plan = mock_plan(result.request).model_dump(mode="json", by_alias=True)
            plan["reasoning"] = SCHEDULED_REASONING
            items.append(plan)
        self._items = items
        logger.info("Refreshed %d scheduled suggestion(s)", len(items))
        return len(items)

    def register(self, scheduler: BaseScheduler) -> Job:
        """Schedule ``refresh`` every ``refresh_seconds``, first run immediately."""
        return scheduler.add_job(
            self.refresh,
            IntervalTrigger(seconds=self.refresh_seconds),
            id=JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            replace_existing=True,
        )
