import asyncio
from datetime import date, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from trip_suggester.suggestions import JOB_ID, SCHEDULED_REASONING, SuggestionCache

TODAY = date(2025, 9, 20)


class _StaticHistory:
    def __init__(self, past):
        self.past = past

    async def read(self):
        return list(self.past)


def _query(destination: str, start: str, end: str) -> dict:
    return {
        "destination": destination,
        "dates": {"start": start, "end": end},
        "travelers": 2,
        "budgetUSD": 1200,
        "preferences": {"comfort": 0.2, "cost": 0.6, "speed": 0.2},
    }


def test_refresh_keeps_trips_inside_horizon():
    past = [
        _query("Past", "2025-09-01", "2025-09-03"),
        _query("Rome", "2025-09-25", "2025-09-28"),
        _query("Far", "2025-12-01", "2025-12-05"),
        {"destination": "No dates", "travelers": 1, "budgetUSD": 100},
    ]
    cache = SuggestionCache(_StaticHistory(past), today=lambda: TODAY)

    count = asyncio.run(cache.refresh())

    assert count == 1
    items = cache.snapshot()
    assert items[0]["destination"] == "Rome"
    assert items[0]["reasoning"] == SCHEDULED_REASONING
    assert "cost" in items[0]["plan"]["summary"]
    assert len(items[0]["plan"]["hotelIdeas"]) == 3


def test_refresh_replaces_previous_items():
    history = _StaticHistory([_query("Rome", "2025-09-25", "2025-09-28")])
    cache = SuggestionCache(history, today=lambda: TODAY)
    asyncio.run(cache.refresh())

    history.past = []
    asyncio.run(cache.refresh())

    assert cache.snapshot() == []


def test_snapshot_is_a_copy():
    cache = SuggestionCache(_StaticHistory([_query("Rome", "2025-09-25", "2025-09-28")]), today=lambda: TODAY)
    asyncio.run(cache.refresh())

    cache.snapshot().clear()

    assert len(cache.snapshot()) == 1


def test_trip_starting_today_is_excluded():
    cache = SuggestionCache(_StaticHistory([_query("Today", "2025-09-20", "2025-09-21")]), today=lambda: TODAY)
    assert asyncio.run(cache.refresh()) == 0


def test_trip_starting_tomorrow_is_included():
    cache = SuggestionCache(_StaticHistory([_query("Tomorrow", "2025-09-21", "2025-09-22")]), today=lambda: TODAY)
    assert asyncio.run(cache.refresh()) == 1


def test_register_adds_interval_job():
    cache = SuggestionCache(_StaticHistory([]), refresh_seconds=90, today=lambda: TODAY)
    scheduler = AsyncIOScheduler()

    cache.register(scheduler)
    cache.register(scheduler)

    jobs = scheduler.get_jobs()
    assert [job.id for job in jobs] == [JOB_ID]
    assert jobs[0].trigger.interval == timedelta(seconds=90)
    assert jobs[0].func == cache.refresh
