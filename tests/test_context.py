import asyncio

from trip_suggester.context import (
    RequestSignals,
    collect_context,
    default_budget_usd,
    default_travelers,
    derive_defaults,
    infer_language,
    merge_defaults,
)
from trip_suggester.history import HistoryStore


class _StaticHistory:
    def __init__(self, past):
        self.past = past

    async def read(self):
        return list(self.past)


_PAST = [
    {"destination": "Oslo", "dates": {"start": "2025-01-01", "end": "2025-01-03"}, "travelers": 1, "budgetUSD": 700},
    {"destination": "Tokyo", "dates": {"start": "2025-12-01", "end": "2025-12-05"}, "travelers": 4, "budgetUSD": 1500},
]


def test_defaults_come_from_last_entry():
    defaults = derive_defaults(_PAST, None)
    assert defaults == {
        "destination": "Tokyo",
        "start": "2025-12-01",
        "end": "2025-12-05",
        "travelers": 4,
        "budgetUSD": 1500,
    }


def test_travelers_and_budget_fall_back_by_geo():
    assert default_travelers([], None) == 1
    assert default_budget_usd([], None) == 1000
    assert default_travelers([], "US-CA") == 2
    assert default_budget_usd([], "San Francisco, USA") == 2000
    assert default_travelers([], "Austin, United States") == 2
    # "us" inside a word is not a country hint
    assert default_travelers([], "Belarus") == 1


def test_invalid_history_values_use_geo_tier():
    past = [{"destination": "X", "travelers": 0, "budgetUSD": "cheap"}]
    assert default_travelers(past, "US") == 2
    assert default_budget_usd(past, None) == 1000


def test_empty_history_leaves_destination_and_dates_unset():
    defaults = derive_defaults([], None)
    assert "destination" not in defaults
    assert "start" not in defaults
    assert defaults["travelers"] == 1


def test_language_uses_first_tag():
    assert infer_language(RequestSignals(accept_language="fr-CA,fr;q=0.9,en;q=0.8")) == "fr-CA"
    assert infer_language(RequestSignals()) is None


def test_collect_context_reads_history_and_headers():
    signals = RequestSignals.from_headers(
        {"x-geo": "US-NY", "accept-language": "en-US,en", "user-agent": "pytest-agent"}
    )
    ctx = asyncio.run(collect_context(signals, _StaticHistory(_PAST)))

    assert ctx.geo == "US-NY"
    assert ctx.language == "en-US"
    assert ctx.device == "pytest-agent"
    assert [q["destination"] for q in ctx.past_queries] == ["Oslo", "Tokyo"]
    assert ctx.defaults["destination"] == "Tokyo"


def test_collect_context_tolerates_corrupt_history(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")

    ctx = asyncio.run(collect_context(RequestSignals(), HistoryStore(path)))

    assert ctx.past_queries == []
    assert ctx.defaults == {"travelers": 1, "budgetUSD": 1000}


def test_caller_fields_override_defaults():
    defaults = derive_defaults(_PAST, None)
    merged = merge_defaults(defaults, {"destination": "Rome", "travelers": 2})

    assert merged["destination"] == "Rome"
    assert merged["travelers"] == 2
    assert merged["budgetUSD"] == 1500
    assert merged["start"] == "2025-12-01"


def test_nested_caller_dates_beat_flat_history_dates():
    defaults = derive_defaults(_PAST, None)
    merged = merge_defaults(defaults, {"dates": {"start": "2026-02-01", "end": "2026-02-03"}})

    assert "start" not in merged
    assert "end" not in merged
    assert merged["dates"] == {"start": "2026-02-01", "end": "2026-02-03"}
