from datetime import date

import pytest

from trip_suggester.planner import build_reasoning, estimate_cost, mock_plan, synthesize, trip_days
from trip_suggester.schemas import ContextMeta, Dates, Preferences, SuggestPlan
from trip_suggester.validation import validate_suggest_request


def _request(**overrides):
    payload = {
        "destination": "Bangkok, Thailand",
        "start": "2025-10-01",
        "end": "2025-10-06",
        "travelers": 2,
        "budgetUSD": 1800,
    }
    payload.update(overrides)
    result = validate_suggest_request(payload)
    assert result.valid, result.errors
    return result.request


def test_mock_plan_shape():
    plan = mock_plan(_request())

    assert plan.destination == "Bangkok, Thailand"
    assert len(plan.plan.hotel_ideas) == 3
    assert len(plan.plan.must_do) <= 5
    assert plan.plan.must_do == ["City highlights", "Local market", "Neighborhood food tour"]
    assert all(isinstance(h.est_price_per_night_usd, int) for h in plan.plan.hotel_ideas)


def test_mock_plan_satisfies_generator_contract():
    dumped = mock_plan(_request()).model_dump(mode="json", by_alias=True)

    assert set(dumped) == {"destination", "dates", "travelers", "budgetUSD", "preferences", "plan"}
    assert set(dumped["plan"]) == {"summary", "hotelIdeas", "flightNotes", "mustDo"}
    assert SuggestPlan.model_validate(dumped) == mock_plan(_request())


def test_summary_mentions_dominant_preference_and_trip():
    plan = mock_plan(_request(preferences={"comfort": 0.1, "cost": 0.8, "speed": 0.1}))

    summary = plan.plan.summary
    assert "cost" in summary
    assert "Bangkok, Thailand" in summary
    assert "2025-10-01" in summary and "2025-10-06" in summary
    assert summary == "A cost-focused plan for Bangkok, Thailand (2025-10-01→2025-10-06) for 2."


def test_synthesis_is_deterministic():
    req = _request(preferences={"comfort": 0.7, "cost": 0.1, "speed": 0.2})
    first = mock_plan(req).model_dump_json(by_alias=True)
    second = mock_plan(req).model_dump_json(by_alias=True)
    assert first == second


def test_comfort_hotels_cost_more_than_cost_hotels():
    dates = Dates(start="2025-01-01", end="2025-01-02")
    comfort = synthesize("Rome", dates, 2, 2400, Preferences(comfort=0.8, cost=0.1, speed=0.1))
    budget = synthesize("Rome", dates, 2, 2400, Preferences(comfort=0.1, cost=0.8, speed=0.1))

    for lux, cheap in zip(comfort.hotel_ideas, budget.hotel_ideas):
        assert lux.est_price_per_night_usd > cheap.est_price_per_night_usd


def test_flight_notes_follow_preference():
    dates = Dates(start="2025-01-01", end="2025-01-02")
    body = synthesize("Rome", dates, 1, 900, Preferences(comfort=0.9, cost=0.05, speed=0.05))
    assert body.flight_notes == "Consider premium seating or lay-flat options for comfort."


def test_estimate_cost_expensive_city():
    cost = estimate_cost("Paris", 2, 5)
    assert cost.model_dump(by_alias=True) == {"minUSD": 1600, "maxUSD": 2400}


def test_estimate_cost_tiers_are_case_insensitive():
    assert estimate_cost("NEW YORK city", 1, 1).model_dump(by_alias=True) == {"minUSD": 160, "maxUSD": 240}
    assert estimate_cost("Hanoi, Vietnam", 1, 10).model_dump(by_alias=True) == {"minUSD": 400, "maxUSD": 600}
    assert estimate_cost("Lima", 3, 2).model_dump(by_alias=True) == {"minUSD": 480, "maxUSD": 720}


def test_estimate_cost_clamps_days_and_travelers():
    assert estimate_cost("Lima", 0, 0) == estimate_cost("Lima", 1, 1)


def test_estimate_cost_rejects_totals_beyond_float_range():
    with pytest.raises(ValueError):
        estimate_cost("Paris", 1e308, 5)
    with pytest.raises(ValueError):
        estimate_cost("Lima", 10**400, 1)


def test_trip_days_is_inclusive():
    assert trip_days(date(2025, 10, 1), date(2025, 10, 6)) == 6
    assert trip_days(date(2025, 10, 1), date(2025, 10, 1)) == 1


def test_reasoning_lists_context():
    text = build_reasoning(Preferences(comfort=0.2, cost=0.5, speed=0.3), ContextMeta(geo="US-NY"))
    assert text == (
        "Focused on cost given preferences (comfort 0.2, cost 0.5, speed 0.3) and context "
        "geo US-NY, language unknown, device unknown"
    )
