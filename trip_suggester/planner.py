"""Offline plan synthesis and rough cost estimation (no network, deterministic)."""
from __future__ import annotations

import math
import re
from datetime import date
from typing import List, Tuple

from trip_suggester.schemas import (
    ContextMeta,
    CostRange,
    Dates,
    PlanBody,
    Preferences,
    SuggestPlan,
    SuggestRequest,
)
from trip_suggester.tools import flight_search, hotel_lookup, main_preference, round_half_up

MUST_DO: Tuple[str, ...] = ("City highlights", "Local market", "Neighborhood food tour")

# (pattern, nightly base per traveler) checked in order; first match wins
_COST_TIERS: List[Tuple[re.Pattern[str], int]] = [
    (re.compile(r"paris|london|new york"), 200),
    (re.compile(r"bangkok|thailand|vietnam"), 50),
]
_DEFAULT_BASE = 100


def synthesize(
    destination: str,
    dates: Dates,
    travelers: int,
    budget_usd: float,
    preferences: Preferences,
) -> PlanBody:
    main = main_preference(preferences)
    return PlanBody(
        summary=f"A {main}-focused plan for {destination} ({dates.start}→{dates.end}) for {travelers}.",
        hotel_ideas=hotel_lookup(destination, budget_usd, preferences),
        flight_notes=flight_search(destination, preferences).notes,
        must_do=list(MUST_DO),
    )


def mock_plan(req: SuggestRequest) -> SuggestPlan:
    """Build a full plan for ``req`` without calling the hosted model.

    Also used for scheduled suggestions; the output shape is the same one
    upstream plans are validated against.
    """
    body = synthesize(req.destination, req.dates, req.travelers, req.budget_usd, req.preferences)
    return SuggestPlan(
        destination=req.destination,
        dates=req.dates.model_copy(),
        travelers=req.travelers,
        budget_usd=req.budget_usd,
        preferences=req.preferences.model_copy(),
        plan=body,
    )


def build_reasoning(prefs: Preferences, ctx: ContextMeta | None = None) -> str:
    ctx = ctx or ContextMeta()
    main = main_preference(prefs)
    return (
        f"Focused on {main} given preferences (comfort {prefs.comfort:g}, cost {prefs.cost:g}, "
        f"speed {prefs.speed:g}) and context geo {ctx.geo or 'unknown'}, "
        f"language {ctx.language or 'unknown'}, device {ctx.device or 'unknown'}"
    )


def estimate_cost(destination: str, travelers: int, days: int) -> CostRange:
    dest = (destination or "").lower()
    base = _DEFAULT_BASE
    for pattern, tier_base in _COST_TIERS:
        if pattern.search(dest):
            base = tier_base
            break
    try:
        total = float(base * max(days, 1) * max(travelers, 1))
    except OverflowError:
        total = math.inf
    if not math.isfinite(total * 1.2):
        raise ValueError(f"cost estimate out of range for {travelers} traveler(s) over {days} day(s)")
    return CostRange(min_usd=round_half_up(total * 0.8), max_usd=round_half_up(total * 1.2))


def trip_days(start: date, end: date) -> int:
    """Inclusive number of calendar days between ``start`` and ``end``."""
    return (end - start).days + 1
