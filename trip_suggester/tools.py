"""Preference-driven hotel and flight helpers."""
from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Tuple

from trip_suggester.schemas import Axis, FlightOption, FlightResult, HotelIdea, Preferences

_HOTEL_DIVISORS: Dict[str, Tuple[int, int, int]] = {
    "comfort": (8, 10, 12),
    "cost": (12, 14, 16),
    "speed": (10, 12, 14),
}

_HOTELS: Tuple[Tuple[str, str], ...] = (
    ("Central Stay", "Downtown"),
    ("Cozy Corner", "Old Town"),
    ("Transit Hub Inn", "Near Station"),
)

_FLIGHT_NOTES: Dict[str, str] = {
    "speed": "Aim for direct flights or minimal layovers to save time.",
    "comfort": "Consider premium seating or lay-flat options for comfort.",
    "cost": "Consider budget airlines and flexible dates to save money.",
}

_AIRLINES: Dict[str, Tuple[str, int]] = {
    "comfort": ("ComfortAir", 700),
    "speed": ("SpeedyAir", 500),
    "cost": ("BudgetAir", 300),
}


def main_preference(prefs: Preferences | Mapping[str, Any]) -> Axis:
    """Return the dominant axis; ties resolve cost, then comfort, then speed."""
    if isinstance(prefs, Preferences):
        comfort, cost, speed = prefs.comfort, prefs.cost, prefs.speed
    else:
        comfort, cost, speed = prefs["comfort"], prefs["cost"], prefs["speed"]
    if cost >= comfort and cost >= speed:
        return "cost"
    if comfort >= speed:
        return "comfort"
    return "speed"


def round_half_up(value: float) -> int:
    # round() would bank 12.5 down to 12
    return int(math.floor(value + 0.5))


def hotel_lookup(destination: str, budget_usd: float, prefs: Preferences | Mapping[str, Any]) -> List[HotelIdea]:
    divisors = _HOTEL_DIVISORS[main_preference(prefs)]
    return [
        HotelIdea(name=name, area=area, est_price_per_night_usd=round_half_up(budget_usd / divisor))
        for (name, area), divisor in zip(_HOTELS, divisors)
    ]


def flight_search(destination: str, prefs: Preferences | Mapping[str, Any]) -> FlightResult:
    main = main_preference(prefs)
    airline, price = _AIRLINES[main]
    option = FlightOption(frm="Home City", to=destination, airline=airline, price_usd=price)
    return FlightResult(notes=_FLIGHT_NOTES[main], options=[option])
