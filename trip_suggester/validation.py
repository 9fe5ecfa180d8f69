"""Validation and normalization of raw suggestion payloads."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Tuple

from trip_suggester.schemas import DEFAULT_PREFERENCES, FieldError, SuggestRequest

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_PREFERENCE_AXES: Tuple[str, ...] = ("comfort", "cost", "speed")


@dataclass
class ValidationResult:
    valid: bool
    errors: List[FieldError] = field(default_factory=list)
    value: Dict[str, Any] = field(default_factory=dict)
    request: SuggestRequest | None = None

    def details(self) -> List[Dict[str, str]]:
        return [err.model_dump() for err in self.errors]


def resolve_dates(raw: Mapping[str, Any]) -> Tuple[Any, Any]:
    """Return ``(start, end)`` from a raw payload.

    Flat ``start``/``end`` keys win over the nested ``dates`` mapping. A key is
    only considered present when its value is not ``None``; each bound is
    resolved independently, so a flat ``start`` can pair with a nested ``end``.
    """
    nested = raw.get("dates")
    if not isinstance(nested, Mapping):
        nested = {}
    start = raw.get("start")
    if start is None:
        start = nested.get("start")
    end = raw.get("end")
    if end is None:
        end = nested.get("end")
    return start, end


def validate_suggest_request(raw: Mapping[str, Any] | None) -> ValidationResult:
    """Check every field of ``raw`` and collect all violations.

    ``value`` always holds whatever fields parsed on their own, even when the
    request as a whole is invalid. ``request`` is only set when no errors were
    collected.
    """
    raw = raw if isinstance(raw, Mapping) else {}
    errors: List[FieldError] = []
    out: Dict[str, Any] = {}

    destination = raw.get("destination")
    if isinstance(destination, str) and destination.strip():
        out["destination"] = destination.strip()
    else:
        errors.append(FieldError(field="destination", message="destination is required"))

    start, end = resolve_dates(raw)
    start_dt = parse_iso_date(start)
    end_dt = parse_iso_date(end)
    if start_dt is None:
        errors.append(FieldError(field="dates.start", message="start must be YYYY-MM-DD"))
    if end_dt is None:
        errors.append(FieldError(field="dates.end", message="end must be YYYY-MM-DD"))
    if start_dt is not None and end_dt is not None and end_dt < start_dt:
        errors.append(FieldError(field="dates", message="end must be on/after start"))
    out["dates"] = {"start": start, "end": end}

    travelers = to_number(raw.get("travelers"))
    if not math.isfinite(travelers) or not travelers.is_integer() or travelers < 1:
        errors.append(FieldError(field="travelers", message="travelers must be an integer >= 1"))
    else:
        out["travelers"] = int(travelers)

    budget = to_number(raw.get("budgetUSD"))
    if not math.isfinite(budget) or budget <= 0:
        errors.append(FieldError(field="budgetUSD", message="budgetUSD must be a number > 0"))
    else:
        out["budgetUSD"] = int(budget) if budget.is_integer() else budget

    prefs_in = raw.get("preferences")
    if not isinstance(prefs_in, Mapping):
        prefs_in = {}
    preferences: Dict[str, float] = {}
    for axis in _PREFERENCE_AXES:
        if axis not in prefs_in:
            preferences[axis] = DEFAULT_PREFERENCES[axis]
            continue
        # an explicit null weighs the axis at zero
        num = 0.0 if prefs_in[axis] is None else to_number(prefs_in[axis])
        if not math.isfinite(num) or num < 0 or num > 1:
            errors.append(
                FieldError(field=f"preferences.{axis}", message=f"{axis} must be between 0 and 1")
            )
            preferences[axis] = DEFAULT_PREFERENCES[axis]
        else:
            preferences[axis] = num
    out["preferences"] = preferences

    if errors:
        return ValidationResult(valid=False, errors=errors, value=out)
    return ValidationResult(
        valid=True,
        errors=[],
        value=out,
        request=SuggestRequest.model_validate(out),
    )


def parse_iso_date(value: Any) -> date | None:
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        # matches the pattern but is not a calendar day, e.g. 2025-02-30
        return None


def to_number(value: Any) -> float:
    """Coerce ``value`` to a float, returning NaN when it is not numeric."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            # ints beyond float range, e.g. a 400-digit JSON number
            return math.nan
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan
