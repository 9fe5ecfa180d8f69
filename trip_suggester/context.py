"""Request context: client hints plus defaults drawn from recent history."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol

from trip_suggester.schemas import RequestContext

_US_LIKE = re.compile(r"\b(us|usa)\b|united states", re.IGNORECASE)


class PastQuerySource(Protocol):
    async def read(self) -> List[Dict[str, Any]]: ...


@dataclass
class RequestSignals:
    geo_hint: Optional[str] = None
    accept_language: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RequestSignals":
        return cls(
            geo_hint=headers.get("x-geo"),
            accept_language=headers.get("accept-language"),
            user_agent=headers.get("user-agent"),
        )


def infer_geolocation(signals: RequestSignals) -> str | None:
    return signals.geo_hint or None


def infer_language(signals: RequestSignals) -> str | None:
    if not isinstance(signals.accept_language, str):
        return None
    return signals.accept_language.split(",")[0].strip() or None


def infer_device_hints(signals: RequestSignals) -> str | None:
    return signals.user_agent or None


def is_us_like(geo: str | None) -> bool:
    return bool(geo) and bool(_US_LIKE.search(geo))


def default_travelers(past: List[Dict[str, Any]], geo: str | None) -> int:
    last = past[-1] if past else {}
    travelers = last.get("travelers")
    if isinstance(travelers, int) and not isinstance(travelers, bool) and travelers >= 1:
        return travelers
    if isinstance(travelers, float) and travelers.is_integer() and travelers >= 1:
        return int(travelers)
    return 2 if is_us_like(geo) else 1


def default_budget_usd(past: List[Dict[str, Any]], geo: str | None) -> float:
    last = past[-1] if past else {}
    budget = last.get("budgetUSD")
    if isinstance(budget, (int, float)) and not isinstance(budget, bool) and math.isfinite(budget) and budget > 0:
        return budget
    return 2000 if is_us_like(geo) else 1000


def derive_defaults(past: List[Dict[str, Any]], geo: str | None) -> Dict[str, Any]:
    """Defaults taken from the most recent query; absent fields are left out."""
    last = past[-1] if past else {}
    dates = last.get("dates") if isinstance(last.get("dates"), dict) else {}
    defaults: Dict[str, Any] = {
        "destination": last.get("destination"),
        "start": dates.get("start", last.get("start")),
        "end": dates.get("end", last.get("end")),
    }
    defaults = {key: value for key, value in defaults.items() if value is not None}
    defaults["travelers"] = default_travelers(past, geo)
    defaults["budgetUSD"] = default_budget_usd(past, geo)
    return defaults


async def collect_context(signals: RequestSignals, history: PastQuerySource) -> RequestContext:
    geo = infer_geolocation(signals)
    past = await history.read()
    return RequestContext(
        geo=geo,
        language=infer_language(signals),
        device=infer_device_hints(signals),
        past_queries=past,
        defaults=derive_defaults(past, geo),
    )


def merge_defaults(defaults: Mapping[str, Any], raw: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Lay ``defaults`` underneath the caller payload; caller keys always win.

    A caller date given only in nested form still overrides the flat history
    default for that bound, since flat keys take precedence during validation.
    """
    raw = dict(raw or {})
    merged = dict(defaults)
    nested = raw.get("dates") if isinstance(raw.get("dates"), Mapping) else {}
    for bound in ("start", "end"):
        if nested.get(bound) is not None and raw.get(bound) is None:
            merged.pop(bound, None)
    merged.update(raw)
    return merged
