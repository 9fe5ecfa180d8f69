from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

Axis = Literal["comfort", "cost", "speed"]

# ------- Request models -------
class Dates(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start: str
    end: str

class Preferences(BaseModel):
    model_config = ConfigDict(extra="forbid")

    comfort: float = Field(0.33, ge=0, le=1)
    cost: float = Field(0.33, ge=0, le=1)
    speed: float = Field(0.34, ge=0, le=1)

DEFAULT_PREFERENCES: Dict[str, float] = {"comfort": 0.33, "cost": 0.33, "speed": 0.34}

class SuggestRequest(BaseModel):
    """A request after validation; every field satisfies its invariant."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    destination: str = Field(..., min_length=1)
    dates: Dates
    travelers: int = Field(..., ge=1)
    budget_usd: Union[int, float] = Field(..., gt=0, alias="budgetUSD")
    preferences: Preferences = Field(default_factory=Preferences)

class FieldError(BaseModel):
    field: str
    message: str

# ------- Response models -------
class HotelIdea(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    area: str
    est_price_per_night_usd: Union[int, float] = Field(..., alias="estPricePerNightUSD")

class FlightOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    frm: str = Field(..., alias="from")
    to: str
    airline: str
    price_usd: int = Field(..., alias="priceUSD")

class FlightResult(BaseModel):
    notes: str
    options: List[FlightOption] = Field(default_factory=list)

class PlanBody(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    summary: str
    hotel_ideas: List[HotelIdea] = Field(..., max_length=3, alias="hotelIdeas")
    flight_notes: str = Field(..., alias="flightNotes")
    must_do: List[str] = Field(..., max_length=5, alias="mustDo")

class SuggestPlan(SuggestRequest):
    """Shape every generated plan must satisfy, local or upstream."""
    plan: PlanBody

class CostRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    min_usd: int = Field(..., alias="minUSD")
    max_usd: int = Field(..., alias="maxUSD")

# ------- Context / history -------
class ContextMeta(BaseModel):
    geo: Optional[str] = None
    language: Optional[str] = None
    device: Optional[str] = None

class RequestContext(ContextMeta):
    past_queries: List[Dict[str, Any]] = Field(default_factory=list)
    defaults: Dict[str, Any] = Field(default_factory=dict)

    def meta(self) -> ContextMeta:
        return ContextMeta(geo=self.geo, language=self.language, device=self.device)

class HistoryEntry(BaseModel):
    request: Dict[str, Any]
    context: ContextMeta = Field(default_factory=ContextMeta)
    response: Dict[str, Any]
    at: str
