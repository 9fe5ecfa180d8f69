# trip_suggester/llm.py
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from trip_suggester.config import Settings, get_logger
from trip_suggester.schemas import SuggestPlan, SuggestRequest

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are a practical travel-planning assistant. Be concise, realistic, no bookings."

USER_TEMPLATE = """Destination: {destination}
Dates: {start} to {end}
Travelers: {travelers}
BudgetUSD: {budget}
Preferences: comfort {comfort}, cost {cost}, speed {speed}
Return a short plan following the JSON schema."""

FALLBACK_TEMPLATE = """Return STRICT JSON only. Keys: destination, dates{{start,end}}, travelers, budgetUSD,
preferences{{comfort,cost,speed}}, plan{{summary,hotelIdeas[{{name,area,estPricePerNightUSD}}],flightNotes,mustDo[]}}.
At most 3 hotelIdeas and 5 mustDo entries.

Destination: {destination}
Dates: {start} to {end}
Travelers: {travelers}
BudgetUSD: {budget}
Preferences: comfort {comfort}, cost {cost}, speed {speed}
"""

def _object(properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": properties,
        "required": list(properties),
    }

# Mirrors SuggestPlan; strict mode needs every property listed as required.
PLAN_JSON_SCHEMA: Dict[str, Any] = _object({
    "destination": {"type": "string"},
    "dates": _object({"start": {"type": "string"}, "end": {"type": "string"}}),
    "travelers": {"type": "integer"},
    "budgetUSD": {"type": "number"},
    "preferences": _object({
        "comfort": {"type": "number"},
        "cost": {"type": "number"},
        "speed": {"type": "number"},
    }),
    "plan": _object({
        "summary": {"type": "string"},
        "hotelIdeas": {
            "type": "array",
            "maxItems": 3,
            "items": _object({
                "name": {"type": "string"},
                "area": {"type": "string"},
                "estPricePerNightUSD": {"type": "number"},
            }),
        },
        "flightNotes": {"type": "string"},
        "mustDo": {"type": "array", "maxItems": 5, "items": {"type": "string"}},
    }),
})


class UpstreamGenerationError(RuntimeError):
    """The hosted model could not produce a usable plan."""


@dataclass(frozen=True)
class ShapeMismatch:
    decoder: str
    reason: str


@dataclass
class GenerationResult:
    plan: SuggestPlan
    usage: Any
    model: str


# ---------- response decoders ----------
# Each decoder handles exactly one response layout and either returns the
# embedded JSON value or a ShapeMismatch. They are tried in DECODERS order.

def _decode_responses_output(payload: Mapping[str, Any]) -> Any:
    output = payload.get("output")
    if not isinstance(output, list):
        return ShapeMismatch("responses.output", "no output list")
    for item in output:
        parts = item.get("content") if isinstance(item, Mapping) else None
        for part in parts or []:
            if not isinstance(part, Mapping) or not isinstance(part.get("text"), str):
                continue
            if part.get("type") == "output_text":
                return json.loads(part["text"])
            if part.get("type") == "text":
                try:
                    return json.loads(part["text"])
                except ValueError:
                    continue
    return ShapeMismatch("responses.output", "no text content part")


def _decode_output_text(payload: Mapping[str, Any]) -> Any:
    text = payload.get("output_text")
    if not isinstance(text, str):
        return ShapeMismatch("output_text", "missing output_text")
    return json.loads(text)


def _decode_chat_choice(payload: Mapping[str, Any]) -> Any:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ShapeMismatch("chat.choices", "no choices")
    message = choices[0].get("message") if isinstance(choices[0], Mapping) else None
    content = message.get("content") if isinstance(message, Mapping) else None
    if not isinstance(content, str):
        return ShapeMismatch("chat.choices", "no message content")
    return json.loads(content)


DECODERS: Tuple[Tuple[str, Callable[[Mapping[str, Any]], Any]], ...] = (
    ("responses.output", _decode_responses_output),
    ("output_text", _decode_output_text),
    ("chat.choices", _decode_chat_choice),
)


def _as_payload(resp: Any) -> Dict[str, Any]:
    if isinstance(resp, Mapping):
        return dict(resp)
    if hasattr(resp, "model_dump"):
        payload = resp.model_dump()
        # output_text is a computed property on Responses objects, not a field
        text = getattr(resp, "output_text", None)
        if isinstance(text, str) and text:
            payload.setdefault("output_text", text)
        return payload
    raise UpstreamGenerationError(f"Unsupported response type {type(resp).__name__}")


def extract_json(resp: Any) -> Dict[str, Any]:
    payload = _as_payload(resp)
    mismatches: List[ShapeMismatch] = []
    for name, decoder in DECODERS:
        try:
            value = decoder(payload)
        except ValueError as exc:
            raise UpstreamGenerationError(f"Failed to extract JSON from model response ({name}): {exc}") from exc
        if isinstance(value, ShapeMismatch):
            mismatches.append(value)
            continue
        if not isinstance(value, dict):
            raise UpstreamGenerationError(f"Model response ({name}) was not a JSON object")
        return value
    logger.debug("No decoder matched: %s", "; ".join(f"{m.decoder}: {m.reason}" for m in mismatches))
    raise UpstreamGenerationError("Failed to extract JSON from model response.")


def extract_usage(resp: Any) -> Optional[Dict[str, Any]]:
    payload = _as_payload(resp)
    usage = payload.get("usage")
    if not isinstance(usage, Mapping):
        nested = payload.get("response")
        usage = nested.get("usage") if isinstance(nested, Mapping) else None
    if not isinstance(usage, Mapping):
        return None
    return {
        "input_tokens": usage.get("input_tokens", usage.get("prompt_tokens")),
        "output_tokens": usage.get("output_tokens", usage.get("completion_tokens")),
        "total_tokens": usage.get("total_tokens"),
    }


def relaxed_plan(data: Mapping[str, Any], req: SuggestRequest) -> SuggestPlan:
    """Coerce loosely shaped fallback output onto the plan contract.

    Missing request fields are back-filled from ``req``, unknown top-level keys
    are dropped and over-long lists are trimmed. The plan body itself must
    still be present.
    """
    base = req.model_dump(mode="json", by_alias=True)
    merged = {key: data.get(key, base[key]) for key in base}
    plan = data.get("plan")
    if not isinstance(plan, Mapping):
        raise UpstreamGenerationError("Fallback response is missing the plan object")
    plan = {key: plan[key] for key in ("summary", "hotelIdeas", "flightNotes", "mustDo") if key in plan}
    if isinstance(plan.get("hotelIdeas"), list):
        plan["hotelIdeas"] = plan["hotelIdeas"][:3]
    if isinstance(plan.get("mustDo"), list):
        plan["mustDo"] = plan["mustDo"][:5]
    merged["plan"] = plan
    try:
        return SuggestPlan.model_validate(merged)
    except ValidationError as exc:
        raise UpstreamGenerationError(f"Fallback plan failed validation: {exc.error_count()} error(s)") from exc


class PlanGenerator:
    """Hosted-model plan generation with a relaxed chat-completions fallback."""

    def __init__(self, client: Any = None, *, model: str = "gpt-5-mini", fallback_model: str = "gpt-4o-mini"):
        self.client = client
        self.model = model
        self.fallback_model = fallback_model

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlanGenerator":
        client = None
        if settings.openai_api_key:
            client = OpenAI(api_key=settings.openai_api_key)
        elif not settings.mock_llm:
            logger.warning("OPENAI_API_KEY not set; /suggest will fail unless TRIP_SUGGESTER_MOCK_LLM=1")
        return cls(client, model=settings.model, fallback_model=settings.fallback_model)

    def generate(self, req: SuggestRequest) -> GenerationResult:
        try:
            return self._generate_strict(req)
        except (OpenAIError, UpstreamGenerationError, ValueError) as exc:
            logger.warning("Primary plan generation failed (%s); trying fallback", exc)
            primary_error = exc
        try:
            return self._generate_fallback(req)
        except (OpenAIError, UpstreamGenerationError, ValueError) as exc:
            logger.error("Fallback error: %s", exc)
            raise UpstreamGenerationError(str(primary_error)) from exc

    def _require_client(self) -> Any:
        if self.client is None:
            raise UpstreamGenerationError("OpenAI client not initialized")
        return self.client

    def _generate_strict(self, req: SuggestRequest) -> GenerationResult:
        client = self._require_client()
        logger.info("Invoking LLM model %s for %s", self.model, req.destination)
        resp = client.responses.create(
            model=self.model,
            input=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": _format_prompt(USER_TEMPLATE, req)},
            ],
            text={
                "format": {
                    "type": "json_schema",
                    "name": "TravelSuggestion",
                    "schema": PLAN_JSON_SCHEMA,
                    "strict": True,
                }
            },
        )
        data = extract_json(resp)
        plan = SuggestPlan.model_validate(data)
        payload = _as_payload(resp)
        return GenerationResult(plan=plan, usage=extract_usage(resp), model=payload.get("model") or "responses")

    def _generate_fallback(self, req: SuggestRequest) -> GenerationResult:
        client = self._require_client()
        logger.info("Invoking fallback LLM model %s for %s", self.fallback_model, req.destination)
        resp = client.chat.completions.create(
            model=self.fallback_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": _format_prompt(FALLBACK_TEMPLATE, req)},
            ],
            response_format={"type": "json_object"},
        )
        data = extract_json(resp)
        plan = relaxed_plan(data, req)
        payload = _as_payload(resp)
        return GenerationResult(plan=plan, usage=extract_usage(resp), model=payload.get("model") or "chat.completions")


def _format_prompt(template: str, req: SuggestRequest) -> str:
    return template.format(
        destination=req.destination,
        start=req.dates.start,
        end=req.dates.end,
        travelers=req.travelers,
        budget=req.budget_usd,
        comfort=req.preferences.comfort,
        cost=req.preferences.cost,
        speed=req.preferences.speed,
    )
