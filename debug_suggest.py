# debug_suggest.py
import json
import sys

from trip_suggester.config import Settings
from trip_suggester.llm import PlanGenerator
from trip_suggester.planner import build_reasoning, mock_plan
from trip_suggester.validation import validate_suggest_request


def main():
    payload = {
        "destination": "Bangkok, Thailand",
        "dates": {"start": "2025-10-01", "end": "2025-10-06"},
        "travelers": 2,
        "budgetUSD": 1800,
        "preferences": {"comfort": 0.2, "cost": 0.5, "speed": 0.3},
    }

    result = validate_suggest_request(payload)
    if not result.valid:
        print(json.dumps(result.details(), indent=2))
        sys.exit(1)

    settings = Settings.from_env()
    if settings.mock_llm or not settings.openai_api_key:
        plan = mock_plan(result.request)
    else:
        # Call the hosted generator directly, bypassing the API
        plan = PlanGenerator.from_settings(settings).generate(result.request).plan

    body = plan.model_dump(mode="json", by_alias=True)
    body["reasoning"] = build_reasoning(result.request.preferences)
    print("➡️ Generator returned:\n")
    print(json.dumps(body, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
