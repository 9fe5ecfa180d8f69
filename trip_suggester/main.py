from __future__ import annotations

import asyncio
import math
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import Body, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trip_suggester.config import Settings, get_logger
from trip_suggester.context import RequestSignals, collect_context, merge_defaults
from trip_suggester.history import HistoryStore
from trip_suggester.llm import PlanGenerator, UpstreamGenerationError
from trip_suggester.metrics import MetricsSink
from trip_suggester.planner import build_reasoning, estimate_cost, mock_plan, trip_days
from trip_suggester.schemas import HistoryEntry
from trip_suggester.suggestions import SuggestionCache
from trip_suggester.validation import parse_iso_date, to_number, validate_suggest_request

logger = get_logger(__name__)


def create_app(settings: Settings | None = None, generator: PlanGenerator | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    history = HistoryStore(settings.history_file)
    metrics = MetricsSink(settings.metrics_file)
    suggestions = SuggestionCache(
        history,
        horizon_days=settings.suggestion_horizon_days,
        refresh_seconds=settings.suggestion_refresh_seconds,
    )
    generator = generator or PlanGenerator.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        history.init()
        scheduler = None
        if settings.scheduler_enabled:
            scheduler = AsyncIOScheduler()
            suggestions.register(scheduler)
            scheduler.start()
            logger.info("Suggestion refresh scheduled every %ss", settings.suggestion_refresh_seconds)
        app.state.scheduler = scheduler
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)

    app = FastAPI(title="Trip Suggester API", lifespan=lifespan)
    app.state.settings = settings
    app.state.history = history
    app.state.metrics = metrics
    app.state.suggestions = suggestions
    app.state.generator = generator

    # Local UIs and notebooks call the API directly; scope with
    # TRIP_SUGGESTER_ALLOWED_ORIGINS when something narrower is wanted.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True, "mock": settings.mock_llm}

    @app.post("/suggest")
    async def suggest(request: Request, payload: Dict[str, Any] | None = Body(None)) -> Any:
        """Validate the payload on top of history defaults and return a plan."""
        started = time.perf_counter()
        ctx = await collect_context(RequestSignals.from_headers(request.headers), history)
        merged = merge_defaults(ctx.defaults, payload)
        result = validate_suggest_request(merged)
        if not result.valid or result.request is None:
            logger.info("Rejected suggest request: %s", ", ".join(e.field for e in result.errors))
            return JSONResponse(status_code=400, content={"error": "Invalid request", "details": result.details()})

        req = result.request
        meta = ctx.meta()
        reasoning = build_reasoning(req.preferences, meta)

        if settings.mock_llm:
            plan, usage, model = mock_plan(req), None, "mock"
        else:
            try:
                generated = await asyncio.to_thread(generator.generate, req)
            except UpstreamGenerationError as exc:
                logger.error("Plan generation failed: %s", exc)
                await metrics.record(0, None, "error", ok=False, error=str(exc))
                return JSONResponse(status_code=400, content={"error": str(exc)})
            plan, usage, model = generated.plan, generated.usage, generated.model

        body = plan.model_dump(mode="json", by_alias=True)
        body["reasoning"] = reasoning
        entry = HistoryEntry(
            request=req.model_dump(mode="json", by_alias=True),
            context=meta,
            response=body,
            at=datetime.now(timezone.utc).isoformat(),
        )
        await history.append(entry)
        await metrics.record(int((time.perf_counter() - started) * 1000), usage, model, ok=True)
        return body

    @app.get("/estimate")
    async def estimate(
        destination: str = "",
        start: str | None = None,
        end: str | None = None,
        travelers: str | None = None,
    ) -> Any:
        count = to_number(travelers)
        start_dt = parse_iso_date(start)
        end_dt = parse_iso_date(end)
        if (
            not destination.strip()
            or start_dt is None
            or end_dt is None
            or not math.isfinite(count)
            or count < 1
            or end_dt < start_dt
        ):
            return JSONResponse(status_code=400, content={"error": "Invalid query"})
        travelers_count = int(count) if count.is_integer() else count
        try:
            cost = estimate_cost(destination, travelers_count, trip_days(start_dt, end_dt))
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Invalid query"})
        return cost.model_dump(by_alias=True)

    @app.get("/suggestions")
    async def list_suggestions() -> List[Dict[str, Any]]:
        return suggestions.snapshot()

    @app.get("/history")
    async def list_history() -> List[Dict[str, Any]]:
        return await history.entries()

    return app


app = create_app()
