from __future__ import annotations

import math

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .ab_testing.experiments import (
    EXPERIMENTS,
    get_assignments,
    get_variant_stats,
    record_variant_feedback,
    record_variant_request,
)
from .analytics.aggregator import compute_analytics
from .analytics.feedback import get_feedback, record_feedback
from .analytics.persistence import persist_recommendations
from .analytics.store import EVENTS, get_events, record_event
from .errors import IntentValidationError
from .logging_config import configure_logging
from .recommendations.catalog import CatalogStore, CsvCatalogStore
from .recommendations.config import (
    DEFAULT_ENGINE_CONFIG,
    DEFAULT_RATE_LIMIT_CONFIG,
    EngineConfig,
)
from .recommendations.models import (
    ClickRequest,
    FeedbackRequest,
    FeedbackResponse,
    RecommendationRequest,
    RecommendationResponse,
)
from .recommendations.retrieval import build_response, get_recommendations
from .taxonomy.tags import taxonomy_summary
from .throttling.rate_limiter import SlidingWindowRateLimiter


def enforce_rate_limit(request: Request) -> None:
    limiter: SlidingWindowRateLimiter = request.app.state.rate_limiter
    client = request.client.host if request.client else "anonymous"
    if not limiter.allow(client):
        retry_after = max(1, math.ceil(limiter.reset_in(client)))
        raise HTTPException(
            status_code=429,
            detail="Too many recommendation requests, please wait a moment",
            headers={"Retry-After": str(retry_after)},
        )


def create_app(
    catalog: CatalogStore | None = None,
    rate_limiter: SlidingWindowRateLimiter | None = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> FastAPI:
    configure_logging()

    app = FastAPI(title="Menu Recommendation API", version="1.0.0")
    app.state.catalog = catalog if catalog is not None else CsvCatalogStore()
    if rate_limiter is None:
        rate_limiter = SlidingWindowRateLimiter(
            DEFAULT_RATE_LIMIT_CONFIG.limit, DEFAULT_RATE_LIMIT_CONFIG.window_seconds,
        )
    app.state.rate_limiter = rate_limiter
    app.state.config = config

    @app.exception_handler(IntentValidationError)
    def _intent_validation_error(request: Request, exc: IntentValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc), "question": exc.question},
        )

    # ── Public endpoints ─────────────────────────────────────────────────

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/taxonomy")
    def taxonomy() -> dict:
        return taxonomy_summary()

    # ── Guest endpoints ──────────────────────────────────────────────────

    @app.post(
        "/venues/{venue_id}/recommendations",
        response_model=RecommendationResponse,
        dependencies=[Depends(enforce_rate_limit)],
    )
    def recommendations(
        venue_id: str,
        body: RecommendationRequest,
        request: Request,
        background_tasks: BackgroundTasks,
    ) -> RecommendationResponse:
        engine_config: EngineConfig = request.app.state.config
        result = get_recommendations(venue_id, body, request.app.state.catalog, engine_config)

        if result.variant:
            record_variant_request(result.variant)

        # Recorded after the response is sent; failures never reach the guest.
        background_tasks.add_task(
            persist_recommendations,
            venue_id,
            body.session_id,
            result,
            engine_config.persistence_timeout,
        )
        return build_response(result)

    @app.post("/venues/{venue_id}/clicks")
    def click(venue_id: str, body: ClickRequest) -> dict[str, str]:
        record_event(
            EVENTS["ITEM_CLICKED"],
            {"item_id": body.item_id, "rank": body.rank},
            venue_id=venue_id,
            session_id=body.session_id,
        )
        return {"status": "recorded"}

    @app.post("/feedback", response_model=FeedbackResponse)
    def feedback(body: FeedbackRequest) -> FeedbackResponse:
        record_feedback(body.session_id, body.item_id, body.is_positive, body.variant)
        record_event(
            EVENTS["FEEDBACK"],
            {"item_id": body.item_id, "is_positive": body.is_positive, "variant": body.variant},
            session_id=body.session_id,
        )
        if body.variant:
            record_variant_feedback(body.variant, body.is_positive)
        return FeedbackResponse(status="recorded", total_feedback=len(get_feedback()))

    # ── Reporting endpoints ──────────────────────────────────────────────

    @app.get("/analytics")
    def analytics(venue_id: str | None = None) -> dict:
        return compute_analytics(get_events(), venue_id=venue_id)

    @app.get("/feedback/stats")
    def feedback_stats() -> dict:
        fb = get_feedback()
        positive = sum(1 for f in fb if f["is_positive"])
        negative = len(fb) - positive
        return {
            "total": len(fb),
            "positive": positive,
            "negative": negative,
            "satisfaction_rate": round(positive / len(fb) * 100, 1) if fb else 0.0,
        }

    @app.get("/ab-test/results")
    def ab_test_results() -> dict:
        experiment = EXPERIMENTS.get("scoring_weights", {})
        return {
            "experiment": {
                "name": experiment.get("name"),
                "description": experiment.get("description"),
                "active": experiment.get("active"),
                "winner_margin": experiment.get("winner_margin"),
                "variants": {
                    v: spec["label"] for v, spec in experiment.get("variants", {}).items()
                },
            },
            "total_assignments": len(get_assignments()),
            "variant_stats": get_variant_stats(),
        }

    return app


app = create_app()
