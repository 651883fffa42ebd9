from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

from ..ab_testing.experiments import assign_variant, get_variant_config
from ..errors import CatalogUnavailable
from ..intent.builder import build_intent_vector
from ..intent.models import IntentVector
from .catalog import CatalogStore, fetch_snapshot, parse_items
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .models import (
    ItemKind,
    RecommendationItem,
    RecommendationRequest,
    RecommendationResponse,
    RecommendationResult,
    RecommendationStatus,
    UpsellItem,
)
from .ranking import rank_items, resolve_status
from .scoring import score_catalog
from .upsell import food_mood, pick_upsell

logger = logging.getLogger(__name__)


def _compute(
    venue_id: str,
    intent: IntentVector,
    catalog: CatalogStore,
    config: EngineConfig,
) -> RecommendationResult:
    # --- One snapshot per computation ---
    try:
        rows = fetch_snapshot(catalog, venue_id, config.catalog_timeout)
    except CatalogUnavailable as exc:
        logger.warning("Catalog unavailable, returning empty result: %s", exc)
        return RecommendationResult(
            picks=[], upsell=None, status=RecommendationStatus.empty_catalog, intent=intent,
        )

    items, skipped = parse_items(rows)
    foods = [i for i in items if i.kind is ItemKind.food]

    # --- Scoring & ranking ---
    scored, anomalies = score_catalog(foods, intent, config)
    skipped.extend(anomalies)
    picks = rank_items(scored, config)
    status = resolve_status(scored, picks)

    # --- Drink pairing for the top pick ---
    upsell = None
    if picks:
        upsell = pick_upsell(items, food_mood(picks, intent), intent, config)

    return RecommendationResult(
        picks=picks, upsell=upsell, status=status, intent=intent, skipped_items=skipped,
    )


def recommend(
    venue_id: str,
    answers: Iterable[Any],
    catalog: CatalogStore,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    variant: str | None = None,
) -> RecommendationResult:
    """Compute recommendations for one guest at one venue.

    Malformed answers raise IntentValidationError before anything else runs.
    Any other unexpected error is re-raised when ``config.debug`` is set and
    otherwise degrades to an empty result.
    """
    start_time = time.time()
    intent = build_intent_vector(answers)

    try:
        result = _compute(venue_id, intent, catalog, config)
    except Exception:
        if config.debug:
            raise
        logger.exception("Recommendation failed for venue %s, degrading to empty result", venue_id)
        result = RecommendationResult(
            picks=[], upsell=None, status=RecommendationStatus.empty_catalog, intent=intent,
        )

    result.variant = variant
    result.response_time_ms = round((time.time() - start_time) * 1000, 1)
    return result


def get_recommendations(
    venue_id: str,
    request: RecommendationRequest,
    catalog: CatalogStore,
    base_config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> RecommendationResult:
    """Resolve the session's experiment variant, then recommend with its weights."""
    variant = assign_variant(request.session_id)
    config = get_variant_config(variant, base_config)
    return recommend(venue_id, request.answers, catalog, config, variant=variant)


def build_response(result: RecommendationResult) -> RecommendationResponse:
    items = [
        RecommendationItem(
            id=p.item.id,
            name=p.item.name,
            price=float(p.item.price),
            reason=p.reason or "",
            tags=sorted(p.item.tags),
            score=round(p.score, 4),
        )
        for p in result.picks
    ]
    upsell = None
    if result.upsell is not None:
        upsell = UpsellItem(
            id=result.upsell.item.id,
            name=result.upsell.item.name,
            price=float(result.upsell.item.price),
            reason=result.upsell.reason or "",
        )
    return RecommendationResponse(
        recommendations=items,
        upsell=upsell,
        status=result.status,
        variant=result.variant,
        needs_confirmation=result.intent.needs_confirmation,
        unresolved_constraints=list(result.intent.unresolved_constraints),
    )
