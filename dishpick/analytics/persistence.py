"""
Best-effort recording of a finished recommendation.

Nothing here may change or delay what the guest sees: every failure is
logged and swallowed.
"""
from __future__ import annotations

import logging
from concurrent.futures import TimeoutError as FuturesTimeout

from ..concurrency import run_with_timeout
from ..errors import PersistenceFailure
from ..recommendations.models import RecommendationResult
from .store import EVENTS, record_event, record_rec_results

logger = logging.getLogger(__name__)


def _write(venue_id: str, session_id: str, result: RecommendationResult) -> None:
    rows = [(p.item.id, rank, round(p.score, 4)) for rank, p in enumerate(result.picks, start=1)]
    if result.upsell is not None:
        # Rank 0 marks the drink upsell.
        rows.append((result.upsell.item.id, 0, round(result.upsell.score, 4)))
    if rows:
        record_rec_results(session_id, venue_id, rows)

    for answer in result.intent.raw_answers:
        record_event(
            EVENTS["QUESTION_ANSWERED"],
            {
                "question": answer.question,
                "answer": list(answer.answer) if isinstance(answer.answer, tuple) else answer.answer,
            },
            venue_id=venue_id,
            session_id=session_id,
        )

    record_event(
        EVENTS["RECOMMENDATIONS_SHOWN"],
        {
            "status": result.status.value,
            "variant": result.variant,
            "mood": result.intent.mood,
            "flavors": list(result.intent.flavors),
            "has_constraints": bool(
                result.intent.required_diet_tags or result.intent.excluded_allergen_tags
            ),
            "needs_confirmation": result.intent.needs_confirmation,
            "item_ids": [p.item.id for p in result.picks],
            "results_returned": len(result.picks),
            "skipped_items": len(result.skipped_items),
            "response_time_ms": result.response_time_ms,
        },
        venue_id=venue_id,
        session_id=session_id,
    )

    if result.upsell is not None:
        record_event(
            EVENTS["UPSELL_SHOWN"],
            {"item_id": result.upsell.item.id},
            venue_id=venue_id,
            session_id=session_id,
        )


def _write_with_timeout(
    venue_id: str,
    session_id: str,
    result: RecommendationResult,
    timeout: float,
) -> None:
    try:
        run_with_timeout(_write, timeout, venue_id, session_id, result)
    except FuturesTimeout as exc:
        raise PersistenceFailure(f"write timed out after {timeout}s") from exc
    except Exception as exc:
        raise PersistenceFailure(str(exc)) from exc


def persist_recommendations(
    venue_id: str,
    session_id: str,
    result: RecommendationResult,
    timeout: float = 2.0,
) -> bool:
    """Write *result* for the session. Returns False (after logging) on any failure."""
    try:
        _write_with_timeout(venue_id, session_id, result, timeout)
    except PersistenceFailure:
        logger.warning(
            "Failed to persist recommendations for session %s", session_id, exc_info=True
        )
        return False
    return True
