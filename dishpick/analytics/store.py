from __future__ import annotations

import threading
import time
from typing import Any

EVENTS = {
    "RECOMMENDATIONS_SHOWN": "recommendations_shown",
    "QUESTION_ANSWERED": "question_answered",
    "UPSELL_SHOWN": "upsell_shown",
    "ITEM_CLICKED": "rec_clicked",
    "FEEDBACK": "feedback",
}

_lock = threading.Lock()
_events: list[dict[str, Any]] = []
_rec_results: list[dict[str, Any]] = []


def record_event(
    event_type: str,
    data: dict[str, Any],
    venue_id: str | None = None,
    session_id: str | None = None,
) -> None:
    with _lock:
        _events.append({
            "type": event_type,
            "timestamp": time.time(),
            "venue_id": venue_id,
            "session_id": session_id,
            **data,
        })


def record_rec_results(
    session_id: str,
    venue_id: str,
    rows: list[tuple[str, int, float]],
) -> None:
    """Store ranked ``(item_id, rank, score)`` rows for one session."""
    now = time.time()
    with _lock:
        for item_id, rank, score in rows:
            _rec_results.append({
                "session_id": session_id,
                "venue_id": venue_id,
                "item_id": item_id,
                "rank": rank,
                "score": score,
                "timestamp": now,
            })


def get_events() -> list[dict[str, Any]]:
    with _lock:
        return list(_events)


def get_rec_results(session_id: str | None = None) -> list[dict[str, Any]]:
    with _lock:
        if session_id is None:
            return list(_rec_results)
        return [r for r in _rec_results if r["session_id"] == session_id]


def clear_events() -> None:
    with _lock:
        _events.clear()
        _rec_results.clear()
