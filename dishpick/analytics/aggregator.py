from __future__ import annotations

from collections import Counter
from typing import Any

from ..taxonomy.tags import label_for
from .feedback import get_feedback
from .store import EVENTS


def compute_analytics(
    events: list[dict[str, Any]],
    venue_id: str | None = None,
) -> dict[str, Any]:
    if venue_id is not None:
        events = [e for e in events if e.get("venue_id") == venue_id]

    shown = [e for e in events if e["type"] == EVENTS["RECOMMENDATIONS_SHOWN"]]
    upsells = [e for e in events if e["type"] == EVENTS["UPSELL_SHOWN"]]
    clicks = [e for e in events if e["type"] == EVENTS["ITEM_CLICKED"]]
    total = len(shown)

    # Average response time
    times = [s["response_time_ms"] for s in shown if "response_time_ms" in s]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Outcome breakdown
    status_counts = dict(Counter(s.get("status", "unknown") for s in shown))

    # Top moods
    mood_counter: Counter[str] = Counter()
    for s in shown:
        if s.get("mood"):
            mood_counter[s["mood"]] += 1
    top_moods = [
        {"tag": t, "label": label_for(t), "count": c} for t, c in mood_counter.most_common(5)
    ]

    # Most recommended items
    item_counter: Counter[str] = Counter()
    for s in shown:
        for item_id in s.get("item_ids", []) or []:
            item_counter[item_id] += 1
    top_items = [{"id": i, "count": c} for i, c in item_counter.most_common(10)]

    constrained = sum(1 for s in shown if s.get("has_constraints"))
    confirmations = sum(1 for s in shown if s.get("needs_confirmation"))

    # Feedback summary
    feedback = get_feedback()
    positive = sum(1 for f in feedback if f["is_positive"])
    negative = len(feedback) - positive

    return {
        "total_sessions": total,
        "avg_response_time_ms": avg_time,
        "status_breakdown": status_counts,
        "top_moods": top_moods,
        "top_items": top_items,
        "dietary_constraint_rate": round(constrained / total * 100, 1) if total else 0.0,
        "needs_confirmation_count": confirmations,
        "upsell_attach_rate": round(len(upsells) / total * 100, 1) if total else 0.0,
        "click_through_rate": round(len(clicks) / total * 100, 1) if total else 0.0,
        "feedback_summary": {
            "total": len(feedback),
            "positive": positive,
            "negative": negative,
            "satisfaction_rate": round(positive / len(feedback) * 100, 1) if feedback else 0.0,
        },
    }
