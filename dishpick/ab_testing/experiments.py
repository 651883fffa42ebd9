"""
A/B Testing Framework
=====================

This module manages the **scoring-weights experiment** that tunes the menu
recommendation engine.

What the experiment tests
-------------------------
Each dish is scored from its **popularity**, its **preference-axis matches**
(mood, flavor, portion, price) and the operator **push** flag.  The variants
change how those are weighted and whether picks are spread across menu
categories:

* **Variant A – "Default" (control)**
  The engine's configured weights, no category cap.

* **Variant B – "Variety" (treatment)**
  Half the popularity weight and at most 2 picks per menu category, so
  less-ordered dishes and other sections of the menu get a chance.

How variant assignment works
----------------------------
The variant is derived from a hash of the guest's **session id**, so the
same session always lands in the same variant and repeated requests give
the same ranking.  The split is roughly 50/50 across sessions.

How feedback determines a winner
--------------------------------
Guests can give **thumbs-up / thumbs-down** on a recommended dish.  Each
piece of feedback is tagged with the variant the session was in.  We compute
a **satisfaction rate** per variant:

    satisfaction = positive_feedback / total_feedback × 100

Once every variant has feedback, the variant with the best rate is the
**winner** if it leads the runner-up by the experiment's `winner_margin`
(5 percentage points for the scoring-weights experiment).
"""

from __future__ import annotations

import dataclasses
import hashlib
import os
import threading
import time
from collections import Counter, defaultdict
from typing import Any

from ..recommendations.config import DEFAULT_ENGINE_CONFIG, EngineConfig

# ---------------------------------------------------------------------------
# Experiment definition
# ---------------------------------------------------------------------------

EXPERIMENTS: dict[str, dict] = {
    "scoring_weights": {
        "name": "Scoring Weight Optimization",
        "description": "Test if lighter popularity weight and category variety improve satisfaction",
        "variants": {
            "A": {
                "label": "Default (control)",
                "overrides": {},
                "scales": {},
            },
            "B": {
                "label": "Variety (treatment)",
                "overrides": {"diversity_max_per_category": 2},
                "scales": {"popularity_weight": 0.5},
            },
        },
        "winner_margin": 5.0,
        "active": os.getenv("DISHPICK_AB_ENABLED", "1").strip().lower() not in ("0", "false", "no"),
    },
}

_lock = threading.Lock()

# ---------------------------------------------------------------------------
# Variant assignment
# ---------------------------------------------------------------------------

_assignments: dict[str, dict[str, Any]] = {}


def assign_variant(session_id: str, experiment_id: str = "scoring_weights") -> str:
    """Return the A/B variant for *session_id*.

    Inactive or unknown experiments always give the control variant "A".
    The first assignment per session is logged.
    """
    experiment = EXPERIMENTS.get(experiment_id)
    if not experiment or not experiment["active"]:
        return "A"

    variants = sorted(experiment["variants"])
    digest = hashlib.sha256(f"{experiment_id}:{session_id}".encode()).hexdigest()
    variant = variants[int(digest[:8], 16) % len(variants)]

    with _lock:
        if session_id not in _assignments:
            _assignments[session_id] = {
                "experiment_id": experiment_id,
                "variant": variant,
                "timestamp": time.time(),
            }
    return variant


def get_variant_config(
    variant: str,
    base: EngineConfig = DEFAULT_ENGINE_CONFIG,
    experiment_id: str = "scoring_weights",
) -> EngineConfig:
    """Return *base* with the variant's overrides and weight scales applied."""
    experiment = EXPERIMENTS.get(experiment_id, {})
    variants = experiment.get("variants", {})
    spec = variants.get(variant, variants.get("A", {}))
    changes: dict[str, Any] = dict(spec.get("overrides", {}))
    for name, factor in spec.get("scales", {}).items():
        changes[name] = getattr(base, name) * factor
    return dataclasses.replace(base, **changes) if changes else base


def get_assignments() -> list[dict[str, Any]]:
    with _lock:
        return list(_assignments.values())


def clear_assignments() -> None:
    with _lock:
        _assignments.clear()


# ---------------------------------------------------------------------------
# Per-variant stats (requests + feedback)
# ---------------------------------------------------------------------------

# (experiment_id, variant) -> requests / positive / negative
_counts: defaultdict[tuple[str, str], Counter[str]] = defaultdict(Counter)


def _is_variant(experiment_id: str, variant: str) -> bool:
    return variant in EXPERIMENTS.get(experiment_id, {}).get("variants", {})


def record_variant_request(variant: str, experiment_id: str = "scoring_weights") -> None:
    """Count one served recommendation for *variant*. Unknown variants are ignored."""
    if not _is_variant(experiment_id, variant):
        return
    with _lock:
        _counts[(experiment_id, variant)]["requests"] += 1


def record_variant_feedback(
    variant: str,
    is_positive: bool,
    experiment_id: str = "scoring_weights",
) -> None:
    if not _is_variant(experiment_id, variant):
        return
    with _lock:
        _counts[(experiment_id, variant)]["positive" if is_positive else "negative"] += 1


def _summarise(label: str, counts: Counter[str]) -> dict[str, Any]:
    positive, negative = counts["positive"], counts["negative"]
    total = positive + negative
    return {
        "label": label,
        "requests": counts["requests"],
        "feedback_positive": positive,
        "feedback_negative": negative,
        "total_feedback": total,
        "satisfaction_rate": round(positive / total * 100, 1) if total else 0.0,
    }


def _pick_winner(summaries: dict[str, dict[str, Any]], margin: float) -> str | None:
    if len(summaries) < 2 or any(s["total_feedback"] == 0 for s in summaries.values()):
        return None
    best, runner_up = sorted(
        summaries, key=lambda v: summaries[v]["satisfaction_rate"], reverse=True,
    )[:2]
    lead = summaries[best]["satisfaction_rate"] - summaries[runner_up]["satisfaction_rate"]
    return best if lead >= margin else None


def get_variant_stats(experiment_id: str = "scoring_weights") -> dict[str, Any]:
    """Return one summary per variant of the experiment, plus ``"winner"``.

    ``winner`` stays ``None`` until every variant has feedback and the best
    satisfaction rate leads the runner-up by the experiment's margin.
    """
    experiment = EXPERIMENTS.get(experiment_id, {})
    variants = experiment.get("variants", {})
    with _lock:
        snapshot = {v: Counter(_counts.get((experiment_id, v), Counter())) for v in variants}

    summaries = {v: _summarise(variants[v]["label"], snapshot[v]) for v in sorted(variants)}
    result: dict[str, Any] = dict(summaries)
    result["winner"] = _pick_winner(summaries, experiment.get("winner_margin", 5.0))
    return result


def clear_variant_stats() -> None:
    with _lock:
        _counts.clear()
