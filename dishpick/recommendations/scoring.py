"""
Per-item scoring.

``score_item`` is a pure function of (item, intent, config): the exclusion
pass runs first and short-circuits; otherwise the score is a popularity
baseline plus one bonus per matched preference axis plus the operator push
bonus. ``combine_score`` is the shared arithmetic, also used for drinks.
"""
from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Sequence

from ..errors import ItemScoringAnomaly
from ..intent.models import IntentVector
from ..taxonomy.tags import known_tags
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .models import MenuItem, ScoredItem

logger = logging.getLogger(__name__)


def combine_score(
    popularity: float,
    bonuses: Iterable[float],
    pushed: bool,
    popularity_weight: float,
    push_bonus: float,
) -> float:
    score = popularity * popularity_weight + sum(bonuses)
    if pushed:
        score += push_bonus
    return max(0.0, score)


def _mentions(item: MenuItem, terms: frozenset[str]) -> str | None:
    if not terms:
        return None
    text = " ".join(
        [item.name, item.description or "", *(t.replace("_", " ") for t in item.tags)]
    ).lower()
    for term in sorted(terms):
        if re.search(rf"\b{re.escape(term)}", text):
            return term
    return None


def exclusion_reason(
    item: MenuItem,
    intent: IntentVector,
    require_diet: bool = True,
) -> str | None:
    """Return why *item* is excluded for *intent*, or ``None`` if it may be served.

    With ``require_diet=False`` (drinks) the guest's diet tags are not
    required; availability, allergens and unconfirmed constraints still apply.
    """
    if item.unavailable:
        return "unavailable"
    if item.out_of_stock:
        return "out_of_stock"
    allergens = item.tags & intent.excluded_allergen_tags
    if allergens:
        return f"contains {', '.join(sorted(allergens))}"
    missing = intent.required_diet_tags - item.tags if require_diet else frozenset()
    if missing:
        return f"not {', '.join(sorted(missing))}"
    term = _mentions(item, intent.unresolved_terms())
    if term:
        return f"mentions unconfirmed constraint {term!r}"
    return None


def match_axes(item: MenuItem, intent: IntentVector) -> tuple[tuple[str, str], ...]:
    """First matching tag per answered axis; extra matches on one axis don't count."""
    recognised = known_tags(item.tags)
    matched: list[tuple[str, str]] = []
    for axis, preferred in intent.axis_preferences().items():
        for tag in preferred:
            if tag in recognised:
                matched.append((axis, tag))
                break
    return tuple(matched)


def score_item(
    item: MenuItem,
    intent: IntentVector,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    position: int = 0,
) -> ScoredItem:
    if not math.isfinite(item.popularity):
        raise ItemScoringAnomaly(item.id, f"non-finite popularity {item.popularity!r}")

    if exclusion_reason(item, intent) is not None:
        return ScoredItem(item=item, position=position, excluded=True)

    matched = match_axes(item, intent)
    score = combine_score(
        item.popularity,
        (config.bonus_for(axis) for axis, _ in matched),
        item.push,
        config.popularity_weight,
        config.push_bonus,
    )
    return ScoredItem(item=item, position=position, score=score, matched=matched)


def score_catalog(
    items: Sequence[MenuItem],
    intent: IntentVector,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> tuple[list[ScoredItem], list[str]]:
    """Score every item; anomalous items are logged and skipped.

    Returns the scored items and the ids that were skipped.
    """
    scored: list[ScoredItem] = []
    skipped: list[str] = []
    for position, item in enumerate(items):
        try:
            scored.append(score_item(item, intent, config, position))
        except ItemScoringAnomaly as exc:
            logger.warning("Skipping item during scoring: %s", exc)
            skipped.append(exc.item_id)
    return scored, skipped
