"""
Drink pairing for the guest's top dish.

A smaller application of the food scorer: popularity baseline, a bonus when
the drink's pairing-intent tags fit the food mood, a smaller bonus for the
mood's drink flavor, and the push bonus. The mood to drink mapping lives in
``MOOD_DRINK_PAIRINGS`` so each entry can be tested on its own.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from ..intent.models import IntentVector
from ..taxonomy.tags import tags_in
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .models import ItemKind, MenuItem, ScoredItem
from .ranking import ranking_key
from .scoring import combine_score, exclusion_reason

logger = logging.getLogger(__name__)

PAIRINGS_VERSION = "2025.1"
DEFAULT_PAIRING_REASON = "Pairs perfectly with your meal."


@dataclass(frozen=True)
class PairingRule:
    intent_tags: tuple[str, ...]
    flavor_tag: str | None
    reason: str
    # Overrides EngineConfig.upsell_intent_bonus for this mood.
    intent_bonus: float | None = None


MOOD_DRINK_PAIRINGS: dict[str, PairingRule] = {
    "mood_comfort": PairingRule(
        ("pairing_unwind",), "drink_flavor_dry", "Perfect with comfort food."
    ),
    "mood_light": PairingRule(
        ("pairing_refresh",), "drink_flavor_fruity", "A light and refreshing match."
    ),
    "mood_treat": PairingRule(
        ("pairing_treat", "pairing_celebrate"), "drink_flavor_sweet", "An indulgent pairing."
    ),
    "mood_warm": PairingRule(
        ("pairing_unwind",), None, "A cozy companion.", intent_bonus=8.0
    ),
    "mood_protein": PairingRule(
        ("pairing_energize",), None, "Great with protein.", intent_bonus=8.0
    ),
}


def food_mood(picks: Sequence[ScoredItem], intent: IntentVector) -> str | None:
    """Mood of the top pick, preferring the guest's own mood when the pick carries it."""
    if picks:
        tags = picks[0].item.tags
        if intent.mood and intent.mood in tags:
            return intent.mood
        for tag in tags_in("mood"):
            if tag in tags:
                return tag
    return intent.mood


def score_drink(
    drink: MenuItem,
    rule: PairingRule | None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    position: int = 0,
) -> ScoredItem:
    bonuses: list[float] = []
    matched: list[tuple[str, str]] = []
    if rule is not None:
        intent_hit = next((t for t in rule.intent_tags if t in drink.tags), None)
        if intent_hit:
            bonuses.append(
                rule.intent_bonus if rule.intent_bonus is not None else config.upsell_intent_bonus
            )
            matched.append(("pairing", intent_hit))
        if rule.flavor_tag and rule.flavor_tag in drink.tags:
            bonuses.append(config.upsell_flavor_bonus)
            matched.append(("drink_flavor", rule.flavor_tag))

    score = combine_score(
        drink.popularity,
        bonuses,
        drink.push,
        config.upsell_popularity_weight,
        config.upsell_push_bonus,
    )
    return ScoredItem(item=drink, position=position, score=score, matched=tuple(matched))


def pick_upsell(
    items: Sequence[MenuItem],
    mood: str | None,
    intent: IntentVector,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> ScoredItem | None:
    """Return the single best drink for *mood*, or ``None`` when no drink can be served."""
    rule = MOOD_DRINK_PAIRINGS.get(mood) if mood else None
    scored: list[ScoredItem] = []
    for position, item in enumerate(items):
        if item.kind is not ItemKind.drink:
            continue
        if not math.isfinite(item.popularity):
            logger.warning("Skipping drink %r with non-finite popularity", item.id)
            continue
        if exclusion_reason(item, intent, require_diet=False) is not None:
            continue
        scored.append(score_drink(item, rule, config, position))

    if not scored:
        return None

    best = min(scored, key=ranking_key)
    reason = rule.reason if rule else DEFAULT_PAIRING_REASON
    return ScoredItem(
        item=best.item,
        position=best.position,
        score=best.score,
        matched=best.matched,
        reason=reason,
    )
