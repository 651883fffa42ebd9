from __future__ import annotations

import dataclasses
from collections import Counter
from collections.abc import Sequence

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .models import RecommendationStatus, ScoredItem
from .reasons import reason_for


def ranking_key(scored: ScoredItem) -> tuple:
    """Score desc, popularity desc, then catalog position and id for stability."""
    return (-scored.score, -scored.item.popularity, scored.position, scored.item.id)


def _select(
    candidates: list[ScoredItem],
    top_k: int,
    max_per_category: int | None,
) -> list[ScoredItem]:
    if max_per_category is None:
        return candidates[:top_k]

    picks: list[ScoredItem] = []
    deferred: list[ScoredItem] = []
    per_category: Counter[str] = Counter()
    for candidate in candidates:
        if len(picks) == top_k:
            break
        category = candidate.item.category.strip().lower()
        if per_category[category] >= max_per_category:
            deferred.append(candidate)
            continue
        per_category[category] += 1
        picks.append(candidate)

    # Relax the cap rather than under-fill the list.
    for candidate in deferred:
        if len(picks) == top_k:
            break
        picks.append(candidate)

    return sorted(picks, key=ranking_key)


def rank_items(
    scored: Sequence[ScoredItem],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> list[ScoredItem]:
    """Drop excluded items, order, take the top K and attach a reason to each."""
    candidates = sorted((s for s in scored if not s.excluded), key=ranking_key)
    picks = _select(candidates, config.top_k, config.diversity_max_per_category)
    return [dataclasses.replace(p, reason=reason_for(p)) for p in picks]


def resolve_status(
    scored: Sequence[ScoredItem],
    picks: Sequence[ScoredItem],
) -> RecommendationStatus:
    """Tell an empty menu apart from a menu the guest's constraints ruled out.

    Items that are unavailable or out of stock count as "nothing on offer",
    not as exclusions caused by the guest.
    """
    if picks:
        return RecommendationStatus.ok
    if not any(s.item.is_orderable for s in scored):
        return RecommendationStatus.empty_catalog
    return RecommendationStatus.all_excluded
