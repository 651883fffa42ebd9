from __future__ import annotations

from ..intent.models import AXES
from ..taxonomy.tags import label_for
from .models import ScoredItem

GENERIC_REASON = "A popular choice with guests here."

REASON_TEMPLATES: dict[tuple[str, str], str] = {
    ("mood", "mood_comfort"): "Comfort food at its best, just what you're craving.",
    ("mood", "mood_light"): "Light and fresh, right for the mood you're in.",
    ("mood", "mood_protein"): "Protein-packed to keep you going.",
    ("mood", "mood_warm"): "Warm and cozy, made for the mood you're in.",
    ("mood", "mood_treat"): "A sweet treat worth indulging in.",
    ("flavor", "flavor_umami"): "Rich umami depth for your savoury cravings.",
    ("flavor", "flavor_spicy"): "Comes with the kick you asked for.",
    ("flavor", "flavor_sweet"): "Sweet notes, just the way you like them.",
    ("flavor", "flavor_tangy"): "Bright, tangy flavours like you picked.",
    ("flavor", "flavor_smoky"): "Smoky depth you'll love.",
    ("portion", "portion_bite"): "Perfectly bite-sized for a light appetite.",
    ("portion", "portion_standard"): "A satisfying regular portion.",
    ("portion", "portion_hearty"): "A hearty portion for a big appetite.",
}

AXIS_TEMPLATES: dict[str, str] = {
    "mood": "A great match for your {label} mood.",
    "flavor": "Matches your taste for {label} flavours.",
    "portion": "Sized right for you: {label}.",
    "price": "Fits your {label} budget.",
}


def render_reason(axis: str, tag: str) -> str:
    template = REASON_TEMPLATES.get((axis, tag))
    if template:
        return template
    fallback = AXIS_TEMPLATES.get(axis)
    if fallback is None:
        return GENERIC_REASON
    return fallback.format(label=label_for(tag))


def reason_for(scored: ScoredItem) -> str:
    """Explain a pick by its first matched axis in priority order
    (mood, flavor, portion, price), whatever the axis weights are.
    """
    if not scored.matched:
        return GENERIC_REASON
    axis, tag = min(
        scored.matched,
        key=lambda pair: AXES.index(pair[0]) if pair[0] in AXES else len(AXES),
    )
    return render_reason(axis, tag)
