"""
Closed tag vocabulary for menu items.

Every tag belongs to exactly one category, identified by its prefix.
``diet_*`` tags mean an item *satisfies* a diet; ``allergy_*`` tags mean an
item *contains* the allergen. Tags outside the vocabulary are tolerated on
items: they are ignored for scoring and shown with a derived label.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

TAXONOMY_VERSION = "2025.1"


@dataclass(frozen=True)
class TagCategory:
    name: str
    label: str
    prefix: str
    tags: tuple[str, ...]


TAG_CATEGORIES: dict[str, TagCategory] = {
    "mood": TagCategory(
        "mood", "Mood", "mood_",
        ("mood_comfort", "mood_light", "mood_protein", "mood_warm", "mood_treat"),
    ),
    "flavor": TagCategory(
        "flavor", "Flavor", "flavor_",
        ("flavor_umami", "flavor_spicy", "flavor_sweet", "flavor_tangy", "flavor_smoky"),
    ),
    "portion": TagCategory(
        "portion", "Portion", "portion_",
        ("portion_bite", "portion_standard", "portion_hearty"),
    ),
    "price": TagCategory(
        "price", "Price", "price_",
        ("price_1", "price_2", "price_3"),
    ),
    "diet": TagCategory(
        "diet", "Dietary", "diet_",
        (
            "diet_vegetarian",
            "diet_vegan",
            "diet_gluten_free",
            "diet_dairy_free",
            "diet_halal",
            "diet_no_pork",
        ),
    ),
    "allergy": TagCategory(
        "allergy", "Contains allergen", "allergy_",
        (
            "allergy_nuts",
            "allergy_peanuts",
            "allergy_gluten",
            "allergy_dairy",
            "allergy_egg",
            "allergy_shellfish",
            "allergy_fish",
            "allergy_soy",
            "allergy_sesame",
        ),
    ),
    "drink_flavor": TagCategory(
        "drink_flavor", "Drink flavor", "drink_flavor_",
        (
            "drink_flavor_dry",
            "drink_flavor_fruity",
            "drink_flavor_sweet",
            "drink_flavor_bitter",
            "drink_flavor_herbal",
        ),
    ),
    "pairing": TagCategory(
        "pairing", "Pairing intent", "pairing_",
        (
            "pairing_unwind",
            "pairing_refresh",
            "pairing_treat",
            "pairing_celebrate",
            "pairing_energize",
        ),
    ),
    "temperature": TagCategory(
        "temperature", "Temperature", "temp_",
        ("temp_hot", "temp_chilled", "temp_room"),
    ),
    "protein": TagCategory(
        "protein", "Protein", "protein_",
        ("protein_poultry", "protein_red_meat", "protein_pork", "protein_seafood", "protein_plant"),
    ),
    "prep": TagCategory(
        "prep", "Preparation", "prep_",
        ("prep_grilled", "prep_fried_crispy", "prep_raw_fresh"),
    ),
}

TAG_LABELS: dict[str, str] = {
    # Mood
    "mood_comfort": "Comfort / Indulgent",
    "mood_light": "Fresh / Light",
    "mood_protein": "High-protein",
    "mood_warm": "Warm / Cozy",
    "mood_treat": "Sweet Treat",
    # Flavor
    "flavor_umami": "Savoury / Umami",
    "flavor_spicy": "Spicy",
    "flavor_sweet": "Sweet",
    "flavor_tangy": "Tangy / Sour",
    "flavor_smoky": "Smoky",
    # Portion
    "portion_bite": "Just a bite",
    "portion_standard": "Regular",
    "portion_hearty": "Hearty",
    # Price
    "price_1": "€ Value",
    "price_2": "€€ Mid-range",
    "price_3": "€€€ Premium",
    # Diet
    "diet_vegetarian": "Vegetarian",
    "diet_vegan": "Vegan",
    "diet_gluten_free": "Gluten-free",
    "diet_dairy_free": "Dairy-free",
    "diet_halal": "Halal",
    "diet_no_pork": "No pork",
    # Allergens
    "allergy_nuts": "Contains nuts",
    "allergy_peanuts": "Contains peanuts",
    "allergy_gluten": "Contains gluten",
    "allergy_dairy": "Contains dairy",
    "allergy_egg": "Contains egg",
    "allergy_shellfish": "Contains shellfish",
    "allergy_fish": "Contains fish",
    "allergy_soy": "Contains soy",
    "allergy_sesame": "Contains sesame",
    # Drinks
    "drink_flavor_fruity": "Fruity",
    "drink_flavor_herbal": "Herbal",
    "pairing_unwind": "Wind down",
    "pairing_refresh": "Refreshing",
    "pairing_treat": "Indulgent",
    "pairing_celebrate": "Celebratory",
    "pairing_energize": "Pick me up",
    # Temperature / protein / prep
    "temp_room": "Room temp",
    "protein_red_meat": "Red meat",
    "protein_plant": "Plant-based",
    "prep_fried_crispy": "Fried / Crispy",
    "prep_raw_fresh": "Raw / Fresh",
}

# Longest prefix first so ``drink_flavor_`` wins over shorter matches.
_PREFIXES: list[tuple[str, str]] = sorted(
    ((c.prefix, c.name) for c in TAG_CATEGORIES.values()),
    key=lambda pair: len(pair[0]),
    reverse=True,
)
_TAG_TO_CATEGORY: dict[str, str] = {
    tag: category.name
    for category in TAG_CATEGORIES.values()
    for tag in category.tags
}
_SEPARATORS_RE = re.compile(r"[\s\-_/]+")


def category_of(tag: str) -> str | None:
    """Return the category name for *tag* by prefix, known or not."""
    for prefix, name in _PREFIXES:
        if tag.startswith(prefix):
            return name
    return None


def is_known(tag: str) -> bool:
    return tag in _TAG_TO_CATEGORY


def known_tags(tags: Iterable[str]) -> frozenset[str]:
    """Drop tags outside the vocabulary."""
    return frozenset(t for t in tags if t in _TAG_TO_CATEGORY)


def tags_in(category: str) -> tuple[str, ...]:
    entry = TAG_CATEGORIES.get(category)
    return entry.tags if entry else ()


def label_for(tag: str) -> str:
    """Return the display label for *tag*.

    Unregistered tags get a derived label: the category prefix is stripped,
    separators become spaces and the result is title-cased.
    """
    label = TAG_LABELS.get(tag)
    if label:
        return label
    stem = tag
    for prefix, _ in _PREFIXES:
        if tag.startswith(prefix) and len(tag) > len(prefix):
            stem = tag[len(prefix):]
            break
    return _SEPARATORS_RE.sub(" ", stem).strip().title()


def to_tag(value: str, category: str) -> str:
    """Normalise a guest-facing value (``"Comfort"``, ``"mood_comfort"``) into a tag id."""
    prefix = TAG_CATEGORIES[category].prefix
    slug = _SEPARATORS_RE.sub("_", value.strip().lower()).strip("_")
    if slug.startswith(prefix):
        return slug
    return prefix + slug


def taxonomy_summary() -> dict:
    return {
        "version": TAXONOMY_VERSION,
        "categories": {
            name: {
                "label": category.label,
                "tags": [{"id": t, "label": label_for(t)} for t in category.tags],
            }
            for name, category in TAG_CATEGORIES.items()
        },
    }
