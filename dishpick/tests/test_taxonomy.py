from __future__ import annotations

from dishpick.taxonomy.tags import (
    TAG_CATEGORIES,
    TAXONOMY_VERSION,
    category_of,
    is_known,
    known_tags,
    label_for,
    tags_in,
    taxonomy_summary,
    to_tag,
)


def test_every_tag_carries_its_category_prefix():
    for category in TAG_CATEGORIES.values():
        for tag in category.tags:
            assert tag.startswith(category.prefix)
            assert category_of(tag) == category.name


def test_drink_flavor_is_not_mistaken_for_food_flavor():
    assert category_of("drink_flavor_dry") == "drink_flavor"
    assert category_of("flavor_umami") == "flavor"


def test_explicit_label():
    assert label_for("mood_comfort") == "Comfort / Indulgent"
    assert label_for("allergy_nuts") == "Contains nuts"


def test_derived_label_for_unregistered_tag():
    assert label_for("drink_flavor_dry") == "Dry"
    assert label_for("prep_fried_crispy") == "Fried Crispy"


def test_derived_label_for_tag_outside_vocabulary():
    assert label_for("custom-house_special") == "Custom House Special"


def test_to_tag_normalises_guest_values():
    assert to_tag("Comfort", "mood") == "mood_comfort"
    assert to_tag("mood_comfort", "mood") == "mood_comfort"
    assert to_tag("  gluten-free ", "diet") == "diet_gluten_free"


def test_known_tags_drops_unknown():
    assert known_tags({"mood_comfort", "mood_party", "misc"}) == frozenset({"mood_comfort"})
    assert is_known("pairing_unwind")
    assert not is_known("pairing_dance")


def test_tags_in_unknown_category_is_empty():
    assert tags_in("nope") == ()
    assert "diet_vegan" in tags_in("diet")


def test_summary_lists_every_category_with_labels():
    summary = taxonomy_summary()
    assert summary["version"] == TAXONOMY_VERSION
    assert set(summary["categories"]) == set(TAG_CATEGORIES)
    mood_ids = [t["id"] for t in summary["categories"]["mood"]["tags"]]
    assert mood_ids == list(tags_in("mood"))
    assert all(t["label"] for t in summary["categories"]["allergy"]["tags"])
