from __future__ import annotations

import pytest

from dishpick.errors import ItemScoringAnomaly
from dishpick.intent.models import IntentVector
from dishpick.recommendations.config import EngineConfig
from dishpick.recommendations.models import MenuItem
from dishpick.recommendations.scoring import (
    combine_score,
    exclusion_reason,
    match_axes,
    score_catalog,
    score_item,
)

CONFIG = EngineConfig(
    popularity_weight=0.01,
    axis_bonus=3.0,
    axis_bonus_overrides={"mood": 5.0, "portion": 4.0, "price": 2.0},
    push_bonus=2.0,
)


def _item(item_id="x", tags=(), popularity=0.0, name=None, **kwargs):
    return MenuItem(id=item_id, name=name or item_id.title(), tags=frozenset(tags),
                    popularity=popularity, **kwargs)


# ── Baseline ─────────────────────────────────────────────────────────────


def test_baseline_is_popularity_only():
    scored = score_item(_item(popularity=40), IntentVector(), CONFIG)
    assert scored.score == pytest.approx(0.4)
    assert scored.matched == ()
    assert not scored.excluded


def test_combine_score_never_negative():
    assert combine_score(10, [], False, -1.0, 0.0) == 0.0


def test_push_adds_bonus():
    plain = score_item(_item(popularity=10), IntentVector(), CONFIG)
    pushed = score_item(_item(popularity=10, push=True), IntentVector(), CONFIG)
    assert pushed.score - plain.score == pytest.approx(CONFIG.push_bonus)


def test_each_answered_axis_adds_its_bonus():
    intent = IntentVector(mood="mood_comfort", flavors=("flavor_umami",), portion="portion_hearty",
                          price="price_2")
    item = _item(tags={"mood_comfort", "flavor_umami", "portion_hearty", "price_2"})
    scored = score_item(item, intent, CONFIG)
    assert scored.score == pytest.approx(5.0 + 3.0 + 4.0 + 2.0)
    assert scored.matched_axes == {
        "mood": "mood_comfort",
        "flavor": "flavor_umami",
        "portion": "portion_hearty",
        "price": "price_2",
    }


def test_multiple_flavor_matches_count_once():
    intent = IntentVector(flavors=("flavor_spicy", "flavor_smoky"))
    item = _item(tags={"flavor_spicy", "flavor_smoky"})
    scored = score_item(item, intent, CONFIG)
    assert scored.score == pytest.approx(3.0)
    assert match_axes(item, intent) == (("flavor", "flavor_spicy"),)


def test_unknown_tags_do_not_score():
    intent = IntentVector(mood="mood_comfort")
    scored = score_item(_item(tags={"mood_party", "chef_special"}), intent, CONFIG)
    assert scored.score == 0.0
    assert not scored.excluded


def test_axis_override_falls_back_to_axis_bonus():
    config = EngineConfig(axis_bonus=7.0, axis_bonus_overrides={})
    assert config.bonus_for("mood") == 7.0


# ── Exclusion ────────────────────────────────────────────────────────────


class TestExclusion:
    def test_unavailable_and_out_of_stock(self):
        intent = IntentVector()
        assert exclusion_reason(_item(unavailable=True), intent) == "unavailable"
        assert exclusion_reason(_item(out_of_stock=True), intent) == "out_of_stock"

    def test_allergen_excluded(self):
        intent = IntentVector(excluded_allergen_tags=frozenset({"allergy_nuts"}))
        reason = exclusion_reason(_item(tags={"allergy_nuts", "mood_treat"}), intent)
        assert reason == "contains allergy_nuts"

    def test_missing_diet_tag_excluded(self):
        intent = IntentVector(required_diet_tags=frozenset({"diet_vegan"}))
        assert exclusion_reason(_item(tags={"diet_vegetarian"}), intent) == "not diet_vegan"
        assert exclusion_reason(_item(tags={"diet_vegan"}), intent) is None

    def test_diet_requirement_can_be_waived(self):
        intent = IntentVector(
            required_diet_tags=frozenset({"diet_vegan"}),
            excluded_allergen_tags=frozenset({"allergy_egg"}),
        )
        assert exclusion_reason(_item(), intent, require_diet=False) is None
        assert exclusion_reason(_item(tags={"allergy_egg"}), intent, require_diet=False) == "contains allergy_egg"
        assert exclusion_reason(_item(out_of_stock=True), intent, require_diet=False) == "out_of_stock"

    def test_unresolved_constraint_matches_text(self):
        intent = IntentVector(unresolved_constraints=("no kiwi",))
        kiwi = _item(name="Pavlova", description="Meringue with kiwi and cream")
        plain = _item(name="Panna Cotta", description="Vanilla cream")
        assert "kiwi" in exclusion_reason(kiwi, intent)
        assert exclusion_reason(plain, intent) is None

    def test_excluded_item_scores_zero_regardless_of_matches(self):
        intent = IntentVector(mood="mood_treat", excluded_allergen_tags=frozenset({"allergy_nuts"}))
        scored = score_item(_item(tags={"allergy_nuts", "mood_treat"}, popularity=1000, push=True),
                            intent, CONFIG)
        assert scored.excluded
        assert scored.score == 0.0


# ── Anomalies ────────────────────────────────────────────────────────────


def test_non_finite_popularity_raises():
    item = _item(popularity=float("inf"))
    with pytest.raises(ItemScoringAnomaly) as exc_info:
        score_item(item, IntentVector(), CONFIG)
    assert exc_info.value.item_id == "x"


def test_score_catalog_skips_anomalies():
    items = [_item("good", popularity=5), _item("bad", popularity=float("inf"))]
    scored, skipped = score_catalog(items, IntentVector(), CONFIG)
    assert [s.item.id for s in scored] == ["good"]
    assert skipped == ["bad"]
    assert scored[0].position == 0
