from __future__ import annotations

import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from dishpick.analytics.store import clear_events, get_rec_results
from dishpick.app import create_app
from dishpick.errors import IntentValidationError
from dishpick.recommendations.catalog import CsvCatalogStore, InMemoryCatalogStore
from dishpick.recommendations.config import EngineConfig
from dishpick.recommendations.models import RecommendationStatus
from dishpick.recommendations.retrieval import recommend
from dishpick.throttling.rate_limiter import SlidingWindowRateLimiter

PASTA = {"id": "pasta", "name": "Pasta", "category": "mains",
         "tags": "mood_comfort,flavor_umami", "popularity": 5}
SALAD = {"id": "salad", "name": "Salad", "category": "starters",
         "tags": "mood_light,flavor_tangy,diet_vegan", "popularity": 8}
NUT_CAKE = {"id": "nut-cake", "name": "Nut Cake", "category": "desserts",
            "tags": "mood_treat,mood_comfort,allergy_nuts", "popularity": 500, "push": True}
CHIANTI = {"id": "chianti", "name": "Chianti", "kind": "drink",
           "tags": "pairing_unwind,drink_flavor_dry", "popularity": 10}
SODA = {"id": "soda", "name": "Soda", "kind": "drink", "popularity": 60}

catalog = InMemoryCatalogStore({
    "trattoria": [PASTA, SALAD, NUT_CAKE, CHIANTI, SODA],
    "no-bar": [PASTA, SALAD, NUT_CAKE],
})
client = TestClient(create_app(catalog=catalog, rate_limiter=SlidingWindowRateLimiter(1000, 60)))

COMFORT = [{"question": "mood", "answer": "comfort"}]
NUTS = [{"question": "dietary", "answer": ["nuts"]}]


def _ids(result):
    return [p.item.id for p in result.picks]


# ── Engine scenarios ─────────────────────────────────────────────────────


def test_mood_match_beats_popularity():
    store = InMemoryCatalogStore({"v": [PASTA, SALAD]})
    result = recommend("v", COMFORT, store, EngineConfig(top_k=1))
    assert _ids(result) == ["pasta"]
    assert "comfort" in result.picks[0].reason.lower()
    assert result.status is RecommendationStatus.ok


def test_allergen_item_omitted_despite_highest_score():
    result = recommend("trattoria", COMFORT + NUTS, catalog, EngineConfig(top_k=5))
    assert "nut-cake" not in _ids(result)
    assert _ids(result) == ["pasta", "salad"]

    unconstrained = recommend("trattoria", COMFORT, catalog, EngineConfig(top_k=5))
    assert _ids(unconstrained)[0] == "nut-cake"


def test_no_drinks_leaves_food_unaffected():
    with_bar = recommend("trattoria", COMFORT, catalog, EngineConfig(top_k=3))
    without_bar = recommend("no-bar", COMFORT, catalog, EngineConfig(top_k=3))
    assert without_bar.upsell is None
    assert _ids(without_bar) == _ids(with_bar)
    assert with_bar.upsell is not None


def test_upsell_pairs_with_top_pick_mood():
    result = recommend("trattoria", COMFORT + NUTS, catalog, EngineConfig(top_k=3))
    assert result.upsell.item.id == "chianti"
    assert result.upsell.reason == "Perfect with comfort food."


def test_all_excluded_status_and_no_upsell():
    halal_only = [{"question": "dietary", "answer": "halal"}]
    result = recommend("trattoria", halal_only, catalog)
    assert result.picks == []
    assert result.upsell is None
    assert result.status is RecommendationStatus.all_excluded


def test_unknown_venue_is_empty_catalog():
    result = recommend("nowhere", COMFORT, catalog)
    assert result.status is RecommendationStatus.empty_catalog
    assert result.picks == []


def test_only_drinks_is_empty_catalog():
    store = InMemoryCatalogStore({"bar": [CHIANTI, SODA]})
    result = recommend("bar", COMFORT, store)
    assert result.status is RecommendationStatus.empty_catalog
    assert result.upsell is None


def test_catalog_timeout_degrades_to_empty():
    class SlowStore:
        def fetch_items(self, venue_id):
            time.sleep(0.5)
            return [PASTA]

    result = recommend("v", COMFORT, SlowStore(), EngineConfig(catalog_timeout=0.05))
    assert result.status is RecommendationStatus.empty_catalog


def test_malformed_item_is_skipped():
    store = InMemoryCatalogStore({"v": [PASTA, {"id": "broken", "name": "", "popularity": 1}]})
    result = recommend("v", COMFORT, store)
    assert _ids(result) == ["pasta"]
    assert result.skipped_items == ["broken"]


def test_unresolved_constraint_is_conservative():
    store = InMemoryCatalogStore({"v": [
        PASTA,
        {"id": "kiwi-tart", "name": "Kiwi Tart", "tags": "mood_comfort", "popularity": 90},
    ]})
    result = recommend("v", [{"question": "dietary", "answer": "no kiwi"}], store)
    assert _ids(result) == ["pasta"]
    assert result.intent.needs_confirmation


def test_malformed_answers_raise_before_compute():
    with pytest.raises(IntentValidationError):
        recommend("trattoria", [{"question": "mood", "answer": ["comfort", "light"]}], catalog)


class TestUnexpectedErrors:
    @patch("dishpick.recommendations.retrieval.rank_items", side_effect=RuntimeError("boom"))
    def test_degrades_in_production(self, _rank):
        result = recommend("trattoria", COMFORT, catalog, EngineConfig(debug=False))
        assert result.status is RecommendationStatus.empty_catalog
        assert result.picks == []

    @patch("dishpick.recommendations.retrieval.rank_items", side_effect=RuntimeError("boom"))
    def test_raises_in_debug(self, _rank):
        with pytest.raises(RuntimeError):
            recommend("trattoria", COMFORT, catalog, EngineConfig(debug=True))


def test_same_input_same_output():
    first = recommend("trattoria", COMFORT, catalog)
    second = recommend("trattoria", COMFORT, catalog)
    assert _ids(first) == _ids(second)
    assert [p.score for p in first.picks] == [p.score for p in second.picks]


# ── API ──────────────────────────────────────────────────────────────────


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_taxonomy_endpoint():
    resp = client.get("/taxonomy")
    assert resp.status_code == 200
    assert "mood" in resp.json()["categories"]


def test_recommendations_endpoint_shape():
    resp = client.post("/venues/trattoria/recommendations", json={
        "session_id": "s-shape",
        "answers": COMFORT + NUTS,
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["variant"] in ("A", "B")
    assert 0 < len(body["recommendations"]) <= 3
    first = body["recommendations"][0]
    assert set(first) == {"id", "name", "price", "reason", "tags", "score"}
    assert "nut-cake" not in [r["id"] for r in body["recommendations"]]
    assert body["upsell"]["id"] == "chianti"
    assert body["needs_confirmation"] is False


def test_recommendations_endpoint_flags_confirmation():
    resp = client.post("/venues/trattoria/recommendations", json={
        "session_id": "s-confirm",
        "answers": [{"question": "dietary", "answer": "no kiwi"}],
    })
    body = resp.json()
    assert body["needs_confirmation"] is True
    assert body["unresolved_constraints"] == ["no kiwi"]


def test_recommendations_endpoint_unknown_venue():
    resp = client.post("/venues/nowhere/recommendations", json={"session_id": "s", "answers": []})
    assert resp.status_code == 200
    assert resp.json()["status"] == "empty_catalog"
    assert resp.json()["recommendations"] == []
    assert resp.json()["upsell"] is None


def test_recommendations_endpoint_persists_results():
    clear_events()
    client.post("/venues/trattoria/recommendations", json={
        "session_id": "s-persist",
        "answers": COMFORT,
    })
    rows = get_rec_results("s-persist")
    assert [r["rank"] for r in rows if r["rank"] > 0] == [1, 2, 3]
    assert any(r["rank"] == 0 for r in rows)


@patch("dishpick.analytics.persistence.record_rec_results", side_effect=RuntimeError("disk full"))
def test_persistence_failure_does_not_reach_guest(_record):
    resp = client.post("/venues/trattoria/recommendations", json={
        "session_id": "s-fail",
        "answers": COMFORT,
    })
    assert resp.status_code == 200
    assert resp.json()["recommendations"]


class TestValidation:
    def test_missing_session_id(self):
        resp = client.post("/venues/trattoria/recommendations", json={"answers": []})
        assert resp.status_code == 422

    def test_answer_without_question(self):
        resp = client.post("/venues/trattoria/recommendations", json={
            "session_id": "s",
            "answers": [{"answer": "comfort"}],
        })
        assert resp.status_code == 422

    def test_multiple_values_for_single_select(self):
        resp = client.post("/venues/trattoria/recommendations", json={
            "session_id": "s",
            "answers": [{"question": "mood", "answer": ["comfort", "light"]}],
        })
        assert resp.status_code == 422
        assert resp.json()["question"] == "mood"


def test_throttled_client_gets_429():
    limited = TestClient(create_app(catalog=catalog, rate_limiter=SlidingWindowRateLimiter(2, 60)))
    payload = {"session_id": "s-throttle", "answers": COMFORT}
    assert limited.post("/venues/trattoria/recommendations", json=payload).status_code == 200
    assert limited.post("/venues/trattoria/recommendations", json=payload).status_code == 200
    resp = limited.post("/venues/trattoria/recommendations", json=payload)
    assert resp.status_code == 429
    assert int(resp.headers["Retry-After"]) >= 1
    # Non-recommendation endpoints are not throttled.
    assert limited.get("/health").status_code == 200


def test_diet_guest_still_gets_a_drink_from_bundled_menu():
    answers = COMFORT + [{"question": "dietary", "answer": ["vegetarian"]}]
    result = recommend("bella-taverna", answers, CsvCatalogStore())
    assert result.picks[0].item.id == "bt-risotto"
    assert result.upsell is not None
    assert result.upsell.item.id == "bt-chianti"
