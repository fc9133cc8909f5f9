"""End-to-end tests for RecommendationEngine over in-memory collaborators.

The engine is async; each test drives it with asyncio.run.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from shopsense.recommender.models import BehaviorAction, BehaviorEvent, Product, SortBy
from shopsense.service.config import EngineConfig
from shopsense.service.engine import RecommendationEngine
from shopsense.service.metrics import metrics_service
from shopsense.service.repository import InMemoryBehaviorLog, InMemoryProductRepository

from conftest import NOW, make_event, make_product


def ids(products: List[Product]) -> List[str]:
    return [p.id for p in products]


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with empty metrics."""
    metrics_service.reset()
    yield
    metrics_service.reset()


@pytest.fixture
def purchase_history() -> List[BehaviorEvent]:
    """Purchases: product 5 three times, 2 twice, 3 once; plus noise."""
    return [
        make_event("u1", "1", BehaviorAction.VIEW, days_ago=2),
        make_event("u1", "4", BehaviorAction.PURCHASE, days_ago=1),
        make_event("u2", "5", BehaviorAction.PURCHASE, days_ago=3),
        make_event("u3", "5", BehaviorAction.PURCHASE, days_ago=4),
        make_event("u4", "5", BehaviorAction.PURCHASE, days_ago=5),
        make_event("u2", "2", BehaviorAction.PURCHASE, days_ago=6),
        make_event("u3", "2", BehaviorAction.PURCHASE, days_ago=7),
        make_event("u5", "3", BehaviorAction.PURCHASE, days_ago=8),
        # Outside the 30 day window
        make_event("u6", "6", BehaviorAction.PURCHASE, days_ago=45),
        make_event("u7", "6", BehaviorAction.PURCHASE, days_ago=60),
        make_event("u8", "6", BehaviorAction.PURCHASE, days_ago=90),
        make_event("u8", "6", BehaviorAction.PURCHASE, days_ago=91),
        # Views never count toward popularity
        make_event("u9", "1", BehaviorAction.VIEW, days_ago=1),
        make_event("u9", "1", BehaviorAction.VIEW, days_ago=1),
    ]


@pytest.fixture
def engine(catalog, purchase_history) -> RecommendationEngine:
    return RecommendationEngine(
        products=InMemoryProductRepository(catalog),
        behaviors=InMemoryBehaviorLog(purchase_history),
        clock=lambda: NOW,
    )


# ===== Search Tests =====


def test_search_end_to_end_example():
    """Test the storefront example: headphones first for a headphones query."""
    catalog = [
        make_product("1", "Bluetooth Headphones Pro", ["headphones", "bluetooth"], price=49_900, rating=4.5),
        make_product("2", "Wired Mouse", ["mouse"], price=1_500, rating=4.0),
    ]
    engine = RecommendationEngine(
        products=InMemoryProductRepository(catalog),
        behaviors=InMemoryBehaviorLog(),
    )

    results = asyncio.run(engine.search("bluetooth headphones under 600", 10))
    result_ids = ids(results)

    assert result_ids[0] == "1"
    if "2" in result_ids:
        assert result_ids.index("1") < result_ids.index("2")


def test_search_applies_price_bounds_in_minor_units(engine):
    """Test that display-unit bounds filter cent prices."""
    results = asyncio.run(engine.search("bluetooth under 100"))

    assert ids(results) == ["6", "4"] or ids(results) == ["4", "6"]
    assert all(p.price <= 10_000 for p in results)


def test_search_matches_description(engine):
    """Test substring matching against descriptions."""
    results = asyncio.run(engine.search("charging case"))
    assert ids(results) == ["6"]


def test_search_sort_intent_without_text(engine):
    """Test rating sort when the query has no keywords."""
    details = asyncio.run(engine.search_with_details("top rated", limit=3))

    assert details.parsed.sort_by == SortBy.RATING
    assert details.parsed.text is None
    assert ids(details.results) == ["6", "5", "1"]
    assert details.scores == [0.0, 0.0, 0.0]


def test_search_with_details(engine):
    """Test the parsed query and scores returned with results."""
    details = asyncio.run(engine.search_with_details("Headphones between 100 and 300"))

    assert details.query == "Headphones between 100 and 300"
    assert details.parsed.price_min == 100
    assert details.parsed.price_max == 300
    assert ids(details.results) == ["2"]
    assert len(details.scores) == 1


def test_search_non_positive_limit_uses_default(engine):
    """Test that limit <= 0 falls back to the default limit."""
    results_zero = asyncio.run(engine.search("cheapest", 0))
    results_negative = asyncio.run(engine.search("cheapest", -3))

    assert len(results_zero) == 6
    assert ids(results_zero) == ids(results_negative)


def test_search_limit_truncates(engine):
    """Test truncation to the requested limit."""
    assert len(asyncio.run(engine.search("cheapest", 2))) == 2


# ===== Similar Products Tests =====


def test_similar_to(engine):
    """Test content-based similar products."""
    results = asyncio.run(engine.similar_to("1", limit=3))

    assert len(results) == 3
    assert "1" not in ids(results)
    assert set(ids(results)) == {"2", "4", "6"}


def test_similar_to_unknown_product(engine):
    """Test that an unknown product gives an empty list, not an error."""
    assert asyncio.run(engine.similar_to("nope")) == []


def test_similar_to_single_product_catalog():
    """Test a one-product catalog does not raise."""
    engine = RecommendationEngine(
        products=InMemoryProductRepository([make_product("1", "Wired Mouse", ["mouse"])]),
        behaviors=InMemoryBehaviorLog(),
    )
    assert asyncio.run(engine.similar_to("1")) == []


# ===== Popularity Tests =====


def test_popular_counts_recent_purchases(engine):
    """Test purchase counts over the trailing window."""
    results = asyncio.run(engine.popular(10))

    # Product 6 only has old purchases; product 1 only views
    assert ids(results) == ["5", "2", "4", "3"] or ids(results) == ["5", "2", "3", "4"]
    assert ids(results)[:2] == ["5", "2"]


def test_popular_limit(engine):
    """Test popularity truncation."""
    assert ids(asyncio.run(engine.popular(1))) == ["5"]


def test_popular_monotonic_after_purchase(engine):
    """Test an extra purchase never lowers a product's rank."""
    before = ids(asyncio.run(engine.popular(10)))

    asyncio.run(engine.track("u10", "3", BehaviorAction.PURCHASE, timestamp=NOW))
    after = ids(asyncio.run(engine.popular(10)))

    assert after.index("3") <= before.index("3")


def test_popular_empty_log(catalog):
    """Test that no purchases means no popular products."""
    engine = RecommendationEngine(
        products=InMemoryProductRepository(catalog),
        behaviors=InMemoryBehaviorLog(),
        clock=lambda: NOW,
    )
    assert asyncio.run(engine.popular()) == []


# ===== Recommendation Tests =====


def test_recommend_for_user_with_history(engine):
    """Test tag-affinity recommendations for u1 (viewed 1, bought 4)."""
    results = asyncio.run(engine.recommend_for("u1", limit=5))

    assert ids(results) == ["6", "2"]


def test_recommend_for_user_without_history_matches_popular(engine):
    """Test the popularity fallback gives exactly popular()."""
    popular = asyncio.run(engine.popular(3))

    assert ids(asyncio.run(engine.recommend_for("stranger", 3))) == ids(popular)
    assert ids(asyncio.run(engine.recommend_for(None, 3))) == ids(popular)


def test_recommend_for_default_limit(engine):
    """Test the default recommendation size."""
    results = asyncio.run(engine.recommend_for(None))
    assert len(results) <= EngineConfig().recommend_limit


def test_recommend_history_window(catalog):
    """Test that only the most recent events are considered."""
    events = [make_event("u1", "5", BehaviorAction.PURCHASE, days_ago=10)]
    events += [make_event("u1", "3", BehaviorAction.VIEW, days_ago=1) for _ in range(3)]
    engine = RecommendationEngine(
        products=InMemoryProductRepository(catalog),
        behaviors=InMemoryBehaviorLog(events),
        config=EngineConfig(history_limit=3),
        clock=lambda: NOW,
    )

    # Only mouse views are in the window; no other product carries "mouse"
    assert asyncio.run(engine.recommend_for("u1")) == []


def test_track_appends_event(catalog):
    """Test that tracked events feed later recommendations."""
    behaviors = InMemoryBehaviorLog()
    engine = RecommendationEngine(
        products=InMemoryProductRepository(catalog),
        behaviors=behaviors,
        clock=lambda: NOW,
    )

    event = asyncio.run(engine.track("u1", "2", "add_to_cart"))

    assert event.action == BehaviorAction.ADD_TO_CART
    assert event.timestamp == NOW
    assert len(behaviors) == 1
    assert ids(asyncio.run(engine.recommend_for("u1"))) == ["1"]


def test_track_rejects_unknown_action(engine):
    """Test validation of the action name."""
    with pytest.raises(ValueError):
        asyncio.run(engine.track("u1", "2", "wishlist"))


# ===== Errors and Metrics =====


class FailingRepository(InMemoryProductRepository):
    """Repository whose reads fail like an unavailable database."""

    async def find_many(self, product_filter):
        raise ConnectionError("catalog database unavailable")

    async def all(self):
        raise ConnectionError("catalog database unavailable")


def test_upstream_failure_propagates():
    """Test that repository errors reach the caller unchanged."""
    engine = RecommendationEngine(
        products=FailingRepository(),
        behaviors=InMemoryBehaviorLog(),
    )

    with pytest.raises(ConnectionError, match="unavailable"):
        asyncio.run(engine.search("headphones"))
    with pytest.raises(ConnectionError):
        asyncio.run(engine.similar_to("1"))

    metrics = metrics_service.get_metrics()
    assert metrics["search"]["call_count"] == 1
    assert metrics["similar"]["call_count"] == 1


def test_metrics_recorded_per_operation(engine):
    """Test that every public operation records a call."""
    asyncio.run(engine.search("mouse"))
    asyncio.run(engine.search("keyboard"))
    asyncio.run(engine.popular())

    metrics = metrics_service.get_metrics()
    assert metrics["search"]["call_count"] == 2
    assert metrics["popular"]["call_count"] == 1
    assert metrics["search"]["max_latency_ms"] >= metrics["search"]["min_latency_ms"]


def test_recommend_respects_top_tag_count():
    """Test that a product sharing only the sixth-heaviest tag is not recommended."""
    touched = [make_product(f"h{n}", f"Item {n}", [f"tag{n}"]) for n in range(1, 7)]
    candidates = [
        make_product("light", "Lightly Liked", ["tag6"], rating=5.0),
        make_product("heavy", "Heavily Liked", ["tag1"], rating=3.0),
    ]
    events = [make_event("u1", f"h{n}", BehaviorAction.PURCHASE) for n in range(1, 6)]
    events.append(make_event("u1", "h6", BehaviorAction.VIEW))
    engine = RecommendationEngine(
        products=InMemoryProductRepository(touched + candidates),
        behaviors=InMemoryBehaviorLog(events),
        clock=lambda: NOW,
    )

    assert ids(asyncio.run(engine.recommend_for("u1"))) == ["heavy"]


# ===== Timestamp Tests =====


def test_naive_event_timestamps_are_utc():
    """Test that naive timestamps are stored as UTC."""
    event = BehaviorEvent(
        user_id="u1",
        product_id="1",
        action=BehaviorAction.VIEW,
        timestamp=datetime(2026, 9, 30, 8, 0),
    )
    assert event.timestamp == datetime(2026, 9, 30, 8, 0, tzinfo=timezone.utc)


def test_popular_with_naive_event_timestamps(catalog):
    """Test popularity over events recorded without a timezone."""
    naive_now = NOW.replace(tzinfo=None)
    events = [
        BehaviorEvent(
            user_id="u1",
            product_id="3",
            action=BehaviorAction.PURCHASE,
            timestamp=naive_now - timedelta(days=1),
        ),
        BehaviorEvent(
            user_id="u2",
            product_id="6",
            action=BehaviorAction.PURCHASE,
            timestamp=naive_now - timedelta(days=40),
        ),
    ]
    engine = RecommendationEngine(
        products=InMemoryProductRepository(catalog),
        behaviors=InMemoryBehaviorLog(events),
        clock=lambda: NOW,
    )

    assert ids(asyncio.run(engine.popular(5))) == ["3"]


def test_recommend_with_mixed_naive_and_aware_timestamps(catalog):
    """Test personalization when naive and tracked events are mixed."""
    naive_event = BehaviorEvent(
        user_id="u1",
        product_id="4",
        action=BehaviorAction.PURCHASE,
        timestamp=NOW.replace(tzinfo=None) - timedelta(days=2),
    )
    engine = RecommendationEngine(
        products=InMemoryProductRepository(catalog),
        behaviors=InMemoryBehaviorLog([naive_event]),
        clock=lambda: NOW,
    )
    asyncio.run(engine.track("u1", "1", "VIEW"))

    assert ids(asyncio.run(engine.recommend_for("u1"))) == ["6", "2"]
