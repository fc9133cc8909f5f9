"""Shared fixtures: a small electronics catalog and helpers for events."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from shopsense.recommender.models import BehaviorAction, BehaviorEvent, Product

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def make_product(
    product_id: str,
    title: str,
    tags: List[str],
    price: int = 10_000,
    rating: float = 4.0,
    description: Optional[str] = None,
    stock: int = 10,
) -> Product:
    return Product(
        id=product_id,
        slug=title.lower().replace(" ", "-"),
        title=title,
        description=description,
        price=price,
        tags=tags,
        stock=stock,
        rating=rating,
    )


def make_event(
    user_id: str,
    product_id: str,
    action: BehaviorAction,
    days_ago: float = 1,
) -> BehaviorEvent:
    return BehaviorEvent(
        user_id=user_id,
        product_id=product_id,
        action=action,
        timestamp=NOW - timedelta(days=days_ago),
    )


@pytest.fixture
def catalog() -> List[Product]:
    """Six products; prices in cents."""
    return [
        make_product("1", "Bluetooth Headphones Pro", ["headphones", "bluetooth"], price=49_900, rating=4.5),
        make_product("2", "Wireless Headphones", ["headphones", "wireless"], price=19_900, rating=4.2),
        make_product("3", "Wired Mouse", ["mouse"], price=1_500, rating=4.0),
        make_product("4", "Bluetooth Speaker", ["speaker", "bluetooth"], price=8_900, rating=3.9),
        make_product("5", "Mechanical Keyboard", ["keyboard"], price=12_000, rating=4.7),
        make_product(
            "6",
            "Bluetooth Earbuds",
            ["earbuds", "bluetooth"],
            price=5_900,
            rating=4.8,
            description="Compact earbuds with charging case",
        ),
    ]
