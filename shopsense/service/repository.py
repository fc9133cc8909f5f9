"""Collaborator interfaces consumed by the engine, with in-memory implementations.

The host application owns persistence. It passes the engine objects that
satisfy `ProductRepository` and `BehaviorLog`; the in-memory classes here
serve tests, the CLI and small deployments that load a catalog from CSV.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, runtime_checkable

from shopsense.recommender.models import BehaviorAction, BehaviorEvent, Product, ProductFilter
from shopsense.recommender.utils import load_behavior_csv, load_products_csv

# Configure module logger
logger = logging.getLogger(__name__)


@runtime_checkable
class ProductRepository(Protocol):
    """Read access to the product catalog."""

    async def find_many(self, product_filter: ProductFilter) -> List[Product]:
        """Products matching `product_filter`, in the store's natural order."""
        ...

    async def find_by_id(self, product_id: str) -> Optional[Product]:
        ...

    async def find_by_ids(self, product_ids: Sequence[str]) -> List[Product]:
        """Products with the given ids. Order is unspecified; missing ids are skipped."""
        ...

    async def all(self) -> List[Product]:
        ...


@runtime_checkable
class BehaviorLog(Protocol):
    """Append-only log of user/product interactions."""

    async def recent_for_user(self, user_id: str, limit: int) -> List[BehaviorEvent]:
        """The user's latest `limit` events, most recent first."""
        ...

    async def purchase_counts_since(self, since: datetime) -> Dict[str, int]:
        """Purchase count per product id for events at or after `since`."""
        ...

    async def append(self, event: BehaviorEvent) -> None:
        ...


def matches_filter(product: Product, product_filter: ProductFilter) -> bool:
    """Evaluate a ProductFilter against one product (limit is not applied)."""
    if product_filter.text:
        needle = product_filter.text.lower()
        in_title = needle in product.title.lower()
        in_description = product.description is not None and needle in product.description.lower()
        if not (in_title or in_description):
            return False

    if product_filter.price_min is not None and product.price < product_filter.price_min:
        return False
    if product_filter.price_max is not None and product.price > product_filter.price_max:
        return False
    if product_filter.min_rating is not None and product.rating < product_filter.min_rating:
        return False
    if product_filter.tags_any is not None and not set(product_filter.tags_any).intersection(product.tags):
        return False
    if product_filter.in_stock and product.stock <= 0:
        return False
    if product.id in product_filter.exclude_ids:
        return False

    return True


class InMemoryProductRepository:
    """ProductRepository over a list of products kept in the given order."""

    def __init__(self, products: Iterable[Product] = ()):
        self._products: List[Product] = list(products)

    @classmethod
    def from_csv(cls, csv_path: str) -> InMemoryProductRepository:
        return cls(load_products_csv(csv_path))

    def __len__(self) -> int:
        return len(self._products)

    async def find_many(self, product_filter: ProductFilter) -> List[Product]:
        matches = [p for p in self._products if matches_filter(p, product_filter)]
        if product_filter.limit is not None:
            matches = matches[: max(product_filter.limit, 0)]
        return matches

    async def find_by_id(self, product_id: str) -> Optional[Product]:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    async def find_by_ids(self, product_ids: Sequence[str]) -> List[Product]:
        wanted = set(product_ids)
        return [p for p in self._products if p.id in wanted]

    async def all(self) -> List[Product]:
        return list(self._products)


class InMemoryBehaviorLog:
    """BehaviorLog over an in-memory list of events."""

    def __init__(self, events: Iterable[BehaviorEvent] = ()):
        self._events: List[BehaviorEvent] = list(events)

    @classmethod
    def from_csv(cls, csv_path: str) -> InMemoryBehaviorLog:
        return cls(load_behavior_csv(csv_path))

    def __len__(self) -> int:
        return len(self._events)

    async def recent_for_user(self, user_id: str, limit: int) -> List[BehaviorEvent]:
        if limit <= 0:
            return []
        # Walk newest-appended first so equal timestamps keep that order
        events = [e for e in reversed(self._events) if e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    async def purchase_counts_since(self, since: datetime) -> Dict[str, int]:
        counts: Counter = Counter(
            e.product_id
            for e in self._events
            if e.action == BehaviorAction.PURCHASE and e.timestamp >= since
        )
        return dict(counts)

    async def append(self, event: BehaviorEvent) -> None:
        self._events.append(event)
        logger.debug(
            "Behavior event appended",
            extra={"user_id": event.user_id, "product_id": event.product_id, "action": event.action.value},
        )
