"""Data models shared by the recommender and service layers."""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

# Display units (dollars) to minor units (cents)
DEFAULT_PRICE_UNIT_FACTOR = 100


class Product(BaseModel):
    """A catalog product as returned by the product repository.

    Attributes:
        id: Opaque product identifier.
        slug: Human-readable URL identifier.
        title: Product title.
        description: Optional long description. Not vectorized.
        price: Price in minor currency units (cents).
        tags: Tags in display order.
        stock: Units in stock.
        rating: Average rating between 0.0 and 5.0.
    """

    id: str
    slug: str = ""
    title: str
    description: Optional[str] = None
    price: int = Field(ge=0)
    tags: List[str] = []
    stock: int = Field(default=0, ge=0)
    rating: float = Field(default=0.0, ge=0.0, le=5.0)

    model_config = {"frozen": True}

    @property
    def document_text(self) -> str:
        """Text used for vectorization and query relevance: title plus tags."""
        return f"{self.title} {' '.join(self.tags)}"


class BehaviorAction(str, Enum):
    """Kinds of user interaction recorded in the behavior log."""

    VIEW = "VIEW"
    ADD_TO_CART = "ADD_TO_CART"
    PURCHASE = "PURCHASE"

    @property
    def weight(self) -> int:
        """Tag-affinity weight of this action."""
        return _ACTION_WEIGHTS[self]


_ACTION_WEIGHTS = {
    BehaviorAction.VIEW: 1,
    BehaviorAction.ADD_TO_CART: 2,
    BehaviorAction.PURCHASE: 3,
}


class BehaviorEvent(BaseModel):
    """A single user/product interaction. Never mutated once recorded."""

    user_id: str
    product_id: str
    action: BehaviorAction
    timestamp: datetime

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        """Naive timestamps are read as UTC."""
        if value.tzinfo is None or value.utcoffset() is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class SortBy(str, Enum):
    """Sort intent extracted from a search query."""

    RELEVANCE = "relevance"
    RATING = "rating"
    PRICE = "price"


class ParsedQuery(BaseModel):
    """Structured form of a free-text search query.

    Prices are in display units; use `price_bounds_minor` before filtering
    products.
    """

    text: Optional[str] = None
    price_min: Optional[int] = None
    price_max: Optional[int] = None
    sort_by: SortBy = SortBy.RELEVANCE
    keywords: List[str] = []

    model_config = {"frozen": True}

    def price_bounds_minor(
        self, factor: int = DEFAULT_PRICE_UNIT_FACTOR
    ) -> Tuple[Optional[int], Optional[int]]:
        """Return (price_min, price_max) converted to minor units."""
        low = self.price_min * factor if self.price_min is not None else None
        high = self.price_max * factor if self.price_max is not None else None
        return low, high


class ProductFilter(BaseModel):
    """Candidate filter understood by product repositories.

    Attributes:
        text: Case-insensitive substring matched against title or description.
        price_min: Inclusive lower price bound in minor units.
        price_max: Inclusive upper price bound in minor units.
        min_rating: Inclusive rating floor.
        tags_any: Keep products carrying at least one of these tags.
        in_stock: Keep only products with positive stock.
        exclude_ids: Product ids to leave out.
        limit: Maximum number of products to return.
    """

    text: Optional[str] = None
    price_min: Optional[int] = None
    price_max: Optional[int] = None
    min_rating: Optional[float] = None
    tags_any: Optional[List[str]] = None
    in_stock: bool = False
    exclude_ids: List[str] = []
    limit: Optional[int] = None


class DocumentVector:
    """Sparse TF-IDF vector of one product.

    Only non-zero weights are stored; absent terms weigh 0.
    """

    __slots__ = ("product_id", "weights", "magnitude")

    def __init__(
        self,
        product_id: str,
        weights: Dict[str, float],
        magnitude: Optional[float] = None,
    ):
        self.product_id = product_id
        self.weights = weights
        if magnitude is None:
            magnitude = math.sqrt(sum(w * w for w in weights.values()))
        self.magnitude = magnitude

    def __repr__(self) -> str:
        return (
            f"DocumentVector(product_id={self.product_id!r}, "
            f"terms={len(self.weights)}, magnitude={self.magnitude:.4f})"
        )


class ScoredProduct(BaseModel):
    """A product paired with the score that placed it in a ranking."""

    product: Product
    score: float
