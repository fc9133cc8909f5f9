"""Ranking strategies for search, popularity and personalized recommendations.

Each function takes snapshots of products and behavior events and returns a
new ordering. Inputs are never modified.
"""

from collections import Counter
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from shopsense.recommender.models import (
    BehaviorEvent,
    ParsedQuery,
    Product,
    ScoredProduct,
    SortBy,
)
from shopsense.recommender.similarity import query_relevance


# Default weights for search scoring
DEFAULT_RELEVANCE_WEIGHT = 0.5
DEFAULT_RATING_WEIGHT = 0.3
DEFAULT_PRICE_WEIGHT = 0.2
MAX_RATING = 5.0
# Price normalization ceiling in minor units ($3000)
DEFAULT_MAX_ASSUMED_PRICE = 300_000
DEFAULT_TOP_TAG_COUNT = 5


def score_search_hit(
    query_text: Optional[str],
    product: Product,
    max_assumed_price: int = DEFAULT_MAX_ASSUMED_PRICE,
    relevance_weight: float = DEFAULT_RELEVANCE_WEIGHT,
    rating_weight: float = DEFAULT_RATING_WEIGHT,
    price_weight: float = DEFAULT_PRICE_WEIGHT,
) -> float:
    """Combined score of a search candidate.

    relevance_weight * relevance + rating_weight * rating / 5
    + price_weight * (1 - price / max_assumed_price)

    Products priced above the ceiling get a negative price term; the score is
    not clamped.
    """
    relevance = query_relevance(query_text, product)
    normalized_rating = product.rating / MAX_RATING
    normalized_price = 1 - (product.price / max_assumed_price)

    return (
        relevance * relevance_weight
        + normalized_rating * rating_weight
        + normalized_price * price_weight
    )


def rank_search_results(
    parsed: ParsedQuery,
    candidates: Sequence[Product],
    max_assumed_price: int = DEFAULT_MAX_ASSUMED_PRICE,
    relevance_weight: float = DEFAULT_RELEVANCE_WEIGHT,
    rating_weight: float = DEFAULT_RATING_WEIGHT,
    price_weight: float = DEFAULT_PRICE_WEIGHT,
    return_scores: bool = False,
) -> Union[List[Product], List[ScoredProduct]]:
    """Order search candidates.

    With residual keyword text, candidates are sorted by `score_search_hit`.
    Without it, they are sorted by the parsed sort intent: rating descending
    or price ascending. Relevance with no text keeps the repository order.
    All sorts are stable.

    Args:
        parsed: Parsed search query.
        candidates: Products fetched for the query, in repository order.
        max_assumed_price: Price normalization ceiling in minor units.
        relevance_weight: Weight of query relevance.
        rating_weight: Weight of normalized rating.
        price_weight: Weight of inverse normalized price.
        return_scores: If True, return ScoredProduct entries. Scores are 0.0
            when no text scoring was applied.

    Returns:
        Ranked products, or ranked ScoredProducts when `return_scores`.
    """
    if parsed.text:
        scored = [
            ScoredProduct(
                product=product,
                score=score_search_hit(
                    parsed.text,
                    product,
                    max_assumed_price=max_assumed_price,
                    relevance_weight=relevance_weight,
                    rating_weight=rating_weight,
                    price_weight=price_weight,
                ),
            )
            for product in candidates
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
    else:
        ordered = list(candidates)
        if parsed.sort_by == SortBy.RATING:
            ordered.sort(key=lambda product: product.rating, reverse=True)
        elif parsed.sort_by == SortBy.PRICE:
            ordered.sort(key=lambda product: product.price)
        scored = [ScoredProduct(product=product, score=0.0) for product in ordered]

    if return_scores:
        return scored
    return [item.product for item in scored]


def rank_by_popularity(purchase_counts: Mapping[str, int], limit: int) -> List[str]:
    """Order product ids by purchase count.

    Products with no purchases are dropped. Ties keep the mapping's order.
    """
    ranked = [
        (pid, count) for pid, count in purchase_counts.items() if count > 0
    ]
    ranked.sort(key=lambda item: item[1], reverse=True)
    return [pid for pid, _ in ranked[: max(limit, 0)]]


def tag_affinity(
    history: Iterable[BehaviorEvent],
    products_by_id: Mapping[str, Product],
) -> Dict[str, int]:
    """Sum action weights per tag over the products touched in `history`.

    Events whose product is not in `products_by_id` contribute nothing.
    """
    weights: Counter = Counter()
    for event in history:
        product = products_by_id.get(event.product_id)
        if product is None:
            continue
        for tag in product.tags:
            weights[tag] += event.action.weight
    return dict(weights)


def top_tags(
    history: Iterable[BehaviorEvent],
    products_by_id: Mapping[str, Product],
    n: int = DEFAULT_TOP_TAG_COUNT,
) -> List[str]:
    """The `n` tags with the highest affinity, ties in first-seen order."""
    affinity = tag_affinity(history, products_by_id)
    ranked = sorted(affinity.items(), key=lambda item: item[1], reverse=True)
    return [tag for tag, _ in ranked[:n]]


def rank_by_tag_affinity(
    history: Sequence[BehaviorEvent],
    history_products: Sequence[Product],
    candidates: Sequence[Product],
    limit: int,
    top_tag_count: int = DEFAULT_TOP_TAG_COUNT,
    favorite_tags: Optional[Sequence[str]] = None,
) -> Tuple[List[Product], List[str]]:
    """Recommend unseen products sharing the user's favorite tags.

    Args:
        history: The user's recent events.
        history_products: Products referenced by `history`.
        candidates: Products to choose from.
        limit: Maximum number of recommendations.
        top_tag_count: How many favorite tags to match against.
        favorite_tags: Tags already computed with `top_tags`. When given,
            `history_products` and `top_tag_count` are not used.

    Returns:
        A tuple containing:
            - Recommended products ordered by rating descending
            - The favorite tags that were used
    """
    if favorite_tags is None:
        products_by_id = {product.id: product for product in history_products}
        favorite_tags = top_tags(history, products_by_id, n=top_tag_count)
    favorite_tags = list(favorite_tags)
    if not favorite_tags:
        return [], []

    seen_ids = {event.product_id for event in history}
    wanted = set(favorite_tags)

    matches = [
        product
        for product in candidates
        if product.id not in seen_ids and wanted.intersection(product.tags)
    ]
    matches.sort(key=lambda product: product.rating, reverse=True)

    return matches[: max(limit, 0)], favorite_tags


def order_by_ids(products: Iterable[Product], ranked_ids: Sequence[str]) -> List[Product]:
    """Arrange fetched products in the order of `ranked_ids`.

    Ids without a matching product are skipped.
    """
    by_id = {product.id: product for product in products}
    return [by_id[pid] for pid in ranked_ids if pid in by_id]
