"""Search and recommendation entry points.

`RecommendationEngine` fetches a snapshot from the product repository and the
behavior log, then hands it to the pure ranking functions. It only awaits at
the collaborator boundary; parsing, vectorization and scoring run to
completion once data has arrived. Collaborator errors are logged and
re-raised unchanged.
"""

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel

from shopsense.recommender.models import (
    BehaviorAction,
    BehaviorEvent,
    ParsedQuery,
    Product,
    ProductFilter,
)
from shopsense.recommender.query_parser import parse_query
from shopsense.recommender.ranking import (
    order_by_ids,
    rank_by_popularity,
    rank_by_tag_affinity,
    rank_search_results,
    top_tags,
)
from shopsense.recommender.similarity import find_similar
from shopsense.service.config import EngineConfig
from shopsense.service.metrics import MetricsService, metrics_service
from shopsense.service.repository import BehaviorLog, ProductRepository

# Configure module logger
logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SearchResult(BaseModel):
    """Search response: the raw query, how it was parsed and the ranked hits.

    `scores` is aligned with `results`; entries are 0.0 when the query had no
    keyword text and was ordered by sort intent alone.
    """

    query: str
    parsed: ParsedQuery
    results: List[Product]
    scores: List[float]


class RecommendationEngine:
    """Storefront search, similar-products and recommendation service.

    Args:
        products: Product repository.
        behaviors: Behavior log.
        config: Engine settings, defaults when None.
        metrics: Metrics sink, the global metrics service when None.
        clock: Returns the current time; used for the popularity window.
    """

    def __init__(
        self,
        products: ProductRepository,
        behaviors: BehaviorLog,
        config: Optional[EngineConfig] = None,
        metrics: Optional[MetricsService] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.products = products
        self.behaviors = behaviors
        self.config = config or EngineConfig()
        self.metrics = metrics or metrics_service
        self.clock = clock

    @staticmethod
    def _resolve_limit(limit: Optional[int], default: int) -> int:
        if limit is None or limit <= 0:
            return default
        return limit

    @contextmanager
    def _timed(self, operation: str, **fields) -> Iterator[Dict]:
        """Log and record the latency of one engine call.

        The yielded dict collects extra fields for the completion log line.
        """
        start_time = time.perf_counter()
        outcome: Dict = {}
        try:
            yield outcome
        except Exception as e:
            logger.error(
                f"{operation} failed",
                extra={
                    "operation": operation,
                    **fields,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            raise
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            self.metrics.record_call(operation, latency_ms)

        logger.info(
            f"{operation} completed",
            extra={
                "operation": operation,
                **fields,
                **outcome,
                "total_time_ms": round(latency_ms, 2),
            },
        )

    # ----- Search -----------------------------------------------------------

    async def search(self, query: str, limit: Optional[int] = None) -> List[Product]:
        """Rank products for a free-text query such as "cheap mouse under 50"."""
        result = await self.search_with_details(query, limit)
        return result.results

    async def search_with_details(
        self, query: str, limit: Optional[int] = None
    ) -> SearchResult:
        """Like `search`, also returning the parsed query and scores."""
        limit = self._resolve_limit(limit, self.config.search_limit)

        with self._timed("search", query=query, limit=limit) as outcome:
            parsed = parse_query(query)
            price_min, price_max = parsed.price_bounds_minor(self.config.price_unit_factor)

            candidates = await self.products.find_many(
                ProductFilter(
                    text=parsed.text,
                    price_min=price_min,
                    price_max=price_max,
                    limit=limit * self.config.candidate_multiplier,
                )
            )

            ranked = rank_search_results(
                parsed,
                candidates,
                max_assumed_price=self.config.max_assumed_price,
                relevance_weight=self.config.relevance_weight,
                rating_weight=self.config.rating_weight,
                price_weight=self.config.price_weight,
                return_scores=True,
            )[:limit]

            outcome.update(
                num_candidates=len(candidates),
                num_results=len(ranked),
                sort_by=parsed.sort_by.value,
            )

        return SearchResult(
            query=query,
            parsed=parsed,
            results=[item.product for item in ranked],
            scores=[item.score for item in ranked],
        )

    # ----- Content-based ----------------------------------------------------

    async def similar_to(self, product_id: str, limit: Optional[int] = None) -> List[Product]:
        """Products whose title and tags are closest to `product_id`'s.

        Compared against the whole catalog, ignoring search filters. Unknown
        product ids give an empty list.
        """
        limit = self._resolve_limit(limit, self.config.similar_limit)

        with self._timed("similar", product_id=product_id, limit=limit) as outcome:
            corpus = await self.products.all()
            similar = find_similar(product_id, corpus, limit)
            results = order_by_ids(corpus, [pid for pid, _ in similar])
            outcome.update(corpus_size=len(corpus), num_results=len(results))

        return results

    # ----- Behavior-based ---------------------------------------------------

    async def recommend_for(
        self, user_id: Optional[str], limit: Optional[int] = None
    ) -> List[Product]:
        """Personalized recommendations from the user's recent tag affinity.

        Anonymous users and users without history get `popular(limit)`.
        """
        limit = self._resolve_limit(limit, self.config.recommend_limit)

        with self._timed("recommend", user_id=user_id, limit=limit) as outcome:
            history: List[BehaviorEvent] = []
            if user_id is not None:
                history = await self.behaviors.recent_for_user(
                    user_id, self.config.history_limit
                )

            if not history:
                logger.info(
                    "No behavior history, using popularity",
                    extra={"user_id": user_id, "strategy": "popular"},
                )
                outcome["strategy"] = "popular"
                results = await self._popular(limit)
            else:
                outcome["strategy"] = "tag_affinity"
                results = await self._personalized(history, limit)

            outcome["num_results"] = len(results)

        return results

    async def _personalized(self, history: List[BehaviorEvent], limit: int) -> List[Product]:
        seen_ids = list(dict.fromkeys(event.product_id for event in history))
        history_products = await self.products.find_by_ids(seen_ids)

        favorite_tags = top_tags(
            history,
            {product.id: product for product in history_products},
            n=self.config.top_tag_count,
        )
        if not favorite_tags:
            logger.info("Behavior history carries no tags, nothing to recommend")
            return []

        candidates = await self.products.find_many(
            ProductFilter(tags_any=favorite_tags, exclude_ids=seen_ids)
        )
        recommendations, favorite_tags = rank_by_tag_affinity(
            history,
            history_products,
            candidates,
            limit,
            favorite_tags=favorite_tags,
        )

        logger.debug(
            "Tag affinity recommendations",
            extra={"top_tags": favorite_tags, "num_candidates": len(candidates)},
        )
        return recommendations

    async def popular(self, limit: Optional[int] = None) -> List[Product]:
        """Most purchased products over the trailing popularity window."""
        limit = self._resolve_limit(limit, self.config.popular_limit)

        with self._timed("popular", limit=limit) as outcome:
            results = await self._popular(limit)
            outcome["num_results"] = len(results)

        return results

    async def _popular(self, limit: int) -> List[Product]:
        since = self.clock() - timedelta(days=self.config.popularity_window_days)
        purchase_counts = await self.behaviors.purchase_counts_since(since)

        ranked_ids = rank_by_popularity(purchase_counts, limit)
        if not ranked_ids:
            return []

        products = await self.products.find_by_ids(ranked_ids)
        return order_by_ids(products, ranked_ids)

    async def track(
        self,
        user_id: str,
        product_id: str,
        action: Union[BehaviorAction, str],
        timestamp: Optional[datetime] = None,
    ) -> BehaviorEvent:
        """Append a view, add-to-cart or purchase event to the behavior log.

        Raises:
            ValueError: If `action` is not a known BehaviorAction.
        """
        event = BehaviorEvent(
            user_id=user_id,
            product_id=product_id,
            action=BehaviorAction(action.upper()),
            timestamp=timestamp or self.clock(),
        )
        await self.behaviors.append(event)

        logger.info(
            "Behavior tracked",
            extra={"user_id": user_id, "product_id": product_id, "action": event.action.value},
        )
        return event
