"""Cosine similarity over TF-IDF vectors and query relevance scoring."""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as pairwise_cosine

from shopsense.recommender.models import DocumentVector, Product
from shopsense.recommender.tokenize import tokenize
from shopsense.recommender.vectorize import TfidfIndex, build_tfidf_index

# Configure module logger
logger = logging.getLogger(__name__)


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, value))


def cosine_similarity(vec_a: DocumentVector, vec_b: DocumentVector) -> float:
    """Cosine similarity of two sparse vectors.

    The dot product walks the terms of `vec_a` and probes `vec_b`. A zero
    magnitude on either side gives 0 rather than a division error.

    Returns:
        Similarity in [0, 1].
    """
    if vec_a.magnitude == 0 or vec_b.magnitude == 0:
        return 0.0

    dot_product = 0.0
    for term, weight in vec_a.weights.items():
        other = vec_b.weights.get(term)
        if other is not None:
            dot_product += weight * other

    return _clamp_unit(dot_product / (vec_a.magnitude * vec_b.magnitude))


def similarity_scores(index: TfidfIndex, product_id: str) -> Optional[np.ndarray]:
    """Cosine similarity of one indexed product against every row of the index.

    Returns:
        Array aligned with `index.product_ids`, or None if the product is not
        indexed.
    """
    idx = index.product_id_to_idx.get(product_id)
    if idx is None:
        return None

    if index.matrix.nnz == 0:
        return np.zeros(len(index))

    # Zero rows stay zero after normalization, so they score 0
    scores = pairwise_cosine(index.matrix[idx], index.matrix)[0]
    return np.clip(scores, 0.0, 1.0)


def find_similar(
    target_id: str,
    corpus: Sequence[Product],
    limit: int,
) -> List[Tuple[str, float]]:
    """Find the products most similar to a target product.

    Vectors are built over `corpus` for this call only.

    Args:
        target_id: Product to compare against.
        corpus: Every candidate product, including the target.
        limit: Maximum number of results.

    Returns:
        (product_id, score) pairs sorted by descending score, ties kept in
        corpus order. The target never appears. Empty if the target is not in
        the corpus.
    """
    index = build_tfidf_index(corpus)
    scores = similarity_scores(index, target_id)
    if scores is None:
        logger.warning(f"Product {target_id} not found in corpus")
        return []

    candidates = [
        (pid, float(scores[idx]))
        for idx, pid in enumerate(index.product_ids)
        if pid != target_id
    ]
    candidates.sort(key=lambda item: item[1], reverse=True)

    return candidates[: max(limit, 0)]


def query_relevance(query_text: Optional[str], product: Product) -> float:
    """Share of distinct query tokens that appear in the product's title or tags.

    Independent of TF-IDF and of the rest of the corpus.

    Returns:
        |query tokens ∩ product tokens| / max(|query tokens|, 1)
    """
    query_tokens = set(tokenize(query_text))
    product_tokens = set(tokenize(product.document_text))
    matches = len(query_tokens & product_tokens)
    return matches / max(len(query_tokens), 1)
