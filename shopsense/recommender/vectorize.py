"""TF-IDF vectorization of product documents.

A product's document is its title followed by its tags. Term frequency is
length-normalized and inverse document frequency is ln(N / df) computed over
the products passed in, so weights are relative to the current candidate set.
Nothing here is cached; callers rebuild vectors for every snapshot.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.sparse import csr_matrix, diags
from sklearn.feature_extraction.text import CountVectorizer

from shopsense.recommender.models import DocumentVector, Product
from shopsense.recommender.tokenize import tokenize

# Configure module logger
logger = logging.getLogger(__name__)


class TfidfIndex:
    """TF-IDF weights for a product corpus.

    Rows of `matrix` follow the order of `product_ids`; columns follow
    `terms`. Zero weights are not stored.
    """

    def __init__(
        self,
        product_ids: List[str],
        matrix: csr_matrix,
        terms: List[str],
        idf: Dict[str, float],
    ):
        self.product_ids = product_ids
        self.matrix = matrix
        self.terms = terms
        self.idf = idf
        self.product_id_to_idx: Dict[str, int] = {}
        for idx, pid in enumerate(product_ids):
            self.product_id_to_idx.setdefault(pid, idx)

    def __len__(self) -> int:
        return len(self.product_ids)

    def get_vector(self, product_id: str) -> Optional[DocumentVector]:
        """Return the sparse vector of a product, or None if not indexed."""
        idx = self.product_id_to_idx.get(product_id)
        if idx is None:
            return None
        return self._row_vector(idx)

    def vectors(self) -> Dict[str, DocumentVector]:
        """Return every product's vector keyed by product id."""
        return {pid: self._row_vector(idx) for pid, idx in self.product_id_to_idx.items()}

    def _row_vector(self, idx: int) -> DocumentVector:
        start, end = self.matrix.indptr[idx], self.matrix.indptr[idx + 1]
        weights = {
            self.terms[col]: float(value)
            for col, value in zip(self.matrix.indices[start:end], self.matrix.data[start:end])
        }
        return DocumentVector(self.product_ids[idx], weights)


def _empty_index(product_ids: List[str]) -> TfidfIndex:
    matrix = csr_matrix((len(product_ids), 0), dtype=np.float64)
    return TfidfIndex(product_ids, matrix, [], {})


def build_tfidf_index(products: Sequence[Product]) -> TfidfIndex:
    """Compute TF-IDF weights over a product corpus.

    Args:
        products: Corpus snapshot. IDF is computed over exactly these products.

    Returns:
        TfidfIndex with one row per product.

    Note:
        A corpus of one product gives ln(1/1) = 0 for every term, so its
        vector is empty with magnitude 0.
    """
    product_ids = [product.id for product in products]
    documents = [product.document_text for product in products]

    if not any(tokenize(document) for document in documents):
        logger.debug("No tokens in corpus, returning empty index")
        return _empty_index(product_ids)

    vectorizer = CountVectorizer(analyzer=tokenize)
    counts = vectorizer.fit_transform(documents).astype(np.float64)
    terms = [str(term) for term in vectorizer.get_feature_names_out()]

    # Term frequency normalized by document length
    doc_lengths = np.asarray(counts.sum(axis=1)).ravel()
    inv_lengths = np.divide(
        1.0, doc_lengths, out=np.zeros_like(doc_lengths), where=doc_lengths > 0
    )
    tf = diags(inv_lengths) @ counts

    # Inverse document frequency over this corpus only
    doc_freq = np.asarray((counts > 0).sum(axis=0)).ravel()
    idf_values = np.log(len(documents) / doc_freq)

    weights = csr_matrix(tf @ diags(idf_values))
    weights.eliminate_zeros()

    logger.debug(
        f"Built TF-IDF index: {len(product_ids)} products, "
        f"vocabulary={len(terms)}, non_zero={weights.nnz}"
    )

    idf = {term: float(value) for term, value in zip(terms, idf_values)}
    return TfidfIndex(product_ids, weights, terms, idf)


def build_vectors(products: Sequence[Product]) -> Dict[str, DocumentVector]:
    """Build a TF-IDF DocumentVector per product id."""
    return build_tfidf_index(products).vectors()
