"""
Dense vector search over a flat block of stacked document vectors.

Vectors are expected to be L2-normalised upstream, so the dot product is
the cosine similarity.

Non-finite values (nan, inf) in either the query or a document vector
contribute 0 to the dot product, so a corrupt vector can never rank first
on the strength of an inf or turn a score into nan.
"""
from typing import List, Tuple

import numpy as np

from ..errors import DimensionMismatchError


def _finite(values: np.ndarray) -> np.ndarray:
    if np.isfinite(values).all():
        return values
    return np.where(np.isfinite(values), values, 0.0).astype(np.float32)


def similarity_scores(query_vector: np.ndarray, document_block: np.ndarray, dim: int) -> np.ndarray:
    """
    Dot product of the query against every dim-length slice of the block.

    Returns:
        float32 array with one score per document
    """
    query_vector = np.asarray(query_vector, dtype=np.float32).reshape(-1)
    if query_vector.size != dim:
        raise DimensionMismatchError(
            f"Query vector has {query_vector.size} values, corpus dim is {dim}"
        )

    document_block = np.asarray(document_block, dtype=np.float32)
    if document_block.size % dim:
        raise DimensionMismatchError(
            f"Document block of {document_block.size} values is not a multiple of dim={dim}"
        )

    matrix = _finite(document_block.reshape(-1, dim))
    return matrix @ _finite(query_vector)


def top_k(
    query_vector: np.ndarray,
    document_block: np.ndarray,
    dim: int,
    k: int
) -> List[Tuple[int, float]]:
    """
    Find the k most similar documents.

    Args:
        query_vector: Vector of length dim
        document_block: Flat concatenation of document vectors
        dim: Vector dimensionality
        k: Number of results (clamped to the document count)

    Returns:
        List of (index, score), descending score, lower index first on ties
    """
    scores = similarity_scores(query_vector, document_block, dim)
    k = max(0, min(k, scores.size))
    order = np.argsort(-scores, kind='stable')[:k]
    return [(int(i), float(scores[i])) for i in order]
