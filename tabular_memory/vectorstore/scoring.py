"""
Similarity scoring.

Stores report cosine distance in [0, 2] (0 = identical direction).
Relevance maps that onto [0, 1] with 1 = identical.
"""

import numpy as np


def relevance(distance: float) -> float:
    """
    Convert a cosine distance to a relevance score.

    relevance(0) == 1.0, relevance(1) == 0.5, relevance(2) == 0.0.
    Values drifting outside the domain through float error are clamped.
    """
    score = (2.0 - float(distance)) / 2.0
    return min(1.0, max(0.0, score))


def accept(score: float, min_relevance: float) -> bool:
    """Inclusive relevance threshold."""
    return score >= min_relevance


def cosine_distances(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """
    Cosine distance between one query vector and each row of a matrix.

    Rows with zero norm get NaN so callers can drop them.

    Raises:
        ValueError: If the query has zero norm or a mismatched dimension
    """
    query = np.asarray(query, dtype=np.float64)
    matrix = np.atleast_2d(np.asarray(matrix, dtype=np.float64))

    if matrix.size and matrix.shape[1] != query.shape[0]:
        raise ValueError(
            f"Vector dimension mismatch: query has {query.shape[0]}, "
            f"stored vectors have {matrix.shape[1]}"
        )

    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        raise ValueError("Query vector has zero norm")

    row_norms = np.linalg.norm(matrix, axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        similarity = (matrix @ query) / (row_norms * query_norm)
    similarity = np.where(row_norms > 0, similarity, np.nan)
    return 1.0 - np.clip(similarity, -1.0, 1.0)
