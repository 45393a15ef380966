"""Cosine similarity helpers used for ranking."""

import numpy as np


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Calculate cosine similarity between two vectors.

    Returns:
        Similarity in [-1, 1], or 0.0 when either vector has zero norm or the
        result is not finite.

    Raises:
        ValueError: If the vectors differ in length.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        msg = "Vector dimensions must match"
        raise ValueError(msg)

    denominator = np.linalg.norm(a) * np.linalg.norm(b)
    if denominator == 0:
        return 0.0
    score = float(np.dot(a, b) / denominator)
    return score if np.isfinite(score) else 0.0


def cosine_similarity_matrix(
    query_embedding: np.ndarray,
    embeddings: np.ndarray,
) -> np.ndarray:
    """Calculate cosine similarity between a query and each row of a matrix.

    Rows with zero norm (or non-finite results) score 0.0.

    Returns:
        np.ndarray: One similarity score per row of ``embeddings``.

    Raises:
        ValueError: If the query length does not match the matrix width.
    """
    query = np.asarray(query_embedding, dtype=np.float64)
    matrix = np.atleast_2d(np.asarray(embeddings, dtype=np.float64))
    if matrix.shape[1] != query.shape[0]:
        msg = "Vector dimensions must match"
        raise ValueError(msg)

    denominators = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = (matrix @ query) / denominators
    return np.where(np.isfinite(scores), scores, 0.0)
