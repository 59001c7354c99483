"""Small NumPy helpers shared by the embedding-based services."""

import numpy as np

from movie_recs.core.config import get_settings
from movie_recs.core.exceptions import InvalidInputError

settings = get_settings()


def as_vector(values, dimension: int | None = None) -> np.ndarray:
    """
    Coerce `values` to a 1-d float vector of the configured dimension.

    Raises:
        InvalidInputError: if the shape does not match
    """
    dim = dimension or settings.EMBEDDING_DIMENSION
    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1 or vector.shape[0] != dim:
        raise InvalidInputError(
            f"Embedding dimension mismatch: expected {dim}, got {vector.shape}"
        )
    return vector


def zero_vector(dimension: int | None = None) -> np.ndarray:
    return np.zeros(dimension or settings.EMBEDDING_DIMENSION, dtype=np.float64)


def is_zero(vector: np.ndarray) -> bool:
    return not np.any(vector)


def cosine_similarity(a, b) -> float:
    """Cosine of the angle between two vectors; 0.0 when either has zero norm."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise InvalidInputError(f"Vector dimension mismatch: {a.shape} vs {b.shape}")

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))
