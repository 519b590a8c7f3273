"""Vector similarity math used by the retrieval service."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``, or 0.0 when either vector is zero."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        msg = f"Vector dimensions differ: {va.shape[0]} vs {vb.shape[0]}"
        raise ValueError(msg)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    score = float(np.dot(va, vb) / (norm_a * norm_b))
    # Floating-point noise can push identical vectors just past 1.0.
    return max(-1.0, min(1.0, score))


def cosine_similarities(
    query: Sequence[float], vectors: Sequence[Sequence[float]]
) -> list[float]:
    """Score ``query`` against every row of ``vectors`` in one matrix product.

    Rows (or a query) with zero norm score 0.0.  All rows must share the
    query's dimension.
    """
    if not vectors:
        return []
    q = np.asarray(query, dtype=np.float64)
    matrix = np.asarray(vectors, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[1] != q.shape[0]:
        msg = f"Vector dimensions differ from query dimension {q.shape[0]}"
        raise ValueError(msg)

    q_norm = float(np.linalg.norm(q))
    row_norms = np.linalg.norm(matrix, axis=1)
    if q_norm == 0.0:
        return [0.0] * len(vectors)

    denominators = row_norms * q_norm
    dots = matrix @ q
    scores = np.divide(
        dots, denominators, out=np.zeros_like(dots), where=denominators != 0.0
    )
    return np.clip(scores, -1.0, 1.0).tolist()


def common_dimension(vectors: Sequence[Sequence[float]]) -> int | None:
    """Return the length shared by all ``vectors``, or None when there are none.

    Raises ValueError when the vectors have different lengths.
    """
    dimensions = {len(vector) for vector in vectors}
    if len(dimensions) > 1:
        msg = f"Vectors have mixed dimensions: {sorted(dimensions)}"
        raise ValueError(msg)
    return dimensions.pop() if dimensions else None
