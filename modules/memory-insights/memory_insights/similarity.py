"""Cosine similarity between embedding vectors."""

import math
from typing import Optional, Sequence


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> Optional[float]:
    """Cosine of the angle between two vectors, in [-1, 1].

    Returns None when the vectors cannot be compared: different lengths
    (embeddings from different model versions), empty, or zero magnitude.
    """
    if len(a) != len(b) or not a:
        return None

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return None

    # Rounding can push |cos| a hair past 1
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def clamp_similarity(score: float) -> float:
    """Map a cosine score onto [0, 1]; negative means not similar."""
    return max(0.0, min(1.0, score))
