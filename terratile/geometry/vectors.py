"""Small vector helpers with defined fallbacks for degenerate input."""

from __future__ import annotations

import math

import numpy as np

UP = np.array([0.0, 0.0, 1.0])

# Below this length a vector is treated as zero.
SMALL_NUMBER = 1e-8


def normalize_safe(v: np.ndarray, fallback: np.ndarray = UP) -> np.ndarray:
    """Return ``v`` scaled to unit length, or a copy of ``fallback``.

    Zero-length and non-finite vectors never produce NaN; they resolve to the
    fallback (the up vector by default).
    """
    v = np.asarray(v, dtype=float)
    length = math.sqrt(float(np.dot(v, v)))
    if not math.isfinite(length) or length <= SMALL_NUMBER:
        return np.array(fallback, dtype=float)
    return v / length


def lerp(a: np.ndarray, b: np.ndarray, t: float) -> np.ndarray:
    """Linear interpolation ``a + (b - a) * t``."""
    a = np.asarray(a, dtype=float)
    return a + (np.asarray(b, dtype=float) - a) * t

