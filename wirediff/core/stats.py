#!/usr/bin/env python3
"""
Sample statistics for gate metrics.

Percentiles use the nearest-rank method so that reported values are always
one of the observed samples.
"""

import math
from typing import Sequence

import numpy as np


def _validate_samples(samples: Sequence[float]) -> np.ndarray:
    values = np.asarray(list(samples), dtype=float)
    if values.size and not np.all(np.isfinite(values)):
        raise ValueError("samples must contain only finite values")
    return values


def percentile(samples: Sequence[float], p: float) -> float:
    """Nearest-rank percentile for p in (0, 1].

    Returns 0.0 for an empty sample set. The rank is ceil(n * p) - 1 over
    the ascending samples, clamped to the valid index range.
    """
    if p is None or not math.isfinite(p) or p <= 0.0 or p > 1.0:
        raise ValueError(f"percentile must be within (0, 1]: {p}")
    values = _validate_samples(samples)
    if values.size == 0:
        return 0.0
    ordered = np.sort(values)
    index = math.ceil(ordered.size * p) - 1
    index = max(0, min(index, ordered.size - 1))
    return float(ordered[index])


def mean(samples: Sequence[float]) -> float:
    values = _validate_samples(samples)
    if values.size == 0:
        return 0.0
    return float(np.mean(values))
