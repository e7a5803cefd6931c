"""Statistical metrics for convergence checks and validation.

Implements a symmetric chi-squared distance between two per-cell fields
and the relative change of a scalar between iterations.
"""

import math

import numpy as np


def compute_chi_squared(current: np.ndarray, previous: np.ndarray) -> float:
    """Compute the symmetric chi-squared distance between two fields.

    chi2 = sum_i (a_i - b_i)^2 / (a_i + b_i), over cells where a_i + b_i > 0

    Args:
        current: Field of the current step
        previous: Field of the previous step (same shape)

    Returns:
        Chi-squared distance (0 for identical fields)
    """
    current = np.asarray(current, dtype=np.float64).ravel()
    previous = np.asarray(previous, dtype=np.float64).ravel()
    if current.shape != previous.shape:
        raise ValueError(f"Shape mismatch: {current.shape} vs {previous.shape}")

    total = current + previous
    mask = total > 0.0
    diff = current[mask] - previous[mask]
    return float(np.sum(diff * diff / total[mask]))


def compute_relative_change(current: float, previous: float) -> float:
    """Relative change (current - previous) / |previous|.

    Returns 0 if both values are 0, and +inf if only ``previous`` is 0.
    """
    if previous == 0.0:
        return 0.0 if current == 0.0 else math.inf
    return (current - previous) / abs(previous)
