"""Validation package."""

from mcrt.validation.metrics import (
    compute_chi_squared,
    compute_relative_change,
)

__all__ = [
    'compute_chi_squared',
    'compute_relative_change',
]
