"""Utilities package."""

from mcrt.utils.visualization import (
    save_convergence_figure,
    save_neutral_fraction_slice,
)

__all__ = [
    'save_convergence_figure',
    'save_neutral_fraction_slice',
]
