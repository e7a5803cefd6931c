"""Simple visualization utilities for convergence history and ionization maps."""

import logging

import numpy as np
import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def save_convergence_figure(
    result,
    save_path: str = None,
    title: str = 'Convergence History',
):
    """Plot the per-iteration history of a SimulationResult.

    The left panel shows the mean neutral fractions, the right panel the
    escape fraction and, if the iteration checker computed one, the
    chi-squared statistic.

    Args:
        result: SimulationResult with at least one IterationRecord
        save_path: If provided, save to file
        title: Figure title
    """
    records = result.records
    iterations = [record.iteration for record in records]

    fig, (ax_fraction, ax_escape) = plt.subplots(1, 2, figsize=(12, 5))

    ax_fraction.semilogy(
        iterations, [record.mean_neutral_fraction_H for record in records],
        'o-', label='H',
    )
    ax_fraction.semilogy(
        iterations, [record.mean_neutral_fraction_He for record in records],
        's-', label='He',
    )
    ax_fraction.set_xlabel('Iteration')
    ax_fraction.set_ylabel('Mean neutral fraction')
    ax_fraction.legend()
    ax_fraction.grid(True, alpha=0.3)

    ax_escape.plot(iterations, [record.escape_fraction for record in records], 'o-', color='C2')
    ax_escape.set_xlabel('Iteration')
    ax_escape.set_ylabel('Escape fraction [%]')
    ax_escape.grid(True, alpha=0.3)

    chi_squared = [(record.iteration, record.chi_squared) for record in records
                   if record.chi_squared is not None]
    if chi_squared:
        ax_chi = ax_escape.twinx()
        ax_chi.semilogy(*zip(*chi_squared), 'x--', color='C3')
        ax_chi.set_ylabel('Relative chi-squared')

    fig.suptitle(title)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Saved: {save_path}")
    else:
        plt.show()

    plt.close()


def save_neutral_fraction_slice(
    neutral_fraction: np.ndarray,
    box_anchor=None,
    box_sides=None,
    axis: int = 2,
    index: int = None,
    title: str = 'Neutral Fraction',
    save_path: str = None,
):
    """Plot one slice of a 3D neutral fraction field on a log color scale.

    Args:
        neutral_fraction: Neutral fractions, shape (nx, ny, nz)
        box_anchor: Lower corner of the box [m]; cell indices are used if None
        box_sides: Side lengths of the box [m]
        axis: Axis perpendicular to the slice
        index: Slice index along ``axis`` (default: middle)
        title: Plot title
        save_path: If provided, save to file
    """
    neutral_fraction = np.asarray(neutral_fraction)
    if neutral_fraction.ndim != 3:
        raise ValueError(f"Expected a 3D field, got shape {neutral_fraction.shape}")
    if index is None:
        index = neutral_fraction.shape[axis] // 2

    plane = np.take(neutral_fraction, index, axis=axis)
    axes = [a for a in range(3) if a != axis]
    labels = ['x', 'y', 'z']

    if box_anchor is not None and box_sides is not None:
        extent = [
            box_anchor[axes[0]], box_anchor[axes[0]] + box_sides[axes[0]],
            box_anchor[axes[1]], box_anchor[axes[1]] + box_sides[axes[1]],
        ]
        unit = ' [m]'
    else:
        extent = [0, plane.shape[0], 0, plane.shape[1]]
        unit = ' [cell]'

    fig, ax = plt.subplots(figsize=(8, 6))

    im = ax.imshow(
        np.log10(np.clip(plane, 1e-30, None)).T,
        origin='lower',
        aspect='auto',
        extent=extent,
        cmap='viridis',
    )

    plt.colorbar(im, ax=ax, label='log10 neutral fraction')
    ax.set_xlabel(labels[axes[0]] + unit)
    ax.set_ylabel(labels[axes[1]] + unit)
    ax.set_title(f"{title} ({labels[axis]} index {index})")

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Saved: {save_path}")
    else:
        plt.show()

    plt.close()
