"""Ionization state update.

After the substep loop of an iteration finished, the accumulated mean
intensities are turned into photoionization rates and every cell is put in
photoionization equilibrium at its (fixed) temperature.

Hydrogen:
    j_H x_H = n (1 - x_H)^2 alpha_H
    with j_H = (Q / W) J_H / V the photoionization rate per atom, where Q is
    the total source luminosity, W the total weight shot, J_H the
    accumulated hydrogen mean intensity and V the cell volume.

Helium:
    x_He = n_e alpha_He / (j_He + n_e alpha_He), with n_e = n (1 - x_H)

Electrons from helium are neglected in n_e.

Import Policy:
    from mcrt.transport.ionization import IonizationStateCalculator

DO NOT use: from mcrt.transport.ionization import *
"""

import logging

import numpy as np

from mcrt.core.constants import ALPHA_A_H, ALPHA_A_HE, IonName, recombination_rate
from mcrt.core.grid import CartesianDensityGrid

logger = logging.getLogger(__name__)


def solve_hydrogen_equilibrium(j_H: np.ndarray, n_alpha: np.ndarray) -> np.ndarray:
    """Neutral hydrogen fraction x solving a x^2 - (2a + j) x + a = 0.

    Uses the root in [0, 1], written in a form that is stable for j << a.
    Cells without radiation are fully neutral.

    Args:
        j_H: Photoionization rate per atom (s^-1)
        n_alpha: Density times recombination coefficient (s^-1)

    Returns:
        Neutral fractions
    """
    j_H = np.asarray(j_H, dtype=np.float64)
    n_alpha = np.asarray(n_alpha, dtype=np.float64)
    x = np.ones_like(j_H)
    lit = j_H > 0.0
    a = n_alpha[lit]
    j = j_H[lit]
    x[lit] = 2.0 * a / ((2.0 * a + j) + np.sqrt(j * j + 4.0 * a * j))
    return np.clip(x, 0.0, 1.0)


class IonizationStateCalculator:
    """Photoionization equilibrium solver for hydrogen and helium.

    Args:
        luminosity: Total source luminosity Q (s^-1)
    """

    def __init__(self, luminosity: float):
        if luminosity <= 0.0:
            raise ValueError(f"luminosity must be > 0, got {luminosity}")
        self.luminosity = luminosity

    def photoionization_rates(self, total_weight: float, grid: CartesianDensityGrid):
        """Per-atom photoionization rates (j_H, j_He) of every cell."""
        if total_weight <= 0.0:
            zeros = np.zeros(grid.number_of_cells)
            return zeros, zeros.copy()
        norm = self.luminosity / (total_weight * grid.cell_volume)
        intensity = grid.accumulators.mean_intensity
        return norm * intensity[:, IonName.H_N], norm * intensity[:, IonName.HE_N]

    def update(self, total_weight: float, grid: CartesianDensityGrid) -> None:
        """Compute the new neutral fractions and store them in the grid.

        Args:
            total_weight: Total photon weight shot in this iteration
            grid: Grid with the accumulated mean intensities
        """
        j_H, j_He = self.photoionization_rates(total_weight, grid)

        alpha_H = np.array([recombination_rate(ALPHA_A_H, t) for t in grid.temperature])
        alpha_He = np.array([recombination_rate(ALPHA_A_HE, t) for t in grid.temperature])

        x_H = solve_hydrogen_equilibrium(j_H, grid.number_density * alpha_H)

        n_e_alpha = grid.number_density * (1.0 - x_H) * alpha_He
        denominator = j_He + n_e_alpha
        x_He = np.ones_like(x_H)
        np.divide(n_e_alpha, denominator, out=x_He, where=denominator > 0.0)
        x_He = np.clip(x_He, 0.0, 1.0)

        grid.set_neutral_fractions(x_H, x_He)
        grid.update_reemission_probabilities()

        logger.info(
            f"Ionization state updated: mean neutral fraction H {np.mean(x_H):.3e}, "
            f"He {np.mean(x_He):.3e}"
        )
