"""Tests for the photoionization equilibrium update."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from mcrt.core.constants import ALPHA_A_H, ALPHA_A_HE, IonName, recombination_rate
from mcrt.core.grid import CartesianDensityGrid
from mcrt.transport.ionization import IonizationStateCalculator, solve_hydrogen_equilibrium


@pytest.fixture
def unit_volume_grid():
    """2x2x2 grid of 1 m^3 cells."""
    return CartesianDensityGrid(
        box_anchor=(0.0, 0.0, 0.0),
        box_sides=(2.0, 2.0, 2.0),
        ncell=(2, 2, 2),
        number_density=1.0e8,
        initial_temperature=8000.0,
        initial_neutral_fraction=1.0,
    )


class TestHydrogenEquilibrium:
    """Tests for solve_hydrogen_equilibrium."""

    def test_no_radiation(self):
        """Test that cells without radiation are neutral."""
        x = solve_hydrogen_equilibrium(np.zeros(3), np.full(3, 1.0e-11))
        assert_allclose(x, 1.0)

    def test_quadratic_root(self):
        """Test that the result solves the balance equation and lies in [0, 1]."""
        a = np.array([1.0e-11, 1.0e-11, 5.0e-10, 2.0e-12])
        j = np.array([1.0e-13, 1.0e-11, 1.0e-9, 1.0e-6])
        x = solve_hydrogen_equilibrium(j, a)

        assert np.all((x >= 0.0) & (x <= 1.0))
        residual = a * x**2 - (2.0 * a + j) * x + a
        assert_allclose(residual / a, 0.0, atol=1e-12)

    def test_strong_radiation(self):
        """Test the optically thin limit x ~ a / j."""
        x = solve_hydrogen_equilibrium(np.array([1.0]), np.array([1.0e-12]))
        assert_allclose(x, 1.0e-12, rtol=1e-6)


class TestIonizationStateCalculator:
    """Tests for IonizationStateCalculator."""

    def test_invalid_luminosity(self):
        """Test that a source without luminosity is rejected."""
        with pytest.raises(ValueError):
            IonizationStateCalculator(0.0)

    def test_zero_intensity(self, unit_volume_grid):
        """Test that a dark grid stays neutral."""
        IonizationStateCalculator(1.0e49).update(1.0e49, unit_volume_grid)
        assert_allclose(unit_volume_grid.neutral_fraction_H, 1.0)
        assert_allclose(unit_volume_grid.neutral_fraction_He, 1.0)

    def test_no_weight_shot(self, unit_volume_grid):
        """Test that rates vanish when no weight was shot."""
        unit_volume_grid.accumulators.mean_intensity[:] = 1.0
        j_H, j_He = IonizationStateCalculator(1.0).photoionization_rates(0.0, unit_volume_grid)
        assert np.all(j_H == 0.0)
        assert np.all(j_He == 0.0)

    def test_rate_normalization(self, unit_volume_grid):
        """Test that rates scale with luminosity over weight and cell volume."""
        unit_volume_grid.accumulators.mean_intensity[:, IonName.H_N] = 3.0
        unit_volume_grid.accumulators.mean_intensity[:, IonName.HE_N] = 1.0
        j_H, j_He = IonizationStateCalculator(10.0).photoionization_rates(5.0, unit_volume_grid)
        assert_allclose(j_H, 6.0)
        assert_allclose(j_He, 2.0)

    def test_uniform_intensity(self, unit_volume_grid):
        """Test the update against a direct evaluation of both balance equations."""
        J_H = 1.0e-10
        J_He = 4.0e-11
        unit_volume_grid.accumulators.mean_intensity[:, IonName.H_N] = J_H
        unit_volume_grid.accumulators.mean_intensity[:, IonName.HE_N] = J_He

        IonizationStateCalculator(2.0).update(2.0, unit_volume_grid)

        n = 1.0e8
        a = n * recombination_rate(ALPHA_A_H, 8000.0)
        x_H = (2.0 * a + J_H - np.sqrt(J_H**2 + 4.0 * a * J_H)) / (2.0 * a)
        n_e_alpha = n * (1.0 - x_H) * recombination_rate(ALPHA_A_HE, 8000.0)
        x_He = n_e_alpha / (J_He + n_e_alpha)

        assert_allclose(unit_volume_grid.neutral_fraction_H, x_H, rtol=1e-8)
        assert_allclose(unit_volume_grid.neutral_fraction_He, x_He, rtol=1e-8)
        assert 0.0 < x_H < 1.0
        assert 0.0 < x_He < 1.0
