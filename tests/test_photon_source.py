"""Tests for source distributions and PhotonSource photon generation."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from conftest import five_sigma
from mcrt.config.validation import ConfigurationError, ConfigurationWarning
from mcrt.core.constants import IonName
from mcrt.core.cross_sections import Abundances, ConstantCrossSections, FitCrossSections
from mcrt.core.photon import PhotonType
from mcrt.core.rng import RandomStream
from mcrt.sources.distribution import (
    DiscreteSourceDistribution,
    IsotropicContinuousPhotonSource,
    SingleStarSourceDistribution,
)
from mcrt.sources.photon_source import PhotonSource
from mcrt.sources.spectrum import MonochromaticSpectrum, UniformSpectrum

BOX_ANCHOR = (0.0, 0.0, 0.0)
BOX_SIDES = (1.0, 2.0, 3.0)


def make_mixed_source(discrete_luminosity=1.0e11, flux=1.0e10, **kwargs):
    """Two discrete sources plus the continuous source of the 1 x 2 x 3 box."""
    return PhotonSource(
        distribution=DiscreteSourceDistribution(
            [(0.1, 0.1, 0.1), (0.9, 1.9, 2.9)], [0.25, 0.75], discrete_luminosity,
        ),
        discrete_spectrum=MonochromaticSpectrum(13.6),
        continuous_source=IsotropicContinuousPhotonSource(BOX_ANCHOR, BOX_SIDES),
        continuous_spectrum=MonochromaticSpectrum(30.0, flux=flux),
        **kwargs,
    )


class TestSourceDistributions:
    """Tests for discrete and continuous source distributions."""

    def test_single_star(self):
        """Test that a single star carries all the luminosity."""
        star = SingleStarSourceDistribution((1.0, 2.0, 3.0), 5.0e48)
        assert star.get_number_of_sources() == 1
        assert star.get_weight(0) == 1.0
        assert_allclose(star.get_position(0), [1.0, 2.0, 3.0])
        assert star.get_total_luminosity() == 5.0e48

    def test_discrete_length_mismatch(self):
        """Test that positions and weights must have the same length."""
        with pytest.raises(ValueError, match="weights"):
            DiscreteSourceDistribution([(0.0, 0.0, 0.0)], [0.5, 0.5], 1.0)

    def test_surface_area(self):
        """Test the total surface area of the box."""
        source = IsotropicContinuousPhotonSource(BOX_ANCHOR, BOX_SIDES)
        assert source.get_total_surface_area() == pytest.approx(2.0 * (2.0 + 3.0 + 6.0))

    def test_incoming_directions(self, rng):
        """Test that photons start on the surface and follow the inward cosine law."""
        source = IsotropicContinuousPhotonSource(BOX_ANCHOR, BOX_SIDES)
        anchor = np.array(BOX_ANCHOR)
        upper = anchor + np.array(BOX_SIDES)

        n = 20000
        cosines = np.empty(n)
        faces = np.zeros(3)
        for i in range(n):
            position, direction = source.get_random_incoming_direction(rng)
            assert np.linalg.norm(direction) == pytest.approx(1.0)
            on_lower = np.isclose(position, anchor)
            on_upper = np.isclose(position, upper)
            axis = int(np.flatnonzero(on_lower | on_upper)[0])
            inward = 1.0 if on_lower[axis] else -1.0
            cosines[i] = inward * direction[axis]
            faces[axis] += 1

        assert np.all(cosines > 0.0)
        # Cosine law: mean 2/3, variance 1/18
        assert abs(cosines.mean() - 2.0 / 3.0) < 5.0 * np.sqrt(1.0 / 18.0 / n)
        # Faces are chosen by area: 2 (yz), 3 (xz) and 6 (xy) out of 11
        for axis, area in enumerate((6.0, 3.0, 2.0)):
            p = area / 11.0
            assert abs(faces[axis] / n - p) < five_sigma(p, n)


class TestPhotonSourceConstruction:
    """Tests for PhotonSource configuration errors and luminosities."""

    def test_no_sources(self):
        """Test that a source without any emitter is rejected."""
        with pytest.raises(ConfigurationError, match="needs discrete sources"):
            PhotonSource()

    def test_weights_not_normalized(self):
        """Test that discrete weights must sum to 1 within 1e-9."""
        distribution = DiscreteSourceDistribution(
            [(0.0, 0.0, 0.0), (1.0, 1.0, 1.0)], [0.5, 0.6], 1.0e49,
        )
        with pytest.raises(ConfigurationError, match="sum to 1"):
            PhotonSource(distribution=distribution, discrete_spectrum=MonochromaticSpectrum(13.6))

    def test_last_probability_is_exactly_one(self):
        """Test that round-off in the weights cannot leave a gap at the end."""
        distribution = DiscreteSourceDistribution(
            [(0.0, 0.0, 0.0)] * 3, [0.1, 0.2, 0.7 - 1.0e-12], 1.0e49,
        )
        source = PhotonSource(distribution=distribution, discrete_spectrum=MonochromaticSpectrum(13.6))
        assert source.discrete_probabilities[-1] == 1.0

    def test_distribution_without_spectrum(self):
        """Test that discrete sources need a spectrum."""
        with pytest.raises(ConfigurationError, match="without a spectrum"):
            PhotonSource(distribution=SingleStarSourceDistribution((0.0, 0.0, 0.0), 1.0e49))

    def test_spectrum_without_source_warns(self):
        """Test that an unused discrete spectrum is ignored with a warning."""
        with pytest.warns(ConfigurationWarning, match="ignored"):
            source = PhotonSource(
                discrete_spectrum=MonochromaticSpectrum(13.6),
                continuous_source=IsotropicContinuousPhotonSource(BOX_ANCHOR, BOX_SIDES),
                continuous_spectrum=MonochromaticSpectrum(13.6, flux=1.0),
            )
        assert source.discrete_spectrum is None
        assert source.discrete_luminosity == 0.0

    def test_zero_luminosity(self):
        """Test that a total luminosity of zero is rejected."""
        with pytest.raises(ConfigurationError, match="luminosity"):
            PhotonSource(
                distribution=SingleStarSourceDistribution((0.0, 0.0, 0.0), 0.0),
                discrete_spectrum=MonochromaticSpectrum(13.6),
            )

    def test_luminosities(self):
        """Test that the continuous luminosity is surface area times flux."""
        source = make_mixed_source(discrete_luminosity=1.0e11, flux=1.0e10)
        assert source.continuous_luminosity == pytest.approx(22.0 * 1.0e10)
        assert source.total_luminosity == pytest.approx(1.0e11 + 22.0e10)


class TestPhotonBudget:
    """Tests for set_number_of_photons."""

    def test_discrete_only(self, single_star_source):
        """Test that all photons go to the discrete sources."""
        assert single_star_source.set_number_of_photons(1000) == 1000
        budget = single_star_source.budget
        assert budget.discrete_count == 1000
        assert budget.continuous_count == 0
        assert budget.discrete_weight == pytest.approx(1.0e49 / 1000)
        assert budget.total_weight == pytest.approx(1.0e49)

    def test_split_between_kinds(self):
        """Test the even split of an odd request."""
        source = make_mixed_source()
        assert source.set_number_of_photons(1001) == 1001
        assert source.budget.discrete_count == 500
        assert source.budget.continuous_count == 501
        assert source.budget.total_weight == pytest.approx(source.total_luminosity)

    def test_minimum_counts(self):
        """Test that the floors raise a small request."""
        source = make_mixed_source(min_photons_per_discrete_source=10, min_continuous_photons=100)
        assert source.set_number_of_photons(4) == 20 + 100
        assert source.budget.discrete_weight == pytest.approx(1.0e11 / 20)
        assert source.budget.continuous_weight == pytest.approx(22.0e10 / 100)


class TestRandomPhoton:
    """Tests for get_random_photon."""

    def test_primary_photon(self, single_star_source, rng):
        """Test a photon from a single star."""
        single_star_source.set_number_of_photons(10)
        photon = single_star_source.get_random_photon(rng)

        assert photon.type == PhotonType.PRIMARY
        assert photon.energy == 13.6
        assert_allclose(photon.position, [0.0, 0.0, 0.0])
        assert np.linalg.norm(photon.direction) == pytest.approx(1.0)
        assert photon.weight == pytest.approx(1.0e48)
        assert_allclose(photon.cross_sections, [1.0e-22, 1.0e-22])
        assert photon.helium_correction == pytest.approx(0.1 * 1.0e-22)

    def test_cross_sections_below_helium_threshold(self, rng):
        """Test that 13.6 eV photons cannot ionize helium."""
        source = PhotonSource(
            distribution=SingleStarSourceDistribution((0.0, 0.0, 0.0), 1.0),
            discrete_spectrum=MonochromaticSpectrum(13.6),
            cross_sections=FitCrossSections(),
        )
        photon = source.get_random_photon(rng)
        assert photon.cross_sections[IonName.H_N] > 0.0
        assert photon.cross_sections[IonName.HE_N] == 0.0
        assert photon.helium_correction == 0.0

    def test_source_selection_frequency(self):
        """Test that discrete sources are picked according to their weights."""
        source = make_mixed_source()
        source.set_number_of_photons(1000)
        rng = RandomStream(21)

        n = 20000
        first = 0
        discrete = 0
        for _ in range(n):
            photon = source.get_random_photon(rng)
            if photon.energy == 13.6:
                discrete += 1
                if photon.position[0] == 0.1:
                    first += 1

        assert abs(discrete / n - 0.5) < five_sigma(0.5, n)
        assert abs(first / discrete - 0.25) < five_sigma(0.25, discrete)

    def test_weight_conservation(self):
        """Test that the expected summed weight equals the total luminosity."""
        source = make_mixed_source()
        source.set_number_of_photons(2000)
        rng = RandomStream(8)
        budget = source.budget

        n = 40000
        total = sum(source.get_random_photon(rng).weight for _ in range(n)) * 2000 / n

        # Each draw is one of two weights with probability 1/2
        sigma = np.sqrt(n) * abs(budget.discrete_weight - budget.continuous_weight) / 2.0 * 2000 / n
        assert abs(total - source.total_luminosity) < 5.0 * sigma

    def test_isotropic_emission(self, single_star_source):
        """Test that discrete sources emit isotropically."""
        single_star_source.set_number_of_photons(100)
        rng = RandomStream(99)
        n = 50000
        directions = np.array([single_star_source.get_random_photon(rng).direction for _ in range(n)])

        assert np.all(np.abs(directions.mean(axis=0)) < 5.0 * np.sqrt(1.0 / 3.0 / n))
        assert np.all(
            np.abs((directions ** 2).mean(axis=0) - 1.0 / 3.0) < 5.0 * np.sqrt(4.0 / 45.0 / n)
        )

    def test_uniform_energies(self, rng):
        """Test that photon energies follow the source spectrum."""
        source = PhotonSource(
            distribution=SingleStarSourceDistribution((0.0, 0.0, 0.0), 1.0),
            discrete_spectrum=UniformSpectrum(13.6, 54.4),
            abundances=Abundances(helium=0.0),
            cross_sections=ConstantCrossSections(0.0),
        )
        source.set_number_of_photons(10)
        n = 20000
        energies = np.array([source.get_random_photon(rng).energy for _ in range(n)])
        assert abs(energies.mean() - 34.0) < 5.0 * 40.8 / np.sqrt(12.0 * n)
