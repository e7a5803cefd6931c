"""Photon Source

PhotonSource turns the discrete point sources and the optional continuous
boundary source into photon packets, and re-samples packets after they were
absorbed in a cell.

Photon budget:
    With both source kinds present, a fixed fraction of the requested photons
    goes to the discrete sources and the rest to the continuous source. Each
    kind gets at least a minimum number of photons. Per-photon weights are
    luminosity / count, so the photons of one iteration carry the total
    luminosity whatever the counts are.

Re-emission:
    An absorbed photon is assigned to hydrogen or helium in proportion to
    their opacities. The absorbing atom recombines, and depending on the
    recombination channel the photon is re-emitted as an ionizing photon with
    a new energy and direction, or lost as non-ionizing radiation.

Thread safety:
    PhotonSource is read-only after set_number_of_photons. All randomness
    comes from the RandomStream passed in by the caller.

Import Policy:
    from mcrt.sources.photon_source import PhotonSource, PhotonBudget

DO NOT use: from mcrt.sources.photon_source import *
"""

import logging
import math
import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np

from mcrt.config.defaults import (
    DEFAULT_DISCRETE_FRACTION,
    DEFAULT_MIN_CONTINUOUS_PHOTONS,
    DEFAULT_MIN_PHOTONS_PER_DISCRETE_SOURCE,
    DEFAULT_WEIGHT_NORMALIZATION_TOL,
)
from mcrt.config.validation import ConfigurationError, ConfigurationWarning
from mcrt.core.cell import CellState, check_he_emission_probabilities
from mcrt.core.constants import (
    HEI_LINE_ENERGY,
    ON_THE_SPOT_COEFFICIENT,
    TWO_PHOTON_IONIZING_FRACTION,
    IonName,
)
from mcrt.core.cross_sections import Abundances, CrossSectionProvider, FitCrossSections
from mcrt.core.photon import Photon, PhotonType
from mcrt.core.rng import RandomStream
from mcrt.sources.distribution import IsotropicContinuousPhotonSource, SourceDistribution
from mcrt.sources.spectrum import (
    HeliumLymanContinuumSpectrum,
    HeliumTwoPhotonContinuumSpectrum,
    HydrogenLymanContinuumSpectrum,
    Spectrum,
)

logger = logging.getLogger(__name__)

# Probability of drawing a discrete photon when both source kinds are active
SOURCE_KIND_SPLIT = 0.5


@dataclass(frozen=True)
class PhotonBudget:
    """Photon counts and per-photon weights of one iteration.

    Attributes:
        discrete_count: Number of photons from discrete sources
        continuous_count: Number of photons from the continuous source
        discrete_weight: Weight of one discrete photon (s^-1)
        continuous_weight: Weight of one continuous photon (s^-1)
    """

    discrete_count: int = 0
    continuous_count: int = 0
    discrete_weight: float = 1.0
    continuous_weight: float = 1.0

    @property
    def total_count(self) -> int:
        return self.discrete_count + self.continuous_count

    @property
    def total_weight(self) -> float:
        """Weight carried by a full set of budgeted photons."""
        total = 0.0
        if self.discrete_count > 0:
            total += self.discrete_count * self.discrete_weight
        if self.continuous_count > 0:
            total += self.continuous_count * self.continuous_weight
        return total


class PhotonSource:
    """Generator of source photons and re-emitted photons.

    Args:
        distribution: Discrete point sources, or None
        discrete_spectrum: Spectrum of the discrete sources
        continuous_source: Boundary radiation field, or None
        continuous_spectrum: Spectrum of the continuous source; its total
            flux times the box surface area is the continuous luminosity
        abundances: Elemental abundances
        cross_sections: Photoionization cross sections
        discrete_fraction: Share of the photons given to the discrete sources
            when both kinds are present
        min_photons_per_discrete_source: Floor on discrete photons, per source
        min_continuous_photons: Floor on continuous photons

    Raises:
        ConfigurationError: If there are no sources, the discrete weights do
            not sum to 1, a source has no spectrum, or the total luminosity
            is zero
    """

    def __init__(
        self,
        distribution: Optional[SourceDistribution] = None,
        discrete_spectrum: Optional[Spectrum] = None,
        continuous_source: Optional[IsotropicContinuousPhotonSource] = None,
        continuous_spectrum: Optional[Spectrum] = None,
        abundances: Optional[Abundances] = None,
        cross_sections: Optional[CrossSectionProvider] = None,
        discrete_fraction: float = DEFAULT_DISCRETE_FRACTION,
        min_photons_per_discrete_source: int = DEFAULT_MIN_PHOTONS_PER_DISCRETE_SOURCE,
        min_continuous_photons: int = DEFAULT_MIN_CONTINUOUS_PHOTONS,
    ):
        if distribution is None and continuous_source is None:
            raise ConfigurationError(
                "PhotonSource needs discrete sources, a continuous source, or both"
            )

        self.abundances = abundances if abundances is not None else Abundances()
        self.cross_sections = cross_sections if cross_sections is not None else FitCrossSections()
        self.discrete_fraction = discrete_fraction
        self.min_photons_per_discrete_source = min_photons_per_discrete_source
        self.min_continuous_photons = min_continuous_photons

        self.discrete_positions = np.zeros((0, 3))
        self.discrete_probabilities = np.zeros(0)
        self.discrete_spectrum = None
        self.discrete_luminosity = 0.0
        if distribution is not None:
            if discrete_spectrum is None:
                raise ConfigurationError("Discrete sources were given without a spectrum")
            self._set_discrete_sources(distribution)
            self.discrete_spectrum = discrete_spectrum
            logger.info(
                f"Constructed PhotonSource with {len(self.discrete_positions)} positions and weights."
            )
        elif discrete_spectrum is not None:
            warnings.warn(
                "A discrete spectrum was given without discrete sources; it is ignored.",
                ConfigurationWarning,
                stacklevel=2,
            )

        self.continuous_source = continuous_source
        self.continuous_spectrum = None
        self.continuous_luminosity = 0.0
        if continuous_source is not None:
            if continuous_spectrum is None:
                raise ConfigurationError("A continuous source was given without a spectrum")
            self.continuous_spectrum = continuous_spectrum
            self.continuous_luminosity = (
                continuous_source.get_total_surface_area() * continuous_spectrum.get_total_flux()
            )
        elif continuous_spectrum is not None:
            warnings.warn(
                "A continuous spectrum was given without a continuous source; it is ignored.",
                ConfigurationWarning,
                stacklevel=2,
            )

        self.total_luminosity = self.discrete_luminosity + self.continuous_luminosity
        if not self.total_luminosity > 0.0:
            raise ConfigurationError(
                f"Total luminosity of all sources must be > 0, got {self.total_luminosity}"
            )

        # Re-emission spectra
        self.hydrogen_lyc_spectrum = HydrogenLymanContinuumSpectrum()
        self.helium_lyc_spectrum = HeliumLymanContinuumSpectrum()
        self.helium_two_photon_spectrum = HeliumTwoPhotonContinuumSpectrum()

        self.budget = PhotonBudget()

        logger.info(f"Total luminosity of discrete sources: {self.discrete_luminosity:g} s^-1.")
        logger.info(f"Total luminosity of continuous sources: {self.continuous_luminosity:g} s^-1.")
        logger.info(
            f"{100.0 * self.discrete_luminosity / self.total_luminosity:g}% of the ionizing "
            f"radiation is emitted by discrete sources."
        )

    def _set_discrete_sources(self, distribution: SourceDistribution) -> None:
        number_of_sources = distribution.get_number_of_sources()
        if number_of_sources <= 0:
            raise ConfigurationError("Discrete source distribution has no sources")

        self.discrete_positions = np.array(
            [distribution.get_position(i) for i in range(number_of_sources)], dtype=np.float64
        )
        weights = np.array([distribution.get_weight(i) for i in range(number_of_sources)])
        probabilities = np.cumsum(weights)
        if abs(probabilities[-1] - 1.0) > DEFAULT_WEIGHT_NORMALIZATION_TOL:
            raise ConfigurationError(
                f"Discrete source weights do not sum to 1.0 ({probabilities[-1]!r})"
            )
        probabilities[-1] = 1.0
        self.discrete_probabilities = probabilities
        self.discrete_luminosity = float(distribution.get_total_luminosity())

    @property
    def number_of_discrete_sources(self) -> int:
        return len(self.discrete_positions)

    # ------------------------------------------------------------------
    # Photon budget
    # ------------------------------------------------------------------

    def set_number_of_photons(self, number_of_photons: int) -> int:
        """Set the number of photons for the next iteration.

        Args:
            number_of_photons: Requested number of photons

        Returns:
            Actual number of photons, which exceeds the request when a
            minimum photon count was enforced
        """
        discrete_count = 0
        continuous_count = 0
        if self.discrete_luminosity > 0.0 and self.continuous_luminosity > 0.0:
            discrete_count = int(math.floor(self.discrete_fraction * number_of_photons))
            # Subtracting keeps the sum exact for odd requests
            continuous_count = number_of_photons - discrete_count
        elif self.discrete_luminosity > 0.0:
            discrete_count = number_of_photons
        else:
            continuous_count = number_of_photons

        discrete_weight = 1.0
        continuous_weight = 1.0
        if discrete_count > 0:
            discrete_count = max(
                discrete_count,
                self.min_photons_per_discrete_source * self.number_of_discrete_sources,
            )
            discrete_weight = self.discrete_luminosity / discrete_count
        if continuous_count > 0:
            continuous_count = max(continuous_count, self.min_continuous_photons)
            continuous_weight = self.continuous_luminosity / continuous_count

        self.budget = PhotonBudget(
            discrete_count=discrete_count,
            continuous_count=continuous_count,
            discrete_weight=discrete_weight,
            continuous_weight=continuous_weight,
        )

        logger.info(
            f"Number of photons for PhotonSource reset to {discrete_count} discrete photons "
            f"and {continuous_count} continuous photons."
        )
        return self.budget.total_count

    # ------------------------------------------------------------------
    # Photon generation
    # ------------------------------------------------------------------

    def set_cross_sections(self, photon: Photon, energy: float) -> None:
        """Set the cross sections of ``photon`` for the given energy."""
        for ion in IonName:
            photon.cross_sections[ion] = self.cross_sections.get_cross_section(ion, energy)
        photon.helium_correction = self.abundances.helium * photon.cross_sections[IonName.HE_N]

    def get_random_photon(self, rng: RandomStream) -> Photon:
        """Generate a source photon using the current budget.

        Args:
            rng: Random stream of the calling job

        Returns:
            New PRIMARY photon
        """
        budget = self.budget
        if budget.discrete_count > 0:
            if budget.continuous_count > 0:
                discrete = rng.uniform() < SOURCE_KIND_SPLIT
            else:
                discrete = True
        elif budget.continuous_count > 0:
            discrete = False
        else:
            # No budget set yet: fall back on whichever kind exists
            discrete = self.discrete_luminosity > 0.0

        if discrete:
            x = rng.uniform()
            i = 0
            while x > self.discrete_probabilities[i]:
                i += 1
            position = self.discrete_positions[i]
            direction = rng.isotropic_direction()
            energy = self.discrete_spectrum.get_random_energy(rng)
            weight = budget.discrete_weight
        else:
            position, direction = self.continuous_source.get_random_incoming_direction(rng)
            energy = self.continuous_spectrum.get_random_energy(rng)
            weight = budget.continuous_weight

        photon = Photon(position, direction, energy, weight)
        self.set_cross_sections(photon, energy)
        return photon

    # ------------------------------------------------------------------
    # Re-emission
    # ------------------------------------------------------------------

    def _hydrogen_reemission(self, cell: CellState, rng: RandomStream) -> Optional[float]:
        if rng.uniform() <= cell.p_hion:
            return self.hydrogen_lyc_spectrum.get_random_energy(rng, cell.temperature)
        return None

    def _two_photon_reemission(self, rng: RandomStream) -> Optional[float]:
        if rng.uniform() < TWO_PHOTON_IONIZING_FRACTION:
            return self.helium_two_photon_spectrum.get_random_energy(rng)
        return None

    def reemit(self, photon: Photon, cell: CellState, rng: RandomStream) -> bool:
        """Re-emit a photon that was absorbed in a cell.

        Every decision uses a fresh uniform draw.

        Args:
            photon: Absorbed photon; updated in place
            cell: State of the cell the photon was absorbed in
            rng: Random stream of the calling job

        Returns:
            True if the photon was re-emitted as an ionizing photon, False if
            it was lost (the photon is then tagged ABSORBED)

        Raises:
            InvalidCellStateError: If the helium re-emission thresholds of
                the cell are not a valid cumulative table
        """
        opacity_H = cell.neutral_fraction_H * photon.cross_sections[IonName.H_N]
        opacity_He = cell.neutral_fraction_He * photon.helium_correction
        if opacity_H + opacity_He > 0.0:
            p_H_abs = opacity_H / (opacity_H + opacity_He)
        else:
            p_H_abs = 1.0

        new_energy = None
        new_type = PhotonType.DIFFUSE_HI
        if rng.uniform() <= p_H_abs:
            new_energy = self._hydrogen_reemission(cell, rng)
        else:
            check_he_emission_probabilities(cell.p_he_em)
            new_type = PhotonType.DIFFUSE_HEI
            x = rng.uniform()
            if x <= cell.p_he_em[0]:
                new_energy = self.helium_lyc_spectrum.get_random_energy(rng, cell.temperature)
            elif x <= cell.p_he_em[1]:
                new_energy = HEI_LINE_ENERGY
            elif x <= cell.p_he_em[2]:
                new_energy = self._two_photon_reemission(rng)
            elif x <= cell.p_he_em[3]:
                # HeI Ly-alpha: absorbed on the spot by hydrogen, or converted
                # to the two-photon continuum
                sqrt_T_x_H = math.sqrt(cell.temperature) * cell.neutral_fraction_H
                denominator = sqrt_T_x_H + ON_THE_SPOT_COEFFICIENT * cell.neutral_fraction_He
                p_ots = sqrt_T_x_H / denominator if denominator > 0.0 else 1.0
                if rng.uniform() < p_ots:
                    new_type = PhotonType.DIFFUSE_HI
                    new_energy = self._hydrogen_reemission(cell, rng)
                else:
                    new_energy = self._two_photon_reemission(rng)

        if new_energy is None:
            photon.type = PhotonType.ABSORBED
            return False

        photon.type = new_type
        photon.energy = new_energy
        photon.direction = rng.isotropic_direction()
        self.set_cross_sections(photon, new_energy)
        return True
