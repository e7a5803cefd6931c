"""Photon energy spectra.

Every spectrum samples a photon energy (eV) from a random stream:

    energy = spectrum.get_random_energy(rng)                # source spectra
    energy = spectrum.get_random_energy(rng, temperature)   # re-emission spectra

Source spectra also report the total ionizing photon flux of the emitting
surface (photons m^-2 s^-1), used to turn a continuous source's surface area
into a luminosity.

All tables are built in the constructor. Sampling only reads them, so one
spectrum instance can be shared by all jobs.

Import Policy:
    from mcrt.sources.spectrum import PlanckSpectrum, create_spectrum

DO NOT use: from mcrt.sources.spectrum import *
"""

import math
from typing import Optional, Protocol

import numpy as np
from scipy import integrate

from mcrt.config.enums import SpectrumType
from mcrt.core.constants import (
    BOLTZMANN_EV,
    C_LIGHT,
    HE_IONIZATION_ENERGY,
    HE_TWO_PHOTON_MAX_ENERGY,
    H_IONIZATION_ENERGY,
    IONIZING_ENERGY_MAX,
    IONIZING_ENERGY_MIN,
    PLANCK_EV,
    REEMISSION_TABLE_NUM_T,
    REEMISSION_TABLE_T_MAX,
    REEMISSION_TABLE_T_MIN,
    IonName,
)
from mcrt.core.cross_sections import FitCrossSections
from mcrt.core.rng import RandomStream

# Number of energy points in a tabulated spectrum
DEFAULT_NUM_ENERGIES = 1000


class Spectrum(Protocol):
    """Capability shared by all spectra."""

    def get_random_energy(self, rng: RandomStream, temperature: Optional[float] = None) -> float:
        ...

    def get_total_flux(self) -> float:
        ...


def _normalized_cdf(energies: np.ndarray, density: np.ndarray) -> np.ndarray:
    """Cumulative distribution of a tabulated density, running from 0 to 1."""
    cdf = integrate.cumulative_trapezoid(density, energies, initial=0.0)
    if cdf[-1] <= 0.0:
        raise ValueError("Spectrum has no weight in its energy range")
    cdf /= cdf[-1]
    return cdf


class MonochromaticSpectrum:
    """All photons have the same energy.

    Args:
        energy: Photon energy (eV)
        flux: Total photon flux of the emitting surface (m^-2 s^-1)
    """

    def __init__(self, energy: float, flux: float = 0.0):
        if energy <= 0.0:
            raise ValueError(f"energy must be > 0, got {energy}")
        self.energy = float(energy)
        self.flux = float(flux)

    def get_random_energy(self, rng: RandomStream, temperature: Optional[float] = None) -> float:
        return self.energy

    def get_total_flux(self) -> float:
        return self.flux

    def get_mean_energy(self) -> float:
        return self.energy


class UniformSpectrum:
    """Photon energies uniformly distributed in [e_min, e_max].

    Args:
        e_min, e_max: Energy range (eV)
        flux: Total photon flux of the emitting surface (m^-2 s^-1)
    """

    def __init__(self, e_min: float = IONIZING_ENERGY_MIN, e_max: float = IONIZING_ENERGY_MAX, flux: float = 0.0):
        if e_max <= e_min:
            raise ValueError(f"e_max ({e_max}) must be > e_min ({e_min})")
        self.e_min = float(e_min)
        self.e_max = float(e_max)
        self.flux = float(flux)

    def get_random_energy(self, rng: RandomStream, temperature: Optional[float] = None) -> float:
        return self.e_min + (self.e_max - self.e_min) * rng.uniform()

    def get_total_flux(self) -> float:
        return self.flux

    def get_mean_energy(self) -> float:
        return 0.5 * (self.e_min + self.e_max)


class PlanckSpectrum:
    """Ionizing part (13.6 - 54.4 eV) of a black body photon spectrum.

    The photon number density per unit energy is proportional to
    E^2 / (exp(E / kT) - 1).

    Args:
        temperature: Black body temperature (K)
        flux: If given, overrides the black body ionizing photon flux
            returned by get_total_flux (m^-2 s^-1)
        num_energies: Number of points in the sampling table
    """

    def __init__(self, temperature: float, flux: Optional[float] = None, num_energies: int = DEFAULT_NUM_ENERGIES):
        if temperature <= 0.0:
            raise ValueError(f"temperature must be > 0, got {temperature}")
        self.temperature = float(temperature)
        self._kT = BOLTZMANN_EV * self.temperature

        self.energies = np.linspace(IONIZING_ENERGY_MIN, IONIZING_ENERGY_MAX, num_energies)
        self.density = self._photon_density(self.energies)
        self.cdf = _normalized_cdf(self.energies, self.density)

        if flux is None:
            integral, _ = integrate.quad(self._photon_density, IONIZING_ENERGY_MIN, IONIZING_ENERGY_MAX)
            # Emergent photon flux of a black body surface: pi * B
            flux = 2.0 * math.pi / (PLANCK_EV ** 3 * C_LIGHT ** 2) * integral
        self.flux = float(flux)

    def _photon_density(self, energy):
        return energy ** 2 / np.expm1(energy / self._kT)

    def get_random_energy(self, rng: RandomStream, temperature: Optional[float] = None) -> float:
        return float(np.interp(rng.uniform(), self.cdf, self.energies))

    def get_total_flux(self) -> float:
        return self.flux

    def get_mean_energy(self) -> float:
        return float(
            integrate.trapezoid(self.energies * self.density, self.energies)
            / integrate.trapezoid(self.density, self.energies)
        )


class _TemperatureTabulatedSpectrum:
    """Recombination continuum tabulated on a temperature grid.

    The photon number density per unit energy at temperature T is
    sigma(E) E^2 exp(-(E - E_th) / kT) above the threshold E_th. Sampling
    draws one uniform, inverts the cumulative tables of the two bracketing
    temperatures and interpolates linearly in temperature. Temperatures
    outside the grid use the nearest table.
    """

    ion: IonName
    threshold: float

    def __init__(self, num_energies: int = DEFAULT_NUM_ENERGIES):
        cross_sections = FitCrossSections()
        self.temperatures = np.linspace(REEMISSION_TABLE_T_MIN, REEMISSION_TABLE_T_MAX, REEMISSION_TABLE_NUM_T)
        self.energies = np.linspace(self.threshold, IONIZING_ENERGY_MAX, num_energies)
        sigma = np.array([cross_sections.get_cross_section(self.ion, e) for e in self.energies])

        self.cdfs = np.empty((len(self.temperatures), num_energies))
        for i, temperature in enumerate(self.temperatures):
            kT = BOLTZMANN_EV * temperature
            density = sigma * self.energies ** 2 * np.exp(-(self.energies - self.threshold) / kT)
            self.cdfs[i] = _normalized_cdf(self.energies, density)

    def get_random_energy(self, rng: RandomStream, temperature: Optional[float] = None) -> float:
        if temperature is None:
            raise ValueError(f"{type(self).__name__} needs a temperature")
        x = rng.uniform()
        temperatures = self.temperatures
        if temperature <= temperatures[0]:
            return float(np.interp(x, self.cdfs[0], self.energies))
        if temperature >= temperatures[-1]:
            return float(np.interp(x, self.cdfs[-1], self.energies))
        i = int(np.searchsorted(temperatures, temperature)) - 1
        f = (temperature - temperatures[i]) / (temperatures[i + 1] - temperatures[i])
        low = np.interp(x, self.cdfs[i], self.energies)
        high = np.interp(x, self.cdfs[i + 1], self.energies)
        return float((1.0 - f) * low + f * high)

    def get_total_flux(self) -> float:
        return 0.0


class HydrogenLymanContinuumSpectrum(_TemperatureTabulatedSpectrum):
    """Hydrogen Lyman continuum recombination photons (13.6 eV and up)."""

    ion = IonName.H_N
    threshold = H_IONIZATION_ENERGY


class HeliumLymanContinuumSpectrum(_TemperatureTabulatedSpectrum):
    """Neutral helium Lyman continuum recombination photons (24.6 eV and up)."""

    ion = IonName.HE_N
    threshold = HE_IONIZATION_ENERGY


class HeliumTwoPhotonContinuumSpectrum:
    """Hydrogen-ionizing part of the helium 2^1S two-photon continuum.

    The photon distribution over y = E / E_max uses the
    Nussbaumer & Schmutz fit
        A(y) = y(1-y)(1-(4y(1-y))^g) + a (y(1-y))^b (4y(1-y))^g
    with a = 0.88, b = 1.53, g = 0.8, restricted to E >= 13.6 eV. It does
    not depend on temperature.
    """

    ALPHA = 0.88
    BETA = 1.53
    GAMMA = 0.8

    def __init__(self, num_energies: int = DEFAULT_NUM_ENERGIES):
        self.energies = np.linspace(H_IONIZATION_ENERGY, HE_TWO_PHOTON_MAX_ENERGY, num_energies)
        y = self.energies / HE_TWO_PHOTON_MAX_ENERGY
        yy = y * (1.0 - y)
        density = yy * (1.0 - (4.0 * yy) ** self.GAMMA) + self.ALPHA * yy ** self.BETA * (4.0 * yy) ** self.GAMMA
        self.cdf = _normalized_cdf(self.energies, density)

    def get_random_energy(self, rng: RandomStream, temperature: Optional[float] = None) -> float:
        return float(np.interp(rng.uniform(), self.cdf, self.energies))

    def get_total_flux(self) -> float:
        return 0.0


def create_spectrum(spectrum_type, **params) -> Spectrum:
    """Create a source spectrum by type.

    Args:
        spectrum_type: SpectrumType or its string value
        **params: Constructor arguments of the chosen spectrum

    Returns:
        Spectrum instance

    Example:
        >>> spectrum = create_spectrum("planck", temperature=40000.0)
    """
    spectrum_type = SpectrumType(spectrum_type)
    if spectrum_type == SpectrumType.PLANCK:
        return PlanckSpectrum(**params)
    if spectrum_type == SpectrumType.MONOCHROMATIC:
        return MonochromaticSpectrum(**params)
    return UniformSpectrum(**params)
