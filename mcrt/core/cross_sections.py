"""Photoionization cross sections and elemental abundances.

Cross sections are consumed as pure functions of (ion, energy). Any object
with a ``get_cross_section(ion, energy)`` method can be used.

Import Policy:
    from mcrt.core.cross_sections import Abundances, FitCrossSections, ConstantCrossSections

DO NOT use: from mcrt.core.cross_sections import *
"""

from dataclasses import dataclass
from typing import Protocol

from mcrt.core.constants import (
    HE_CROSS_SECTION_BETA,
    HE_CROSS_SECTION_S,
    HE_CROSS_SECTION_THRESHOLD,
    HE_IONIZATION_ENERGY,
    H_CROSS_SECTION_BETA,
    H_CROSS_SECTION_S,
    H_CROSS_SECTION_THRESHOLD,
    H_IONIZATION_ENERGY,
    IonName,
)


@dataclass(frozen=True)
class Abundances:
    """Elemental abundances relative to hydrogen.

    Attributes:
        helium: Number of helium atoms per hydrogen atom
    """

    helium: float = 0.1

    def __post_init__(self):
        if self.helium < 0.0:
            raise ValueError(f"helium abundance must be >= 0, got {self.helium}")


class CrossSectionProvider(Protocol):
    """Anything that returns a photoionization cross section."""

    def get_cross_section(self, ion: IonName, energy: float) -> float:
        """Cross section (m^2) of ``ion`` for a photon of ``energy`` (eV)."""
        ...


class FitCrossSections:
    """Threshold power-law fits for neutral hydrogen and helium.

    sigma(E) = sigma_0 * (beta * (E/E_th)^-s + (1 - beta) * (E/E_th)^-(s + 1))
    above the ionization threshold E_th, zero below it.
    """

    _PARAMETERS = {
        IonName.H_N: (H_IONIZATION_ENERGY, H_CROSS_SECTION_THRESHOLD, H_CROSS_SECTION_BETA, H_CROSS_SECTION_S),
        IonName.HE_N: (HE_IONIZATION_ENERGY, HE_CROSS_SECTION_THRESHOLD, HE_CROSS_SECTION_BETA, HE_CROSS_SECTION_S),
    }

    def get_cross_section(self, ion: IonName, energy: float) -> float:
        threshold, sigma_0, beta, s = self._PARAMETERS[ion]
        if energy < threshold:
            return 0.0
        x = energy / threshold
        return sigma_0 * (beta * x ** (-s) + (1.0 - beta) * x ** (-(s + 1.0)))


class ConstantCrossSections:
    """Energy independent cross section, the same for every ion.

    Useful for tests and for idealized setups. A value of zero turns the
    medium into vacuum.
    """

    def __init__(self, value: float = 0.0):
        if value < 0.0:
            raise ValueError(f"cross section must be >= 0, got {value}")
        self.value = value

    def get_cross_section(self, ion: IonName, energy: float) -> float:
        return self.value
