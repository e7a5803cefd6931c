"""Physics constants for photoionization radiative transfer.

This module is the Single Source of Truth (SSOT) for all physics constants
used in the simulation. Import from here rather than defining constants locally.

Units: photon energies in eV, lengths in m, cross sections in m^2,
recombination coefficients in m^3 s^-1, temperatures in K.

Import Policy:
    from mcrt.core.constants import IonName, H_IONIZATION_ENERGY, HEI_LINE_ENERGY

DO NOT use: from mcrt.core.constants import *
"""

from enum import IntEnum

# =============================================================================
# Fundamental Physical Constants
# =============================================================================

# Planck constant [eV s]
PLANCK_EV = 4.135667696e-15

# Boltzmann constant [eV K^-1]
BOLTZMANN_EV = 8.617333262e-5

# Speed of light [m s^-1]
C_LIGHT = 299792458.0

# =============================================================================
# Ionization Thresholds
# =============================================================================

# Ionization energy of neutral hydrogen [eV]
H_IONIZATION_ENERGY = 13.6

# Ionization energy of neutral helium [eV]
HE_IONIZATION_ENERGY = 24.6

# Ionization energy of singly ionized helium [eV]; upper end of the
# ionizing range sampled by the source spectra
HEII_IONIZATION_ENERGY = 54.4

IONIZING_ENERGY_MIN = H_IONIZATION_ENERGY
IONIZING_ENERGY_MAX = HEII_IONIZATION_ENERGY

# =============================================================================
# Photoionization Cross Sections (Osterbrock fits)
# =============================================================================
# sigma(E) = SIGMA_0 * (BETA * (E/E_th)^-S + (1 - BETA) * (E/E_th)^-(S + 1))

H_CROSS_SECTION_THRESHOLD = 6.30e-22   # [m^2]
H_CROSS_SECTION_BETA = 1.34
H_CROSS_SECTION_S = 2.99

HE_CROSS_SECTION_THRESHOLD = 7.83e-22  # [m^2]
HE_CROSS_SECTION_BETA = 1.66
HE_CROSS_SECTION_S = 2.05

# =============================================================================
# Re-emission Physics
# =============================================================================

# Energy of the HeI 2^3S -> 1^1S line photon (4.788e15 Hz) [eV]
HEI_LINE_ENERGY = 19.8

# Fraction of helium two-photon decays that produce a hydrogen-ionizing photon
TWO_PHOTON_IONIZING_FRACTION = 0.56

# Coefficient of the HeI Ly-alpha on-the-spot absorption probability
#   p_ots = 1 / (1 + ON_THE_SPOT_COEFFICIENT * x_He / (sqrt(T) * x_H))
ON_THE_SPOT_COEFFICIENT = 77.0

# Upper end of the helium two-photon continuum [eV], the 2^1S - 1^1S energy
# difference. Only the part above H_IONIZATION_ENERGY is sampled.
HE_TWO_PHOTON_MAX_ENERGY = 20.6

# =============================================================================
# Recombination Coefficients
# =============================================================================
# alpha(T) = A * (T / 1e4 K)^B  [m^3 s^-1]
# Pairs are (A, B).

# Hydrogen: recombination to the ground state, and the total (case A) rate
ALPHA_1_H = (1.58e-19, -0.53)
ALPHA_A_H = (4.18e-19, -0.7)

# Helium: ground state, and the effective rates that populate 2^3S, 2^1S, 2^1P
ALPHA_1_HE = (1.54e-19, -0.486)
ALPHA_E_2TS_HE = (2.1e-19, -0.381)
ALPHA_E_2SS_HE = (2.06e-20, -0.451)
ALPHA_E_2SP_HE = (4.17e-20, -0.695)

# Total (case A) helium recombination rate
ALPHA_A_HE = (4.27e-19, -0.678)

# Temperature range tabulated by the re-emission spectra [K]
REEMISSION_TABLE_T_MIN = 1500.0
REEMISSION_TABLE_T_MAX = 15000.0
REEMISSION_TABLE_NUM_T = 10


class IonName(IntEnum):
    """Ions tracked by the transport.

    The value indexes the cross-section and accumulator arrays.
    """

    H_N = 0
    HE_N = 1


ION_NAMES = {
    IonName.H_N: "H_n",
    IonName.HE_N: "He_n",
}

NUMBER_OF_IONS = len(ION_NAMES)


def recombination_rate(coefficients: tuple[float, float], temperature: float) -> float:
    """Evaluate a power-law recombination coefficient fit.

    Args:
        coefficients: (A, B) pair, alpha = A * (T / 1e4)^B
        temperature: Gas temperature [K]

    Returns:
        Recombination coefficient [m^3 s^-1]
    """
    a, b = coefficients
    return a * (temperature * 1.0e-4) ** b
