"""
Configuration Enums for mcrt Simulations

This module defines all enumeration types used throughout the simulation configuration.
These enums provide type-safe configuration options and improve code documentation.

Import Policy:
    from mcrt.config.enums import SpectrumType, SubstepCheckerType, IterationCheckerType

DO NOT use: from mcrt.config.enums import *
"""

from enum import Enum


class SpectrumType(Enum):
    """Source spectrum variants that can be selected from a parameter file.

    Options:
        PLANCK: Black body spectrum, ionizing part only (13.6 - 54.4 eV)
        MONOCHROMATIC: All photons have the same energy
        UNIFORM: Flat in energy between e_min and e_max (testing)

    Note:
        The re-emission spectra (hydrogen and helium Lyman continuum, helium
        two-photon continuum) are owned by the PhotonSource and cannot be
        selected as source spectra.
    """
    PLANCK = "planck"
    MONOCHROMATIC = "monochromatic"
    UNIFORM = "uniform"


class SubstepCheckerType(Enum):
    """Policy deciding when enough photons were shot within one iteration.

    Options:
        PASSIVE: Shoot exactly the iteration photon budget in one substep
        CHI_SQUARED: Keep shooting growing chunks until the per-weight mean
            intensities of consecutive substeps agree within a tolerance
    """
    PASSIVE = "passive"
    CHI_SQUARED = "chi_squared"


class IterationCheckerType(Enum):
    """Policy deciding when the outer iteration loop has converged.

    Options:
        PASSIVE: Never converges; always runs max_iterations (default)
        CHI_SQUARED: Converges when the chi-squared change of the neutral
            fractions between iterations is decreasing and below tolerance
    """
    PASSIVE = "passive"
    CHI_SQUARED = "chi_squared"


class IterationStatus(Enum):
    """State of the outer iteration loop.

    Options:
        RUNNING: More iterations are needed
        CONVERGED: The iteration convergence criterion was met
        EXHAUSTED: max_iterations was reached first (normal termination)
    """
    RUNNING = "running"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
