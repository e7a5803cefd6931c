"""Core data structures for Monte Carlo photoionization transport.

This module contains the photon packet, random streams, per-cell state and
accumulators, photon type accounting, cross sections and the reference
Cartesian density grid.
"""

from mcrt.core.accounting import ESCAPED_TYPES, PhotonTypeCounts, WeightClosureReport
from mcrt.core.cell import (
    CellAccumulators,
    CellState,
    InvalidCellStateError,
    check_he_emission_probabilities,
    set_reemission_probabilities,
)
from mcrt.core.constants import ION_NAMES, NUMBER_OF_IONS, IonName
from mcrt.core.cross_sections import Abundances, ConstantCrossSections, FitCrossSections
from mcrt.core.grid import OUTSIDE, CartesianDensityGrid, GridTransportPort
from mcrt.core.photon import PHOTON_TYPE_NAMES, Photon, PhotonType
from mcrt.core.rng import RandomStream

__all__ = [
    "ESCAPED_TYPES",
    "PhotonTypeCounts",
    "WeightClosureReport",
    "CellAccumulators",
    "CellState",
    "InvalidCellStateError",
    "check_he_emission_probabilities",
    "set_reemission_probabilities",
    "ION_NAMES",
    "NUMBER_OF_IONS",
    "IonName",
    "Abundances",
    "ConstantCrossSections",
    "FitCrossSections",
    "OUTSIDE",
    "CartesianDensityGrid",
    "GridTransportPort",
    "PHOTON_TYPE_NAMES",
    "Photon",
    "PhotonType",
    "RandomStream",
]
