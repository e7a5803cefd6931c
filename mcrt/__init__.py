"""Monte Carlo Photoionization Radiative Transfer

A Monte Carlo engine that shoots weighted photon packets from discrete and
continuous sources through a density grid, re-emits absorbed photons as
diffuse hydrogen and helium radiation, and iterates the ionization state of
the grid until it converges.

Key Principles:
- Photon weights carry luminosity; weight is conserved through re-emission
- Parallel shooting with private accumulators and a single ordered merge
- Reproducible results for a fixed seed and job count
- Strict photon weight accounting per photon type

Version: 0.1.0
"""

__version__ = "0.1.0"

# Configuration
from mcrt.config import SimulationConfig, create_validated_config

# Core data structures
from mcrt.core import (
    CartesianDensityGrid,
    Photon,
    PhotonType,
    PhotonTypeCounts,
    RandomStream,
)

# Sources
from mcrt.sources import PhotonSource, create_spectrum

# Transport orchestration
from mcrt.transport import (
    RadiativeTransferSimulation,
    SimulationResult,
    WorkDistributor,
    create_simulation,
)

__all__ = [
    # Version
    "__version__",
    # Config
    "SimulationConfig",
    "create_validated_config",
    # Core
    "CartesianDensityGrid",
    "Photon",
    "PhotonType",
    "PhotonTypeCounts",
    "RandomStream",
    # Sources
    "PhotonSource",
    "create_spectrum",
    # Transport
    "RadiativeTransferSimulation",
    "SimulationResult",
    "WorkDistributor",
    "create_simulation",
]
