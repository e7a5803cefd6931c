"""
Default Configuration Constants for mcrt Simulations

This module exposes ALL default values used throughout the simulation as
module constants. The values themselves live in defaults.yaml; this module
binds them to names once, at import time.

IMPORTANT Import Policies:
    1. DO NOT use: from mcrt.config.defaults import *
       This causes namespace pollution and makes tracking difficult.

    2. DO use explicit imports:
       from mcrt.config.defaults import DEFAULT_NUMBER_OF_PHOTONS

    3. DO NOT define defaults elsewhere. Edit defaults.yaml instead.
"""

from mcrt.config.yaml_loader import get_default

# =============================================================================
# Photon Budget Defaults
# =============================================================================

# Initial guess for the number of photons per iteration
DEFAULT_NUMBER_OF_PHOTONS = int(get_default("photons.number_of_photons", 100000))

# Share of the photon budget given to discrete sources when a continuous
# source is also present
DEFAULT_DISCRETE_FRACTION = float(get_default("photons.discrete_fraction", 0.5))

# Sampling floors: every discrete source gets at least this many photons,
# and the continuous source gets at least MIN_CONTINUOUS_PHOTONS
DEFAULT_MIN_PHOTONS_PER_DISCRETE_SOURCE = int(
    get_default("photons.min_photons_per_discrete_source", 10)
)
DEFAULT_MIN_CONTINUOUS_PHOTONS = int(get_default("photons.min_continuous_photons", 100))

# =============================================================================
# Convergence Defaults
# =============================================================================

DEFAULT_MAX_ITERATIONS = int(get_default("convergence.max_iterations", 10))
DEFAULT_TOLERANCE = float(get_default("convergence.tolerance", 0.01))
DEFAULT_SUBSTEP_CHECKER = str(get_default("convergence.substep_checker", "passive"))
DEFAULT_SUBSTEP_TOLERANCE = float(get_default("convergence.substep_tolerance", 0.01))

# Geometric growth of the substep chunk size (chi-squared substep checker)
DEFAULT_SUBSTEP_GROWTH_FACTOR = float(get_default("convergence.substep_growth_factor", 2.0))
DEFAULT_MAX_SUBSTEPS = int(get_default("convergence.max_substeps", 20))
DEFAULT_ITERATION_CHECKER = str(get_default("convergence.iteration_checker", "passive"))

# The photon budget is multiplied by PHOTON_BOOST_FACTOR once, at the end of
# the warm-up window
DEFAULT_WARMUP_ITERATIONS = int(get_default("convergence.warmup_iterations", 3))
DEFAULT_PHOTON_BOOST_FACTOR = int(get_default("convergence.photon_boost_factor", 10))

# =============================================================================
# Parallel Execution Defaults
# =============================================================================

DEFAULT_THREADS = int(get_default("parallel.threads", 4))
DEFAULT_JOBS_PER_THREAD = int(get_default("parallel.jobs_per_thread", 1))
DEFAULT_RANDOM_SEED = int(get_default("parallel.random_seed", 42))

# =============================================================================
# Reference Grid Defaults
# =============================================================================

DEFAULT_BOX_ANCHOR = tuple(get_default("grid.box_anchor", [-5.0e16, -5.0e16, -5.0e16]))
DEFAULT_BOX_SIDES = tuple(get_default("grid.box_sides", [1.0e17, 1.0e17, 1.0e17]))
DEFAULT_NCELL = tuple(get_default("grid.ncell", [16, 16, 16]))
DEFAULT_NUMBER_DENSITY = float(get_default("grid.number_density", 1.0e8))
DEFAULT_INITIAL_TEMPERATURE = float(get_default("grid.initial_temperature", 8000.0))
DEFAULT_INITIAL_NEUTRAL_FRACTION = float(get_default("grid.initial_neutral_fraction", 1.0e-6))

# =============================================================================
# Source Defaults
# =============================================================================

DEFAULT_SOURCE_POSITIONS = tuple(
    tuple(position) for position in get_default("source.positions", [[0.0, 0.0, 0.0]])
)
DEFAULT_SOURCE_WEIGHTS = tuple(get_default("source.weights", [1.0]))
DEFAULT_SOURCE_LUMINOSITY = float(get_default("source.luminosity", 1.0e49))
DEFAULT_SOURCE_SPECTRUM = str(get_default("source.spectrum", "planck"))
DEFAULT_SOURCE_SPECTRUM_TEMPERATURE = float(get_default("source.spectrum_temperature", 40000.0))
DEFAULT_SOURCE_SPECTRUM_ENERGY = float(get_default("source.spectrum_energy", 13.6))
DEFAULT_SOURCE_SPECTRUM_E_MIN = float(get_default("source.spectrum_e_min", 13.6))
DEFAULT_SOURCE_SPECTRUM_E_MAX = float(get_default("source.spectrum_e_max", 54.4))
DEFAULT_HELIUM_ABUNDANCE = float(get_default("source.helium_abundance", 0.1))

DEFAULT_CONTINUOUS_ENABLED = bool(get_default("continuous_source.enabled", False))
DEFAULT_CONTINUOUS_SPECTRUM = str(get_default("continuous_source.spectrum", "planck"))
DEFAULT_CONTINUOUS_SPECTRUM_TEMPERATURE = float(
    get_default("continuous_source.spectrum_temperature", 40000.0)
)
DEFAULT_CONTINUOUS_FLUX = float(get_default("continuous_source.flux", 1.0e13))

# =============================================================================
# Tolerance Defaults
# =============================================================================

# Discrete source weights must sum to 1 within this tolerance
DEFAULT_WEIGHT_NORMALIZATION_TOL = float(get_default("tolerances.weight_normalization", 1.0e-9))

# Cumulative helium re-emission thresholds must end at 1 within this tolerance
DEFAULT_PROBABILITY_CLOSURE_TOL = float(get_default("tolerances.probability_closure", 1.0e-9))

# Relative tolerance of the per-type weight closure check
DEFAULT_WEIGHT_CLOSURE_TOL = float(get_default("tolerances.weight_closure", 1.0e-9))

# =============================================================================
# Transport Defaults
# =============================================================================

# Per-photon cap on re-emission events; hitting it means a broken collaborator
DEFAULT_MAX_REEMISSIONS = int(get_default("transport.max_reemissions", 10000))
