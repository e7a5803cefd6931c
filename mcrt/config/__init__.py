"""Configuration Module - Single Source of Truth for Simulation Parameters

Default Configuration (loaded from defaults.yaml):
    from mcrt.config import get_default, get_defaults

    seed = get_default('parallel.random_seed')
    all_defaults = get_defaults()

Recommended Usage:
    from mcrt.config import SimulationConfig, create_validated_config

    # Create a default config (already validated)
    config = create_validated_config()

    # Create a custom config with validation
    config = create_validated_config(number_of_photons=10000, threads=2)

    # Or read a parameter file
    config = SimulationConfig.from_yaml('params.yaml')

Import Policy:
    DO NOT use: from mcrt.config import *

Submodules:
    enums: Configuration enumerations (SpectrumType, SubstepCheckerType, ...)
    yaml_loader: Defaults and parameter file loading (get_default, load_parameter_file)
    simulation_config: Configuration dataclasses (PhotonConfig, SourceConfig, ...)
    validation: Validation utilities (validate_config, warn_if_unsafe, ...)
"""

from mcrt.config.enums import (
    IterationCheckerType,
    IterationStatus,
    SpectrumType,
    SubstepCheckerType,
)
# Import YAML loader functions first (no circular dependencies)
from mcrt.config.yaml_loader import get_default, get_defaults, load_parameter_file, reload_defaults
from mcrt.config.simulation_config import (
    ConvergenceConfig,
    GridConfig,
    ParallelConfig,
    PhotonConfig,
    SimulationConfig,
    SourceConfig,
    create_default_config,
)
from mcrt.config.validation import (
    ConfigurationError,
    ConfigurationWarning,
    apply_overrides,
    create_validated_config,
    validate_config,
    warn_if_unsafe,
)


__all__ = [
    # Enums
    "SpectrumType",
    "SubstepCheckerType",
    "IterationCheckerType",
    "IterationStatus",
    # Config classes
    "PhotonConfig",
    "ConvergenceConfig",
    "ParallelConfig",
    "GridConfig",
    "SourceConfig",
    "SimulationConfig",
    # Factory functions
    "create_default_config",
    "create_validated_config",
    "apply_overrides",
    # Validation
    "ConfigurationError",
    "ConfigurationWarning",
    "validate_config",
    "warn_if_unsafe",
    # Defaults and parameter files
    "get_default",
    "get_defaults",
    "reload_defaults",
    "load_parameter_file",
]
