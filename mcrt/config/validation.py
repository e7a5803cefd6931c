"""
Configuration Validation Utilities

This module provides validation functions for simulation configurations.
It includes invariant checking and safety checks.

Import Policy:
    from mcrt.config.validation import ConfigurationError, validate_config, warn_if_unsafe

DO NOT use: from mcrt.config.validation import *
"""

import warnings
from typing import List, Tuple

from mcrt.config.simulation_config import (
    ConfigurationError,
    SimulationConfig,
    _parse_value,
    create_default_config,
)


class ConfigurationWarning(Warning):
    """Warning for potentially unsafe configuration choices."""

    pass


def validate_config(config: SimulationConfig, raise_on_error: bool = True) -> Tuple[bool, List[str]]:
    """Validate a simulation configuration.

    Args:
        config: SimulationConfig to validate
        raise_on_error: If True, raise ConfigurationError on validation failure

    Returns:
        Tuple of (is_valid, error_messages)

    Raises:
        ConfigurationError: If validation fails and raise_on_error=True
    """
    errors = config.validate()

    if errors:
        if raise_on_error:
            raise ConfigurationError(
                f"Configuration validation failed with {len(errors)} error(s):\n"
                + "\n".join(f"  - {err}" for err in errors)
            )
        return False, errors

    return True, []


def warn_if_unsafe(config: SimulationConfig) -> List[str]:
    """Check for configuration choices that are legal but probably unintended.

    Warnings are issued via Python's warnings module.

    Args:
        config: SimulationConfig to check

    Returns:
        List of warning messages (empty if no warnings)
    """
    warnings_list = []

    # Check 1: budget smaller than the sampling floors
    floor = 0
    if config.source.has_discrete_sources:
        floor += config.photons.min_photons_per_discrete_source * len(config.source.positions)
    if config.source.continuous_enabled:
        floor += config.photons.min_continuous_photons
    if config.photons.number_of_photons < floor:
        warnings_list.append(
            f"number_of_photons ({config.photons.number_of_photons}) is below the sampling "
            f"floor ({floor}); the photon budget will be raised."
        )

    # Check 2: fewer jobs than photons per job makes little sense
    if config.photons.number_of_photons < config.parallel.worksize:
        warnings_list.append(
            f"number_of_photons ({config.photons.number_of_photons}) is smaller than the "
            f"number of jobs ({config.parallel.worksize}); some jobs will be empty."
        )

    # Check 3: no helium means the helium re-emission channels are never visited
    if config.source.helium_abundance == 0.0:
        warnings_list.append("helium_abundance is 0; helium re-emission is disabled.")

    # Check 4: boost without any iteration after the warm-up window
    if config.convergence.warmup_iterations >= config.convergence.max_iterations:
        warnings_list.append(
            f"warmup_iterations ({config.convergence.warmup_iterations}) >= max_iterations "
            f"({config.convergence.max_iterations}); the photon boost is never applied."
        )

    # Check 5: the source kind is drawn with a fixed 50/50 split
    both_kinds = config.source.has_discrete_sources and config.source.continuous_enabled
    if both_kinds and config.photons.discrete_fraction != 0.5:
        warnings_list.append(
            f"discrete_fraction ({config.photons.discrete_fraction}) differs from 0.5 while "
            f"photons pick their source kind with equal probability; source weights will be biased."
        )

    for warning_msg in warnings_list:
        warnings.warn(warning_msg, ConfigurationWarning, stacklevel=2)

    return warnings_list


def apply_overrides(config: SimulationConfig, **kwargs) -> SimulationConfig:
    """Set parameters by name on whichever section owns that name.

    Values are converted the same way as in parameter files, so enum options
    may be given by value (e.g. ``spectrum="monochromatic"``).

    Raises:
        ValueError: If a parameter name is unknown
        ConfigurationError: If a value cannot be converted to its field type
    """
    sections =(config.photons, config.convergence, config.parallel, config.grid, config.source)

    for key, value in kwargs.items():
        for section in sections:
            if key in section.__dataclass_fields__:
                setattr(section, key, _parse_value(type(section), key, value))
                break
        else:
            raise ValueError(f"Unknown configuration parameter: {key}")

    return config


def create_validated_config(**kwargs) -> SimulationConfig:
    """Create a simulation configuration with validation.

    Overrides are given by parameter name and applied to whichever section
    owns that name.

    Args:
        **kwargs: Parameters to override in default config

    Returns:
        Validated SimulationConfig

    Raises:
        ConfigurationError: If the resulting configuration is invalid
        ValueError: If a parameter name is unknown

    Example:
        >>> config = create_validated_config(number_of_photons=10000, threads=2)
    """
    config = apply_overrides(create_default_config(), **kwargs)
    validate_config(config)
    return config
