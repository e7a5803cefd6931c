"""Simulation Configuration - Single Source of Truth (SSOT)

This module provides the central configuration dataclasses for the entire simulation.
ALL simulation parameters must flow through these configuration classes.

Import Policy:
    from mcrt.config.simulation_config import SimulationConfig, PhotonConfig, SourceConfig

DO NOT use: from mcrt.config.simulation_config import *
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from mcrt.config.defaults import (
    DEFAULT_BOX_ANCHOR,
    DEFAULT_BOX_SIDES,
    DEFAULT_CONTINUOUS_ENABLED,
    DEFAULT_CONTINUOUS_FLUX,
    DEFAULT_CONTINUOUS_SPECTRUM,
    DEFAULT_CONTINUOUS_SPECTRUM_TEMPERATURE,
    DEFAULT_DISCRETE_FRACTION,
    DEFAULT_HELIUM_ABUNDANCE,
    DEFAULT_INITIAL_NEUTRAL_FRACTION,
    DEFAULT_INITIAL_TEMPERATURE,
    DEFAULT_ITERATION_CHECKER,
    DEFAULT_JOBS_PER_THREAD,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MAX_SUBSTEPS,
    DEFAULT_MIN_CONTINUOUS_PHOTONS,
    DEFAULT_MIN_PHOTONS_PER_DISCRETE_SOURCE,
    DEFAULT_NCELL,
    DEFAULT_NUMBER_DENSITY,
    DEFAULT_NUMBER_OF_PHOTONS,
    DEFAULT_PHOTON_BOOST_FACTOR,
    DEFAULT_RANDOM_SEED,
    DEFAULT_SOURCE_LUMINOSITY,
    DEFAULT_SOURCE_POSITIONS,
    DEFAULT_SOURCE_SPECTRUM,
    DEFAULT_SOURCE_SPECTRUM_E_MAX,
    DEFAULT_SOURCE_SPECTRUM_E_MIN,
    DEFAULT_SOURCE_SPECTRUM_ENERGY,
    DEFAULT_SOURCE_SPECTRUM_TEMPERATURE,
    DEFAULT_SOURCE_WEIGHTS,
    DEFAULT_SUBSTEP_CHECKER,
    DEFAULT_SUBSTEP_GROWTH_FACTOR,
    DEFAULT_SUBSTEP_TOLERANCE,
    DEFAULT_THREADS,
    DEFAULT_TOLERANCE,
    DEFAULT_WARMUP_ITERATIONS,
    DEFAULT_WEIGHT_NORMALIZATION_TOL,
)
from mcrt.config.enums import IterationCheckerType, SpectrumType, SubstepCheckerType
from mcrt.config.yaml_loader import load_parameter_file


class ConfigurationError(Exception):
    """Raised when a configuration or source setup is invalid.

    This is fatal: it is raised before any photon is shot and no partial
    results are produced.
    """

    pass


@dataclass
class PhotonConfig:
    """Photon budget configuration.

    Attributes:
        number_of_photons: Initial guess for the number of photons per iteration
        discrete_fraction: Share of the budget given to discrete sources when a
            continuous source is also present
        min_photons_per_discrete_source: Floor on the discrete photon count,
            per discrete source
        min_continuous_photons: Floor on the continuous photon count

    """

    number_of_photons: int = DEFAULT_NUMBER_OF_PHOTONS
    discrete_fraction: float = DEFAULT_DISCRETE_FRACTION
    min_photons_per_discrete_source: int = DEFAULT_MIN_PHOTONS_PER_DISCRETE_SOURCE
    min_continuous_photons: int = DEFAULT_MIN_CONTINUOUS_PHOTONS

    def validate(self) -> list[str]:
        """Validate photon budget configuration.

        Returns:
            List of error messages (empty if valid)

        """
        errors = []

        if self.number_of_photons <= 0:
            errors.append(f"number_of_photons must be > 0, got {self.number_of_photons}")
        if not 0.0 < self.discrete_fraction < 1.0:
            errors.append(f"discrete_fraction must be in (0, 1), got {self.discrete_fraction}")
        if self.min_photons_per_discrete_source < 1:
            errors.append(
                f"min_photons_per_discrete_source must be >= 1, "
                f"got {self.min_photons_per_discrete_source}",
            )
        if self.min_continuous_photons < 1:
            errors.append(
                f"min_continuous_photons must be >= 1, got {self.min_continuous_photons}",
            )

        return errors


@dataclass
class ConvergenceConfig:
    """Inner (substep) and outer (iteration) convergence configuration.

    Attributes:
        max_iterations: Maximum number of outer iterations
        tolerance: Relative chi-squared change below which iterations converge
        substep_checker: Substep convergence policy
        substep_tolerance: Relative chi-squared change below which substeps converge
        substep_growth_factor: Factor applied to the chunk size between substeps
        max_substeps: Maximum number of substeps per iteration
        iteration_checker: Iteration convergence policy
        warmup_iterations: Iteration at which the photon budget is boosted
        photon_boost_factor: Boost applied once the warm-up window is over

    """

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tolerance: float = DEFAULT_TOLERANCE
    substep_checker: SubstepCheckerType = SubstepCheckerType(DEFAULT_SUBSTEP_CHECKER)
    substep_tolerance: float = DEFAULT_SUBSTEP_TOLERANCE
    substep_growth_factor: float = DEFAULT_SUBSTEP_GROWTH_FACTOR
    max_substeps: int = DEFAULT_MAX_SUBSTEPS
    iteration_checker: IterationCheckerType = IterationCheckerType(DEFAULT_ITERATION_CHECKER)
    warmup_iterations: int = DEFAULT_WARMUP_ITERATIONS
    photon_boost_factor: int = DEFAULT_PHOTON_BOOST_FACTOR

    def validate(self) -> list[str]:
        """Validate convergence configuration.

        Returns:
            List of error messages (empty if valid)

        """
        errors = []

        if self.max_iterations <= 0:
            errors.append(f"max_iterations must be > 0, got {self.max_iterations}")
        if self.tolerance <= 0:
            errors.append(f"tolerance must be > 0, got {self.tolerance}")
        if self.substep_tolerance <= 0:
            errors.append(f"substep_tolerance must be > 0, got {self.substep_tolerance}")
        if self.substep_growth_factor < 1.0:
            errors.append(
                f"substep_growth_factor must be >= 1, got {self.substep_growth_factor}",
            )
        if self.max_substeps <= 0:
            errors.append(f"max_substeps must be > 0, got {self.max_substeps}")
        if self.warmup_iterations < 0:
            errors.append(f"warmup_iterations must be >= 0, got {self.warmup_iterations}")
        if self.photon_boost_factor < 1:
            errors.append(f"photon_boost_factor must be >= 1, got {self.photon_boost_factor}")

        return errors


@dataclass
class ParallelConfig:
    """Worker pool configuration.

    Attributes:
        threads: Number of worker threads in the pool
        jobs_per_thread: Number of jobs per thread (finer load balancing)
        random_seed: Base seed; job i is seeded with random_seed + i

    """

    threads: int = DEFAULT_THREADS
    jobs_per_thread: int = DEFAULT_JOBS_PER_THREAD
    random_seed: int = DEFAULT_RANDOM_SEED

    @property
    def worksize(self) -> int:
        """Number of jobs a photon batch is split into."""
        return self.threads * self.jobs_per_thread

    def validate(self) -> list[str]:
        """Validate worker pool configuration.

        Returns:
            List of error messages (empty if valid)

        """
        errors = []

        if self.threads <= 0:
            errors.append(f"threads must be > 0, got {self.threads}")
        if self.jobs_per_thread <= 0:
            errors.append(f"jobs_per_thread must be > 0, got {self.jobs_per_thread}")
        if self.random_seed < 0:
            errors.append(f"random_seed must be >= 0, got {self.random_seed}")

        return errors


@dataclass
class GridConfig:
    """Reference Cartesian grid configuration.

    Attributes:
        box_anchor: Lower-left-front corner of the box (m)
        box_sides: Side lengths of the box (m)
        ncell: Number of cells along each axis
        number_density: Uniform hydrogen number density (m^-3)
        initial_temperature: Initial gas temperature (K)
        initial_neutral_fraction: Initial neutral fraction of H and He

    """

    box_anchor: Tuple[float, float, float] = DEFAULT_BOX_ANCHOR
    box_sides: Tuple[float, float, float] = DEFAULT_BOX_SIDES
    ncell: Tuple[int, int, int] = DEFAULT_NCELL
    number_density: float = DEFAULT_NUMBER_DENSITY
    initial_temperature: float = DEFAULT_INITIAL_TEMPERATURE
    initial_neutral_fraction: float = DEFAULT_INITIAL_NEUTRAL_FRACTION

    def validate(self) -> list[str]:
        """Validate grid configuration.

        Returns:
            List of error messages (empty if valid)

        """
        errors = []

        if len(self.box_anchor) != 3:
            errors.append(f"box_anchor must have 3 components, got {len(self.box_anchor)}")
        if len(self.box_sides) != 3 or any(side <= 0 for side in self.box_sides):
            errors.append(f"box_sides must be 3 positive lengths, got {list(self.box_sides)}")
        if len(self.ncell) != 3 or any(n <= 0 for n in self.ncell):
            errors.append(f"ncell must be 3 positive integers, got {list(self.ncell)}")
        if self.number_density < 0:
            errors.append(f"number_density must be >= 0, got {self.number_density}")
        if self.initial_temperature <= 0:
            errors.append(f"initial_temperature must be > 0, got {self.initial_temperature}")
        if not 0.0 <= self.initial_neutral_fraction <= 1.0:
            errors.append(
                f"initial_neutral_fraction must be in [0, 1], "
                f"got {self.initial_neutral_fraction}",
            )

        return errors


@dataclass
class SourceConfig:
    """Discrete and continuous source configuration.

    An empty ``positions`` list means there are no discrete sources.
    The monochromatic energy and the uniform energy range are shared between
    the discrete and the continuous spectrum.

    Attributes:
        positions: Discrete source positions (m)
        weights: Luminosity weights of the discrete sources (must sum to 1)
        luminosity: Total ionizing luminosity of the discrete sources (s^-1)
        spectrum: Discrete source spectrum
        spectrum_temperature: Black body temperature (K)
        spectrum_energy: Photon energy of a monochromatic spectrum (eV)
        spectrum_e_min, spectrum_e_max: Energy range of a uniform spectrum (eV)
        helium_abundance: Helium abundance relative to hydrogen
        continuous_enabled: Whether the box boundary radiates inwards
        continuous_spectrum: Continuous source spectrum
        continuous_spectrum_temperature: Black body temperature (K)
        continuous_flux: Ionizing photon flux through the boundary (m^-2 s^-1)

    """

    positions: Tuple[Tuple[float, float, float], ...] = DEFAULT_SOURCE_POSITIONS
    weights: Tuple[float, ...] = DEFAULT_SOURCE_WEIGHTS
    luminosity: float = DEFAULT_SOURCE_LUMINOSITY
    spectrum: SpectrumType = SpectrumType(DEFAULT_SOURCE_SPECTRUM)
    spectrum_temperature: float = DEFAULT_SOURCE_SPECTRUM_TEMPERATURE
    spectrum_energy: float = DEFAULT_SOURCE_SPECTRUM_ENERGY
    spectrum_e_min: float = DEFAULT_SOURCE_SPECTRUM_E_MIN
    spectrum_e_max: float = DEFAULT_SOURCE_SPECTRUM_E_MAX
    helium_abundance: float = DEFAULT_HELIUM_ABUNDANCE

    continuous_enabled: bool = DEFAULT_CONTINUOUS_ENABLED
    continuous_spectrum: SpectrumType = SpectrumType(DEFAULT_CONTINUOUS_SPECTRUM)
    continuous_spectrum_temperature: float = DEFAULT_CONTINUOUS_SPECTRUM_TEMPERATURE
    continuous_flux: float = DEFAULT_CONTINUOUS_FLUX

    @property
    def has_discrete_sources(self) -> bool:
        return len(self.positions) > 0

    def spectrum_parameters(self, continuous: bool = False) -> Dict[str, float]:
        """Keyword arguments for ``create_spectrum`` of the requested source kind."""
        spectrum = self.continuous_spectrum if continuous else self.spectrum
        if spectrum == SpectrumType.PLANCK:
            if continuous:
                return {"temperature": self.continuous_spectrum_temperature,
                        "flux": self.continuous_flux}
            return {"temperature": self.spectrum_temperature}
        if spectrum == SpectrumType.MONOCHROMATIC:
            params = {"energy": self.spectrum_energy}
            if continuous:
                params["flux"] = self.continuous_flux
            return params
        params = {"e_min": self.spectrum_e_min, "e_max": self.spectrum_e_max}
        if continuous:
            params["flux"] = self.continuous_flux
        return params

    def validate(self) -> list[str]:
        """Validate source configuration.

        Returns:
            List of error messages (empty if valid)

        """
        errors = []

        if not self.has_discrete_sources and not self.continuous_enabled:
            errors.append("No sources: give discrete source positions or enable the continuous source")

        if self.has_discrete_sources:
            if len(self.weights) != len(self.positions):
                errors.append(
                    f"weights ({len(self.weights)}) must match positions ({len(self.positions)})",
                )
            elif abs(sum(self.weights) - 1.0) > DEFAULT_WEIGHT_NORMALIZATION_TOL:
                errors.append(
                    f"Discrete source weights must sum to 1, got {sum(self.weights)!r}",
                )
            if any(w < 0 for w in self.weights):
                errors.append("Discrete source weights must be >= 0")
            if any(len(p) != 3 for p in self.positions):
                errors.append("Discrete source positions must have 3 components")
            if self.luminosity <= 0:
                errors.append(f"luminosity must be > 0, got {self.luminosity}")

        if self.continuous_enabled and self.continuous_flux <= 0:
            errors.append(f"continuous_flux must be > 0, got {self.continuous_flux}")

        if self.spectrum_e_max <= self.spectrum_e_min:
            errors.append(
                f"spectrum_e_max ({self.spectrum_e_max}) must be > "
                f"spectrum_e_min ({self.spectrum_e_min})",
            )
        if self.spectrum_energy <= 0:
            errors.append(f"spectrum_energy must be > 0, got {self.spectrum_energy}")
        if self.spectrum_temperature <= 0 or self.continuous_spectrum_temperature <= 0:
            errors.append("Spectrum temperatures must be > 0")
        if self.helium_abundance < 0:
            errors.append(f"helium_abundance must be >= 0, got {self.helium_abundance}")

        return errors


_SECTION_TYPES = {
    "photons": PhotonConfig,
    "convergence": ConvergenceConfig,
    "parallel": ParallelConfig,
    "grid": GridConfig,
    "source": SourceConfig,
}


@dataclass
class SimulationConfig:
    """Complete simulation configuration (SSOT).

    This is the Single Source of Truth for all simulation parameters.
    All other configuration should be derived from this.

    Example:
        >>> config = SimulationConfig()
        >>> errors = config.validate()
        >>> if errors:
        ...     for err in errors:
        ...         print(f"Configuration error: {err}")

    Attributes:
        photons: Photon budget configuration
        convergence: Substep and iteration convergence configuration
        parallel: Worker pool configuration
        grid: Reference grid configuration
        source: Source configuration

    """

    photons: PhotonConfig = field(default_factory=PhotonConfig)
    convergence: ConvergenceConfig = field(default_factory=ConvergenceConfig)
    parallel: ParallelConfig = field(default_factory=ParallelConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    source: SourceConfig = field(default_factory=SourceConfig)

    def validate(self) -> list[str]:
        """Validate complete simulation configuration.

        Returns:
            List of error messages (empty if valid)

        """
        errors = []

        errors.extend(self.photons.validate())
        errors.extend(self.convergence.validate())
        errors.extend(self.parallel.validate())
        errors.extend(self.grid.validate())
        errors.extend(self.source.validate())

        return errors

    def to_dict(self) -> dict:
        """Convert configuration to a plain dictionary (YAML/JSON friendly).

        Returns:
            Dictionary representation of configuration

        """
        def convert(obj):
            if isinstance(obj, Enum):
                return obj.value
            if isinstance(obj, dict):
                return {key: convert(value) for key, value in obj.items()}
            if isinstance(obj, (list, tuple)):
                return [convert(value) for value in obj]
            return obj

        return convert(asdict(self))

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationConfig":
        """Create configuration from dictionary.

        Missing sections and keys take their default values; unknown keys
        raise ValueError. Values are converted to the declared field types.

        Args:
            data: Dictionary representation of configuration

        Returns:
            SimulationConfig instance

        Raises:
            ConfigurationError: If a value cannot be converted to its field type

        """
        sections: Dict[str, Any] = {}
        for name, section_data in data.items():
            if name not in _SECTION_TYPES:
                raise ValueError(f"Unknown configuration section: {name}")
            section_cls = _SECTION_TYPES[name]
            kwargs = {}
            for key, value in (section_data or {}).items():
                if key not in section_cls.__dataclass_fields__:
                    raise ValueError(f"Unknown configuration parameter: {name}.{key}")
                kwargs[key] = _parse_value(section_cls, key, value)
            sections[name] = section_cls(**kwargs)
        return cls(**sections)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SimulationConfig":
        """Create configuration from a YAML or JSON parameter file.

        Args:
            path: Path to the parameter file (.yaml, .yml or .json)

        Returns:
            SimulationConfig instance (not yet validated)

        """
        return cls.from_dict(load_parameter_file(path))

    from_yaml = from_file


# Fields holding sequences of floats; scalar fields are converted by their
# declared type
_FLOAT_SEQUENCE_FIELDS = ("box_anchor", "box_sides", "weights")


def _to_float(value) -> float:
    if isinstance(value, bool):
        raise TypeError(f"expected a number, got {value!r}")
    return float(value)


def _to_int(value) -> int:
    if isinstance(value, bool):
        raise TypeError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    number = float(value)
    if not number.is_integer():
        raise ValueError(f"expected an integer, got {value!r}")
    return int(number)


def _parse_value(section_cls: type, key: str, value):
    """Convert a parameter file value to the type of ``section_cls.key``.

    PyYAML reads numbers such as ``1e49`` as strings, so numeric fields are
    always converted.

    Raises:
        ConfigurationError: If the value cannot be converted
    """
    field_type = section_cls.__dataclass_fields__[key].type
    try:
        if isinstance(field_type, type) and issubclass(field_type, Enum):
            return value if isinstance(value, field_type) else field_type(value)
        if key == "positions":
            return tuple(tuple(_to_float(x) for x in position) for position in value)
        if key in _FLOAT_SEQUENCE_FIELDS:
            return tuple(_to_float(x) for x in value)
        if key == "ncell":
            return tuple(_to_int(x) for x in value)
        if field_type is float:
            return _to_float(value)
        if field_type is int:
            return _to_int(value)
        if field_type is bool and not isinstance(value, bool):
            raise TypeError(f"expected true or false, got {value!r}")
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Invalid value for {section_cls.__name__}.{key}: {exc}"
        ) from exc
    return value


def create_default_config() -> SimulationConfig:
    """Create a default simulation configuration.

    Returns:
        Valid SimulationConfig instance

    Raises:
        ValueError: If the defaults themselves are inconsistent

    """
    config = SimulationConfig()
    errors = config.validate()

    if errors:
        raise ValueError("Default configuration is invalid:\n" + "\n".join(errors))

    return config
