"""Iterative photoionization simulation driver.

One iteration shoots a photon budget through the grid in substeps, logs the
photon type statistics, updates the ionization state of the grid and asks
the iteration checker whether to continue. The photon budget of the next
iteration is derived from the number of photons actually shot.

Import Policy:
    from mcrt.transport.simulation import RadiativeTransferSimulation, create_simulation

DO NOT use: from mcrt.transport.simulation import *
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from mcrt.config.defaults import DEFAULT_MAX_REEMISSIONS
from mcrt.config.enums import IterationStatus
from mcrt.config.simulation_config import SimulationConfig, create_default_config
from mcrt.config.validation import validate_config, warn_if_unsafe
from mcrt.core.accounting import PhotonTypeCounts, WeightClosureReport
from mcrt.core.cross_sections import Abundances, CrossSectionProvider, FitCrossSections
from mcrt.core.grid import CartesianDensityGrid
from mcrt.core.photon import PhotonType
from mcrt.sources.distribution import (
    DiscreteSourceDistribution,
    IsotropicContinuousPhotonSource,
)
from mcrt.sources.photon_source import PhotonSource
from mcrt.sources.spectrum import create_spectrum
from mcrt.transport.convergence import create_iteration_checker, create_substep_checker
from mcrt.transport.ionization import IonizationStateCalculator
from mcrt.transport.work_distributor import WorkDistributor

logger = logging.getLogger(__name__)


@dataclass
class IterationRecord:
    """Summary of one finished iteration.

    Attributes:
        iteration: Iteration number, starting at 1
        number_of_photons: Number of photons shot
        number_of_substeps: Number of substeps
        weight_shot: Summed weight of the photons shot
        type_counts: Per-type numbers and weights (PhotonTypeCounts.to_dict)
        escape_fraction: Escaped share of the weight shot, in percent
        weight_closure_valid: Whether the per-type weights add up to weight_shot
        chi_squared: Iteration checker statistic, if the checker computes one
        mean_neutral_fraction_H: Mean hydrogen neutral fraction after the update
        mean_neutral_fraction_He: Mean helium neutral fraction after the update
    """

    iteration: int
    number_of_photons: int
    number_of_substeps: int
    weight_shot: float
    type_counts: Dict[str, Dict[str, float]]
    escape_fraction: float
    weight_closure_valid: bool
    chi_squared: Optional[float] = None
    mean_neutral_fraction_H: float = 0.0
    mean_neutral_fraction_He: float = 0.0


@dataclass
class SimulationResult:
    """Results of a complete simulation.

    Attributes:
        neutral_fraction_H: Final hydrogen neutral fractions, shape ncell
        neutral_fraction_He: Final helium neutral fractions, shape ncell
        records: One IterationRecord per iteration
        status: CONVERGED or EXHAUSTED
        config: Simulation configuration used
        runtime_seconds: Wall-clock runtime of run()
        shooting_seconds: Wall-clock time spent shooting photons
    """

    neutral_fraction_H: np.ndarray
    neutral_fraction_He: np.ndarray
    records: List[IterationRecord]
    status: IterationStatus
    config: SimulationConfig
    runtime_seconds: float
    shooting_seconds: float = 0.0

    @property
    def number_of_iterations(self) -> int:
        return len(self.records)

    @property
    def converged(self) -> bool:
        return self.status == IterationStatus.CONVERGED

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            "neutral_fraction_H": self.neutral_fraction_H.tolist(),
            "neutral_fraction_He": self.neutral_fraction_He.tolist(),
            "records": [asdict(record) for record in self.records],
            "status": self.status.value,
            "runtime_seconds": self.runtime_seconds,
            "shooting_seconds": self.shooting_seconds,
            "number_of_iterations": self.number_of_iterations,
            "config": self.config.to_dict(),
        }


class RadiativeTransferSimulation:
    """Monte Carlo photoionization simulation on a Cartesian grid.

    Example:
        >>> from mcrt.transport.simulation import create_simulation
        >>> sim = create_simulation(number_of_photons=10000, max_iterations=5)
        >>> result = sim.run()
        >>> print(f"Iterations: {result.number_of_iterations}, status: {result.status.value}")

    Args:
        config: Simulation configuration (SSOT). If None, uses defaults.
        cross_sections: Cross section provider; defaults to the analytic fits
        max_reemissions: Per-photon cap on re-emission events

    Raises:
        ConfigurationError: If config validation fails
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        cross_sections: CrossSectionProvider | None = None,
        max_reemissions: int = DEFAULT_MAX_REEMISSIONS,
    ):
        if config is None:
            config = create_default_config()

        validate_config(config, raise_on_error=True)
        warn_if_unsafe(config)
        self.config = config

        grid_config = config.grid
        source_config = config.source
        self.grid = CartesianDensityGrid(
            box_anchor=grid_config.box_anchor,
            box_sides=grid_config.box_sides,
            ncell=grid_config.ncell,
            number_density=grid_config.number_density,
            helium_abundance=source_config.helium_abundance,
            initial_temperature=grid_config.initial_temperature,
            initial_neutral_fraction=grid_config.initial_neutral_fraction,
        )

        distribution = None
        discrete_spectrum = None
        if source_config.has_discrete_sources:
            distribution = DiscreteSourceDistribution(
                source_config.positions, source_config.weights, source_config.luminosity,
            )
            discrete_spectrum = create_spectrum(
                source_config.spectrum, **source_config.spectrum_parameters(),
            )

        continuous_source = None
        continuous_spectrum = None
        if source_config.continuous_enabled:
            continuous_source = IsotropicContinuousPhotonSource(
                grid_config.box_anchor, grid_config.box_sides,
            )
            continuous_spectrum = create_spectrum(
                source_config.continuous_spectrum,
                **source_config.spectrum_parameters(continuous=True),
            )

        self.photon_source = PhotonSource(
            distribution=distribution,
            discrete_spectrum=discrete_spectrum,
            continuous_source=continuous_source,
            continuous_spectrum=continuous_spectrum,
            abundances=Abundances(helium=source_config.helium_abundance),
            cross_sections=cross_sections if cross_sections is not None else FitCrossSections(),
            discrete_fraction=config.photons.discrete_fraction,
            min_photons_per_discrete_source=config.photons.min_photons_per_discrete_source,
            min_continuous_photons=config.photons.min_continuous_photons,
        )

        self.work_distributor = WorkDistributor(
            self.photon_source,
            self.grid,
            threads=config.parallel.threads,
            jobs_per_thread=config.parallel.jobs_per_thread,
            random_seed=config.parallel.random_seed,
            max_reemissions=max_reemissions,
        )

        self.substep_checker = create_substep_checker(config.convergence)
        self.iteration_checker = create_iteration_checker(config.convergence)
        self.ionization_calculator = IonizationStateCalculator(self.photon_source.total_luminosity)

        self.records: List[IterationRecord] = []
        self.shooting_seconds = 0.0

    def dry_run(self) -> None:
        """Log the setup without shooting any photons."""
        logger.info(
            f"Setup complete: {self.grid.number_of_cells} cells, "
            f"{self.photon_source.number_of_discrete_sources} discrete sources, "
            f"continuous source {'on' if self.photon_source.continuous_source else 'off'}, "
            f"{self.work_distributor.worksize} jobs."
        )
        logger.info("Dry run requested. Program will now halt.")

    def _shoot_iteration(self, number_of_photons: int):
        """Shoot one iteration's photons in substeps.

        Returns:
            (photons shot, weight shot, merged type counts)
        """
        budget = self.photon_source.budget
        self.grid.reset_accumulators()
        self.substep_checker.reset(budget.total_weight, budget.total_count)

        counts = PhotonTypeCounts()
        total_photons = 0
        total_weight = 0.0
        chunk = number_of_photons
        while True:
            logger.info(f"Substep {self.substep_checker.number_of_substeps + 1}: shooting {chunk} photons.")
            result = self.work_distributor.do_in_parallel(chunk)
            counts += result.counts
            total_photons += result.number_of_photons
            total_weight += result.weight_shot
            self.substep_checker.record_substep(result)
            if self.substep_checker.is_converged(total_weight):
                break
            chunk = self.substep_checker.get_number_of_photons_next_substep(
                result.number_of_photons, total_weight,
            )

        return total_photons, total_weight, counts

    def _log_type_statistics(self, counts: PhotonTypeCounts, total_weight: float) -> float:
        """Log the fate of the shot photons; returns the escape fraction in percent."""
        absorbed = 100.0 * counts.weight_fraction(PhotonType.ABSORBED, total_weight)
        diffuse_HI = 100.0 * counts.weight_fraction(PhotonType.DIFFUSE_HI, total_weight)
        diffuse_HeI = 100.0 * counts.weight_fraction(PhotonType.DIFFUSE_HEI, total_weight)
        escape_fraction = max(0.0, 100.0 - absorbed)

        logger.info(f"{absorbed:g}% of photons were reemitted as non-ionizing photons.")
        logger.info(f"{diffuse_HI + diffuse_HeI:g}% of photons were scattered.")
        logger.info(f"Escape fraction: {escape_fraction:g}%.")
        logger.info(f"Diffuse HI escape fraction: {diffuse_HI:g}%.")
        logger.info(f"Diffuse HeI escape fraction: {diffuse_HeI:g}%.")
        return escape_fraction

    def run(self) -> SimulationResult:
        """Iterate until the iteration checker converges or runs out of iterations.

        Returns:
            SimulationResult with the final neutral fractions and iteration history
        """
        start_time = time.time()
        number_of_photons = self.config.photons.number_of_photons
        status = IterationStatus.RUNNING

        while status == IterationStatus.RUNNING:
            iteration = self.iteration_checker.iteration + 1
            number_of_photons = self.photon_source.set_number_of_photons(number_of_photons)
            logger.info(f"Starting iteration {iteration} with {number_of_photons} photons.")

            shoot_start = time.time()
            total_photons, total_weight, counts = self._shoot_iteration(number_of_photons)
            self.shooting_seconds += time.time() - shoot_start

            escape_fraction = self._log_type_statistics(counts, total_weight)
            closure = WeightClosureReport.from_counts(counts, total_weight, iteration)
            if not closure.is_valid:
                logger.warning(str(closure))

            logger.info("Calculating ionization state after shooting photons...")
            self.ionization_calculator.update(total_weight, self.grid)
            logger.info("Done calculating ionization state.")

            status = self.iteration_checker.check(self.grid)
            history = self.iteration_checker.history
            self.records.append(IterationRecord(
                iteration=iteration,
                number_of_photons=total_photons,
                number_of_substeps=self.substep_checker.number_of_substeps,
                weight_shot=total_weight,
                type_counts=counts.to_dict(),
                escape_fraction=escape_fraction,
                weight_closure_valid=closure.is_valid,
                chi_squared=history[-1] if history else None,
                mean_neutral_fraction_H=float(np.mean(self.grid.neutral_fraction_H)),
                mean_neutral_fraction_He=float(np.mean(self.grid.neutral_fraction_He)),
            ))

            if status == IterationStatus.CONVERGED:
                logger.info(f"Iterations converged after {iteration} iterations.")
            elif status == IterationStatus.EXHAUSTED:
                logger.warning(
                    f"Maximum number of iterations ({self.iteration_checker.max_iterations}) reached."
                )
            else:
                number_of_photons = self.iteration_checker.get_new_number_of_photons(total_photons)

        logger.info(f"Total photon shooting time: {self.shooting_seconds:.3f} s.")

        return SimulationResult(
            neutral_fraction_H=self.grid.neutral_fraction_H.reshape(self.grid.shape).copy(),
            neutral_fraction_He=self.grid.neutral_fraction_He.reshape(self.grid.shape).copy(),
            records=list(self.records),
            status=status,
            config=self.config,
            runtime_seconds=time.time() - start_time,
            shooting_seconds=self.shooting_seconds,
        )


def create_simulation(
    config: SimulationConfig | None = None,
    cross_sections: CrossSectionProvider | None = None,
    **kwargs,
) -> RadiativeTransferSimulation:
    """Create a simulation (convenience function).

    Args:
        config: Simulation configuration (SSOT)
        cross_sections: Cross section provider
        **kwargs: Override specific config parameters (e.g. number_of_photons=10000)

    Returns:
        Initialized RadiativeTransferSimulation instance

    Example:
        >>> sim = create_simulation(threads=2, max_iterations=3)
    """
    if config is None and kwargs:
        from mcrt.config import create_validated_config
        config = create_validated_config(**kwargs)
    elif config is None:
        config = create_default_config()

    return RadiativeTransferSimulation(config=config, cross_sections=cross_sections)


__all__ = [
    "IterationRecord",
    "RadiativeTransferSimulation",
    "SimulationResult",
    "create_simulation",
]
