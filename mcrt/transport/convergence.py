"""Convergence control for photon shooting.

Two nested loops are controlled here:

Substeps (inner loop):
    Within one iteration photons are shot in chunks. After every chunk the
    substep checker is told the cumulative photon weight shot so far and
    decides whether the iteration has enough photons, and how large the next
    chunk should be.

Iterations (outer loop):
    After the ionization state was updated, the iteration checker inspects
    the grid and decides whether to run another iteration. Running out of
    iterations is a normal way to finish and is reported as EXHAUSTED, not
    as an error.

Import Policy:
    from mcrt.transport.convergence import create_substep_checker, create_iteration_checker

DO NOT use: from mcrt.transport.convergence import *
"""

import logging
import math
from typing import List, Optional

import numpy as np

from mcrt.config.defaults import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MAX_SUBSTEPS,
    DEFAULT_PHOTON_BOOST_FACTOR,
    DEFAULT_SUBSTEP_GROWTH_FACTOR,
    DEFAULT_SUBSTEP_TOLERANCE,
    DEFAULT_TOLERANCE,
    DEFAULT_WARMUP_ITERATIONS,
)
from mcrt.config.enums import IterationCheckerType, IterationStatus, SubstepCheckerType
from mcrt.config.simulation_config import ConvergenceConfig
from mcrt.core.constants import IonName
from mcrt.validation.metrics import compute_chi_squared, compute_relative_change

logger = logging.getLogger(__name__)


# =============================================================================
# Substep checkers
# =============================================================================


class PassiveSubstepConvergenceChecker:
    """Converges once a full photon budget was shot.

    The budget is ``target_count`` photons carrying ``target_weight``, the
    total source luminosity. The checker converges once the cumulative
    weight reaches the target, or once ``target_count`` photons were shot
    (their summed weight can round to just below the target). Once
    converged, it stays converged until reset.

    Args:
        target_weight: Weight to reach
        target_count: Number of photons expected to carry target_weight
    """

    def __init__(self, target_weight: float = 0.0, target_count: int = 0):
        self.reset(target_weight, target_count)

    def reset(self, target_weight: float, target_count: int) -> None:
        """Start a new iteration with a new target."""
        self.target_weight = float(target_weight)
        self.target_count = int(target_count)
        self.number_of_substeps = 0
        self.photons_shot = 0
        self._converged = False

    def record_substep(self, result) -> None:
        """Take note of a finished substep (a SubstepResult)."""
        self.number_of_substeps += 1
        self.photons_shot += result.number_of_photons

    def _target_reached(self, total_weight: float) -> bool:
        if total_weight >= self.target_weight:
            return True
        return self.target_count > 0 and self.photons_shot >= self.target_count

    def is_converged(self, total_weight: float) -> bool:
        if not self._converged:
            self._converged = self._target_reached(total_weight)
        return self._converged

    def get_number_of_photons_next_substep(self, last_count: int, total_weight: float) -> int:
        """Number of photons still missing from the budget.

        Args:
            last_count: Number of photons in the last substep
            total_weight: Cumulative weight shot so far

        Returns:
            Number of photons for the next substep (at least 1)
        """
        if self.target_count <= 0:
            return max(1, last_count)
        return max(1, self.target_count - self.photons_shot)


class ChiSquaredSubstepConvergenceChecker(PassiveSubstepConvergenceChecker):
    """Keeps shooting until the hydrogen mean intensity stops changing.

    After the photon budget was shot, substeps continue until the
    chi-squared distance between the per-weight hydrogen mean intensities
    before and after the last substep, relative to the summed intensity,
    drops below ``tolerance``, or ``max_substeps`` substeps were shot.
    Chunks grow by ``growth_factor`` from one substep to the next.

    Args:
        tolerance: Relative chi-squared threshold
        growth_factor: Chunk size multiplier between substeps
        max_substeps: Maximum number of substeps per iteration
    """

    def __init__(
        self,
        tolerance: float = DEFAULT_SUBSTEP_TOLERANCE,
        growth_factor: float = DEFAULT_SUBSTEP_GROWTH_FACTOR,
        max_substeps: int = DEFAULT_MAX_SUBSTEPS,
    ):
        self.tolerance = tolerance
        self.growth_factor = growth_factor
        self.max_substeps = max_substeps
        super().__init__()

    def reset(self, target_weight: float, target_count: int) -> None:
        super().reset(target_weight, target_count)
        self._intensity: Optional[np.ndarray] = None
        self._weight = 0.0
        self.last_chi_squared = math.inf

    def record_substep(self, result) -> None:
        super().record_substep(result)
        intensity = result.accumulators.mean_intensity[:, IonName.H_N]
        if self._intensity is None:
            self._intensity = np.zeros_like(intensity)

        previous = self._intensity / self._weight if self._weight > 0.0 else None
        self._intensity = self._intensity + intensity
        self._weight += result.weight_shot
        if previous is None or self._weight <= 0.0:
            return

        current = self._intensity / self._weight
        norm = float(np.sum(current))
        self.last_chi_squared = compute_chi_squared(current, previous) / norm if norm > 0.0 else 0.0
        logger.debug(
            f"Substep {self.number_of_substeps}: relative chi-squared {self.last_chi_squared:.3e}"
        )

    def is_converged(self, total_weight: float) -> bool:
        if self._converged:
            return True
        if self.number_of_substeps >= self.max_substeps:
            logger.warning(f"Substep limit ({self.max_substeps}) reached before convergence.")
            self._converged = True
        elif self._target_reached(total_weight):
            self._converged = self.last_chi_squared < self.tolerance
        return self._converged

    def get_number_of_photons_next_substep(self, last_count: int, total_weight: float) -> int:
        remaining = super().get_number_of_photons_next_substep(last_count, total_weight)
        grown = int(math.ceil(last_count * self.growth_factor))
        if self._target_reached(total_weight):
            return max(1, grown)
        return max(1, min(remaining, grown))


# =============================================================================
# Iteration checkers
# =============================================================================


class PassiveIterationConvergenceChecker:
    """Never converges; runs ``max_iterations`` iterations.

    Also carries the photon count guess between iterations: the guess never
    decreases, and it is multiplied by ``photon_boost_factor`` once, after
    iteration ``warmup_iterations``.

    Args:
        max_iterations: Maximum number of iterations
        warmup_iterations: Iteration after which the photon count is boosted
        photon_boost_factor: Boost factor
    """

    def __init__(
        self,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        warmup_iterations: int = DEFAULT_WARMUP_ITERATIONS,
        photon_boost_factor: int = DEFAULT_PHOTON_BOOST_FACTOR,
    ):
        self.max_iterations = max_iterations
        self.warmup_iterations = warmup_iterations
        self.photon_boost_factor = photon_boost_factor
        self.iteration = 0
        self.status = IterationStatus.RUNNING
        self.photon_guess = 0
        self.history: List[float] = []

    def is_converged(self) -> bool:
        return self.status == IterationStatus.CONVERGED

    def is_finished(self) -> bool:
        return self.status != IterationStatus.RUNNING

    def _summary_converged(self, grid) -> bool:
        return False

    def check(self, grid) -> IterationStatus:
        """Inspect the updated grid at the end of an iteration.

        Args:
            grid: Grid after the state update

        Returns:
            RUNNING, CONVERGED or EXHAUSTED
        """
        self.iteration += 1
        if self._summary_converged(grid):
            self.status = IterationStatus.CONVERGED
        elif self.iteration >= self.max_iterations:
            self.status = IterationStatus.EXHAUSTED
        else:
            self.status = IterationStatus.RUNNING
        return self.status

    def get_new_number_of_photons(self, last_count: int) -> int:
        """Photon count for the next iteration.

        Args:
            last_count: Number of photons shot in the iteration that just ended

        Returns:
            Number of photons to request next
        """
        self.photon_guess = max(self.photon_guess, int(last_count))
        if self.iteration == self.warmup_iterations and self.photon_boost_factor > 1:
            self.photon_guess *= self.photon_boost_factor
            logger.info(
                f"Warm-up finished, photon number boosted to {self.photon_guess}."
            )
        return self.photon_guess


class ChiSquaredIterationConvergenceChecker(PassiveIterationConvergenceChecker):
    """Converges when the neutral fractions settle.

    Each iteration computes the chi-squared distance between the hydrogen
    neutral fractions of this and the previous iteration, relative to their
    sum. The iterations have converged when this statistic decreased with
    respect to the previous iteration by less than ``tolerance`` (relative),
    meaning it is shrinking and has nearly stopped changing.

    Args:
        tolerance: Relative change threshold
    """

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE, **kwargs):
        super().__init__(**kwargs)
        self.tolerance = tolerance
        self._previous_fractions: Optional[np.ndarray] = None
        self.previous_chi_squared: Optional[float] = None
        self.last_relative_change: Optional[float] = None

    def _summary_converged(self, grid) -> bool:
        fractions = np.array(grid.neutral_fraction_H, dtype=np.float64)
        previous_fractions = self._previous_fractions
        self._previous_fractions = fractions
        if previous_fractions is None:
            return False

        norm = float(np.sum(fractions + previous_fractions))
        chi_squared = compute_chi_squared(fractions, previous_fractions) / norm if norm > 0.0 else 0.0
        self.history.append(chi_squared)

        previous_chi_squared = self.previous_chi_squared
        self.previous_chi_squared = chi_squared
        if previous_chi_squared is None:
            return False

        change = compute_relative_change(chi_squared, previous_chi_squared)
        self.last_relative_change = change
        logger.info(
            f"Iteration {self.iteration}: relative chi-squared {chi_squared:.3e}, "
            f"relative change {change:.3e}"
        )
        return change < 0.0 and abs(change) < self.tolerance


# =============================================================================
# Factories
# =============================================================================


def create_substep_checker(config: ConvergenceConfig):
    """Build the substep checker selected in the configuration."""
    if config.substep_checker == SubstepCheckerType.CHI_SQUARED:
        return ChiSquaredSubstepConvergenceChecker(
            tolerance=config.substep_tolerance,
            growth_factor=config.substep_growth_factor,
            max_substeps=config.max_substeps,
        )
    return PassiveSubstepConvergenceChecker()


def create_iteration_checker(config: ConvergenceConfig):
    """Build the iteration checker selected in the configuration."""
    kwargs = dict(
        max_iterations=config.max_iterations,
        warmup_iterations=config.warmup_iterations,
        photon_boost_factor=config.photon_boost_factor,
    )
    if config.iteration_checker == IterationCheckerType.CHI_SQUARED:
        return ChiSquaredIterationConvergenceChecker(tolerance=config.tolerance, **kwargs)
    return PassiveIterationConvergenceChecker(**kwargs)
