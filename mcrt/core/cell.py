"""Per-cell physical state and per-cell photon accumulators.

The cell state is what re-emission reads: neutral fractions, temperature and
the re-emission probabilities derived from the temperature. The accumulators
are what transport writes: mean intensity per ion and heating terms.

Accumulators are only ever written by one job at a time. Every job gets its
own CellAccumulators, and they are summed into the grid's accumulators after
all jobs finished.

Import Policy:
    from mcrt.core.cell import CellState, CellAccumulators, set_reemission_probabilities

DO NOT use: from mcrt.core.cell import *
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from mcrt.config.defaults import DEFAULT_PROBABILITY_CLOSURE_TOL
from mcrt.core.constants import (
    ALPHA_1_H,
    ALPHA_1_HE,
    ALPHA_A_H,
    ALPHA_E_2SP_HE,
    ALPHA_E_2SS_HE,
    ALPHA_E_2TS_HE,
    NUMBER_OF_IONS,
    recombination_rate,
)

# Number of cumulative helium re-emission thresholds
NUMBER_OF_HE_CHANNELS = 4


class InvalidCellStateError(Exception):
    """Raised when a cell state read by the transport is inconsistent.

    This signals a bug in whatever produced the cell state. It is never
    clamped or repaired.
    """

    pass


@dataclass(frozen=True)
class CellState:
    """Read-only snapshot of the state of one cell.

    Attributes:
        neutral_fraction_H: Neutral fraction of hydrogen
        neutral_fraction_He: Neutral fraction of helium
        temperature: Gas temperature (K)
        p_hion: Probability that a hydrogen recombination produces an
            ionizing photon
        p_he_em: Cumulative thresholds of the four helium recombination
            channels
    """

    neutral_fraction_H: float
    neutral_fraction_He: float
    temperature: float
    p_hion: float
    p_he_em: Tuple[float, float, float, float]


def set_reemission_probabilities(temperature: float) -> Tuple[float, Tuple[float, ...]]:
    """Compute the re-emission probabilities of a cell at the given temperature.

    The helium thresholds are the running sums of the ground state and the
    2^3S, 2^1S and 2^1P recombination rates, divided by their total. The last
    threshold is set to exactly 1.0 so that no helium absorption can fall
    through all channels.

    Args:
        temperature: Gas temperature (K)

    Returns:
        Tuple of (p_hion, p_he_em)
    """
    p_hion = recombination_rate(ALPHA_1_H, temperature) / recombination_rate(ALPHA_A_H, temperature)

    rates = [
        recombination_rate(ALPHA_1_HE, temperature),
        recombination_rate(ALPHA_E_2TS_HE, temperature),
        recombination_rate(ALPHA_E_2SS_HE, temperature),
        recombination_rate(ALPHA_E_2SP_HE, temperature),
    ]
    total = sum(rates)
    p_he_em = np.cumsum(rates) / total
    p_he_em[-1] = 1.0

    return p_hion, tuple(float(p) for p in p_he_em)


def check_he_emission_probabilities(
    p_he_em: Sequence[float],
    tolerance: float = DEFAULT_PROBABILITY_CLOSURE_TOL,
) -> None:
    """Check that helium re-emission thresholds are a valid cumulative table.

    Args:
        p_he_em: Cumulative thresholds
        tolerance: Allowed deviation of the last threshold from 1

    Raises:
        InvalidCellStateError: If the thresholds decrease, leave [0, 1], or
            do not end at 1
    """
    if len(p_he_em) != NUMBER_OF_HE_CHANNELS:
        raise InvalidCellStateError(
            f"Expected {NUMBER_OF_HE_CHANNELS} helium re-emission thresholds, got {len(p_he_em)}"
        )
    previous = 0.0
    for i, p in enumerate(p_he_em):
        if p < previous:
            raise InvalidCellStateError(
                f"Helium re-emission thresholds must be non-decreasing, "
                f"p_he_em[{i}] = {p} < {previous}"
            )
        previous = p
    if abs(p_he_em[-1] - 1.0) > tolerance:
        raise InvalidCellStateError(
            f"Helium re-emission thresholds must end at 1, got {p_he_em[-1]!r}"
        )


def check_neutral_fractions(neutral_fraction_H: float, neutral_fraction_He: float) -> None:
    """Raise InvalidCellStateError unless both fractions lie in [0, 1]."""
    for name, value in (("H", neutral_fraction_H), ("He", neutral_fraction_He)):
        if not 0.0 <= value <= 1.0:
            raise InvalidCellStateError(f"Neutral fraction of {name} must be in [0, 1], got {value}")


class CellAccumulators:
    """Per-cell running sums of photon contributions.

    Units are those of ``ds * weight * sigma``: m * s^-1 * m^2. The
    ionization update normalizes them with the source luminosity and the
    total weight shot.

    Attributes:
        mean_intensity: Shape (ncell, NUMBER_OF_IONS)
        heating_H: Shape (ncell,)
        heating_He: Shape (ncell,)
    """

    def __init__(self, number_of_cells: int):
        self.number_of_cells = number_of_cells
        self.mean_intensity = np.zeros((number_of_cells, NUMBER_OF_IONS))
        self.heating_H = np.zeros(number_of_cells)
        self.heating_He = np.zeros(number_of_cells)

    def reset(self) -> None:
        """Set every accumulator to zero."""
        self.mean_intensity.fill(0.0)
        self.heating_H.fill(0.0)
        self.heating_He.fill(0.0)

    def __iadd__(self, other: "CellAccumulators") -> "CellAccumulators":
        if other.number_of_cells != self.number_of_cells:
            raise ValueError(
                f"Cannot merge accumulators of {other.number_of_cells} cells "
                f"into accumulators of {self.number_of_cells} cells"
            )
        self.mean_intensity += other.mean_intensity
        self.heating_H += other.heating_H
        self.heating_He += other.heating_He
        return self

    def copy(self) -> "CellAccumulators":
        result = CellAccumulators(self.number_of_cells)
        result += self
        return result

    def __eq__(self, other) -> bool:
        if not isinstance(other, CellAccumulators):
            return NotImplemented
        return (
            self.number_of_cells == other.number_of_cells
            and np.array_equal(self.mean_intensity, other.mean_intensity)
            and np.array_equal(self.heating_H, other.heating_H)
            and np.array_equal(self.heating_He, other.heating_He)
        )

    __hash__ = None
