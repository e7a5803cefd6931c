"""Density grids: the transport-facing grid interface and a Cartesian grid.

The photon-shooting code only talks to a grid through GridTransportPort.
CartesianDensityGrid is a uniform box of regular cells implementing it.

Cell indexing:
    Cells are numbered with z as the fastest-varying index:
        cell_id = (ix * ny + iy) * nz + iz

Import Policy:
    from mcrt.core.grid import CartesianDensityGrid, GridTransportPort

DO NOT use: from mcrt.core.grid import *
"""

import logging
import math
from typing import Protocol, Sequence, Tuple

import numpy as np

from mcrt.core.cell import (
    CellAccumulators,
    CellState,
    check_neutral_fractions,
    set_reemission_probabilities,
)
from mcrt.core.constants import HE_IONIZATION_ENERGY, H_IONIZATION_ENERGY, IonName
from mcrt.core.photon import Photon

logger = logging.getLogger(__name__)

# Index returned by cell_index_at for positions outside the grid
OUTSIDE = -1

# Relative distance from a box face within which a point still counts as inside
FACE_TOLERANCE = 1.0e-12


class GridTransportPort(Protocol):
    """What photon shooting requires from a grid.

    Accumulators are passed explicitly to ``interact`` so that each job
    writes into its own private copy.
    """

    def cell_index_at(self, position: Sequence[float]) -> int:
        """Index of the cell containing ``position``, or OUTSIDE."""
        ...

    def interact(self, photon: Photon, optical_depth: float, accumulators: CellAccumulators) -> bool:
        """Move ``photon`` until ``optical_depth`` is used up or it leaves the grid.

        Returns:
            True if the photon was absorbed inside the grid, False if it escaped
        """
        ...

    def get_cell_state(self, cell_id: int) -> CellState:
        ...

    def create_accumulators(self) -> CellAccumulators:
        ...

    def merge_accumulators(self, accumulators: CellAccumulators) -> None:
        ...

    def reset_accumulators(self) -> None:
        ...


class CartesianDensityGrid:
    """Uniform box divided into regular Cartesian cells.

    Attributes:
        box_anchor: Lower corner of the box (m)
        box_sides: Side lengths of the box (m)
        ncell: Number of cells per axis
        cell_size: Side lengths of one cell (m)
        number_density: Hydrogen number density per cell (m^-3)
        neutral_fraction_H, neutral_fraction_He: Neutral fractions per cell
        temperature: Temperature per cell (K)
        p_hion: Hydrogen re-emission probability per cell
        p_he_em: Helium re-emission thresholds per cell, shape (ncell, 4)
        accumulators: Shared accumulators, written only by merge_accumulators
    """

    def __init__(
        self,
        box_anchor: Sequence[float],
        box_sides: Sequence[float],
        ncell: Sequence[int],
        number_density: float = 1.0e8,
        helium_abundance: float = 0.1,
        initial_temperature: float = 8000.0,
        initial_neutral_fraction: float = 1.0e-6,
    ):
        self.box_anchor = np.array(box_anchor, dtype=np.float64)
        self.box_sides = np.array(box_sides, dtype=np.float64)
        self.ncell = tuple(int(n) for n in ncell)
        if len(self.ncell) != 3 or any(n <= 0 for n in self.ncell):
            raise ValueError(f"ncell must be 3 positive integers, got {list(ncell)}")
        if np.any(self.box_sides <= 0.0):
            raise ValueError(f"box_sides must be positive, got {list(box_sides)}")

        self.cell_size = self.box_sides / np.array(self.ncell)
        self.helium_abundance = helium_abundance

        n = self.number_of_cells
        self.number_density = np.full(n, float(number_density))
        self.neutral_fraction_H = np.full(n, float(initial_neutral_fraction))
        self.neutral_fraction_He = np.full(n, float(initial_neutral_fraction))
        self.temperature = np.full(n, float(initial_temperature))
        self.p_hion = np.zeros(n)
        self.p_he_em = np.zeros((n, 4))
        self.update_reemission_probabilities()

        self.accumulators = CellAccumulators(n)

        logger.info(
            f"Cartesian grid: {self.ncell[0]}x{self.ncell[1]}x{self.ncell[2]} cells, "
            f"box anchor {self.box_anchor.tolist()} m, sides {self.box_sides.tolist()} m"
        )

    @property
    def number_of_cells(self) -> int:
        return self.ncell[0] * self.ncell[1] * self.ncell[2]

    @property
    def cell_volume(self) -> float:
        return float(np.prod(self.cell_size))

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.ncell

    # ------------------------------------------------------------------
    # Cell state
    # ------------------------------------------------------------------

    def update_reemission_probabilities(self) -> None:
        """Recompute p_hion and p_he_em of every cell from its temperature."""
        for cell_id, temperature in enumerate(self.temperature):
            p_hion, p_he_em = set_reemission_probabilities(float(temperature))
            self.p_hion[cell_id] = p_hion
            self.p_he_em[cell_id] = p_he_em

    def set_neutral_fractions(self, neutral_fraction_H: np.ndarray, neutral_fraction_He: np.ndarray) -> None:
        """Replace the neutral fractions of all cells."""
        neutral_fraction_H = np.asarray(neutral_fraction_H, dtype=np.float64)
        neutral_fraction_He = np.asarray(neutral_fraction_He, dtype=np.float64)
        for x_H, x_He in zip(neutral_fraction_H, neutral_fraction_He):
            check_neutral_fractions(float(x_H), float(x_He))
        self.neutral_fraction_H[:] = neutral_fraction_H
        self.neutral_fraction_He[:] = neutral_fraction_He

    def get_cell_state(self, cell_id: int) -> CellState:
        return CellState(
            neutral_fraction_H=float(self.neutral_fraction_H[cell_id]),
            neutral_fraction_He=float(self.neutral_fraction_He[cell_id]),
            temperature=float(self.temperature[cell_id]),
            p_hion=float(self.p_hion[cell_id]),
            p_he_em=tuple(float(p) for p in self.p_he_em[cell_id]),
        )

    def get_cell_midpoint(self, cell_id: int) -> np.ndarray:
        ix, iy, iz = np.unravel_index(cell_id, self.ncell)
        return self.box_anchor + (np.array([ix, iy, iz]) + 0.5) * self.cell_size

    # ------------------------------------------------------------------
    # Accumulators
    # ------------------------------------------------------------------

    def create_accumulators(self) -> CellAccumulators:
        """Fresh zeroed accumulators, private to one job."""
        return CellAccumulators(self.number_of_cells)

    def merge_accumulators(self, accumulators: CellAccumulators) -> None:
        self.accumulators += accumulators

    def reset_accumulators(self) -> None:
        self.accumulators.reset()

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def _flat_index(self, ix: int, iy: int, iz: int) -> int:
        return (ix * self.ncell[1] + iy) * self.ncell[2] + iz

    def _axis_indices(self, position: Sequence[float]):
        """Per-axis cell indices, or None if the position lies outside the box.

        Points on the box faces, up to rounding, belong to the outermost cells.
        """
        indices = []
        for axis in range(3):
            offset = position[axis] - self.box_anchor[axis]
            slack = FACE_TOLERANCE * self.box_sides[axis]
            if offset < -slack or offset > self.box_sides[axis] + slack:
                return None
            i = int(max(offset, 0.0) / self.cell_size[axis])
            indices.append(min(i, self.ncell[axis] - 1))
        return indices

    def cell_index_at(self, position: Sequence[float]) -> int:
        indices = self._axis_indices(position)
        if indices is None:
            return OUTSIDE
        return self._flat_index(*indices)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def interact(self, photon: Photon, optical_depth: float, accumulators: CellAccumulators) -> bool:
        """Ray-march a photon through the grid.

        In each cell the photon crosses a path length ds, picks up optical
        depth ``ds * n * (x_H * sigma_H + x_He * A_He * sigma_He)`` and adds
        ``ds * weight * sigma`` to the cell's mean intensities. The photon
        stops inside the cell where its optical depth budget runs out.

        Args:
            photon: Photon to move; its position is updated in place
            optical_depth: Optical depth budget
            accumulators: Job-private accumulators to write into

        Returns:
            True if the photon was absorbed inside the grid, False if it escaped
        """
        indices = self._axis_indices(photon.position)
        if indices is None:
            return False

        position = [float(x) for x in photon.position]
        direction = [float(d) for d in photon.direction]
        anchor = self.box_anchor
        size = self.cell_size
        ncell = self.ncell

        sigma_H = float(photon.cross_sections[IonName.H_N])
        sigma_He = float(photon.cross_sections[IonName.HE_N])
        helium_correction = photon.helium_correction
        weight = photon.weight
        heat_factor_H = max(0.0, 1.0 - H_IONIZATION_ENERGY / photon.energy)
        heat_factor_He = max(0.0, 1.0 - HE_IONIZATION_ENERGY / photon.energy)

        mean_intensity = accumulators.mean_intensity
        heating_H = accumulators.heating_H
        heating_He = accumulators.heating_He

        tau_left = optical_depth
        while True:
            cell_id = self._flat_index(*indices)

            # Distance to the nearest cell face along the direction of flight
            ds_exit = math.inf
            exit_axis = -1
            for axis in range(3):
                d = direction[axis]
                if d > 0.0:
                    face = anchor[axis] + (indices[axis] + 1) * size[axis]
                elif d < 0.0:
                    face = anchor[axis] + indices[axis] * size[axis]
                else:
                    continue
                ds = max(0.0, (face - position[axis]) / d)
                if ds < ds_exit:
                    ds_exit = ds
                    exit_axis = axis
            if exit_axis < 0:
                raise ValueError(f"Photon has a zero direction vector: {photon!r}")

            opacity = self.number_density[cell_id] * (
                self.neutral_fraction_H[cell_id] * sigma_H
                + self.neutral_fraction_He[cell_id] * helium_correction
            )
            tau_cell = ds_exit * opacity

            absorbed = tau_cell > tau_left
            ds = tau_left / opacity if absorbed else ds_exit

            contribution = ds * weight
            mean_intensity[cell_id, IonName.H_N] += contribution * sigma_H
            mean_intensity[cell_id, IonName.HE_N] += contribution * sigma_He
            heating_H[cell_id] += contribution * sigma_H * heat_factor_H
            heating_He[cell_id] += contribution * sigma_He * heat_factor_He

            for axis in range(3):
                position[axis] += ds * direction[axis]

            if absorbed:
                photon.position = np.array(position)
                return True

            tau_left -= tau_cell
            step = 1 if direction[exit_axis] > 0.0 else -1
            indices[exit_axis] += step
            if indices[exit_axis] < 0 or indices[exit_axis] >= ncell[exit_axis]:
                photon.position = np.array(position)
                return False
