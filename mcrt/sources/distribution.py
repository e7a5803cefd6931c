"""Source distributions.

Discrete distributions describe a set of point sources:

    get_number_of_sources(), get_position(i), get_weight(i), get_total_luminosity()

The weights are luminosity fractions and sum to 1.

The continuous source describes an inward radiation field on the boundary of
the simulation box. It generates (position, direction) pairs and reports the
surface area the radiation enters through.

Import Policy:
    from mcrt.sources.distribution import SingleStarSourceDistribution, DiscreteSourceDistribution

DO NOT use: from mcrt.sources.distribution import *
"""

import math
from typing import Protocol, Sequence, Tuple

import numpy as np

from mcrt.core.rng import RandomStream


class SourceDistribution(Protocol):
    def get_number_of_sources(self) -> int:
        ...

    def get_position(self, index: int) -> np.ndarray:
        ...

    def get_weight(self, index: int) -> float:
        ...

    def get_total_luminosity(self) -> float:
        ...


class SingleStarSourceDistribution:
    """One point source carrying the entire luminosity.

    Args:
        position: Source position (m)
        luminosity: Ionizing luminosity (s^-1)
    """

    def __init__(self, position: Sequence[float], luminosity: float):
        self.position = np.array(position, dtype=np.float64)
        self.luminosity = float(luminosity)

    def get_number_of_sources(self) -> int:
        return 1

    def get_position(self, index: int) -> np.ndarray:
        return self.position

    def get_weight(self, index: int) -> float:
        return 1.0

    def get_total_luminosity(self) -> float:
        return self.luminosity


class DiscreteSourceDistribution:
    """A list of point sources sharing a total luminosity.

    Weights are stored as given; PhotonSource checks that they sum to 1.

    Args:
        positions: Source positions (m), shape (n, 3)
        weights: Luminosity fractions, length n
        luminosity: Total ionizing luminosity (s^-1)
    """

    def __init__(self, positions: Sequence[Sequence[float]], weights: Sequence[float], luminosity: float):
        self.positions = np.array(positions, dtype=np.float64).reshape(-1, 3)
        self.weights = np.array(weights, dtype=np.float64)
        if len(self.weights) != len(self.positions):
            raise ValueError(
                f"Got {len(self.positions)} source positions but {len(self.weights)} weights"
            )
        self.luminosity = float(luminosity)

    def get_number_of_sources(self) -> int:
        return len(self.positions)

    def get_position(self, index: int) -> np.ndarray:
        return self.positions[index]

    def get_weight(self, index: int) -> float:
        return float(self.weights[index])

    def get_total_luminosity(self) -> float:
        return self.luminosity


class IsotropicContinuousPhotonSource:
    """Isotropic external radiation field entering the box through its faces.

    A face is chosen with probability proportional to its area, the entry
    point is uniform on that face, and the direction follows the cosine law
    of an isotropic field crossing a surface, pointing into the box.

    Args:
        box_anchor: Lower corner of the box (m)
        box_sides: Side lengths of the box (m)
    """

    def __init__(self, box_anchor: Sequence[float], box_sides: Sequence[float]):
        self.box_anchor = np.array(box_anchor, dtype=np.float64)
        self.box_sides = np.array(box_sides, dtype=np.float64)
        sx, sy, sz = self.box_sides
        face_areas = np.array([sy * sz, sx * sz, sx * sy])
        # Two faces per axis: (axis 0 low, axis 0 high, axis 1 low, ...)
        self._face_cdf = np.cumsum(np.repeat(face_areas, 2))
        self._total_area = float(self._face_cdf[-1])
        self._face_cdf /= self._total_area
        self._face_cdf[-1] = 1.0

    def get_total_surface_area(self) -> float:
        return self._total_area

    def get_random_incoming_direction(self, rng: RandomStream) -> Tuple[np.ndarray, np.ndarray]:
        """Draw an entry point on the box surface and an inward direction.

        Returns:
            Tuple of (position, direction)
        """
        x = rng.uniform()
        face = 0
        while x > self._face_cdf[face]:
            face += 1
        axis, upper = divmod(face, 2)
        other = [a for a in range(3) if a != axis]

        position = self.box_anchor.copy()
        if upper:
            position[axis] += self.box_sides[axis]
        for a in other:
            position[a] += self.box_sides[a] * rng.uniform()

        cos_theta = math.sqrt(rng.uniform())
        sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))
        phi = 2.0 * math.pi * rng.uniform()

        direction = np.zeros(3)
        direction[axis] = -cos_theta if upper else cos_theta
        direction[other[0]] = sin_theta * math.cos(phi)
        direction[other[1]] = sin_theta * math.sin(phi)
        return position, direction
