"""Seeded random streams for photon shooting.

Every parallel job owns exactly one RandomStream. Streams are never shared
between jobs, so the sequence of draws a job sees depends only on its seed.

Import Policy:
    from mcrt.core.rng import RandomStream

DO NOT use: from mcrt.core.rng import *
"""

import math

import numpy as np

# Number of uniforms generated per refill of the internal buffer
DEFAULT_BLOCK_SIZE = 4096


class RandomStream:
    """Explicitly seeded source of uniform random numbers.

    Uniforms are drawn from ``numpy.random.default_rng`` in blocks and handed
    out one at a time. Values lie in (0, 1], so ``-ln(u)`` is always finite.

    Attributes:
        seed: Seed the stream was created with
    """

    def __init__(self, seed: int, block_size: int = DEFAULT_BLOCK_SIZE):
        if block_size <= 0:
            raise ValueError(f"block_size must be > 0, got {block_size}")
        self.seed = seed
        self._rng = np.random.default_rng(seed)
        self._block_size = block_size
        self._buffer: list[float] = []
        self._index = 0

    def _refill(self) -> None:
        # random() is in [0, 1); flip it to (0, 1]
        self._buffer = (1.0 - self._rng.random(self._block_size)).tolist()
        self._index = 0

    def uniform(self) -> float:
        """Draw one uniform random number in (0, 1]."""
        if self._index >= len(self._buffer):
            self._refill()
        value = self._buffer[self._index]
        self._index += 1
        return value

    def uniforms(self, n: int) -> np.ndarray:
        """Draw ``n`` uniform random numbers as an array.

        The values are taken from the same sequence as :meth:`uniform`.
        """
        return np.array([self.uniform() for _ in range(n)])

    def isotropic_direction(self) -> np.ndarray:
        """Draw a direction uniformly distributed on the unit sphere.

        Returns:
            Unit 3-vector
        """
        cos_theta = 2.0 * self.uniform() - 1.0
        sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))
        phi = 2.0 * math.pi * self.uniform()
        return np.array([sin_theta * math.cos(phi), sin_theta * math.sin(phi), cos_theta])

    def optical_depth(self) -> float:
        """Draw an optical depth budget, exponentially distributed with unit mean."""
        return -math.log(self.uniform())
