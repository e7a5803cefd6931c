"""Photon Type Accounting

Every photon that leaves the transport loop is counted once, under the type
it carried when it left: PRIMARY, DIFFUSE_HI or DIFFUSE_HEI if it escaped
the domain as an ionizing photon, ABSORBED if it was re-emitted as
non-ionizing radiation. Counts are kept both by number and by weight.

Weight Balance:
    W_shot = W_primary + W_diffuse_HI + W_diffuse_HeI + W_absorbed

    Re-emission never changes a photon's weight, so the sum over types of
    the counted weight equals the weight of all photons generated.

Import Policy:
    from mcrt.core.accounting import PhotonTypeCounts, WeightClosureReport

DO NOT use: from mcrt.core.accounting import *
"""

from dataclasses import dataclass, field

import numpy as np

from mcrt.config.defaults import DEFAULT_WEIGHT_CLOSURE_TOL
from mcrt.core.photon import NUMBER_OF_PHOTON_TYPES, PHOTON_TYPE_NAMES, Photon, PhotonType

# Types that count as escaped ionizing radiation
ESCAPED_TYPES = (PhotonType.PRIMARY, PhotonType.DIFFUSE_HI, PhotonType.DIFFUSE_HEI)


class PhotonTypeCounts:
    """Number and weight of finished photons, per PhotonType.

    Supports ``+=`` so that job-private counts can be summed after the
    parallel barrier, or across processes.

    Attributes:
        number: Integer counts, indexed by PhotonType
        weight: Summed weights, indexed by PhotonType
    """

    def __init__(self):
        self.number = np.zeros(NUMBER_OF_PHOTON_TYPES, dtype=np.int64)
        self.weight = np.zeros(NUMBER_OF_PHOTON_TYPES)

    def record(self, photon: Photon) -> None:
        """Count a finished photon under its current type."""
        self.number[photon.type] += 1
        self.weight[photon.type] += photon.weight

    def reset(self) -> None:
        self.number.fill(0)
        self.weight.fill(0.0)

    def __iadd__(self, other: "PhotonTypeCounts") -> "PhotonTypeCounts":
        self.number += other.number
        self.weight += other.weight
        return self

    @property
    def total_number(self) -> int:
        return int(self.number.sum())

    @property
    def total_weight(self) -> float:
        return float(self.weight.sum())

    @property
    def escaped_number(self) -> int:
        return int(sum(self.number[t] for t in ESCAPED_TYPES))

    @property
    def escaped_weight(self) -> float:
        return float(sum(self.weight[t] for t in ESCAPED_TYPES))

    def weight_fraction(self, photon_type: PhotonType, reference_weight: float) -> float:
        """Weight of one type as a fraction of ``reference_weight``."""
        if reference_weight <= 0.0:
            return 0.0
        return float(self.weight[photon_type]) / reference_weight

    def to_dict(self) -> dict:
        """Counts keyed by type name, for logging and result export."""
        return {
            PHOTON_TYPE_NAMES[t]: {"number": int(self.number[t]), "weight": float(self.weight[t])}
            for t in PhotonType
        }


@dataclass
class WeightClosureReport:
    """Weight balance of one photon-shooting iteration.

    Attributes:
        iteration: Iteration number
        weight_shot: Summed weight of all generated photons
        type_weights: Summed weight per PhotonType
        residual: weight_shot - sum(type_weights)
        relative_error: |residual| / weight_shot
        is_valid: Whether the balance holds within tolerance

    """

    iteration: int = 0
    weight_shot: float = 0.0
    type_weights: dict[PhotonType, float] = field(default_factory=dict)
    residual: float = 0.0
    relative_error: float = 0.0
    is_valid: bool = True

    @classmethod
    def from_counts(cls, counts: PhotonTypeCounts, weight_shot: float, iteration: int = 0) -> "WeightClosureReport":
        report = cls(
            iteration=iteration,
            weight_shot=weight_shot,
            type_weights={t: float(counts.weight[t]) for t in PhotonType},
        )
        report.check_closure()
        return report

    def check_closure(self, tolerance: float = DEFAULT_WEIGHT_CLOSURE_TOL) -> bool:
        """Check that the per-type weights add up to the weight shot.

        Args:
            tolerance: Maximum allowed relative error

        Returns:
            True if the balance holds within tolerance

        """
        self.residual = self.weight_shot - sum(self.type_weights.values())
        self.relative_error = abs(self.residual) / max(self.weight_shot, 1e-300)
        self.is_valid = self.relative_error <= tolerance
        return self.is_valid

    def __str__(self) -> str:
        lines = [f"Weight closure (iteration {self.iteration}):"]
        lines.append(f"  shot: {self.weight_shot:.6e}")
        for photon_type, weight in self.type_weights.items():
            lines.append(f"  {PHOTON_TYPE_NAMES[photon_type]}: {weight:.6e}")
        status = "OK" if self.is_valid else "VIOLATED"
        lines.append(f"  residual: {self.residual:.3e} (relative {self.relative_error:.3e}) {status}")
        return "\n".join(lines)
