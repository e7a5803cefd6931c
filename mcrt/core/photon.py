"""Photon packet data type.

Import Policy:
    from mcrt.core.photon import Photon, PhotonType

DO NOT use: from mcrt.core.photon import *
"""

from enum import IntEnum

import numpy as np

from mcrt.core.constants import NUMBER_OF_IONS


class PhotonType(IntEnum):
    """Origin of a photon packet.

    PRIMARY photons come straight from a source. DIFFUSE_HI and DIFFUSE_HEI
    photons were re-emitted after absorption by hydrogen or helium. ABSORBED
    photons were re-emitted as non-ionizing radiation and left the system.
    """

    PRIMARY = 0
    DIFFUSE_HI = 1
    DIFFUSE_HEI = 2
    ABSORBED = 3


PHOTON_TYPE_NAMES = {
    PhotonType.PRIMARY: "primary",
    PhotonType.DIFFUSE_HI: "diffuse_HI",
    PhotonType.DIFFUSE_HEI: "diffuse_HeI",
    PhotonType.ABSORBED: "absorbed",
}

NUMBER_OF_PHOTON_TYPES = len(PHOTON_TYPE_NAMES)


class Photon:
    """A Monte Carlo energy packet.

    Attributes:
        position: Current position (m)
        direction: Unit propagation direction
        energy: Photon energy (eV)
        cross_sections: Photoionization cross section per ion (m^2),
            indexed by IonName
        helium_correction: Helium abundance times the neutral helium cross
            section (m^2)
        weight: Statistical weight (photons per second)
        type: Origin of the photon
    """

    __slots__ = (
        "position",
        "direction",
        "energy",
        "cross_sections",
        "helium_correction",
        "weight",
        "type",
    )

    def __init__(self, position, direction, energy: float, weight: float = 1.0):
        self.position = np.array(position, dtype=np.float64)
        self.direction = np.array(direction, dtype=np.float64)
        self.energy = float(energy)
        self.cross_sections = np.zeros(NUMBER_OF_IONS)
        self.helium_correction = 0.0
        self.weight = float(weight)
        self.type = PhotonType.PRIMARY

    def __repr__(self) -> str:
        return (
            f"Photon(position={self.position.tolist()}, direction={self.direction.tolist()}, "
            f"energy={self.energy:.4g} eV, weight={self.weight:.4g}, type={self.type.name})"
        )
