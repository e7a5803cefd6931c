"""Photon sources: spectra, source distributions and the PhotonSource."""

from mcrt.sources.distribution import (
    DiscreteSourceDistribution,
    IsotropicContinuousPhotonSource,
    SingleStarSourceDistribution,
)
from mcrt.sources.photon_source import PhotonBudget, PhotonSource
from mcrt.sources.spectrum import (
    HeliumLymanContinuumSpectrum,
    HeliumTwoPhotonContinuumSpectrum,
    HydrogenLymanContinuumSpectrum,
    MonochromaticSpectrum,
    PlanckSpectrum,
    UniformSpectrum,
    create_spectrum,
)

__all__ = [
    "DiscreteSourceDistribution",
    "IsotropicContinuousPhotonSource",
    "SingleStarSourceDistribution",
    "PhotonBudget",
    "PhotonSource",
    "HeliumLymanContinuumSpectrum",
    "HeliumTwoPhotonContinuumSpectrum",
    "HydrogenLymanContinuumSpectrum",
    "MonochromaticSpectrum",
    "PlanckSpectrum",
    "UniformSpectrum",
    "create_spectrum",
]
