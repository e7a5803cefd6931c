"""Pytest configuration and shared fixtures for mcrt tests."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from mcrt.config import SimulationConfig
from mcrt.config.enums import SpectrumType
from mcrt.config.simulation_config import (
    ConvergenceConfig,
    GridConfig,
    ParallelConfig,
    PhotonConfig,
    SourceConfig,
)
from mcrt.core.cross_sections import Abundances, ConstantCrossSections
from mcrt.core.grid import CartesianDensityGrid
from mcrt.core.rng import RandomStream
from mcrt.sources.distribution import SingleStarSourceDistribution
from mcrt.sources.photon_source import PhotonSource
from mcrt.sources.spectrum import MonochromaticSpectrum


# Fixtures for core modules


@pytest.fixture
def rng():
    """Random stream with a fixed seed."""
    return RandomStream(12345)


@pytest.fixture
def unit_box_grid():
    """4x4x4 grid of 1 m cells with its anchor at the origin, in vacuum."""
    return CartesianDensityGrid(
        box_anchor=(0.0, 0.0, 0.0),
        box_sides=(4.0, 4.0, 4.0),
        ncell=(4, 4, 4),
        number_density=0.0,
    )


@pytest.fixture
def absorbing_grid():
    """4x4x4 grid of 250 m cells, fully neutral, optical depth ~1 per 1000 m
    for a 1e-22 m^2 cross section."""
    return CartesianDensityGrid(
        box_anchor=(-500.0, -500.0, -500.0),
        box_sides=(1000.0, 1000.0, 1000.0),
        ncell=(4, 4, 4),
        number_density=1.0e19,
        helium_abundance=0.1,
        initial_neutral_fraction=1.0,
    )


# Fixtures for sources


@pytest.fixture
def single_star_source():
    """Single 13.6 eV star at the origin with a constant 1e-22 m^2 cross section."""
    return PhotonSource(
        distribution=SingleStarSourceDistribution((0.0, 0.0, 0.0), 1.0e49),
        discrete_spectrum=MonochromaticSpectrum(13.6),
        abundances=Abundances(helium=0.1),
        cross_sections=ConstantCrossSections(1.0e-22),
    )


# Fixtures for full simulations


def make_small_config(**overrides) -> SimulationConfig:
    """Small, fast configuration: 4^3 cells, single monochromatic star."""
    config = SimulationConfig(
        photons=PhotonConfig(number_of_photons=2000),
        convergence=ConvergenceConfig(max_iterations=2, warmup_iterations=1, photon_boost_factor=1),
        parallel=ParallelConfig(threads=2, jobs_per_thread=2, random_seed=7),
        grid=GridConfig(
            box_anchor=(-500.0, -500.0, -500.0),
            box_sides=(1000.0, 1000.0, 1000.0),
            ncell=(4, 4, 4),
            number_density=1.0e19,
            initial_neutral_fraction=1.0,
        ),
        source=SourceConfig(
            positions=((0.0, 0.0, 0.0),),
            weights=(1.0,),
            luminosity=1.0e20,
            spectrum=SpectrumType.MONOCHROMATIC,
            spectrum_energy=13.6,
        ),
    )
    for key, value in overrides.items():
        for section in (config.photons, config.convergence, config.parallel, config.grid, config.source):
            if key in section.__dataclass_fields__:
                setattr(section, key, value)
                break
        else:
            raise KeyError(key)
    return config


@pytest.fixture
def small_config():
    """Small absorbing configuration."""
    return make_small_config()


@pytest.fixture
def vacuum_config():
    """Small configuration without gas."""
    return make_small_config(number_density=0.0)


def five_sigma(p: float, n: int) -> float:
    """Five standard errors of a binomial fraction."""
    return 5.0 * np.sqrt(p * (1.0 - p) / n)
