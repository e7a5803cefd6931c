"""Tests for PhotonShootJob and WorkDistributor."""

import math

import numpy as np
import pytest

from mcrt.core.accounting import PhotonTypeCounts
from mcrt.core.cross_sections import Abundances, ConstantCrossSections
from mcrt.core.grid import CartesianDensityGrid
from mcrt.core.photon import PhotonType
from mcrt.sources.distribution import SingleStarSourceDistribution
from mcrt.sources.photon_source import PhotonSource
from mcrt.sources.spectrum import MonochromaticSpectrum, UniformSpectrum
from mcrt.transport.shoot_job import PhotonShootJob, TransportDegeneracyError
from mcrt.transport.work_distributor import WorkDistributor, split_photons


def make_setup(number_density=1.0e19):
    """Fresh grid and source: optical depth ~0.5 from the center to the edge."""
    grid = CartesianDensityGrid(
        box_anchor=(-500.0, -500.0, -500.0),
        box_sides=(1000.0, 1000.0, 1000.0),
        ncell=(4, 4, 4),
        number_density=number_density,
        initial_neutral_fraction=1.0,
    )
    source = PhotonSource(
        distribution=SingleStarSourceDistribution((0.0, 0.0, 0.0), 1.0e10),
        discrete_spectrum=MonochromaticSpectrum(30.0),
        abundances=Abundances(helium=0.1),
        cross_sections=ConstantCrossSections(1.0e-22),
    )
    source.set_number_of_photons(1000)
    return grid, source


class TestSplitPhotons:
    """Tests for split_photons."""

    def test_remainder_goes_first(self):
        """Test the documented example."""
        assert split_photons(10, 4) == [3, 3, 2, 2]

    @pytest.mark.parametrize("n,worksize", [(0, 3), (7, 7), (1000, 16), (5, 8)])
    def test_sum_preserved(self, n, worksize):
        """Test that chunks add up to the request and differ by at most one."""
        chunks = split_photons(n, worksize)
        assert len(chunks) == worksize
        assert sum(chunks) == n
        assert max(chunks) - min(chunks) <= 1

    def test_invalid_worksize(self):
        """Test that an empty job list is rejected."""
        with pytest.raises(ValueError):
            split_photons(10, 0)


class TestPhotonShootJob:
    """Tests for a single job."""

    def test_vacuum(self):
        """Test that every photon escapes unchanged in vacuum."""
        grid, source = make_setup(number_density=0.0)
        result = PhotonShootJob(source, grid, seed=1).execute(200)

        assert result.number_of_photons == 200
        assert result.counts.number[PhotonType.PRIMARY] == 200
        assert result.weight_shot == pytest.approx(200 * 1.0e10 / 1000)
        assert result.counts.total_weight == pytest.approx(result.weight_shot)
        # Private accumulators are returned, the grid is untouched
        assert result.accumulators.mean_intensity.sum() > 0.0
        assert grid.accumulators.mean_intensity.sum() == 0.0

    def test_vacuum_point_source_end_to_end(self):
        """Test a 1e49 s^-1 star with a flat 13.6-54.4 eV spectrum in an empty box."""
        grid, _ = make_setup(number_density=0.0)
        source = PhotonSource(
            distribution=SingleStarSourceDistribution((0.0, 0.0, 0.0), 1.0e49),
            discrete_spectrum=UniformSpectrum(13.6, 54.4),
            abundances=Abundances(helium=0.1),
            cross_sections=ConstantCrossSections(1.0e-22),
        )
        n = 100000
        assert source.set_number_of_photons(n) == n

        job = PhotonShootJob(source, grid, seed=3)
        accumulators = grid.create_accumulators()
        counts = PhotonTypeCounts()
        energies = np.empty(n)
        for i in range(n):
            photon = source.get_random_photon(job.rng)
            job.transport_photon(photon, accumulators)
            counts.record(photon)
            energies[i] = photon.energy

        assert counts.number[PhotonType.ABSORBED] == 0
        assert counts.escaped_number == n
        assert counts.total_weight == pytest.approx(1.0e49, rel=1e-9)
        # Mean of a uniform 13.6-54.4 eV spectrum, within five standard errors
        sigma = (54.4 - 13.6) / math.sqrt(12.0)
        assert abs(energies.mean() - 34.0) < 5.0 * sigma / math.sqrt(n)

    def test_weight_closure(self):
        """Test that every shot photon is counted exactly once."""
        grid, source = make_setup()
        result = PhotonShootJob(source, grid, seed=2).execute(500)

        assert result.counts.total_number == 500
        assert result.counts.total_weight == pytest.approx(result.weight_shot, rel=1e-12)
        assert result.counts.number[PhotonType.ABSORBED] > 0

    def test_reemission_cap(self):
        """Test that endless re-emission is reported as a degeneracy."""
        grid, source = make_setup(number_density=1.0e25)
        job = PhotonShootJob(source, grid, seed=3, max_reemissions=2)
        # Force every absorption to re-emit an ionizing photon
        grid.p_hion[:] = 1.0
        grid.neutral_fraction_He[:] = 0.0
        with pytest.raises(TransportDegeneracyError, match="re-emitted more than 2 times"):
            job.execute(10)


class TestWorkDistributor:
    """Tests for parallel shooting, merging and reproducibility."""

    def test_merge_into_grid(self):
        """Test that a substep result is added to the grid accumulators."""
        grid, source = make_setup()
        distributor = WorkDistributor(source, grid, threads=2, jobs_per_thread=2, random_seed=11)

        first = distributor.do_in_parallel(400)
        assert first.number_of_photons == 400
        assert grid.accumulators == first.accumulators

        second = distributor.do_in_parallel(300)
        expected = first.accumulators.copy()
        expected += second.accumulators
        assert np.allclose(grid.accumulators.mean_intensity, expected.mean_intensity, rtol=1e-14)
        assert second.counts.total_weight == pytest.approx(second.weight_shot, rel=1e-12)

    def test_reproducible(self):
        """Test that the same seed and job count give bit-identical results."""
        results = []
        for _ in range(2):
            grid, source = make_setup()
            distributor = WorkDistributor(source, grid, threads=2, jobs_per_thread=2, random_seed=5)
            results.append(distributor.do_in_parallel(800))

        assert results[0].accumulators == results[1].accumulators
        assert np.array_equal(results[0].counts.number, results[1].counts.number)
        assert np.array_equal(results[0].counts.weight, results[1].counts.weight)

    def test_independent_of_thread_count(self):
        """Test that results depend on the jobs, not on how they are scheduled."""
        results = []
        for threads, jobs_per_thread in [(1, 4), (2, 2), (4, 1)]:
            grid, source = make_setup()
            distributor = WorkDistributor(
                source, grid, threads=threads, jobs_per_thread=jobs_per_thread, random_seed=5,
            )
            results.append(distributor.do_in_parallel(800))

        for result in results[1:]:
            assert result.accumulators == results[0].accumulators
            assert np.array_equal(result.counts.number, results[0].counts.number)

    def test_different_seeds(self):
        """Test that a different base seed changes the results."""
        accumulators = []
        for seed in (5, 6):
            grid, source = make_setup()
            distributor = WorkDistributor(source, grid, threads=2, jobs_per_thread=2, random_seed=seed)
            accumulators.append(distributor.do_in_parallel(800).accumulators)
        assert accumulators[0] != accumulators[1]

    @pytest.mark.parametrize("kwargs", [dict(threads=0), dict(jobs_per_thread=0)])
    def test_invalid_pool(self, kwargs):
        """Test that empty pools are rejected."""
        grid, source = make_setup()
        with pytest.raises(ValueError):
            WorkDistributor(source, grid, **kwargs)
