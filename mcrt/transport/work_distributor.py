"""Work distributor: parallel photon shooting with a single merge step.

A batch of N photons is split into one chunk per job. The jobs run on a
fixed-size thread pool; when all of them finished, their private
accumulators are summed in job order and added to the grid. This merge is
the only place the grid's accumulators are written.

Results are reproducible for a fixed seed and job count: every job draws
from its own stream and the merge order does not depend on scheduling.

Import Policy:
    from mcrt.transport.work_distributor import WorkDistributor, SubstepResult

DO NOT use: from mcrt.transport.work_distributor import *
"""

import logging
from dataclasses import dataclass
from multiprocessing.pool import ThreadPool
from typing import List

from mcrt.config.defaults import (
    DEFAULT_JOBS_PER_THREAD,
    DEFAULT_MAX_REEMISSIONS,
    DEFAULT_RANDOM_SEED,
    DEFAULT_THREADS,
)
from mcrt.core.accounting import PhotonTypeCounts
from mcrt.core.cell import CellAccumulators
from mcrt.core.grid import GridTransportPort
from mcrt.sources.photon_source import PhotonSource
from mcrt.transport.shoot_job import JobResult, PhotonShootJob

logger = logging.getLogger(__name__)


@dataclass
class SubstepResult:
    """Merged output of one photon batch.

    Attributes:
        number_of_photons: Number of photons shot
        weight_shot: Summed weight of the photons shot
        accumulators: Sum of the job accumulators of this batch only
        counts: Finished photons per type
    """

    number_of_photons: int
    weight_shot: float
    accumulators: CellAccumulators
    counts: PhotonTypeCounts


def split_photons(number_of_photons: int, worksize: int) -> List[int]:
    """Split a photon count into ``worksize`` nearly equal chunks.

    The first ``number_of_photons % worksize`` chunks get one extra photon.

    Example:
        >>> split_photons(10, 4)
        [3, 3, 2, 2]
    """
    if worksize <= 0:
        raise ValueError(f"worksize must be > 0, got {worksize}")
    base, remainder = divmod(number_of_photons, worksize)
    return [base + 1 if i < remainder else base for i in range(worksize)]


def _execute_job(job: PhotonShootJob, number_of_photons: int) -> JobResult:
    """Worker entry point."""
    return job.execute(number_of_photons)


class WorkDistributor:
    """Runs photon shoot jobs on a thread pool.

    Args:
        photon_source: Source shared by all jobs (read-only during shooting)
        grid: Grid shared by all jobs
        threads: Size of the worker pool
        jobs_per_thread: Jobs per worker; more jobs give finer load balancing
        random_seed: Job i is seeded with random_seed + i
        max_reemissions: Per-photon cap on re-emission events
    """

    def __init__(
        self,
        photon_source: PhotonSource,
        grid: GridTransportPort,
        threads: int = DEFAULT_THREADS,
        jobs_per_thread: int = DEFAULT_JOBS_PER_THREAD,
        random_seed: int = DEFAULT_RANDOM_SEED,
        max_reemissions: int = DEFAULT_MAX_REEMISSIONS,
    ):
        if threads <= 0:
            raise ValueError(f"threads must be > 0, got {threads}")
        if jobs_per_thread <= 0:
            raise ValueError(f"jobs_per_thread must be > 0, got {jobs_per_thread}")
        self.photon_source = photon_source
        self.grid = grid
        self.threads = threads
        self.worksize = threads * jobs_per_thread
        self.jobs = [
            PhotonShootJob(photon_source, grid, random_seed + i, i, max_reemissions)
            for i in range(self.worksize)
        ]
        logger.info(f"Work distributor uses {self.threads} threads and {self.worksize} jobs.")

    def do_in_parallel(self, number_of_photons: int) -> SubstepResult:
        """Shoot ``number_of_photons`` photons and merge the results into the grid.

        Blocks until every job finished.

        Returns:
            SubstepResult of this batch
        """
        tasks = list(zip(self.jobs, split_photons(number_of_photons, self.worksize)))

        if self.threads == 1:
            results = [_execute_job(job, n) for job, n in tasks]
        else:
            with ThreadPool(processes=self.threads) as pool:
                results = pool.starmap(_execute_job, tasks)

        # starmap keeps task order, so the merge order is fixed
        merged = self.grid.create_accumulators()
        counts = PhotonTypeCounts()
        weight_shot = 0.0
        total = 0
        for result in results:
            merged += result.accumulators
            counts += result.counts
            weight_shot += result.weight_shot
            total += result.number_of_photons
        self.grid.merge_accumulators(merged)

        return SubstepResult(
            number_of_photons=total,
            weight_shot=weight_shot,
            accumulators=merged,
            counts=counts,
        )
