"""Photon shoot job: the unit of parallel photon-shooting work.

A job owns a random stream for the whole simulation. Each call to execute
shoots a number of photons into fresh private accumulators and returns them;
nothing shared is written while the job runs.

Import Policy:
    from mcrt.transport.shoot_job import PhotonShootJob, JobResult, TransportDegeneracyError

DO NOT use: from mcrt.transport.shoot_job import *
"""

from dataclasses import dataclass

from mcrt.config.defaults import DEFAULT_MAX_REEMISSIONS
from mcrt.core.accounting import PhotonTypeCounts
from mcrt.core.cell import CellAccumulators
from mcrt.core.grid import OUTSIDE, GridTransportPort
from mcrt.core.photon import Photon
from mcrt.core.rng import RandomStream
from mcrt.sources.photon_source import PhotonSource


class TransportDegeneracyError(RuntimeError):
    """Raised when a photon is re-emitted more often than the per-photon cap.

    This means the grid or the spectra never let photons escape, which is a
    bug in one of them.
    """

    pass


@dataclass
class JobResult:
    """Output of one job execution.

    Attributes:
        job_index: Index of the job that produced the result
        number_of_photons: Number of photons shot
        weight_shot: Summed weight of the photons shot
        accumulators: Private accumulators written by the job
        counts: Finished photons per type
    """

    job_index: int
    number_of_photons: int
    weight_shot: float
    accumulators: CellAccumulators
    counts: PhotonTypeCounts


class PhotonShootJob:
    """Shoots photons from a PhotonSource through a grid.

    Args:
        photon_source: Source of photons and re-emission physics
        grid: Grid to transport through
        seed: Seed of the job's random stream
        job_index: Position of the job in its distributor
        max_reemissions: Per-photon cap on re-emission events
    """

    def __init__(
        self,
        photon_source: PhotonSource,
        grid: GridTransportPort,
        seed: int,
        job_index: int = 0,
        max_reemissions: int = DEFAULT_MAX_REEMISSIONS,
    ):
        self.photon_source = photon_source
        self.grid = grid
        self.rng = RandomStream(seed)
        self.job_index = job_index
        self.max_reemissions = max_reemissions

    def transport_photon(self, photon: Photon, accumulators: CellAccumulators) -> None:
        """Follow one photon until it leaves the grid or is lost.

        Raises:
            TransportDegeneracyError: If the re-emission cap is exceeded
        """
        reemissions = 0
        while self.grid.interact(photon, self.rng.optical_depth(), accumulators):
            cell_id = self.grid.cell_index_at(photon.position)
            if cell_id == OUTSIDE:
                # Absorbed on the box boundary and rounded outside: it escapes
                return
            cell = self.grid.get_cell_state(cell_id)
            if not self.photon_source.reemit(photon, cell, self.rng):
                return
            reemissions += 1
            if reemissions > self.max_reemissions:
                raise TransportDegeneracyError(
                    f"Photon was re-emitted more than {self.max_reemissions} times "
                    f"(job {self.job_index}): {photon!r}"
                )

    def execute(self, number_of_photons: int) -> JobResult:
        """Shoot ``number_of_photons`` photons.

        Returns:
            JobResult with the job's private accumulators and counts
        """
        accumulators = self.grid.create_accumulators()
        counts = PhotonTypeCounts()
        weight_shot = 0.0
        for _ in range(number_of_photons):
            photon = self.photon_source.get_random_photon(self.rng)
            weight_shot += photon.weight
            self.transport_photon(photon, accumulators)
            counts.record(photon)
        return JobResult(
            job_index=self.job_index,
            number_of_photons=number_of_photons,
            weight_shot=weight_shot,
            accumulators=accumulators,
            counts=counts,
        )
