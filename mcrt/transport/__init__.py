"""Transport orchestration package."""

from mcrt.transport.convergence import (
    ChiSquaredIterationConvergenceChecker,
    ChiSquaredSubstepConvergenceChecker,
    PassiveIterationConvergenceChecker,
    PassiveSubstepConvergenceChecker,
    create_iteration_checker,
    create_substep_checker,
)
from mcrt.transport.ionization import IonizationStateCalculator
from mcrt.transport.shoot_job import JobResult, PhotonShootJob, TransportDegeneracyError
from mcrt.transport.simulation import (
    IterationRecord,
    RadiativeTransferSimulation,
    SimulationResult,
    create_simulation,
)
from mcrt.transport.work_distributor import SubstepResult, WorkDistributor, split_photons

__all__ = [
    'ChiSquaredIterationConvergenceChecker',
    'ChiSquaredSubstepConvergenceChecker',
    'PassiveIterationConvergenceChecker',
    'PassiveSubstepConvergenceChecker',
    'create_iteration_checker',
    'create_substep_checker',
    'IonizationStateCalculator',
    'JobResult',
    'PhotonShootJob',
    'TransportDegeneracyError',
    'IterationRecord',
    'RadiativeTransferSimulation',
    'SimulationResult',
    'create_simulation',
    'SubstepResult',
    'WorkDistributor',
    'split_photons',
]
