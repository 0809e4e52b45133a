"""
Neural Hive Chaos - operator de experimentos de chaos.

Orquestra ChaosExperiment: injeta a falha via Chaos Mesh, executa os Jobs de
experimento, pressão e verificação e registra os resultados no status.
"""

from .controllers.chaos_controller import ChaosExperimentController, ReconcileResult
from .errors import (
    AlreadyExistsError,
    ChaosOperatorError,
    ChaosSpecChangedError,
    ConflictError,
    JobBuildError,
    NotFoundError,
    NotReadyError,
)
from .models.chaos_experiment import ChaosCondition, ChaosExperiment, ChaosPhase
from .scheme import Scheme, build_default_scheme

__version__ = "0.1.0"

__all__ = [
    "AlreadyExistsError",
    "ChaosCondition",
    "ChaosExperiment",
    "ChaosExperimentController",
    "ChaosOperatorError",
    "ChaosPhase",
    "ChaosSpecChangedError",
    "ConflictError",
    "JobBuildError",
    "NotFoundError",
    "NotReadyError",
    "ReconcileResult",
    "Scheme",
    "build_default_scheme",
]
