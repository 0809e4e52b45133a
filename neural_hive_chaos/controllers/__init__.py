from .backoff import RetryPolicy
from .chaos_controller import ChaosExperimentController, ReconcileResult

__all__ = ["ChaosExperimentController", "ReconcileResult", "RetryPolicy"]
