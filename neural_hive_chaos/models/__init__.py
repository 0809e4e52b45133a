from .chaos_experiment import (
    CHAOS_API_VERSION,
    CHAOS_GROUP,
    CHAOS_KIND,
    CHAOS_PLURAL,
    CHAOS_VERSION,
    ChaosCondition,
    ChaosExperiment,
    ChaosExperimentSpec,
    ChaosExperimentStatus,
    ChaosPhase,
    Direction,
    Expect,
    InjectJobSpec,
    NetworkChaosAction,
    NetworkChaosSpec,
    PodChaosAction,
    PodChaosSpec,
    PodSelector,
    Result,
    ResultDetail,
)

__all__ = [
    "CHAOS_API_VERSION",
    "CHAOS_GROUP",
    "CHAOS_KIND",
    "CHAOS_PLURAL",
    "CHAOS_VERSION",
    "ChaosCondition",
    "ChaosExperiment",
    "ChaosExperimentSpec",
    "ChaosExperimentStatus",
    "ChaosPhase",
    "Direction",
    "Expect",
    "InjectJobSpec",
    "NetworkChaosAction",
    "NetworkChaosSpec",
    "PodChaosAction",
    "PodChaosSpec",
    "PodSelector",
    "Result",
    "ResultDetail",
]
