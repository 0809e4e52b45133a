"""Máquina de estados de fase do experimento."""

from enum import Enum
from typing import Any, Dict, Optional

from ..models.chaos_experiment import ChaosCondition, ChaosPhase
from .job import InjectRequirement


def next_requirement(phase: Optional[ChaosPhase]) -> InjectRequirement:
    """Requisito cujo job deve existir na fase atual."""
    if phase == ChaosPhase.INJECTED_CHAOS:
        return InjectRequirement.PRESSURE
    if phase == ChaosPhase.RECOVERED_CHAOS:
        return InjectRequirement.VERIFY
    return InjectRequirement.EXPERIMENTAL


def advance(
    phase: Optional[ChaosPhase],
    job_succeeded: bool,
    condition: ChaosCondition,
) -> ChaosPhase:
    """
    Calcula a próxima fase, no máximo um passo por chamada.

    Unknown, NoTarget e Paused nunca avançam a fase.
    """
    phase = phase or ChaosPhase.BEFORE_EXPERIMENT

    if phase == ChaosPhase.BEFORE_EXPERIMENT and job_succeeded:
        return ChaosPhase.AFTER_EXPERIMENT
    if phase == ChaosPhase.AFTER_EXPERIMENT and condition == ChaosCondition.ALL_INJECTED:
        return ChaosPhase.INJECTED_CHAOS
    if phase == ChaosPhase.INJECTED_CHAOS and condition == ChaosCondition.ALL_RECOVERED:
        return ChaosPhase.RECOVERED_CHAOS
    return phase


class JobCondition(str, Enum):
    COMPLETE = "complete"
    FAILURE = "failure"
    SUSPEND = "suspend"
    ACTIVE = "active"


def job_condition(job: Optional[Dict[str, Any]]) -> JobCondition:
    """Reduz as conditions de um Job vivo a um único estado."""
    conditions = ((job or {}).get("status") or {}).get("conditions") or []
    for condition in conditions:
        if condition.get("status") != "True":
            continue
        kind = condition.get("type")
        if kind == "Complete":
            return JobCondition.COMPLETE
        if kind in ("Failed", "FailureTarget"):
            return JobCondition.FAILURE
        if kind == "Suspended":
            return JobCondition.SUSPEND
    return JobCondition.ACTIVE


def is_job_succeeded(job: Optional[Dict[str, Any]]) -> bool:
    if not job:
        return False
    completions = (job.get("spec") or {}).get("completions") or 1
    succeeded = (job.get("status") or {}).get("succeeded") or 0
    return succeeded >= completions
