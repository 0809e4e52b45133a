"""Builders puros e máquina de estados usados pelo controller."""

from .configmap import config_map_name, new_config_map, update_config_map
from .job import InjectRequirement, is_job_changed, job_name, new_job
from .phase import JobCondition, advance, is_job_succeeded, job_condition, next_requirement
from .results import VERIFY_CHECK, has_result, new_result, upsert_result

__all__ = [
    "InjectRequirement",
    "JobCondition",
    "VERIFY_CHECK",
    "advance",
    "config_map_name",
    "has_result",
    "is_job_changed",
    "is_job_succeeded",
    "job_condition",
    "job_name",
    "new_config_map",
    "new_job",
    "new_result",
    "next_requirement",
    "update_config_map",
    "upsert_result",
]
