"""
Construção do Job Kubernetes de cada requisito do experimento.

Função pura: mesmo experimento e mesmo requisito geram o mesmo manifest. As
annotations `job.batch/*` do experimento sobrescrevem campos do JobSpec e um
valor malformado aborta a construção com JobBuildError.
"""

import copy
import re
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import JobBuildError
from ..models.chaos_experiment import ChaosExperiment
from .common import REQUIREMENT_LABEL, SPEC_HASH_ANNOTATION, annotation, owned_labels, spec_hash

DEFAULT_IMAGE = "perl:5.34.0"
DEFAULT_CONTAINER_NAME = "tools-runtime"
DEFAULT_COMMAND = ["perl", "-Mbignum=bpi", "-wle", "print bpi(1000)"]

SCRIPTS_VOLUME = "scripts"
SCRIPTS_MOUNT_PATH = "/scripts"

ANNOTATION_PREFIX = "job.batch/"
COMPLETIONS = ANNOTATION_PREFIX + "completions"
ACTIVE_DEADLINE_SECONDS = ANNOTATION_PREFIX + "activeDeadlineSeconds"
PARALLELISM = ANNOTATION_PREFIX + "parallelism"
BACKOFF_LIMIT = ANNOTATION_PREFIX + "backoffLimit"
TTL_SECONDS_AFTER_FINISHED = ANNOTATION_PREFIX + "ttlSecondsAfterFinished"
SUSPEND = ANNOTATION_PREFIX + "suspend"

INT32_MAX = 2**31 - 1
INT64_MAX = 2**63 - 1

_DECIMAL = re.compile(r"[+-]?[0-9]+")


class InjectRequirement(str, Enum):
    """Qual dos três jobs do experimento está ativo."""
    EXPERIMENTAL = "experimental"
    PRESSURE = "pressure"
    VERIFY = "verify"

    @property
    def check_name(self) -> str:
        """Prefixo usado nas mensagens de resultado (ex: "Verify")."""
        return self.value.capitalize()


DEFAULT_RESOURCES = {
    "requests": {"cpu": "100m", "memory": "128Mi"},
    "limits": {"cpu": "1000m", "memory": "512Mi"},
}


def _parse_int(key: str, value: str, upper: int) -> int:
    if not _DECIMAL.fullmatch(value):
        raise JobBuildError(key, value, "not a decimal integer")
    parsed = int(value)
    if parsed > upper or parsed < -upper - 1:
        raise JobBuildError(key, value, "out of range")
    return parsed


def parse_int32(key: str, value: str) -> int:
    return _parse_int(key, value, INT32_MAX)


def parse_int64(key: str, value: str) -> int:
    return _parse_int(key, value, INT64_MAX)


def parse_bool(key: str, value: str) -> bool:
    if value == "true":
        return True
    if value == "false":
        return False
    raise JobBuildError(key, value, "expected \"true\" or \"false\"")


# Ordem de aplicação dos overrides: (annotation, campo do JobSpec, parser)
OVERRIDES: List[Tuple[str, str, Callable[[str, str], Any]]] = [
    (COMPLETIONS, "completions", parse_int32),
    (ACTIVE_DEADLINE_SECONDS, "activeDeadlineSeconds", parse_int64),
    (PARALLELISM, "parallelism", parse_int32),
    (BACKOFF_LIMIT, "backoffLimit", parse_int32),
    (TTL_SECONDS_AFTER_FINISHED, "ttlSecondsAfterFinished", parse_int32),
    (SUSPEND, "suspend", parse_bool),
]


def job_name(experiment_name: str, requirement: InjectRequirement) -> str:
    return f"{experiment_name}-{InjectRequirement(requirement).value}"


def _container(
    experiment: ChaosExperiment,
    requirement: InjectRequirement,
    image: str,
    resources: Dict[str, Any],
) -> Dict[str, Any]:
    script = getattr(experiment.spec.inject_job, requirement.value)
    if script:
        command = ["/bin/sh", f"{SCRIPTS_MOUNT_PATH}/{requirement.value}"]
    else:
        command = list(DEFAULT_COMMAND)

    return {
        "name": DEFAULT_CONTAINER_NAME,
        "image": image,
        "command": command,
        "resources": copy.deepcopy(resources),
        "volumeMounts": [
            {"name": SCRIPTS_VOLUME, "mountPath": SCRIPTS_MOUNT_PATH, "readOnly": True}
        ],
    }


def new_job(
    experiment: ChaosExperiment,
    requirement: InjectRequirement,
    image: str = DEFAULT_IMAGE,
    resources: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Constrói o manifest do Job para o requisito informado.

    Args:
        experiment: Experimento dono do Job
        requirement: Requisito ativo (experimental, pressure ou verify)
        image: Imagem do container
        resources: Requests/limits do container

    Returns:
        Manifest do Job (dict no formato da API)

    Raises:
        JobBuildError: annotation de override malformada
    """
    requirement = InjectRequirement(requirement)
    annotations = experiment.metadata.annotations

    job_spec: Dict[str, Any] = {
        "template": {
            "metadata": {"labels": {REQUIREMENT_LABEL: requirement.value}},
            "spec": {
                "restartPolicy": "OnFailure",
                "containers": [
                    _container(experiment, requirement, image, resources or DEFAULT_RESOURCES)
                ],
                "volumes": [
                    {"name": SCRIPTS_VOLUME, "configMap": {"name": experiment.name}}
                ],
            },
        },
    }

    for key, field, parser in OVERRIDES:
        if key in annotations:
            job_spec[field] = parser(key, annotations[key])

    labels = owned_labels(experiment.name, experiment.metadata.labels)
    labels[REQUIREMENT_LABEL] = requirement.value

    return {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": {
            "name": job_name(experiment.name, requirement),
            "namespace": experiment.namespace,
            "labels": labels,
            "annotations": {SPEC_HASH_ANNOTATION: spec_hash(job_spec)},
        },
        "spec": job_spec,
    }


def is_job_changed(desired: Dict[str, Any], current: Dict[str, Any]) -> bool:
    """Compara pelo hash gravado; o spec vivo recebe defaults do API server."""
    return annotation(desired, SPEC_HASH_ANNOTATION) != annotation(current, SPEC_HASH_ANNOTATION)


def pod_selector_for_job(job: Dict[str, Any]) -> Dict[str, str]:
    """Labels que selecionam os pods de um Job vivo."""
    spec = job.get("spec") or {}
    match_labels = (spec.get("selector") or {}).get("matchLabels") or {}
    if match_labels:
        return dict(match_labels)

    metadata = job.get("metadata") or {}
    uid = metadata.get("uid")
    if uid:
        return {"controller-uid": uid}
    return {"job-name": metadata.get("name", "")}
