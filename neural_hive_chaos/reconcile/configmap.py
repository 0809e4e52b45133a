"""ConfigMap companheiro do experimento: publica os scripts dos jobs e a saída esperada."""

import copy
from typing import Any, Dict, Optional

from ..models.chaos_experiment import ChaosExperiment
from .common import owned_labels

EXPECT_VERIFY_KEY = "expect.verify"


def config_map_name(experiment_name: str) -> str:
    return experiment_name


def config_map_data(experiment: ChaosExperiment) -> Dict[str, str]:
    inject_job = experiment.spec.inject_job
    data = {}
    for key in ("experimental", "pressure", "verify"):
        script = getattr(inject_job, key)
        if script:
            data[key] = script
    data[EXPECT_VERIFY_KEY] = experiment.spec.expect.verify
    return data


def new_config_map(experiment: ChaosExperiment) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": config_map_name(experiment.name),
            "namespace": experiment.namespace,
            "labels": owned_labels(experiment.name, experiment.metadata.labels),
        },
        "data": config_map_data(experiment),
    }


def update_config_map(experiment: ChaosExperiment, current: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Retorna o ConfigMap atualizado, ou None quando `data` já está em dia."""
    desired = config_map_data(experiment)
    if (current.get("data") or {}) == desired:
        return None

    updated = copy.deepcopy(current)
    updated["data"] = desired
    return updated
