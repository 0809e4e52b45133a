"""
Tradução do experimento para objetos do Chaos Mesh e de volta para ChaosCondition.

Conjunto fechado de variantes: PodChaos e NetworkChaos. Cada tradutor constrói
o objeto desejado, detecta mudança pelo hash de spec e interpreta as
conditions do objeto vivo.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import structlog

from ..models.chaos_experiment import (
    ChaosCondition,
    ChaosExperiment,
    NetworkChaosAction,
    NetworkChaosSpec,
    PodChaosAction,
    PodChaosSpec,
)
from ..reconcile.common import SPEC_HASH_ANNOTATION, annotation, owned_labels, spec_hash
from ..scheme import CHAOS_MESH_GROUP, CHAOS_MESH_VERSION, NETWORK_CHAOS_KIND, POD_CHAOS_KIND

logger = structlog.get_logger()

MODE_ALL = "all"

POD_CHAOS_ACTIONS = {
    PodChaosAction.POD_FAILURE: "pod-failure",
    PodChaosAction.CONTAINER_KILL: "container-kill",
}

NETWORK_CHAOS_ACTIONS = {
    NetworkChaosAction.DELAY: "delay",
    NetworkChaosAction.LOSS: "loss",
    NetworkChaosAction.DUPLICATION: "duplicate",
    NetworkChaosAction.CORRUPTION: "corrupt",
    NetworkChaosAction.PARTITION: "partition",
}


def _condition_true(conditions, kind: str) -> bool:
    return any(c.get("type") == kind and c.get("status") == "True" for c in conditions)


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


class FaultTranslator(ABC):
    """Base das variantes de falha."""

    kind: str = ""

    def build(self, experiment: ChaosExperiment) -> Dict[str, Any]:
        """Objeto de falha desejado, com mesmo nome/namespace do experimento."""
        spec = self.build_spec(experiment)
        return {
            "apiVersion": f"{CHAOS_MESH_GROUP}/{CHAOS_MESH_VERSION}",
            "kind": self.kind,
            "metadata": {
                "name": experiment.name,
                "namespace": experiment.namespace,
                "labels": owned_labels(experiment.name, experiment.metadata.labels),
                "annotations": {SPEC_HASH_ANNOTATION: spec_hash(spec)},
            },
            "spec": spec,
        }

    @abstractmethod
    def build_spec(self, experiment: ChaosExperiment) -> Dict[str, Any]:
        pass

    def is_changed(self, desired: Dict[str, Any], live: Dict[str, Any]) -> bool:
        return annotation(desired, SPEC_HASH_ANNOTATION) != annotation(live, SPEC_HASH_ANNOTATION)

    def translate_condition(self, live: Optional[Dict[str, Any]]) -> ChaosCondition:
        """
        Interpreta as conditions do objeto de falha vivo.

        Ordem: Selected=False -> NoTarget, Paused -> Paused, AllInjected,
        AllRecovered; qualquer outro caso é Unknown.
        """
        if not live:
            return ChaosCondition.UNKNOWN

        conditions = (live.get("status") or {}).get("conditions") or []
        if not conditions:
            return ChaosCondition.UNKNOWN

        if any(c.get("type") == "Selected" and c.get("status") == "False" for c in conditions):
            return ChaosCondition.NO_TARGET
        if _condition_true(conditions, "Paused"):
            return ChaosCondition.PAUSED
        if _condition_true(conditions, "AllInjected"):
            return ChaosCondition.ALL_INJECTED
        if _condition_true(conditions, "AllRecovered"):
            return ChaosCondition.ALL_RECOVERED
        return ChaosCondition.UNKNOWN


class PodChaosTranslator(FaultTranslator):
    kind = POD_CHAOS_KIND

    def build_spec(self, experiment: ChaosExperiment) -> Dict[str, Any]:
        pod_chaos: PodChaosSpec = experiment.spec.pod_chaos
        spec: Dict[str, Any] = {
            "action": POD_CHAOS_ACTIONS[pod_chaos.action],
            "mode": MODE_ALL,
            "selector": pod_chaos.selector.to_body(),
        }

        if pod_chaos.action == PodChaosAction.POD_FAILURE:
            params = pod_chaos.params.pod_failure
            if params is not None and params.duration:
                spec["duration"] = params.duration
        elif pod_chaos.action == PodChaosAction.CONTAINER_KILL:
            params = pod_chaos.params.container_kill
            spec["containerNames"] = list(params.container_names) if params else []

        return spec


class NetworkChaosTranslator(FaultTranslator):
    kind = NETWORK_CHAOS_KIND

    def build_spec(self, experiment: ChaosExperiment) -> Dict[str, Any]:
        network_chaos: NetworkChaosSpec = experiment.spec.network_chaos
        params = network_chaos.params
        spec: Dict[str, Any] = {
            "action": NETWORK_CHAOS_ACTIONS[network_chaos.action],
            "mode": MODE_ALL,
            "selector": network_chaos.selector.to_body(),
            "direction": network_chaos.direction.value,
        }
        if network_chaos.duration:
            spec["duration"] = network_chaos.duration
        if network_chaos.target is not None:
            spec["target"] = {"mode": MODE_ALL, "selector": network_chaos.target.to_body()}

        # apenas o bloco da ação escolhida é enviado
        action = network_chaos.action
        if action == NetworkChaosAction.DELAY and params.delay is not None:
            spec["delay"] = _drop_none(
                {"latency": params.delay.latency, "jitter": params.delay.jitter}
            )
        elif action == NetworkChaosAction.LOSS and params.loss is not None:
            spec["loss"] = _drop_none({"loss": params.loss.loss})
        elif action == NetworkChaosAction.DUPLICATION and params.duplication is not None:
            spec["duplicate"] = _drop_none({"duplicate": params.duplication.duplicate})
        elif action == NetworkChaosAction.CORRUPTION and params.corruption is not None:
            spec["corrupt"] = _drop_none({"corrupt": params.corruption.corrupt})

        return spec


_POD_CHAOS = PodChaosTranslator()
_NETWORK_CHAOS = NetworkChaosTranslator()


def translator_for(experiment: ChaosExperiment) -> FaultTranslator:
    if experiment.spec.pod_chaos is not None:
        return _POD_CHAOS
    if experiment.spec.network_chaos is not None:
        return _NETWORK_CHAOS
    raise ValueError(f"experiment {experiment.namespace}/{experiment.name} has no fault")


def translate_condition(experiment: ChaosExperiment, live: Optional[Dict[str, Any]]) -> ChaosCondition:
    condition = translator_for(experiment).translate_condition(live)
    logger.debug(
        "translator.condition",
        experiment=experiment.name,
        namespace=experiment.namespace,
        condition=condition.value,
    )
    return condition
