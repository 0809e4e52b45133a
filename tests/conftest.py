"""
Fixtures compartilhadas: fakes em memória dos colaboradores do controller.
"""

import copy
import itertools
from typing import Any, Dict, List, Optional

import pytest

from neural_hive_chaos.clients.base import ClusterStore, EventRecorder, FaultClient
from neural_hive_chaos.controllers.backoff import RetryPolicy
from neural_hive_chaos.controllers.chaos_controller import ChaosExperimentController
from neural_hive_chaos.errors import AlreadyExistsError, ConflictError, NotFoundError

NO_WAIT = RetryPolicy(steps=3, initial_seconds=0.0, factor=1.0, jitter=0.0, max_seconds=0.0)


def _matches(labels: Dict[str, str], selector: Dict[str, str]) -> bool:
    return all(labels.get(k) == v for k, v in selector.items())


class FakeClusterStore(ClusterStore):
    """ClusterStore em memória com resourceVersion e injeção de conflitos."""

    def __init__(self):
        self.experiments: Dict[tuple, Dict[str, Any]] = {}
        self.jobs: Dict[tuple, Dict[str, Any]] = {}
        self.config_maps: Dict[tuple, Dict[str, Any]] = {}
        self.pods: Dict[tuple, Dict[str, Any]] = {}
        self.pod_logs: Dict[tuple, str] = {}
        self.auto_pods = True
        self.status_conflicts = 0
        self.status_writes = 0
        self.created_jobs: List[str] = []
        self.deleted_jobs: List[str] = []
        self._versions = itertools.count(1)
        self._uids = itertools.count(1)

    def _bump(self, obj: Dict[str, Any]) -> None:
        obj.setdefault("metadata", {})["resourceVersion"] = str(next(self._versions))

    # helpers de teste

    def add_experiment(self, body: Dict[str, Any]) -> None:
        body = copy.deepcopy(body)
        metadata = body["metadata"]
        metadata.setdefault("uid", f"uid-{next(self._uids)}")
        self._bump(body)
        self.experiments[(metadata["namespace"], metadata["name"])] = body

    def experiment(self, namespace: str, name: str) -> Dict[str, Any]:
        return self.experiments[(namespace, name)]

    def set_experiment_spec(self, namespace: str, name: str, spec: Dict[str, Any]) -> None:
        body = self.experiments[(namespace, name)]
        body["spec"] = copy.deepcopy(spec)
        self._bump(body)

    def set_phase(self, namespace: str, name: str, phase: str) -> None:
        body = self.experiments[(namespace, name)]
        status = body.get("status") or {}
        status["phase"] = phase
        body["status"] = status
        self._bump(body)

    def complete_job(self, namespace: str, name: str) -> None:
        job = self.jobs[(namespace, name)]
        job["status"] = {
            "succeeded": job["spec"].get("completions") or 1,
            "conditions": [{"type": "Complete", "status": "True"}],
        }

    def fail_job(self, namespace: str, name: str) -> None:
        job = self.jobs[(namespace, name)]
        job["status"] = {
            "failed": 1,
            "conditions": [{"type": "Failed", "status": "True"}],
        }

    def set_job_log(self, namespace: str, job_name: str, log: str) -> None:
        for (ns, pod_name), pod in self.pods.items():
            if ns == namespace and pod["metadata"]["labels"].get("job-name") == job_name:
                self.pod_logs[(ns, pod_name)] = log

    # ClusterStore

    async def get_experiment(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        body = self.experiments.get((namespace, name))
        return copy.deepcopy(body) if body is not None else None

    async def update_experiment_status(
        self, experiment: Dict[str, Any], status: Dict[str, Any]
    ) -> Dict[str, Any]:
        metadata = experiment["metadata"]
        current = self.experiments.get((metadata["namespace"], metadata["name"]))
        if current is None:
            raise NotFoundError(f"{metadata['name']} not found")
        if self.status_conflicts > 0:
            self.status_conflicts -= 1
            raise ConflictError(f"{metadata['name']}: injected conflict")
        if metadata.get("resourceVersion") != current["metadata"]["resourceVersion"]:
            raise ConflictError(f"{metadata['name']}: stale resourceVersion")

        current["status"] = copy.deepcopy(status)
        self._bump(current)
        self.status_writes += 1
        return copy.deepcopy(current)

    async def get_job(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        job = self.jobs.get((namespace, name))
        return copy.deepcopy(job) if job is not None else None

    async def list_jobs(self, namespace: str, labels: Dict[str, str]) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(job)
            for (ns, _), job in self.jobs.items()
            if ns == namespace and _matches(job["metadata"].get("labels") or {}, labels)
        ]

    async def create_job(self, job: Dict[str, Any]) -> Dict[str, Any]:
        metadata = job["metadata"]
        key = (metadata["namespace"], metadata["name"])
        if key in self.jobs:
            raise AlreadyExistsError(f"{metadata['name']} already exists")

        created = copy.deepcopy(job)
        uid = f"job-uid-{next(self._uids)}"
        created["metadata"]["uid"] = uid
        created["spec"]["selector"] = {"matchLabels": {"controller-uid": uid}}
        self._bump(created)
        self.jobs[key] = created
        self.created_jobs.append(metadata["name"])

        if self.auto_pods:
            pod_name = f"{metadata['name']}-pod"
            self.pods[(metadata["namespace"], pod_name)] = {
                "metadata": {
                    "name": pod_name,
                    "namespace": metadata["namespace"],
                    "labels": {"controller-uid": uid, "job-name": metadata["name"]},
                }
            }
        return copy.deepcopy(created)

    async def delete_job(self, namespace: str, name: str) -> None:
        job = self.jobs.pop((namespace, name), None)
        if job is None:
            raise NotFoundError(f"{name} not found")
        uid = job["metadata"]["uid"]
        for key in [k for k, p in self.pods.items() if p["metadata"]["labels"].get("controller-uid") == uid]:
            del self.pods[key]
        self.deleted_jobs.append(name)

    async def get_config_map(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        config_map = self.config_maps.get((namespace, name))
        return copy.deepcopy(config_map) if config_map is not None else None

    async def create_config_map(self, config_map: Dict[str, Any]) -> Dict[str, Any]:
        metadata = config_map["metadata"]
        key = (metadata["namespace"], metadata["name"])
        if key in self.config_maps:
            raise AlreadyExistsError(f"{metadata['name']} already exists")
        created = copy.deepcopy(config_map)
        self._bump(created)
        self.config_maps[key] = created
        return copy.deepcopy(created)

    async def update_config_map(self, config_map: Dict[str, Any]) -> Dict[str, Any]:
        metadata = config_map["metadata"]
        key = (metadata["namespace"], metadata["name"])
        if key not in self.config_maps:
            raise NotFoundError(f"{metadata['name']} not found")
        updated = copy.deepcopy(config_map)
        self._bump(updated)
        self.config_maps[key] = updated
        return copy.deepcopy(updated)

    async def list_pods(self, namespace: str, labels: Dict[str, str]) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(pod)
            for (ns, _), pod in self.pods.items()
            if ns == namespace and _matches(pod["metadata"]["labels"], labels)
        ]

    async def read_pod_log(self, namespace: str, name: str) -> str:
        return self.pod_logs.get((namespace, name), "")


class FakeFaultClient(FaultClient):
    """Objetos de falha em memória indexados por (kind, namespace, name)."""

    def __init__(self):
        self.objects: Dict[tuple, Dict[str, Any]] = {}
        self.updates = 0

    def set_conditions(self, kind: str, namespace: str, name: str, **conditions: str) -> None:
        fault = self.objects[(kind, namespace, name)]
        fault["status"] = {
            "conditions": [{"type": k, "status": v} for k, v in conditions.items()]
        }

    async def get(self, kind: str, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        fault = self.objects.get((kind, namespace, name))
        return copy.deepcopy(fault) if fault is not None else None

    async def create(self, fault: Dict[str, Any]) -> Dict[str, Any]:
        metadata = fault["metadata"]
        key = (fault["kind"], metadata["namespace"], metadata["name"])
        if key in self.objects:
            raise AlreadyExistsError(f"{metadata['name']} already exists")
        self.objects[key] = copy.deepcopy(fault)
        return copy.deepcopy(fault)

    async def update(self, fault: Dict[str, Any]) -> Dict[str, Any]:
        metadata = fault["metadata"]
        key = (fault["kind"], metadata["namespace"], metadata["name"])
        if key not in self.objects:
            raise NotFoundError(f"{metadata['name']} not found")
        self.objects[key] = copy.deepcopy(fault)
        self.updates += 1
        return copy.deepcopy(fault)


class FakeEventRecorder(EventRecorder):
    def __init__(self):
        self.events: List[Dict[str, str]] = []

    def emit(self, obj: Dict[str, Any], severity: str, reason: str, message: str) -> None:
        self.events.append({"severity": severity, "reason": reason, "message": message})

    def reasons(self) -> List[str]:
        return [e["reason"] for e in self.events]


def pod_chaos_spec(duration: str = "30s") -> Dict[str, Any]:
    return {
        "podChaos": {
            "selector": {"namespaces": ["default"], "labelSelectors": {"app": "proxy"}},
            "action": "PodFailure",
            "params": {"podFailure": {"duration": duration}},
        },
        "expect": {"verify": ""},
    }


def network_chaos_spec() -> Dict[str, Any]:
    return {
        "networkChaos": {
            "selector": {"namespaces": ["default"], "labelSelectors": {"app": "proxy"}},
            "target": {"namespaces": ["default"], "labelSelectors": {"app": "db"}},
            "action": "Delay",
            "duration": "1m",
            "direction": "both",
            "params": {"delay": {"latency": "100ms", "jitter": "10ms"}},
        },
    }


def experiment_body(
    name: str = "exp",
    namespace: str = "default",
    spec: Optional[Dict[str, Any]] = None,
    annotations: Optional[Dict[str, str]] = None,
    status: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    body = {
        "apiVersion": "neural-hive.io/v1alpha1",
        "kind": "ChaosExperiment",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": {"team": "sre"},
            "annotations": dict(annotations or {}),
        },
        "spec": spec if spec is not None else pod_chaos_spec(),
    }
    if status is not None:
        body["status"] = status
    return body


@pytest.fixture
def make_body():
    """Factory de corpos ChaosExperiment."""
    return experiment_body


@pytest.fixture
def pod_spec():
    return pod_chaos_spec


@pytest.fixture
def network_spec():
    return network_chaos_spec


@pytest.fixture
def store():
    return FakeClusterStore()


@pytest.fixture
def fault_client():
    return FakeFaultClient()


@pytest.fixture
def events():
    return FakeEventRecorder()


@pytest.fixture
def controller(store, fault_client, events):
    return ChaosExperimentController(
        store=store,
        fault_client=fault_client,
        events=events,
        requeue_interval_seconds=10.0,
        pod_wait_policy=NO_WAIT,
        status_policy=NO_WAIT,
    )
