"""
Cliente Kubernetes do operator de chaos.

Implementa ClusterStore sobre kubernetes_asyncio: ChaosExperiment (custom
object com subresource status), Jobs, ConfigMaps e Pods. Objetos são trocados
como dicts no formato da API.
"""

import copy
from typing import Any, Dict, List, Optional

import structlog
from kubernetes_asyncio import client, config
from kubernetes_asyncio.client.exceptions import ApiException
from opentelemetry import trace

from ..errors import AlreadyExistsError, ChaosOperatorError, ConflictError, NotFoundError
from ..models.chaos_experiment import CHAOS_KIND
from ..observability.metrics import k8s_operation_duration, k8s_operations_total
from ..scheme import Scheme
from .base import ClusterStore

logger = structlog.get_logger()
tracer = trace.get_tracer(__name__)


def label_selector(labels: Dict[str, str]) -> str:
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))


class KubernetesClient(ClusterStore):
    """ClusterStore sobre a API Kubernetes."""

    def __init__(
        self,
        scheme: Scheme,
        in_cluster: bool = True,
        kubeconfig_path: Optional[str] = None,
    ):
        """
        Inicializa cliente Kubernetes.

        Args:
            scheme: Registro de tipos (resolve group/version/plural do ChaosExperiment)
            in_cluster: Se True, usa config do cluster. Se False, usa kubeconfig local.
            kubeconfig_path: Caminho do kubeconfig quando fora do cluster
        """
        self.scheme = scheme
        self.in_cluster = in_cluster
        self.kubeconfig_path = kubeconfig_path
        self.api_client: Optional[client.ApiClient] = None
        self.batch_api: Optional[client.BatchV1Api] = None
        self.core_api: Optional[client.CoreV1Api] = None
        self.custom_api: Optional[client.CustomObjectsApi] = None
        self._connected = False

    async def connect(self) -> None:
        """Conecta ao cluster Kubernetes."""
        try:
            if self.in_cluster:
                config.load_incluster_config()
            else:
                await config.load_kube_config(config_file=self.kubeconfig_path)

            self.api_client = client.ApiClient()
            self.batch_api = client.BatchV1Api(self.api_client)
            self.core_api = client.CoreV1Api(self.api_client)
            self.custom_api = client.CustomObjectsApi(self.api_client)
            self._connected = True

            logger.info("kubernetes.connected", in_cluster=self.in_cluster)
        except Exception as e:
            logger.error("kubernetes.connection_failed", error=str(e))
            raise

    async def close(self) -> None:
        if self.api_client is not None:
            await self.api_client.close()
        self._connected = False
        logger.info("kubernetes.closed")

    def is_healthy(self) -> bool:
        """Verifica se cliente esta saudavel."""
        return self._connected and self.custom_api is not None

    def _ensure_connected(self) -> None:
        if not self.is_healthy():
            raise ChaosOperatorError("kubernetes client not connected")

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    def _record(self, operation: str, status: str) -> None:
        k8s_operations_total.labels(operation=operation, status=status).inc()

    async def _read(self, operation: str, call, **kwargs) -> Optional[Dict[str, Any]]:
        """Leitura com 404 mapeado para None."""
        self._ensure_connected()
        with k8s_operation_duration.labels(operation=operation).time():
            try:
                result = await call(**kwargs)
                self._record(operation, "success")
                return self._to_dict(result)
            except ApiException as e:
                if e.status == 404:
                    logger.debug("kubernetes.not_found", operation=operation, **kwargs)
                    self._record(operation, "not_found")
                    return None
                self._record(operation, "error")
                logger.error(
                    "kubernetes.read_failed",
                    operation=operation,
                    error=str(e),
                    status_code=e.status
                )
                raise

    async def _create(self, operation: str, call, target: str, **kwargs) -> Dict[str, Any]:
        """Criação com 409 mapeado para AlreadyExistsError."""
        self._ensure_connected()
        with k8s_operation_duration.labels(operation=operation).time():
            try:
                result = await call(**kwargs)
                self._record(operation, "success")
                return self._to_dict(result)
            except ApiException as e:
                if e.status == 409:
                    self._record(operation, "already_exists")
                    raise AlreadyExistsError(f"{target} already exists") from e
                self._record(operation, "error")
                logger.error(
                    "kubernetes.create_failed",
                    operation=operation,
                    target=target,
                    error=str(e),
                    status_code=e.status
                )
                raise

    async def _write(self, operation: str, call, target: str, **kwargs) -> Dict[str, Any]:
        """Update/delete com 409 -> ConflictError e 404 -> NotFoundError."""
        self._ensure_connected()
        with k8s_operation_duration.labels(operation=operation).time():
            try:
                result = await call(**kwargs)
                self._record(operation, "success")
                return self._to_dict(result) if result is not None else {}
            except ApiException as e:
                if e.status == 409:
                    self._record(operation, "conflict")
                    raise ConflictError(f"{target}: {e.reason}") from e
                if e.status == 404:
                    self._record(operation, "not_found")
                    raise NotFoundError(f"{target} not found") from e
                self._record(operation, "error")
                logger.error(
                    "kubernetes.write_failed",
                    operation=operation,
                    target=target,
                    error=str(e),
                    status_code=e.status
                )
                raise

    # ChaosExperiment

    async def get_experiment(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        resource = self.scheme.get(CHAOS_KIND)
        return await self._read(
            "get_experiment",
            self.custom_api.get_namespaced_custom_object,
            group=resource.group,
            version=resource.version,
            namespace=namespace,
            plural=resource.plural,
            name=name,
        )

    async def update_experiment_status(
        self, experiment: Dict[str, Any], status: Dict[str, Any]
    ) -> Dict[str, Any]:
        resource = self.scheme.get(CHAOS_KIND)
        metadata = experiment["metadata"]
        body = copy.deepcopy(experiment)
        body["status"] = status

        with tracer.start_as_current_span("k8s.update_experiment_status") as span:
            span.set_attribute("k8s.name", metadata["name"])
            span.set_attribute("k8s.namespace", metadata["namespace"])
            return await self._write(
                "update_experiment_status",
                self.custom_api.replace_namespaced_custom_object_status,
                f"{metadata['namespace']}/{metadata['name']}",
                name=metadata["name"],
                group=resource.group,
                version=resource.version,
                namespace=metadata["namespace"],
                plural=resource.plural,
                body=body,
            )

    # Jobs

    async def get_job(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        return await self._read(
            "get_job", self.batch_api.read_namespaced_job, name=name, namespace=namespace
        )

    async def list_jobs(self, namespace: str, labels: Dict[str, str]) -> List[Dict[str, Any]]:
        result = await self._read(
            "list_jobs",
            self.batch_api.list_namespaced_job,
            namespace=namespace,
            label_selector=label_selector(labels),
        )
        return (result or {}).get("items") or []

    async def create_job(self, job: Dict[str, Any]) -> Dict[str, Any]:
        metadata = job["metadata"]
        with tracer.start_as_current_span("k8s.create_job") as span:
            span.set_attribute("k8s.job_name", metadata["name"])
            span.set_attribute("k8s.namespace", metadata["namespace"])
            created = await self._create(
                "create_job",
                self.batch_api.create_namespaced_job,
                metadata["name"],
                namespace=metadata["namespace"],
                body=job,
            )
            logger.info("kubernetes.job_created", job_name=metadata["name"], namespace=metadata["namespace"])
            return created

    async def delete_job(self, namespace: str, name: str) -> None:
        await self._write(
            "delete_job",
            self.batch_api.delete_namespaced_job,
            f"{namespace}/{name}",
            name=name,
            namespace=namespace,
            body=client.V1DeleteOptions(propagation_policy="Background"),
        )
        logger.info("kubernetes.job_deleted", job_name=name, namespace=namespace)

    # ConfigMaps

    async def get_config_map(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        return await self._read(
            "get_config_map", self.core_api.read_namespaced_config_map, name=name, namespace=namespace
        )

    async def create_config_map(self, config_map: Dict[str, Any]) -> Dict[str, Any]:
        metadata = config_map["metadata"]
        return await self._create(
            "create_config_map",
            self.core_api.create_namespaced_config_map,
            metadata["name"],
            namespace=metadata["namespace"],
            body=config_map,
        )

    async def update_config_map(self, config_map: Dict[str, Any]) -> Dict[str, Any]:
        metadata = config_map["metadata"]
        return await self._write(
            "update_config_map",
            self.core_api.replace_namespaced_config_map,
            f"{metadata['namespace']}/{metadata['name']}",
            name=metadata["name"],
            namespace=metadata["namespace"],
            body=config_map,
        )

    # Pods

    async def list_pods(self, namespace: str, labels: Dict[str, str]) -> List[Dict[str, Any]]:
        result = await self._read(
            "list_pods",
            self.core_api.list_namespaced_pod,
            namespace=namespace,
            label_selector=label_selector(labels),
        )
        return (result or {}).get("items") or []

    async def read_pod_log(self, namespace: str, name: str) -> str:
        self._ensure_connected()
        with k8s_operation_duration.labels(operation="read_pod_log").time():
            try:
                logs = await self.core_api.read_namespaced_pod_log(name=name, namespace=namespace)
                self._record("read_pod_log", "success")
                return logs or ""
            except ApiException as e:
                self._record("read_pod_log", "error")
                logger.warning(
                    "kubernetes.pod_logs_failed",
                    pod_name=name,
                    namespace=namespace,
                    error=str(e)
                )
                raise
