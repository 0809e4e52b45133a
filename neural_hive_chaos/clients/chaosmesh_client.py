"""ChaosMesh client: objetos PodChaos/NetworkChaos gerados pelos experimentos"""
from typing import Any, Dict, Optional

import structlog
from kubernetes_asyncio import client
from kubernetes_asyncio.client.exceptions import ApiException
from opentelemetry import trace

from ..errors import AlreadyExistsError, ChaosOperatorError, ConflictError, NotFoundError
from ..observability.metrics import chaosmesh_operation_duration, chaosmesh_operations_total
from ..scheme import Scheme
from .base import FaultClient

logger = structlog.get_logger()
tracer = trace.get_tracer(__name__)


class ChaosMeshClient(FaultClient):
    """
    Cliente para ChaosMesh - plataforma de chaos engineering para Kubernetes.

    Suporta os kinds registrados no Scheme:
    - PodChaos: pod failure, container kill
    - NetworkChaos: delay, loss, duplicate, corrupt, partition

    Requer ChaosMesh instalado no cluster.
    """

    def __init__(self, scheme: Scheme):
        self.scheme = scheme
        self.custom_api: Optional[client.CustomObjectsApi] = None
        self._connected = False

    def connect(self, api_client: client.ApiClient) -> None:
        """Reusa a conexão do cliente Kubernetes"""
        self.custom_api = client.CustomObjectsApi(api_client)
        self._connected = True
        logger.info("chaosmesh_client.connected")

    def is_healthy(self) -> bool:
        """Verifica se cliente está saudável"""
        return self._connected and self.custom_api is not None

    def _ensure_connected(self) -> None:
        if not self.is_healthy():
            raise ChaosOperatorError("ChaosMesh client not available")

    async def get(self, kind: str, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """
        Busca objeto de falha.

        Returns:
            Objeto como dict ou None se não encontrado
        """
        self._ensure_connected()
        resource = self.scheme.get(kind)

        with chaosmesh_operation_duration.labels(operation="get").time():
            try:
                result = await self.custom_api.get_namespaced_custom_object(
                    group=resource.group,
                    version=resource.version,
                    namespace=namespace,
                    plural=resource.plural,
                    name=name
                )
                chaosmesh_operations_total.labels(
                    operation="get", chaos_type=kind, status="success"
                ).inc()
                return result

            except ApiException as e:
                if e.status == 404:
                    chaosmesh_operations_total.labels(
                        operation="get", chaos_type=kind, status="not_found"
                    ).inc()
                    return None

                chaosmesh_operations_total.labels(
                    operation="get", chaos_type=kind, status="error"
                ).inc()
                logger.error(
                    "chaosmesh_client.get_failed",
                    kind=kind,
                    name=name,
                    namespace=namespace,
                    error=str(e)
                )
                raise

    async def create(self, fault: Dict[str, Any]) -> Dict[str, Any]:
        """
        Cria objeto de falha.

        Raises:
            AlreadyExistsError: objeto com o mesmo nome já existe
        """
        self._ensure_connected()
        kind = fault["kind"]
        metadata = fault["metadata"]
        resource = self.scheme.get(kind)

        with tracer.start_as_current_span("chaosmesh.create") as span, \
                chaosmesh_operation_duration.labels(operation="create").time():
            span.set_attribute("chaos.kind", kind)
            span.set_attribute("chaos.name", metadata["name"])
            try:
                result = await self.custom_api.create_namespaced_custom_object(
                    group=resource.group,
                    version=resource.version,
                    namespace=metadata["namespace"],
                    plural=resource.plural,
                    body=fault
                )

                chaosmesh_operations_total.labels(
                    operation="create", chaos_type=kind, status="success"
                ).inc()
                logger.info(
                    "chaosmesh_client.chaos_created",
                    kind=kind,
                    name=metadata["name"],
                    namespace=metadata["namespace"],
                    action=fault.get("spec", {}).get("action")
                )
                return result

            except ApiException as e:
                chaosmesh_operations_total.labels(
                    operation="create", chaos_type=kind, status="error"
                ).inc()
                if e.status == 409:
                    raise AlreadyExistsError(f"{kind} {metadata['name']} already exists") from e
                logger.error(
                    "chaosmesh_client.create_failed",
                    kind=kind,
                    name=metadata["name"],
                    error=str(e)
                )
                raise

    async def update(self, fault: Dict[str, Any]) -> Dict[str, Any]:
        """
        Substitui o spec do objeto de falha (usa o resourceVersion do corpo).

        Raises:
            ConflictError: resourceVersion desatualizado
            NotFoundError: objeto removido
        """
        self._ensure_connected()
        kind = fault["kind"]
        metadata = fault["metadata"]
        resource = self.scheme.get(kind)

        with chaosmesh_operation_duration.labels(operation="update").time():
            try:
                result = await self.custom_api.replace_namespaced_custom_object(
                    group=resource.group,
                    version=resource.version,
                    namespace=metadata["namespace"],
                    plural=resource.plural,
                    name=metadata["name"],
                    body=fault
                )

                chaosmesh_operations_total.labels(
                    operation="update", chaos_type=kind, status="success"
                ).inc()
                logger.info(
                    "chaosmesh_client.chaos_updated",
                    kind=kind,
                    name=metadata["name"],
                    namespace=metadata["namespace"]
                )
                return result

            except ApiException as e:
                chaosmesh_operations_total.labels(
                    operation="update", chaos_type=kind, status="error"
                ).inc()
                if e.status == 409:
                    raise ConflictError(f"{kind} {metadata['name']}: {e.reason}") from e
                if e.status == 404:
                    raise NotFoundError(f"{kind} {metadata['name']} not found") from e
                logger.error(
                    "chaosmesh_client.update_failed",
                    kind=kind,
                    name=metadata["name"],
                    error=str(e)
                )
                raise
