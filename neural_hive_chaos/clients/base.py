"""
Interfaces dos colaboradores externos do controller.

O controller só conhece estas capacidades; as implementações concretas usam
kubernetes_asyncio e kopf, e os testes usam fakes em memória.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

SEVERITY_NORMAL = "Normal"
SEVERITY_WARNING = "Warning"


class ClusterStore(ABC):
    """Leitura e escrita dos objetos do cluster usados pelo experimento."""

    @abstractmethod
    async def get_experiment(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Retorna o ChaosExperiment ou None se não existir."""

    @abstractmethod
    async def update_experiment_status(
        self, experiment: Dict[str, Any], status: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Escreve o status usando o resourceVersion de `experiment`.

        Raises:
            ConflictError: resourceVersion desatualizado
            NotFoundError: experimento removido
        """

    @abstractmethod
    async def get_job(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def list_jobs(self, namespace: str, labels: Dict[str, str]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def create_job(self, job: Dict[str, Any]) -> Dict[str, Any]:
        """Raises AlreadyExistsError quando o Job já existe."""

    @abstractmethod
    async def delete_job(self, namespace: str, name: str) -> None:
        """Remove o Job com propagação em background; NotFoundError se ausente."""

    @abstractmethod
    async def get_config_map(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def create_config_map(self, config_map: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def update_config_map(self, config_map: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def list_pods(self, namespace: str, labels: Dict[str, str]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def read_pod_log(self, namespace: str, name: str) -> str:
        pass


class FaultClient(ABC):
    """Objetos de falha do Chaos Mesh, endereçados por kind."""

    @abstractmethod
    async def get(self, kind: str, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def create(self, fault: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def update(self, fault: Dict[str, Any]) -> Dict[str, Any]:
        pass


class EventRecorder(ABC):
    """Publica eventos Kubernetes associados a um objeto."""

    @abstractmethod
    def emit(self, obj: Dict[str, Any], severity: str, reason: str, message: str) -> None:
        pass


def set_owner_reference(owner: Dict[str, Any], dependent: Dict[str, Any]) -> Dict[str, Any]:
    """Marca `owner` como controller de `dependent` (coleta em cascata)."""
    owner_meta = owner.get("metadata") or {}
    reference = {
        "apiVersion": owner.get("apiVersion"),
        "kind": owner.get("kind"),
        "name": owner_meta.get("name"),
        "uid": owner_meta.get("uid"),
        "controller": True,
        "blockOwnerDeletion": True,
    }

    metadata = dependent.setdefault("metadata", {})
    references = [
        r for r in metadata.get("ownerReferences") or [] if r.get("uid") != reference["uid"]
    ]
    references.append(reference)
    metadata["ownerReferences"] = references
    return dependent
