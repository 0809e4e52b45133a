from .base import (
    SEVERITY_NORMAL,
    SEVERITY_WARNING,
    ClusterStore,
    EventRecorder,
    FaultClient,
    set_owner_reference,
)
from .chaosmesh_client import ChaosMeshClient
from .event_recorder import KopfEventRecorder
from .kubernetes_client import KubernetesClient

__all__ = [
    "SEVERITY_NORMAL",
    "SEVERITY_WARNING",
    "ChaosMeshClient",
    "ClusterStore",
    "EventRecorder",
    "FaultClient",
    "KopfEventRecorder",
    "KubernetesClient",
    "set_owner_reference",
]
