"""
Registro explícito dos tipos de recurso manipulados pelo operator.

Construído uma vez no startup e repassado aos clientes; mapeia o kind para
(group, version, plural) usados pela API de custom objects.
"""

from dataclasses import dataclass
from typing import Dict

from .models.chaos_experiment import CHAOS_GROUP, CHAOS_KIND, CHAOS_PLURAL, CHAOS_VERSION

CHAOS_MESH_GROUP = "chaos-mesh.org"
CHAOS_MESH_VERSION = "v1alpha1"

POD_CHAOS_KIND = "PodChaos"
NETWORK_CHAOS_KIND = "NetworkChaos"


@dataclass(frozen=True)
class ResourceKind:
    kind: str
    group: str
    version: str
    plural: str


class Scheme:
    """Registro kind -> ResourceKind."""

    def __init__(self):
        self._kinds: Dict[str, ResourceKind] = {}

    def register(self, resource: ResourceKind) -> None:
        if resource.kind in self._kinds and self._kinds[resource.kind] != resource:
            raise ValueError(f"kind {resource.kind} already registered")
        self._kinds[resource.kind] = resource

    def get(self, kind: str) -> ResourceKind:
        try:
            return self._kinds[kind]
        except KeyError:
            raise KeyError(f"kind {kind} is not registered") from None

    def __contains__(self, kind: str) -> bool:
        return kind in self._kinds

    def kinds(self):
        return list(self._kinds)


def build_default_scheme() -> Scheme:
    scheme = Scheme()
    scheme.register(ResourceKind(CHAOS_KIND, CHAOS_GROUP, CHAOS_VERSION, CHAOS_PLURAL))
    scheme.register(ResourceKind(POD_CHAOS_KIND, CHAOS_MESH_GROUP, CHAOS_MESH_VERSION, "podchaos"))
    scheme.register(
        ResourceKind(NETWORK_CHAOS_KIND, CHAOS_MESH_GROUP, CHAOS_MESH_VERSION, "networkchaos")
    )
    return scheme
