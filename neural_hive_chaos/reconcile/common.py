"""Labels, annotations e hash de conteúdo compartilhados pelos builders."""

import hashlib
import json
from typing import Any, Dict

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY = "neural-hive-chaos-operator"
EXPERIMENT_LABEL = "neural-hive.io/chaos-experiment"
REQUIREMENT_LABEL = "neural-hive.io/inject-requirement"
SPEC_HASH_ANNOTATION = "neural-hive.io/spec-hash"


def spec_hash(spec: Dict[str, Any]) -> str:
    """Hash estável do spec (JSON com chaves ordenadas)."""
    payload = json.dumps(spec, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


def owned_labels(experiment_name: str, base: Dict[str, str] = None) -> Dict[str, str]:
    labels = dict(base or {})
    labels[MANAGED_BY_LABEL] = MANAGED_BY
    labels[EXPERIMENT_LABEL] = experiment_name
    return labels


def annotation(obj: Dict[str, Any], key: str) -> str:
    metadata = (obj or {}).get("metadata") or {}
    return (metadata.get("annotations") or {}).get(key) or ""
