"""Publicação de eventos Kubernetes via kopf."""

from typing import Any, Dict

import kopf
import structlog

from .base import SEVERITY_WARNING, EventRecorder

logger = structlog.get_logger()


class KopfEventRecorder(EventRecorder):
    """Posta eventos com kopf.event e espelha no log."""

    def emit(self, obj: Dict[str, Any], severity: str, reason: str, message: str) -> None:
        metadata = obj.get("metadata") or {}
        log = logger.warning if severity == SEVERITY_WARNING else logger.info
        log(
            "event_recorder.event",
            kind=obj.get("kind"),
            name=metadata.get("name"),
            namespace=metadata.get("namespace"),
            severity=severity,
            reason=reason,
            message=message
        )
        kopf.event(obj, type=severity, reason=reason, message=message)
