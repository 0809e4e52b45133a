"""
Kubernetes Operator for Neural Hive chaos experiments.

Registra os handlers kopf do ChaosExperiment: create/update disparam uma
passada de reconciliação e um daemon por objeto reagenda passadas periódicas
enquanto o experimento existir.
"""

import asyncio
from typing import Dict, Tuple

import kopf
import structlog
from prometheus_client import start_http_server

from ..clients.chaosmesh_client import ChaosMeshClient
from ..clients.event_recorder import KopfEventRecorder
from ..clients.kubernetes_client import KubernetesClient
from ..config.settings import Settings, get_settings
from ..controllers.chaos_controller import ChaosExperimentController, ReconcileResult
from ..models.chaos_experiment import CHAOS_GROUP, CHAOS_PLURAL, CHAOS_VERSION
from ..observability.logging import configure_logging
from ..scheme import build_default_scheme

logger = structlog.get_logger(__name__)


class KeyedLocks:
    """Um asyncio.Lock por experimento (namespace, name)."""

    def __init__(self):
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    def get(self, namespace: str, name: str) -> asyncio.Lock:
        key = (namespace, name)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def discard(self, namespace: str, name: str) -> None:
        self._locks.pop((namespace, name), None)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._locks

    def __len__(self) -> int:
        return len(self._locks)


def build_controller(config: Settings, store, fault_client, events) -> ChaosExperimentController:
    return ChaosExperimentController(
        store=store,
        fault_client=fault_client,
        events=events,
        requeue_interval_seconds=config.requeue_interval_seconds,
        job_image=config.job_image,
        pod_wait_policy=config.pod_wait_policy(),
        status_policy=config.status_conflict_policy(),
    )


async def reconcile_experiment(memo: kopf.Memo, namespace: str, name: str) -> ReconcileResult:
    """Passada serializada por experimento."""
    async with memo.locks.get(namespace, name):
        return await memo.controller.reconcile(namespace, name)


@kopf.on.startup()
async def startup_handler(memo: kopf.Memo, **kwargs):
    """
    Initialize clients and controller on operator startup.
    """
    config = get_settings()
    configure_logging(config.log_level)
    logger.info("operator.starting", service=config.service_name, version=config.service_version)

    scheme = build_default_scheme()

    kubernetes_client = KubernetesClient(
        scheme,
        in_cluster=config.kubernetes_in_cluster,
        kubeconfig_path=config.kubeconfig_path,
    )
    await kubernetes_client.connect()

    chaosmesh_client = ChaosMeshClient(scheme)
    chaosmesh_client.connect(kubernetes_client.api_client)

    memo.settings = config
    memo.kubernetes_client = kubernetes_client
    memo.locks = KeyedLocks()
    memo.controller = build_controller(config, kubernetes_client, chaosmesh_client, KopfEventRecorder())

    if config.metrics_enabled:
        start_http_server(config.metrics_port)
        logger.info("operator.metrics_server_started", port=config.metrics_port)

    logger.info("operator.started", kinds=scheme.kinds(), watch_namespace=config.watch_namespace)


@kopf.on.cleanup()
async def cleanup_handler(memo: kopf.Memo, **kwargs):
    """
    Cleanup resources on operator shutdown.
    """
    logger.info("operator.stopping")
    kubernetes_client = getattr(memo, "kubernetes_client", None)
    if kubernetes_client is not None:
        await kubernetes_client.close()
    logger.info("operator.stopped")


@kopf.on.create(CHAOS_GROUP, CHAOS_VERSION, CHAOS_PLURAL)
async def experiment_create_handler(name: str, namespace: str, memo: kopf.Memo, **kwargs):
    logger.info("operator.experiment_created", name=name, namespace=namespace)
    await _reconcile_or_retry(memo, namespace, name)


@kopf.on.update(CHAOS_GROUP, CHAOS_VERSION, CHAOS_PLURAL, field="spec")
async def experiment_update_handler(name: str, namespace: str, memo: kopf.Memo, **kwargs):
    logger.info("operator.experiment_updated", name=name, namespace=namespace)
    await _reconcile_or_retry(memo, namespace, name)


@kopf.on.delete(CHAOS_GROUP, CHAOS_VERSION, CHAOS_PLURAL, optional=True)
async def experiment_delete_handler(name: str, namespace: str, memo: kopf.Memo, **kwargs):
    # objetos dependentes são removidos pelo garbage collector via ownerReferences
    memo.locks.discard(namespace, name)
    logger.info("operator.experiment_deleted", name=name, namespace=namespace)


@kopf.daemon(CHAOS_GROUP, CHAOS_VERSION, CHAOS_PLURAL, cancellation_timeout=5.0)
async def experiment_requeue_daemon(
    name: str, namespace: str, stopped: kopf.DaemonStopped, memo: kopf.Memo, **kwargs
):
    """Reagenda passadas enquanto o experimento existir."""
    try:
        while not stopped:
            try:
                result = await reconcile_experiment(memo, namespace, name)
            except Exception as e:
                logger.warning(
                    "operator.reconcile_failed",
                    name=name,
                    namespace=namespace,
                    error=str(e),
                    retry_in=memo.settings.error_backoff_seconds
                )
                delay = memo.settings.error_backoff_seconds
            else:
                if result.requeue_after is None:
                    logger.debug("operator.requeue_stopped", name=name, namespace=namespace)
                    break
                delay = result.requeue_after

            await stopped.wait(delay)
    finally:
        # a última passada pode ter recriado o lock depois do delete handler
        memo.locks.discard(namespace, name)


async def _reconcile_or_retry(memo: kopf.Memo, namespace: str, name: str) -> None:
    try:
        await reconcile_experiment(memo, namespace, name)
    except Exception as e:
        raise kopf.TemporaryError(str(e), delay=memo.settings.error_backoff_seconds) from e


def run() -> None:
    """Entry point do operator."""
    config = get_settings()
    configure_logging(config.log_level)

    if config.watch_namespace:
        kopf.run(standalone=True, namespaces=[config.watch_namespace])
    else:
        kopf.run(standalone=True, clusterwide=True)


if __name__ == "__main__":
    run()
