"""
Controller de reconciliação do ChaosExperiment.

Cada passada leva o cluster em direção ao estado declarado: objeto de falha,
ConfigMap companheiro, Job do requisito ativo e por fim o status (condição,
resultados e fase). Erros de qualquer etapa geram um evento Warning e sobem
sem embrulho para o kopf, que cuida do retry.
"""

import copy
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import structlog
from opentelemetry import trace

from ..chaos.translator import translate_condition, translator_for
from ..clients.base import (
    SEVERITY_NORMAL,
    SEVERITY_WARNING,
    ClusterStore,
    EventRecorder,
    FaultClient,
    set_owner_reference,
)
from ..errors import (
    AlreadyExistsError,
    ChaosSpecChangedError,
    ConflictError,
    NotFoundError,
    NotReadyError,
)
from ..models.chaos_experiment import (
    ChaosExperiment,
    ChaosExperimentStatus,
    ChaosPhase,
    Result,
)
from ..observability.metrics import (
    chaos_spec_changes_total,
    jobs_created_total,
    phase_transitions_total,
    reconcile_duration,
    reconcile_step_errors_total,
    reconcile_total,
    status_conflicts_total,
    verify_results_total,
)
from ..reconcile.common import EXPERIMENT_LABEL, REQUIREMENT_LABEL, SPEC_HASH_ANNOTATION
from ..reconcile.configmap import config_map_name, new_config_map, update_config_map
from ..reconcile.job import (
    DEFAULT_IMAGE,
    InjectRequirement,
    is_job_changed,
    job_name,
    new_job,
    pod_selector_for_job,
)
from ..reconcile.phase import JobCondition, advance, is_job_succeeded, job_condition, next_requirement
from ..reconcile.results import VERIFY_CHECK, has_result, new_result, upsert_result
from .backoff import POD_WAIT_POLICY, STATUS_CONFLICT_POLICY, RetryPolicy

logger = structlog.get_logger()
tracer = trace.get_tracer(__name__)

StatusMutation = Callable[[ChaosExperimentStatus], ChaosExperimentStatus]


@dataclass
class ReconcileResult:
    """Resultado da passada; requeue_after None significa não reagendar."""
    requeue_after: Optional[float] = None


class ChaosExperimentController:
    """Orquestra uma passada de reconciliação de um ChaosExperiment."""

    def __init__(
        self,
        store: ClusterStore,
        fault_client: FaultClient,
        events: EventRecorder,
        requeue_interval_seconds: float = 10.0,
        job_image: str = DEFAULT_IMAGE,
        pod_wait_policy: RetryPolicy = POD_WAIT_POLICY,
        status_policy: RetryPolicy = STATUS_CONFLICT_POLICY,
    ):
        """
        Inicializa o controller.

        Args:
            store: Acesso aos objetos do cluster
            fault_client: Acesso aos objetos do Chaos Mesh
            events: Publicação de eventos
            requeue_interval_seconds: Intervalo de reagendamento após passada bem sucedida
            job_image: Imagem dos Jobs de injeção
            pod_wait_policy: Backoff aguardando pods do Job recém criado
            status_policy: Backoff para conflitos na escrita de status
        """
        self.store = store
        self.fault_client = fault_client
        self.events = events
        self.requeue_interval_seconds = requeue_interval_seconds
        self.job_image = job_image
        self.pod_wait_policy = pod_wait_policy
        self.status_policy = status_policy

    async def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """
        Executa uma passada completa para o experimento namespace/name.

        Returns:
            ReconcileResult com o intervalo de reagendamento

        Raises:
            Exceção original da etapa que falhou
        """
        with tracer.start_as_current_span("chaos_controller.reconcile") as span, \
                reconcile_duration.time():
            span.set_attribute("chaos.namespace", namespace)
            span.set_attribute("chaos.name", name)

            body = await self.store.get_experiment(namespace, name)
            if body is None:
                logger.debug("chaos_controller.experiment_not_found", namespace=namespace, name=name)
                reconcile_total.labels(status="not_found").inc()
                return ReconcileResult()

            experiment = ChaosExperiment.from_body(body)
            if experiment.is_being_deleted():
                logger.debug("chaos_controller.experiment_deleting", namespace=namespace, name=name)
                reconcile_total.labels(status="deleting").inc()
                return ReconcileResult()

            try:
                await self._run_step("chaos", body, self.reconcile_chaos(experiment, body))
            except ChaosSpecChangedError:
                await self._run_step("chaos_change", body, self.handle_chaos_change(namespace, name))
                reconcile_total.labels(status="chaos_changed").inc()
                return ReconcileResult(requeue_after=self.requeue_interval_seconds)

            await self._run_step("config_map", body, self.reconcile_config_map(experiment, body))
            await self._run_step("job", body, self.reconcile_job(experiment, body))
            await self._run_step("status", body, self.reconcile_status(namespace, name))

            reconcile_total.labels(status="success").inc()
            return ReconcileResult(requeue_after=self.requeue_interval_seconds)

    async def _run_step(self, step: str, body: Dict[str, Any], action: Awaitable[Any]) -> Any:
        try:
            return await action
        except ChaosSpecChangedError:
            raise
        except Exception as e:
            reconcile_step_errors_total.labels(step=step).inc()
            reconcile_total.labels(status="error").inc()
            logger.error(
                "chaos_controller.step_failed",
                step=step,
                name=body["metadata"]["name"],
                namespace=body["metadata"].get("namespace"),
                error=str(e)
            )
            self.events.emit(body, SEVERITY_WARNING, "ReconcileFailed", f"{step}: {e}")
            raise

    # Falha

    async def reconcile_chaos(self, experiment: ChaosExperiment, body: Dict[str, Any]) -> None:
        """
        Cria ou reaplica o objeto de falha.

        Raises:
            ChaosSpecChangedError: spec reaplicado; a passada deve terminar
        """
        translator = translator_for(experiment)
        desired = translator.build(experiment)
        set_owner_reference(body, desired)

        live = await self.fault_client.get(translator.kind, experiment.namespace, experiment.name)
        if live is None:
            try:
                await self.fault_client.create(desired)
            except AlreadyExistsError:
                logger.debug("chaos_controller.chaos_already_exists", name=experiment.name)
                return
            self.events.emit(
                body, SEVERITY_NORMAL, "Created", f"{translator.kind} {experiment.name} created"
            )
            return

        if not translator.is_changed(desired, live):
            return

        updated = copy.deepcopy(live)
        updated["spec"] = desired["spec"]
        metadata = updated.setdefault("metadata", {})
        labels = metadata.get("labels") or {}
        labels.update(desired["metadata"]["labels"])
        metadata["labels"] = labels
        annotations = metadata.get("annotations") or {}
        annotations[SPEC_HASH_ANNOTATION] = desired["metadata"]["annotations"][SPEC_HASH_ANNOTATION]
        metadata["annotations"] = annotations

        await self.fault_client.update(updated)
        chaos_spec_changes_total.labels(kind=translator.kind).inc()
        self.events.emit(
            body, SEVERITY_NORMAL, "Applied", f"{translator.kind} {experiment.name} spec applied"
        )
        raise ChaosSpecChangedError(f"{translator.kind} {experiment.name} spec changed")

    async def handle_chaos_change(self, namespace: str, name: str) -> None:
        """Volta a fase para AfterReq para que a injeção seja observada de novo."""

        def rewind(status: ChaosExperimentStatus) -> ChaosExperimentStatus:
            if status.phase is not None and status.phase != ChaosPhase.BEFORE_EXPERIMENT:
                status.phase = ChaosPhase.AFTER_EXPERIMENT
            return status

        written = await self._write_status(namespace, name, rewind)
        if written is not None:
            self._observe_phase_change(*written)

    # ConfigMap

    async def reconcile_config_map(self, experiment: ChaosExperiment, body: Dict[str, Any]) -> None:
        name = config_map_name(experiment.name)
        current = await self.store.get_config_map(experiment.namespace, name)
        if current is None:
            config_map = set_owner_reference(body, new_config_map(experiment))
            try:
                await self.store.create_config_map(config_map)
            except AlreadyExistsError:
                logger.debug("chaos_controller.config_map_already_exists", name=name)
                return
            self.events.emit(body, SEVERITY_NORMAL, "Created", f"ConfigMap {name} created")
            return

        updated = update_config_map(experiment, current)
        if updated is None:
            return
        await self.store.update_config_map(updated)
        self.events.emit(body, SEVERITY_NORMAL, "Updated", f"ConfigMap {name} updated")

    # Job

    async def reconcile_job(self, experiment: ChaosExperiment, body: Dict[str, Any]) -> None:
        requirement = next_requirement(experiment.status.phase)
        desired = new_job(experiment, requirement, image=self.job_image)
        name = desired["metadata"]["name"]

        await self._delete_stale_jobs(experiment, requirement)

        current = await self.store.get_job(experiment.namespace, name)
        if current is None:
            set_owner_reference(body, desired)
            try:
                await self.store.create_job(desired)
                jobs_created_total.labels(requirement=requirement.value).inc()
                self.events.emit(
                    body, SEVERITY_NORMAL, "Created", f"Job {name} created for {requirement.value}"
                )
            except AlreadyExistsError:
                logger.debug("chaos_controller.job_already_exists", job_name=name)

            if not desired["spec"].get("suspend"):
                await self._wait_for_pods(experiment.namespace, name)
            return

        if is_job_changed(desired, current):
            try:
                await self.store.delete_job(experiment.namespace, name)
            except NotFoundError:
                return
            self.events.emit(
                body, SEVERITY_NORMAL, "Updated", f"Job {name} spec changed, recreating"
            )

    async def _delete_stale_jobs(self, experiment: ChaosExperiment, requirement: InjectRequirement) -> None:
        jobs = await self.store.list_jobs(experiment.namespace, {EXPERIMENT_LABEL: experiment.name})
        for job in jobs:
            metadata = job.get("metadata") or {}
            if (metadata.get("labels") or {}).get(REQUIREMENT_LABEL) == requirement.value:
                continue
            try:
                await self.store.delete_job(experiment.namespace, metadata["name"])
            except NotFoundError:
                continue
            logger.info(
                "chaos_controller.stale_job_deleted",
                job_name=metadata["name"],
                namespace=experiment.namespace,
                requirement=requirement.value
            )

    async def _wait_for_pods(self, namespace: str, name: str) -> None:
        """
        Aguarda o Job ficar legível e com pods selecionados.

        Raises:
            NotReadyError: backoff esgotado
        """
        async for attempt in self.pod_wait_policy.retrying(NotReadyError):
            with attempt:
                job = await self.store.get_job(namespace, name)
                if job is None:
                    raise NotReadyError(f"job {namespace}/{name} not found yet")
                pods = await self.store.list_pods(namespace, pod_selector_for_job(job))
                if not pods:
                    raise NotReadyError(f"no pods for job {namespace}/{name} yet")
                logger.debug("chaos_controller.job_pods_ready", job_name=name, pods=len(pods))

    # Status

    async def reconcile_status(self, namespace: str, name: str) -> None:
        body = await self.store.get_experiment(namespace, name)
        if body is None:
            return

        experiment = ChaosExperiment.from_body(body)
        phase = experiment.current_phase()
        requirement = next_requirement(phase)
        job = await self.store.get_job(namespace, job_name(name, requirement))
        condition_of_job = job_condition(job) if job is not None else None
        results = experiment.status.results

        updates: List[Tuple[Result, str]] = []
        if condition_of_job == JobCondition.FAILURE:
            check = requirement.check_name
            if not has_result(results, check):
                self.events.emit(
                    body, SEVERITY_WARNING, "JobFailed", f"Job {job_name(name, requirement)} failed"
                )
                # o resultado do Verify vem de _verify, com o log do pod
                if requirement != InjectRequirement.VERIFY:
                    updates.append((new_result(False, check, "job failed"), check))

        translator = translator_for(experiment)
        fault = await self.fault_client.get(translator.kind, namespace, name)
        condition = translate_condition(experiment, fault)

        if (
            phase == ChaosPhase.RECOVERED_CHAOS
            and not has_result(results, VERIFY_CHECK)
            and condition_of_job in (JobCondition.COMPLETE, JobCondition.FAILURE)
        ):
            verify = await self._verify(experiment, job, condition_of_job)
            updates.append((verify, VERIFY_CHECK))

        next_phase = advance(phase, is_job_succeeded(job), condition)

        def apply(status: ChaosExperimentStatus) -> ChaosExperimentStatus:
            for result, check in updates:
                status.results = upsert_result(status.results, result, check)
            status.chaos_condition = condition
            # outra passada pode ter mudado a fase desde a leitura
            if (status.phase or ChaosPhase.BEFORE_EXPERIMENT) == phase:
                status.phase = next_phase
            return status

        written = await self._write_status(namespace, name, apply)
        if written is None:
            return

        self._observe_phase_change(*written)
        for result, check in updates:
            if check == VERIFY_CHECK:
                verify_results_total.labels(success=str(result.success).lower()).inc()

    async def _verify(
        self, experiment: ChaosExperiment, job: Dict[str, Any], condition_of_job: JobCondition
    ) -> Result:
        pods = await self.store.list_pods(experiment.namespace, pod_selector_for_job(job))
        if not pods:
            raise NotReadyError(f"no pods for verify job of {experiment.namespace}/{experiment.name}")

        pod_name = pods[0]["metadata"]["name"]
        output = await self.store.read_pod_log(experiment.namespace, pod_name)
        expected = experiment.spec.expect.verify

        if condition_of_job == JobCondition.COMPLETE and (
            not expected or expected.rstrip("\n") == output.rstrip("\n")
        ):
            return new_result(True, VERIFY_CHECK, "job succeeded")

        logger.info(
            "chaos_controller.verify_mismatch",
            name=experiment.name,
            namespace=experiment.namespace,
            job_condition=condition_of_job.value
        )
        return new_result(False, VERIFY_CHECK, output)

    async def _write_status(
        self, namespace: str, name: str, mutate: StatusMutation
    ) -> Optional[Tuple[Dict[str, Any], ChaosExperimentStatus, ChaosExperimentStatus]]:
        """
        Relê o experimento, aplica `mutate` e grava o status.

        Conflitos são refeitos com backoff sobre uma leitura nova. Experimento
        removido aborta sem erro.

        Returns:
            (experimento lido, status anterior, status gravado) ou None se nada foi escrito
        """
        try:
            async for attempt in self.status_policy.retrying(ConflictError):
                with attempt:
                    body = await self.store.get_experiment(namespace, name)
                    if body is None:
                        return None

                    experiment = ChaosExperiment.from_body(body)
                    previous = experiment.status
                    status = mutate(previous.model_copy(deep=True))
                    if status.to_body() == previous.to_body():
                        return None

                    try:
                        await self.store.update_experiment_status(body, status.to_body())
                    except ConflictError:
                        status_conflicts_total.inc()
                        logger.debug("chaos_controller.status_conflict", namespace=namespace, name=name)
                        raise
                    return body, previous, status
        except NotFoundError:
            logger.debug("chaos_controller.status_target_gone", namespace=namespace, name=name)
            return None
        return None

    def _observe_phase_change(
        self,
        body: Dict[str, Any],
        previous: ChaosExperimentStatus,
        current: ChaosExperimentStatus,
    ) -> None:
        from_phase = (previous.phase or ChaosPhase.BEFORE_EXPERIMENT).value
        if current.phase is None or current.phase.value == from_phase:
            return

        metadata = body["metadata"]
        phase_transitions_total.labels(from_phase=from_phase, to_phase=current.phase.value).inc()
        logger.info(
            "chaos_controller.phase_changed",
            namespace=metadata.get("namespace"),
            name=metadata["name"],
            from_phase=from_phase,
            to_phase=current.phase.value,
            chaos_condition=current.chaos_condition.value if current.chaos_condition else None
        )
        self.events.emit(
            body, SEVERITY_NORMAL, "PhaseChanged", f"phase {from_phase} -> {current.phase.value}"
        )
