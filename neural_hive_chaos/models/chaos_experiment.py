"""
Modelos Pydantic para o recurso ChaosExperiment.

Representa o custom resource `chaosexperiments.neural-hive.io` no formato do
wire (camelCase) com aliases, e os enums de fase, condição e ações de falha.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

CHAOS_GROUP = "neural-hive.io"
CHAOS_VERSION = "v1alpha1"
CHAOS_PLURAL = "chaosexperiments"
CHAOS_KIND = "ChaosExperiment"
CHAOS_API_VERSION = f"{CHAOS_GROUP}/{CHAOS_VERSION}"


class CamelModel(BaseModel):
    """Base com aliases camelCase aceitando também nomes Python."""
    model_config = ConfigDict(populate_by_name=True)


class ChaosPhase(str, Enum):
    """Fase do ciclo de vida do experimento."""
    BEFORE_EXPERIMENT = "BeforeReq"
    AFTER_EXPERIMENT = "AfterReq"
    INJECTED_CHAOS = "Injected"
    RECOVERED_CHAOS = "Recovered"


class ChaosCondition(str, Enum):
    """Estado observado do objeto de falha no Chaos Mesh."""
    ALL_INJECTED = "AllInjected"
    ALL_RECOVERED = "AllRecovered"
    PAUSED = "Paused"
    NO_TARGET = "NoTarget"
    UNKNOWN = "Unknown"


class PodChaosAction(str, Enum):
    POD_FAILURE = "PodFailure"
    CONTAINER_KILL = "ContainerKill"


class NetworkChaosAction(str, Enum):
    DELAY = "Delay"
    LOSS = "Loss"
    DUPLICATION = "Duplication"
    CORRUPTION = "Corruption"
    PARTITION = "Partition"


class Direction(str, Enum):
    TO = "to"
    FROM = "from"
    BOTH = "both"


class LabelSelectorRequirement(CamelModel):
    key: str
    operator: str
    values: List[str] = Field(default_factory=list)


class PodSelector(CamelModel):
    """Seletor de pods alvo, no mesmo formato do Chaos Mesh."""
    namespaces: List[str] = Field(default_factory=list)
    label_selectors: Dict[str, str] = Field(default_factory=dict, alias="labelSelectors")
    annotation_selectors: Dict[str, str] = Field(default_factory=dict, alias="annotationSelectors")
    nodes: List[str] = Field(default_factory=list)
    pods: Dict[str, List[str]] = Field(default_factory=dict)
    node_selectors: Dict[str, str] = Field(default_factory=dict, alias="nodeSelectors")
    expression_selectors: List[LabelSelectorRequirement] = Field(
        default_factory=list, alias="expressionSelectors"
    )

    def to_body(self) -> Dict[str, Any]:
        """Serializa apenas os campos preenchidos."""
        return self.model_dump(by_alias=True, exclude_defaults=True, mode="json")


class PodFailureParams(CamelModel):
    duration: Optional[str] = None


class ContainerKillParams(CamelModel):
    container_names: List[str] = Field(default_factory=list, alias="containerNames")


class PodChaosParams(CamelModel):
    pod_failure: Optional[PodFailureParams] = Field(default=None, alias="podFailure")
    container_kill: Optional[ContainerKillParams] = Field(default=None, alias="containerKill")


class PodChaosSpec(CamelModel):
    selector: PodSelector = Field(default_factory=PodSelector)
    action: PodChaosAction
    params: PodChaosParams = Field(default_factory=PodChaosParams)


class DelayParams(CamelModel):
    latency: Optional[str] = None
    jitter: Optional[str] = None


class LossParams(CamelModel):
    loss: Optional[str] = None


class DuplicationParams(CamelModel):
    duplicate: Optional[str] = None


class CorruptionParams(CamelModel):
    corrupt: Optional[str] = None


class NetworkChaosParams(CamelModel):
    delay: Optional[DelayParams] = None
    loss: Optional[LossParams] = None
    duplication: Optional[DuplicationParams] = Field(default=None, alias="duplicate")
    corruption: Optional[CorruptionParams] = Field(default=None, alias="corrupt")


class NetworkChaosSpec(CamelModel):
    selector: PodSelector = Field(default_factory=PodSelector)
    target: Optional[PodSelector] = None
    action: NetworkChaosAction
    duration: Optional[str] = None
    direction: Direction = Direction.TO
    params: NetworkChaosParams = Field(default_factory=NetworkChaosParams)


class InjectJobSpec(CamelModel):
    """Scripts shell opcionais executados por cada job do experimento."""
    experimental: Optional[str] = None
    pressure: Optional[str] = None
    verify: Optional[str] = None


class Expect(CamelModel):
    verify: str = ""


class ChaosExperimentSpec(CamelModel):
    pod_chaos: Optional[PodChaosSpec] = Field(default=None, alias="podChaos")
    network_chaos: Optional[NetworkChaosSpec] = Field(default=None, alias="networkChaos")
    inject_job: InjectJobSpec = Field(default_factory=InjectJobSpec, alias="injectJob")
    expect: Expect = Field(default_factory=Expect)

    @model_validator(mode="after")
    def check_single_fault(self) -> "ChaosExperimentSpec":
        if (self.pod_chaos is None) == (self.network_chaos is None):
            raise ValueError("exactly one of podChaos or networkChaos must be set")
        return self


class ResultDetail(CamelModel):
    time: datetime
    message: str


class Result(CamelModel):
    """Resultado de uma checagem; a mensagem carrega o nome da checagem como prefixo."""
    success: bool
    detail: ResultDetail

    @classmethod
    def new(cls, success: bool, message: str) -> "Result":
        return cls(
            success=success,
            detail=ResultDetail(time=datetime.now(timezone.utc), message=message),
        )

    @property
    def message(self) -> str:
        return self.detail.message


class ChaosExperimentStatus(CamelModel):
    phase: Optional[ChaosPhase] = None
    chaos_condition: Optional[ChaosCondition] = Field(default=None, alias="chaosCondition")
    results: List[Result] = Field(default_factory=list)

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ObjectMeta(CamelModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    namespace: str = "default"
    uid: Optional[str] = None
    resource_version: Optional[str] = Field(default=None, alias="resourceVersion")
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    deletion_timestamp: Optional[str] = Field(default=None, alias="deletionTimestamp")


class ChaosExperiment(CamelModel):
    """Custom resource que descreve um teste de chaos."""
    api_version: str = Field(default=CHAOS_API_VERSION, alias="apiVersion")
    kind: str = CHAOS_KIND
    metadata: ObjectMeta
    spec: ChaosExperimentSpec
    status: ChaosExperimentStatus = Field(default_factory=ChaosExperimentStatus)

    @classmethod
    def from_body(cls, body: Dict[str, Any]) -> "ChaosExperiment":
        data = dict(body)
        # status ainda não escrito chega como None ou ausente
        if not data.get("status"):
            data["status"] = {}
        return cls.model_validate(data)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def is_being_deleted(self) -> bool:
        return bool(self.metadata.deletion_timestamp)

    def current_phase(self) -> ChaosPhase:
        return self.status.phase or ChaosPhase.BEFORE_EXPERIMENT
