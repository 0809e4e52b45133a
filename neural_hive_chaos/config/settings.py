from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..controllers.backoff import RetryPolicy


class Settings(BaseSettings):
    """Configurações do operator de chaos via variáveis de ambiente"""

    model_config = SettingsConfigDict(
        env_prefix='CHAOS_OPERATOR_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # Service Config
    service_name: str = "neural-hive-chaos-operator"
    service_version: str = "0.1.0"
    log_level: str = "INFO"

    # Kubernetes Config
    kubernetes_in_cluster: bool = True
    kubeconfig_path: Optional[str] = None
    watch_namespace: Optional[str] = Field(
        default=None,
        description='Namespace observado; None observa o cluster inteiro'
    )

    # Reconciliation Config
    requeue_interval_seconds: float = Field(default=10.0, gt=0)
    error_backoff_seconds: float = Field(default=30.0, gt=0)
    job_image: str = "perl:5.34.0"

    # Pod wait backoff (após criar o Job)
    pod_wait_steps: int = Field(default=6, ge=1)
    pod_wait_initial_seconds: float = 0.5
    pod_wait_factor: float = 5.0
    pod_wait_jitter: float = 0.1
    pod_wait_max_seconds: float = 60.0

    # Status conflict backoff
    status_conflict_steps: int = Field(default=5, ge=1)
    status_conflict_initial_seconds: float = 0.03
    status_conflict_factor: float = 5.0
    status_conflict_jitter: float = 0.1
    status_conflict_max_seconds: float = 5.0

    # Observability Config
    metrics_enabled: bool = True
    metrics_port: int = 8080

    def pod_wait_policy(self) -> RetryPolicy:
        return RetryPolicy(
            steps=self.pod_wait_steps,
            initial_seconds=self.pod_wait_initial_seconds,
            factor=self.pod_wait_factor,
            jitter=self.pod_wait_jitter,
            max_seconds=self.pod_wait_max_seconds,
        )

    def status_conflict_policy(self) -> RetryPolicy:
        return RetryPolicy(
            steps=self.status_conflict_steps,
            initial_seconds=self.status_conflict_initial_seconds,
            factor=self.status_conflict_factor,
            jitter=self.status_conflict_jitter,
            max_seconds=self.status_conflict_max_seconds,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
