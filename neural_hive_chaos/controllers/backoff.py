"""Políticas de backoff exponencial limitado (tenacity)."""

from dataclasses import dataclass
from typing import Type, Tuple, Union

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Backoff: `steps` tentativas, espera inicial multiplicada por `factor` a cada
    tentativa, jitter proporcional à espera inicial e teto em `max_seconds`.
    """
    steps: int
    initial_seconds: float
    factor: float
    jitter: float = 0.1
    max_seconds: float = 60.0

    def retrying(
        self,
        retry_on: Union[Type[BaseException], Tuple[Type[BaseException], ...]],
    ) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.steps),
            wait=wait_exponential(
                multiplier=self.initial_seconds,
                exp_base=self.factor,
                max=self.max_seconds,
            ) + wait_random(0, self.initial_seconds * self.jitter),
            retry=retry_if_exception_type(retry_on),
            reraise=True,
        )


POD_WAIT_POLICY = RetryPolicy(steps=6, initial_seconds=0.5, factor=5.0, jitter=0.1, max_seconds=60.0)
STATUS_CONFLICT_POLICY = RetryPolicy(steps=5, initial_seconds=0.03, factor=5.0, jitter=0.1, max_seconds=5.0)
