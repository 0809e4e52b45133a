"""Exceções do operator de experimentos de chaos."""

from typing import Optional


class ChaosOperatorError(Exception):
    """Erro base do operator."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConflictError(ChaosOperatorError):
    """Escrita rejeitada por resourceVersion desatualizado (409)."""
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class AlreadyExistsError(ChaosOperatorError):
    """Criação de objeto que já existe (409)."""
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class NotFoundError(ChaosOperatorError):
    """Objeto ausente durante uma escrita (404)."""
    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class JobBuildError(ChaosOperatorError):
    """Annotation de override inválida na construção do Job."""
    def __init__(self, key: str, value: str, reason: str = "invalid value"):
        super().__init__(f"annotation {key}={value!r}: {reason}")
        self.key = key
        self.value = value


class NotReadyError(ChaosOperatorError):
    """Pods do Job ainda não existem após esgotar o backoff."""
    pass


class ChaosSpecChangedError(ChaosOperatorError):
    """Sinal interno: spec da falha foi reaplicado, a passada termina aqui."""
    pass
