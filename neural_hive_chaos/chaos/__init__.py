from .translator import (
    FaultTranslator,
    NetworkChaosTranslator,
    PodChaosTranslator,
    translate_condition,
    translator_for,
)

__all__ = [
    "FaultTranslator",
    "NetworkChaosTranslator",
    "PodChaosTranslator",
    "translate_condition",
    "translator_for",
]
