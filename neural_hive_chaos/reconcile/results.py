"""
Ledger de resultados do experimento.

Cada resultado carrega o nome da checagem como prefixo da mensagem; o upsert
garante no máximo uma entrada por checagem.
"""

from typing import List

from ..models.chaos_experiment import Result

VERIFY_CHECK = "Verify"


def upsert_result(results: List[Result], result: Result, check: str) -> List[Result]:
    """
    Substitui a primeira entrada com o prefixo `check` ou adiciona ao final.

    A substituição só acontece quando a nova mensagem também tem o prefixo.
    A lista de entrada não é alterada.
    """
    updated = list(results)
    if result.message.startswith(check):
        for index, existing in enumerate(updated):
            if existing.message.startswith(check):
                updated[index] = result
                return updated
    updated.append(result)
    return updated


def has_result(results: List[Result], check: str) -> bool:
    return any(r.message.startswith(check) for r in results)


def new_result(success: bool, check: str, detail: str) -> Result:
    return Result.new(success, f"{check}: {detail}")
