# safra/usecases/custo_safra.py
"""
Caso de uso: custo da safra do produtor comparado à referência CONAB.
"""

from __future__ import annotations

from typing import Any, List, Tuple

from safra.config import DB_PATH
from safra.domain.custos import LinhaCusto, TotaisCusto, comparar_custos, totalizar
from safra.domain.saldos import eh_realizada
from safra.infra.logger import log_financeiro
from safra.infra.repositories import TransacaoRepo


def custo_da_safra(
    user_id: str,
    area_cultivada: Any,
    produtividade: Any,
    somente_realizadas: bool = False,
    db_path: str = DB_PATH,
) -> Tuple[List[LinhaCusto], TotaisCusto]:
    """Linhas real x referência por categoria e os totais.

    ``area_cultivada`` (ha) e ``produtividade`` (sacas/ha) aceitam texto
    pt-BR; zero ou inválido zera as colunas reais.
    """
    transacoes = TransacaoRepo(db_path).listar(user_id)
    if somente_realizadas:
        transacoes = [t for t in transacoes if eh_realizada(t)]
    linhas = comparar_custos(((t.categoria, t.valor) for t in transacoes), area_cultivada, produtividade)
    log_financeiro("custo_safra", user_id, transacoes=len(transacoes), area=area_cultivada)
    return linhas, totalizar(linhas)
