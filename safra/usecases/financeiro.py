# safra/usecases/financeiro.py
"""
Casos de uso do financeiro: saldos por período, saldo consolidado e
importação de transações.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from safra.config import DB_PATH
from safra.adapters.xlsx_loader import load_transacoes_from_xlsx
from safra.domain.saldos import (
    DataLike,
    FiltroPeriodo,
    SaldoConsolidado,
    SaldoPeriodo,
    calcular_saldo_consolidado,
    calcular_saldo_periodo,
    resumo_por_categoria,
)
from safra.infra.logger import log_file_operation, log_financeiro, log_transaction
from safra.infra.repositories import TransacaoRepo


def saldo_periodo(
    user_id: str,
    filtro: FiltroPeriodo = FiltroPeriodo.TODOS,
    inicio: DataLike = None,
    fim: DataLike = None,
    agora: DataLike = None,
    db_path: str = DB_PATH,
) -> SaldoPeriodo:
    transacoes = TransacaoRepo(db_path).listar(user_id)
    resultado = calcular_saldo_periodo(transacoes, filtro, inicio, fim, agora)
    log_financeiro("saldo_periodo", user_id, filtro=str(filtro), transacoes=len(transacoes))
    return resultado


def saldo_consolidado(user_id: str, agora: DataLike = None, db_path: str = DB_PATH) -> SaldoConsolidado:
    transacoes = TransacaoRepo(db_path).listar(user_id)
    log_financeiro("saldo_consolidado", user_id, transacoes=len(transacoes))
    return calcular_saldo_consolidado(transacoes, agora)


def totais_por_categoria(user_id: str, db_path: str = DB_PATH) -> List[Tuple[str, float]]:
    return resumo_por_categoria(TransacaoRepo(db_path).listar(user_id))


def run_transacoes_lote(path: str, user_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Importa um XLSX de transações para o usuário."""
    rows = load_transacoes_from_xlsx(path)
    log_file_operation("import", path, rows_processed=len(rows))
    try:
        n = TransacaoRepo(db_path).inserir_varios(user_id, rows)
    except Exception as e:
        log_transaction("transacoes_lote", {"file": path, "user_id": user_id}, error=str(e))
        raise
    result = {"arquivo": path, "linhas_inseridas": n}
    log_transaction("transacoes_lote", {"file": path, "user_id": user_id}, result=result)
    return result
