# safra/usecases/historico.py
"""
Histórico de movimentações (auditoria).

A gravação do histórico acontece depois que o procedimento de estoque já
foi confirmado. Se ela falhar, o estoque continua correto e o erro fica
só no log: o histórico pode ficar com uma linha a menos.
"""

from __future__ import annotations

import sqlite3
from typing import List, Optional

from safra.config import DB_PATH
from safra.domain.models import MovimentacaoEstoque
from safra.infra.logger import log_estoque
from safra.infra.repositories import MovimentacaoRepo


def registrar_historico(mov: MovimentacaoEstoque, repo: MovimentacaoRepo) -> Optional[int]:
    """Grava ``mov``; em falha do banco registra o erro e devolve ``None``."""
    try:
        return repo.inserir(mov)
    except sqlite3.Error as e:
        log_estoque(
            "historico_falhou",
            mov.produto_id,
            mov.quantidade,
            mov.unidade,
            level="error",
            tipo=mov.tipo,
            error=str(e),
        )
        return None


def listar_historico(user_id: str, produto_id: Optional[int] = None, db_path: str = DB_PATH) -> List[MovimentacaoEstoque]:
    return MovimentacaoRepo(db_path).listar(user_id, produto_id)
