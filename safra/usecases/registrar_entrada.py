# safra/usecases/registrar_entrada.py
"""
UC: Registrar ENTRADAS de produto (única e em lote).
- registrar_entrada(): grava uma entrada via procedimento.
- run_entrada_lote(path): lê XLSX com o adapter e grava cada linha.

Obs.:
- A unidade é normalizada pelo procedimento ("Kg" → "kg").
- Produto de nome similar a um já existente reaproveita o mesmo produto_id.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from safra.config import DB_PATH, DEFAULTS
from safra.adapters.xlsx_loader import load_estoque_from_xlsx
from safra.domain.models import TIPO_ENTRADA, MovimentacaoEstoque
from safra.domain.unidades import normalizar_unidade
from safra.infra.cache import CacheConsumo
from safra.infra.logger import log_estoque, log_file_operation, log_system_event, log_transaction
from safra.infra.procedures import ProcedimentosRepo
from safra.infra.repositories import EstoqueRepo, MovimentacaoRepo
from safra.usecases.historico import registrar_historico


def registrar_entrada(
    user_id: str,
    nome: str,
    quantidade: float,
    unidade: Optional[str],
    valor_total: Optional[float] = None,
    marca: Optional[str] = None,
    categoria: Optional[str] = None,
    lote: Optional[str] = None,
    validade: Optional[str] = None,
    fornecedor: Optional[str] = None,
    registro_mapa: Optional[str] = None,
    db_path: str = DB_PATH,
    cache: Optional[CacheConsumo] = None,
    procedimentos: Optional[ProcedimentosRepo] = None,
    movimentacoes: Optional[MovimentacaoRepo] = None,
    estoque: Optional[EstoqueRepo] = None,
) -> int:
    """Grava uma entrada e devolve o id da nova linha do estoque.

    O histórico fica no ``produto_id`` do grupo (o mesmo das saídas e ajustes),
    que pode ser de uma linha anterior de nome similar.
    """
    procedimentos = procedimentos or ProcedimentosRepo(db_path)
    movimentacoes = movimentacoes or MovimentacaoRepo(db_path)
    estoque = estoque or EstoqueRepo(db_path)
    params = {
        "p_nome": nome,
        "p_marca": marca,
        "p_categoria": categoria,
        "p_unidade_base": unidade,
        "p_registro_mapa": registro_mapa,
        "p_fornecedor": fornecedor,
        "p_quantidade": quantidade,
        "p_valor_total": valor_total,
        "p_lote": lote,
        "p_validade": validade,
        "p_user_id": user_id,
    }
    try:
        novo_id = procedimentos.rpc("registrar_produto_e_entrada", params)
    except Exception as e:
        log_transaction("registrar_entrada", params, error=str(e))
        raise

    linha = estoque.obter(novo_id)
    produto_id = linha.produto_id if linha is not None and linha.produto_id else novo_id
    unidade = normalizar_unidade(unidade) or DEFAULTS.unidade_fallback
    registrar_historico(
        MovimentacaoEstoque(
            produto_id=produto_id,
            user_id=user_id,
            tipo=TIPO_ENTRADA,
            quantidade=float(quantidade),
            unidade=unidade,
            valor_unitario=(float(valor_total) / float(quantidade)) if valor_total is not None else None,
            unidade_valor=unidade,
        ),
        movimentacoes,
    )
    if cache is not None:
        cache.invalidar()

    log_estoque("entrada", nome, quantidade, unidade, lote=lote, fornecedor=fornecedor)
    log_transaction("registrar_entrada", params, result=novo_id)
    return novo_id


def run_entrada_lote(
    path: str,
    user_id: str,
    db_path: str = DB_PATH,
    cache: Optional[CacheConsumo] = None,
) -> Dict[str, Any]:
    """Lê um XLSX de entradas e grava cada linha com quantidade válida."""
    log_system_event("entrada_lote_start", {"file_path": path, "user_id": user_id})
    rows: List[Dict[str, Any]] = load_estoque_from_xlsx(path)
    log_file_operation("import", path, rows_processed=len(rows))

    procedimentos = ProcedimentosRepo(db_path)
    movimentacoes = MovimentacaoRepo(db_path)
    estoque = EstoqueRepo(db_path)
    ids: List[int] = []
    ignoradas = 0
    for row in rows:
        qtd = row.get("quantidade")
        if qtd is None or qtd <= 0:
            ignoradas += 1
            log_estoque("lote_ignorado", row.get("nome"), qtd, row.get("unidade"), level="warning")
            continue
        ids.append(
            registrar_entrada(
                user_id,
                row["nome"],
                qtd,
                row.get("unidade"),
                valor_total=row.get("valor_total"),
                marca=row.get("marca"),
                categoria=row.get("categoria"),
                lote=row.get("lote"),
                validade=row.get("validade"),
                fornecedor=row.get("fornecedor"),
                registro_mapa=row.get("registro_mapa"),
                db_path=db_path,
                procedimentos=procedimentos,
                movimentacoes=movimentacoes,
                estoque=estoque,
            )
        )
    if cache is not None:
        cache.invalidar()

    result = {"arquivo": path, "linhas_inseridas": len(ids), "linhas_ignoradas": ignoradas, "ids": ids}
    log_system_event("entrada_lote_success", {"file_path": path, "rows_inserted": len(ids)})
    return result
