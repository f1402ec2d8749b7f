# safra/usecases/ajustes.py
"""
Caso de uso: entrada corretiva de um produto em déficit.

Fluxo:
1) Planeja a correção (conta pura, valida a entrada antes de gravar).
2) Executa o procedimento ``processar_entrada``; se falhar, o erro sobe
   e nada foi alterado.
3) Registra a movimentação no histórico, com a quantidade na unidade
   padrão (mg/mL) e o preço na unidade de valor original.
4) Invalida o cache de consumo.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from safra.config import DB_PATH, DEFAULTS
from safra.domain.models import TIPO_ENTRADA, MovimentacaoEstoque, ProdutoAgrupado
from safra.domain.policies import planejar_correcao
from safra.domain.unidades import para_unidade_padrao
from safra.infra.cache import CacheConsumo
from safra.infra.logger import log_estoque, log_transaction
from safra.infra.procedures import ProcedimentosRepo
from safra.infra.repositories import MovimentacaoRepo
from safra.usecases.historico import registrar_historico


def ajustar_deficit(
    user_id: str,
    grupo: ProdutoAgrupado,
    quantidade: float,
    valor_unitario: float,
    db_path: str = DB_PATH,
    cache: Optional[CacheConsumo] = None,
    procedimentos: Optional[ProcedimentosRepo] = None,
    movimentacoes: Optional[MovimentacaoRepo] = None,
) -> Dict[str, Any]:
    """Lança ``quantidade`` (na unidade de referência do grupo) a ``valor_unitario``.

    Returns:
        Resumo devolvido pelo procedimento: ``entrada_id``,
        ``quantidade_deficit``, ``quantidade_disponivel``,
        ``saldo_anterior``, ``saldo_final`` e ``unidade``.

    Raises:
        ValueError: quantidade não positiva, preço negativo ou grupo sem produto.
        ProcedimentoError / sqlite3.Error: falha do procedimento.
    """
    correcao = planejar_correcao(grupo.saldo, quantidade, valor_unitario, grupo.unidade_referencia)
    if grupo.produto_id is None:
        raise ValueError(f"Grupo '{grupo.nome}' não tem produto associado")

    procedimentos = procedimentos or ProcedimentosRepo(db_path)
    movimentacoes = movimentacoes or MovimentacaoRepo(db_path)
    params = {
        "p_produto_id": grupo.produto_id,
        "p_quantidade": correcao.quantidade,
        "p_valor_unitario": correcao.valor_unitario,
    }
    try:
        resultado = procedimentos.rpc("processar_entrada", params)
    except Exception as e:
        log_transaction("ajustar_deficit", {"user_id": user_id, **params}, error=str(e))
        raise

    padrao = para_unidade_padrao(correcao.quantidade, correcao.unidade)
    registrar_historico(
        MovimentacaoEstoque(
            produto_id=grupo.produto_id,
            user_id=user_id,
            tipo=TIPO_ENTRADA,
            quantidade=padrao.quantidade,
            unidade=padrao.unidade,
            valor_unitario=correcao.valor_unitario,
            unidade_valor=grupo.unidade_valor_original,
            observacao=DEFAULTS.observacao_ajuste,
        ),
        movimentacoes,
    )

    if cache is not None:
        cache.invalidar()

    log_estoque("ajuste", grupo.nome, correcao.quantidade, correcao.unidade,
                deficit=correcao.quantidade_deficit, disponivel=correcao.quantidade_disponivel)
    log_transaction("ajustar_deficit", {"user_id": user_id, **params}, result=resultado)
    return resultado
