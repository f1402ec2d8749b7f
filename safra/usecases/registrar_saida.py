# safra/usecases/registrar_saida.py
"""
UC: Registrar SAÍDAS (retirada de produto do estoque).

A retirada é feita por grupo: o produtor informa quanto saiu na unidade
de referência do grupo e o procedimento ``registrar_saida`` abate os
lotes mais antigos primeiro. Este módulo não percorre lotes.
"""

from __future__ import annotations

from typing import Optional

from safra.config import DB_PATH
from safra.domain.models import TIPO_SAIDA, TIPOS_SAIDA, MovimentacaoEstoque, ProdutoAgrupado
from safra.domain.policies import planejar_remocao
from safra.domain.unidades import para_unidade_padrao
from safra.infra.cache import CacheConsumo
from safra.infra.logger import log_estoque, log_transaction
from safra.infra.procedures import ProcedimentosRepo
from safra.infra.repositories import MovimentacaoRepo
from safra.usecases.historico import registrar_historico


def remover_quantidade_fifo(
    user_id: str,
    grupo: ProdutoAgrupado,
    quantidade: float,
    tipo: str = TIPO_SAIDA,
    observacao: Optional[str] = None,
    db_path: str = DB_PATH,
    cache: Optional[CacheConsumo] = None,
    procedimentos: Optional[ProcedimentosRepo] = None,
    movimentacoes: Optional[MovimentacaoRepo] = None,
) -> int:
    """Retira ``quantidade`` do grupo e devolve o id da linha de saída.

    O valor da saída é ``quantidade × custo médio`` do grupo.

    Raises:
        ValueError: quantidade inválida, tipo inválido ou grupo sem produto.
        ProcedimentoError / sqlite3.Error: falha do procedimento.
    """
    if tipo not in TIPOS_SAIDA:
        raise ValueError(f"Tipo de saída inválido: {tipo}")
    remocao = planejar_remocao(grupo, quantidade)
    if remocao.produto_id is None:
        raise ValueError(f"Grupo '{grupo.nome}' não tem produto associado")

    procedimentos = procedimentos or ProcedimentosRepo(db_path)
    movimentacoes = movimentacoes or MovimentacaoRepo(db_path)
    params = {
        "p_produto_id": remocao.produto_id,
        "p_quantidade": remocao.quantidade,
        "p_unidade": remocao.unidade,
        "p_valor_total": remocao.valor_total,
        "p_user_id": user_id,
        "p_tipo": tipo,
        "p_observacao": observacao,
    }
    try:
        saida_id = procedimentos.rpc("registrar_saida", params)
    except Exception as e:
        log_transaction("remover_quantidade_fifo", params, error=str(e))
        raise

    padrao = para_unidade_padrao(remocao.quantidade, remocao.unidade)
    registrar_historico(
        MovimentacaoEstoque(
            produto_id=remocao.produto_id,
            user_id=user_id,
            tipo=tipo,
            quantidade=padrao.quantidade,
            unidade=padrao.unidade,
            valor_unitario=remocao.valor_unitario,
            unidade_valor=grupo.unidade_valor_original,
            observacao=observacao,
        ),
        movimentacoes,
    )
    if cache is not None:
        cache.invalidar()

    log_estoque("saida", grupo.nome, remocao.quantidade, remocao.unidade, tipo=tipo)
    log_transaction("remover_quantidade_fifo", params, result=saida_id)
    return saida_id
