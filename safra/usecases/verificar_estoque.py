# safra/usecases/verificar_estoque.py
"""
Caso de uso: verificar o estoque de um produtor.

Fluxo:
1) Lê todas as linhas do estoque do usuário (entradas, saídas, aplicações).
2) Busca o consumo por atividade dos lotes (com cache, se informado).
3) Agrupa por nome similar e calcula saldo, custo médio e fornecedores.

Nada é gravado aqui; as linhas são relidas a cada chamada.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from safra.config import DB_PATH
from safra.domain.agrupamento import agrupar_produtos, buscar_grupo
from safra.domain.models import ProdutoAgrupado
from safra.domain.policies import status_estoque
from safra.infra.cache import CacheConsumo
from safra.infra.logger import log_system_event
from safra.infra.repositories import EstoqueRepo, LancamentoProdutoRepo


@dataclass
class ResumoEstoque:
    produtos: int
    em_deficit: int
    zerados: int
    valor_total: float


def carregar_grupos(
    user_id: str,
    db_path: str = DB_PATH,
    cache: Optional[CacheConsumo] = None,
    ordenar: bool = False,
) -> List[ProdutoAgrupado]:
    """Lê o estoque de ``user_id`` e devolve os grupos de produto."""
    produtos = EstoqueRepo(db_path).listar(user_id)
    if not produtos:
        return []

    ids = [p.id for p in produtos]
    lanc_repo = LancamentoProdutoRepo(db_path)
    if cache is not None:
        consumos = cache.obter_ou_carregar(ids, lanc_repo.listar_por_produtos)
    else:
        consumos = lanc_repo.listar_por_produtos(ids)

    grupos = agrupar_produtos(produtos, consumos, ordenar=ordenar)
    log_system_event("estoque_carregado", {"user_id": user_id, "linhas": len(produtos), "grupos": len(grupos)})
    return grupos


def obter_grupo(
    user_id: str,
    nome: str,
    db_path: str = DB_PATH,
    cache: Optional[CacheConsumo] = None,
) -> Optional[ProdutoAgrupado]:
    return buscar_grupo(carregar_grupos(user_id, db_path, cache), nome)


def resumir(grupos: List[ProdutoAgrupado]) -> ResumoEstoque:
    status = [status_estoque(g.saldo) for g in grupos]
    return ResumoEstoque(
        produtos=len(grupos),
        em_deficit=status.count("DEFICIT"),
        zerados=status.count("ZERADO"),
        valor_total=sum(g.valor_em_estoque for g in grupos),
    )
