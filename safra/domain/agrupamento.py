"""
Consolidação do estoque em grupos de produtos.

Recebe a lista plana de linhas do estoque (entradas, saídas e
aplicações) e devolve um ``ProdutoAgrupado`` por produto, com saldo,
custo médio ponderado e detalhamento por fornecedor.

Regras principais:
- a unidade de referência do grupo é a unidade de valor (ou, na falta,
  a unidade) da entrada mais antiga;
- todas as quantidades são convertidas para a unidade de referência
  antes de somar;
- o saldo pode ser negativo (déficit): produto usado antes de ser
  lançado. Isso é um estado válido, não um erro;
- o custo médio considera apenas as entradas (média ponderada simples,
  não o custo FIFO do que sobrou).
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from safra.config import DEFAULTS
from safra.domain.models import FornecedorResumo, LancamentoProduto, ProdutoAgrupado, ProdutoEstoque
from safra.domain.similaridade import agrupar_por_nome, normalizar_nome, sao_similares
from safra.domain.unidades import converter_entre_unidades, converter_valor_entre_unidades


def _distintos(valores: Iterable) -> List:
    """Valores distintos preservando a ordem da primeira ocorrência."""
    vistos = []
    for v in valores:
        if v not in vistos:
            vistos.append(v)
    return vistos


def _nome_mais_comum(produtos: Sequence[ProdutoEstoque]) -> str:
    # most_common mantém a ordem de inserção em caso de empate
    contagem = Counter(p.nome_produto for p in produtos)
    return contagem.most_common(1)[0][0] if contagem else ""


def _quantidade_entrada(p: ProdutoEstoque) -> float:
    qtd = p.quantidade_inicial if p.quantidade_inicial is not None else p.quantidade
    return float(qtd or 0.0)


def _preco_unitario(p: ProdutoEstoque) -> Optional[float]:
    """Preço por unidade de ``unidade_valor_original`` (ou ``unidade``)."""
    if p.valor_unitario is not None:
        return float(p.valor_unitario)
    qtd = _quantidade_entrada(p)
    if p.valor_total is not None and qtd > 0:
        # valor_total / quantidade está na base da unidade da quantidade
        return converter_valor_entre_unidades(float(p.valor_total) / qtd, p.unidade, _unidade_preco(p))
    return None


def _unidade_preco(p: ProdutoEstoque) -> Optional[str]:
    return p.unidade_valor_original or p.unidade


def _ordenar_fifo(produtos: Iterable[ProdutoEstoque]) -> List[ProdutoEstoque]:
    return sorted(produtos, key=lambda p: p.created_at or "")


def calcular_grupo(
    produtos: Sequence[ProdutoEstoque],
    consumos: Optional[Iterable[LancamentoProduto]] = None,
) -> ProdutoAgrupado:
    """Calcula saldo, custo médio e detalhamentos de um grupo de linhas."""
    ordenados = _ordenar_fifo(produtos)
    entradas = [p for p in ordenados if p.eh_entrada]
    saidas = [p for p in ordenados if p.eh_saida]

    base = entradas[0] if entradas else (ordenados[0] if ordenados else None)
    unidade_ref = (_unidade_preco(base) if base else None) or DEFAULTS.unidade_fallback

    total_entradas = 0.0
    total_valor = 0.0
    fornecedores: Dict[tuple, FornecedorResumo] = {}
    for p in entradas:
        qtd_ref = converter_entre_unidades(_quantidade_entrada(p), p.unidade, unidade_ref)
        total_entradas += qtd_ref

        preco = _preco_unitario(p)
        if preco is not None:
            preco_ref = converter_valor_entre_unidades(preco, _unidade_preco(p), unidade_ref)
            total_valor += preco_ref * qtd_ref

        nome_fornecedor = p.fornecedor or DEFAULTS.fornecedor_desconhecido
        chave = (nome_fornecedor, p.valor_unitario)
        resumo = fornecedores.get(chave)
        if resumo is None:
            resumo = fornecedores[chave] = FornecedorResumo(
                fornecedor=nome_fornecedor,
                valor=p.valor_unitario,
                registro_mapa=p.registro_mapa,
            )
        resumo.quantidade += converter_entre_unidades(float(p.quantidade or 0.0), p.unidade, unidade_ref)
        resumo.ids.append(p.id)

    total_saidas = 0.0
    for p in saidas:
        total_saidas += converter_entre_unidades(float(p.quantidade or 0.0), p.unidade, unidade_ref)

    media = total_valor / total_entradas if total_entradas > 0 else 0.0

    ids = {p.id for p in ordenados}
    consumos_grupo = [c for c in (consumos or []) if c.produto_id in ids]

    produto_id = None
    if base is not None:
        produto_id = base.produto_id if base.produto_id is not None else base.id

    return ProdutoAgrupado(
        nome=_nome_mais_comum(ordenados),
        entradas=entradas,
        saidas=saidas,
        unidade_referencia=unidade_ref,
        total_entradas=total_entradas,
        total_saidas=total_saidas,
        saldo=total_entradas - total_saidas,
        media_preco=media,
        produto_id=produto_id,
        marcas=_distintos(p.marca for p in entradas),
        categorias=_distintos(p.categoria for p in entradas),
        unidades=_distintos(p.unidade for p in entradas),
        lotes=_distintos(p.lote for p in entradas),
        validades=_distintos(p.validade for p in entradas),
        fornecedores=list(fornecedores.values()),
        consumos=consumos_grupo,
    )


def agrupar_produtos(
    produtos: Sequence[ProdutoEstoque],
    consumos: Optional[Iterable[LancamentoProduto]] = None,
    ordenar: bool = False,
) -> List[ProdutoAgrupado]:
    """Agrupa as linhas por nome similar e consolida cada grupo.

    Args:
        produtos: Linhas do estoque de um usuário (qualquer tipo de movimento).
        consumos: Registros de consumo por atividade, ligados às linhas.
        ordenar: Repassado a ``agrupar_por_nome``; torna o agrupamento
            independente da ordem de ``produtos``.

    Returns:
        Lista de grupos na ordem em que foram criados.
    """
    if not produtos:
        return []
    consumos = list(consumos or [])
    grupos = agrupar_por_nome(produtos, nome=lambda p: p.nome_produto, ordenar=ordenar)
    return [calcular_grupo(membros, consumos) for _, membros in grupos]


def buscar_grupo(grupos: Iterable[ProdutoAgrupado], nome: str) -> Optional[ProdutoAgrupado]:
    """Localiza o grupo de nome igual a ``nome``; na falta, o primeiro similar."""
    grupos = list(grupos)
    alvo = normalizar_nome(nome)
    for g in grupos:
        if normalizar_nome(g.nome) == alvo:
            return g
    for g in grupos:
        if sao_similares(g.nome, nome):
            return g
    return None
