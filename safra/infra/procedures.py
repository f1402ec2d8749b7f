# safra/infra/procedures.py
"""
Procedimentos armazenados do estoque.

Cada procedimento recebe a conexão aberta por ``ProcedimentosRepo.rpc``
e roda inteiro dentro de uma única transação: se algo falhar, nada é
gravado. Os nomes e parâmetros (``p_*``) são os mesmos usados pelo
backend hospedado, então os casos de uso só conhecem ``rpc(nome, params)``.

Procedimentos:
- registrar_produto_e_entrada
- registrar_saida (abate os lotes mais antigos primeiro)
- processar_entrada (entrada corretiva de déficit)
"""

from __future__ import annotations

import inspect
import math
import sqlite3
from typing import Any, Callable, Dict, List, Optional

from .db import connect, fetch_dicts
from .logger import log_database_operation
from .repositories import SELECT_ESTOQUE
from safra.config import DEFAULTS
from safra.domain.agrupamento import agrupar_produtos, buscar_grupo, calcular_grupo
from safra.domain.models import TIPO_ENTRADA, TIPOS_SAIDA, ProdutoEstoque
from safra.domain.policies import planejar_correcao
from safra.domain.unidades import converter_entre_unidades, normalizar_unidade


class ProcedimentoError(Exception):
    """Falha de validação ou de regra dentro de um procedimento."""


def _quantidade_positiva(valor: Any) -> float:
    try:
        q = float(valor)
    except (TypeError, ValueError):
        raise ProcedimentoError(f"Quantidade inválida: {valor!r}")
    if math.isnan(q) or math.isinf(q) or q <= 0:
        raise ProcedimentoError(f"Quantidade deve ser maior que zero: {valor!r}")
    return q


def _linhas_do_produto(c: sqlite3.Connection, produto_id: int, user_id: Optional[str] = None) -> List[ProdutoEstoque]:
    sql = SELECT_ESTOQUE + " WHERE (produto_id = ? OR id = ?)"
    params: List[Any] = [produto_id, produto_id]
    if user_id is not None:
        sql += " AND user_id = ?"
        params.append(user_id)
    rows = fetch_dicts(c, sql + " ORDER BY created_at, id", params)
    return [ProdutoEstoque.from_row(r) for r in rows]


def _inserir_linha(c: sqlite3.Connection, linha: Dict[str, Any]) -> int:
    cur = c.execute(
        """
        INSERT INTO estoque_de_produtos
            (user_id, produto_id, nome_do_produto, marca_ou_fabricante, categoria,
             unidade_de_medida, quantidade_em_estoque, quantidade_inicial,
             valor_unitario, unidade_valor_original, valor_total,
             tipo_de_movimentacao, lote, validade, fornecedor, registro_mapa,
             entrada_referencia_id)
        VALUES
            (:user_id, :produto_id, :nome_do_produto, :marca_ou_fabricante, :categoria,
             :unidade_de_medida, :quantidade_em_estoque, :quantidade_inicial,
             :valor_unitario, :unidade_valor_original, :valor_total,
             :tipo_de_movimentacao, :lote, :validade, :fornecedor, :registro_mapa,
             :entrada_referencia_id)
        """,
        {
            "produto_id": None,
            "marca_ou_fabricante": None,
            "categoria": None,
            "valor_unitario": None,
            "valor_total": None,
            "lote": None,
            "validade": None,
            "fornecedor": None,
            "registro_mapa": None,
            "entrada_referencia_id": None,
            **linha,
        },
    )
    return cur.lastrowid


# -------------------------
# Procedimentos
# -------------------------

def registrar_produto_e_entrada(
    c: sqlite3.Connection,
    p_nome: str,
    p_marca: Optional[str],
    p_categoria: Optional[str],
    p_unidade_base: Optional[str],
    p_registro_mapa: Optional[str],
    p_fornecedor: Optional[str],
    p_quantidade: float,
    p_valor_total: Optional[float],
    p_lote: Optional[str],
    p_validade: Optional[str],
    p_user_id: str,
) -> int:
    """Grava uma entrada; se já existir produto de nome similar, reaproveita o ``produto_id``."""
    nome = (p_nome or "").strip()
    if not nome:
        raise ProcedimentoError("Nome do produto é obrigatório")
    if not p_user_id:
        raise ProcedimentoError("user_id é obrigatório")
    q = _quantidade_positiva(p_quantidade)
    unidade = normalizar_unidade(p_unidade_base) or DEFAULTS.unidade_fallback

    valor_total = float(p_valor_total) if p_valor_total is not None else None
    if valor_total is not None and valor_total < 0:
        raise ProcedimentoError("Valor total não pode ser negativo")
    valor_unitario = valor_total / q if valor_total is not None else None

    existentes = [
        ProdutoEstoque.from_row(r)
        for r in fetch_dicts(c, SELECT_ESTOQUE + " WHERE user_id = ? ORDER BY created_at, id", (p_user_id,))
    ]
    grupo = buscar_grupo(agrupar_produtos(existentes), nome) if existentes else None
    produto_id = grupo.produto_id if grupo is not None else None

    novo_id = _inserir_linha(c, {
        "user_id": p_user_id,
        "produto_id": produto_id,
        "nome_do_produto": nome,
        "marca_ou_fabricante": p_marca,
        "categoria": p_categoria,
        "unidade_de_medida": unidade,
        "quantidade_em_estoque": q,
        "quantidade_inicial": q,
        "valor_unitario": valor_unitario,
        "unidade_valor_original": unidade,
        "valor_total": valor_total,
        "tipo_de_movimentacao": TIPO_ENTRADA,
        "lote": p_lote,
        "validade": p_validade,
        "fornecedor": p_fornecedor,
        "registro_mapa": p_registro_mapa,
    })
    if produto_id is None:
        c.execute("UPDATE estoque_de_produtos SET produto_id = ? WHERE id = ?", (novo_id, novo_id))
    return novo_id


def registrar_saida(
    c: sqlite3.Connection,
    p_produto_id: int,
    p_quantidade: float,
    p_unidade: Optional[str],
    p_valor_total: Optional[float],
    p_user_id: str,
    p_tipo: str = "saida",
    p_observacao: Optional[str] = None,
) -> int:
    """Registra uma saída e abate a quantidade dos lotes, do mais antigo ao mais novo.

    O que não couber nos lotes existentes vira déficit (saldo negativo do
    grupo); a saída é gravada pela quantidade total pedida.
    """
    if p_tipo not in TIPOS_SAIDA:
        raise ProcedimentoError(f"Tipo de saída inválido: {p_tipo!r}")
    q = _quantidade_positiva(p_quantidade)

    linhas = _linhas_do_produto(c, p_produto_id, p_user_id)
    if not linhas:
        raise ProcedimentoError(f"Produto {p_produto_id} não encontrado")
    entradas = [l for l in linhas if l.eh_entrada]
    base = entradas[0] if entradas else linhas[0]
    unidade = normalizar_unidade(p_unidade) or base.unidade or DEFAULTS.unidade_fallback

    restante = q
    referencia = None
    for lote in entradas:
        if restante <= 0:
            break
        disponivel = converter_entre_unidades(float(lote.quantidade or 0.0), lote.unidade, unidade)
        if disponivel <= 0:
            continue
        retirado = min(restante, disponivel)
        if retirado >= disponivel:
            novo_saldo = 0.0
        else:
            novo_saldo = max(0.0, float(lote.quantidade) - converter_entre_unidades(retirado, unidade, lote.unidade))
        c.execute(
            "UPDATE estoque_de_produtos SET quantidade_em_estoque = ? WHERE id = ?",
            (novo_saldo, lote.id),
        )
        restante -= retirado
        if referencia is None:
            referencia = lote.id

    valor_total = float(p_valor_total) if p_valor_total is not None else None
    return _inserir_linha(c, {
        "user_id": p_user_id,
        "produto_id": base.produto_id if base.produto_id is not None else base.id,
        "nome_do_produto": base.nome_produto,
        "marca_ou_fabricante": base.marca,
        "categoria": base.categoria,
        "unidade_de_medida": unidade,
        "quantidade_em_estoque": q,
        "quantidade_inicial": q,
        "valor_unitario": valor_total / q if valor_total is not None else None,
        "unidade_valor_original": unidade,
        "valor_total": valor_total,
        "tipo_de_movimentacao": p_tipo,
        "entrada_referencia_id": referencia,
    })


def processar_entrada(
    c: sqlite3.Connection,
    p_produto_id: int,
    p_quantidade: float,
    p_valor_unitario: float,
) -> Dict[str, Any]:
    """Entrada corretiva: abate o déficit do produto e credita a sobra como lote novo.

    Quantidade e preço estão na unidade de referência do grupo.
    """
    linhas = _linhas_do_produto(c, p_produto_id)
    if not linhas:
        raise ProcedimentoError(f"Produto {p_produto_id} não encontrado")
    grupo = calcular_grupo(linhas)
    try:
        correcao = planejar_correcao(grupo.saldo, p_quantidade, p_valor_unitario, grupo.unidade_referencia)
    except ValueError as e:
        raise ProcedimentoError(str(e)) from e

    base = grupo.entradas[0] if grupo.entradas else linhas[0]
    entrada_id = _inserir_linha(c, {
        "user_id": base.user_id,
        "produto_id": grupo.produto_id,
        "nome_do_produto": grupo.nome,
        "marca_ou_fabricante": base.marca,
        "categoria": base.categoria,
        "unidade_de_medida": correcao.unidade,
        # a parte que cobre o déficit já foi consumida
        "quantidade_em_estoque": correcao.quantidade_disponivel,
        "quantidade_inicial": correcao.quantidade,
        "valor_unitario": correcao.valor_unitario,
        "unidade_valor_original": correcao.unidade,
        "valor_total": correcao.valor_total,
        "tipo_de_movimentacao": TIPO_ENTRADA,
        "fornecedor": base.fornecedor,
        "registro_mapa": base.registro_mapa,
    })
    return {
        "entrada_id": entrada_id,
        "produto_id": grupo.produto_id,
        "quantidade_deficit": correcao.quantidade_deficit,
        "quantidade_disponivel": correcao.quantidade_disponivel,
        "saldo_anterior": correcao.saldo_anterior,
        "saldo_final": correcao.saldo_final,
        "unidade": correcao.unidade,
    }


PROCEDIMENTOS: Dict[str, Callable[..., Any]] = {
    "registrar_produto_e_entrada": registrar_produto_e_entrada,
    "registrar_saida": registrar_saida,
    "processar_entrada": processar_entrada,
}


class ProcedimentosRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def rpc(self, nome: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Executa o procedimento ``nome`` numa transação própria.

        Raises:
            ProcedimentoError: procedimento desconhecido, parâmetros
                inválidos ou regra violada (nada é gravado).
            sqlite3.Error: falha do banco (nada é gravado).
        """
        proc = PROCEDIMENTOS.get(nome)
        if proc is None:
            raise ProcedimentoError(f"Procedimento desconhecido: {nome}")
        params = dict(params or {})
        try:
            inspect.signature(proc).bind(None, **params)
        except TypeError as e:
            raise ProcedimentoError(f"Parâmetros inválidos para {nome}: {e}") from e

        try:
            with connect(self.db_path) as c:
                resultado = proc(c, **params)
        except (ProcedimentoError, sqlite3.Error) as e:
            log_database_operation(nome, "RPC", level="error", error=str(e), params=params)
            raise
        log_database_operation(nome, "RPC", 1, params=params, result=resultado)
        return resultado
