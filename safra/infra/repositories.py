# safra/infra/repositories.py
"""
Repositórios (DAO) para acesso aos dados no SQLite.

Classes:
- EstoqueRepo
- LancamentoProdutoRepo
- MovimentacaoRepo
- TransacaoRepo
- NotificacaoRepo

Leituras nunca derrubam a tela: em caso de ``sqlite3.Error`` o erro é
registrado no log do banco e a consulta devolve lista vazia. Escritas
propagam o erro para o chamador.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterable, List, Optional

from .db import connect, fetch_dicts
from .logger import log_database_operation
from safra.domain.models import (
    LancamentoProduto,
    MovimentacaoEstoque,
    ProdutoEstoque,
    TIPO_ENTRADA,
    TransacaoFinanceira,
)


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return row
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def _leitura_segura(db_path: str, tabela: str, sql: str, params: Any = ()) -> List[Dict[str, Any]]:
    try:
        with connect(db_path) as c:
            rows = fetch_dicts(c, sql, params)
    except sqlite3.Error as e:
        log_database_operation(tabela, "SELECT", level="error", error=str(e))
        return []
    log_database_operation(tabela, "SELECT", len(rows))
    return rows


# colunas da tabela -> atributos de ProdutoEstoque
SELECT_ESTOQUE = """
    SELECT
        id,
        user_id,
        produto_id,
        nome_do_produto        AS nome_produto,
        marca_ou_fabricante    AS marca,
        categoria,
        unidade_de_medida      AS unidade,
        quantidade_em_estoque  AS quantidade,
        quantidade_inicial,
        valor_unitario,
        unidade_valor_original,
        valor_total,
        tipo_de_movimentacao   AS tipo_movimentacao,
        lote,
        validade,
        fornecedor,
        registro_mapa,
        entrada_referencia_id,
        created_at
    FROM estoque_de_produtos
"""


# -------------------------
# Estoque
# -------------------------

class EstoqueRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def listar(self, user_id: str) -> List[ProdutoEstoque]:
        """Todas as linhas do usuário, da mais antiga para a mais nova."""
        rows = _leitura_segura(
            self.db_path,
            "estoque_de_produtos",
            SELECT_ESTOQUE + " WHERE user_id = ? ORDER BY created_at, id",
            (user_id,),
        )
        return [ProdutoEstoque.from_row(r) for r in rows]

    def listar_entradas(self, user_id: str) -> List[ProdutoEstoque]:
        rows = _leitura_segura(
            self.db_path,
            "estoque_de_produtos",
            SELECT_ESTOQUE
            + " WHERE user_id = ? AND (tipo_de_movimentacao IS NULL OR tipo_de_movimentacao = ?)"
            + " ORDER BY created_at, id",
            (user_id, TIPO_ENTRADA),
        )
        return [ProdutoEstoque.from_row(r) for r in rows]

    def obter(self, linha_id: int) -> Optional[ProdutoEstoque]:
        rows = _leitura_segura(
            self.db_path, "estoque_de_produtos", SELECT_ESTOQUE + " WHERE id = ?", (linha_id,)
        )
        return ProdutoEstoque.from_row(rows[0]) if rows else None


# -------------------------
# Consumo por atividade
# -------------------------

class LancamentoProdutoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def listar_por_produtos(self, ids: Iterable[int]) -> List[LancamentoProduto]:
        ids = [int(i) for i in ids if i is not None]
        if not ids:
            return []
        marcadores = ",".join("?" for _ in ids)
        rows = _leitura_segura(
            self.db_path,
            "lancamento_produtos",
            f"""
            SELECT
                lp.produto_id       AS produto_id,
                lp.quantidade_val   AS quantidade,
                lp.quantidade_un    AS unidade,
                la.atividade_id     AS atividade_id,
                la.nome_atividade   AS nome_atividade,
                la.data_atividade   AS data_atividade
            FROM lancamento_produtos lp
            JOIN lancamentos_agricolas la ON la.atividade_id = lp.atividade_id
            WHERE lp.produto_id IN ({marcadores})
            ORDER BY la.data_atividade, lp.id
            """,
            ids,
        )
        return [LancamentoProduto.from_row(r) for r in rows]

    def registrar_atividade(self, user_id: str, nome_atividade: str, data_atividade: str,
                            produtos: Iterable[Dict[str, Any]]) -> int:
        """Grava uma atividade e os produtos consumidos por ela."""
        produtos = [_as_dict(p) for p in produtos]
        with connect(self.db_path) as c:
            cur = c.execute(
                "INSERT INTO lancamentos_agricolas (user_id, nome_atividade, data_atividade) VALUES (?, ?, ?)",
                (user_id, nome_atividade, data_atividade),
            )
            atividade_id = cur.lastrowid
            c.executemany(
                """
                INSERT INTO lancamento_produtos (atividade_id, produto_id, quantidade_val, quantidade_un)
                VALUES (?, ?, ?, ?)
                """,
                [(atividade_id, p["produto_id"], p.get("quantidade"), p.get("unidade")) for p in produtos],
            )
        log_database_operation("lancamento_produtos", "INSERT", len(produtos), atividade_id=atividade_id)
        return atividade_id


# -------------------------
# Histórico de movimentações
# -------------------------

class MovimentacaoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def inserir(self, mov: MovimentacaoEstoque) -> int:
        row = _as_dict(mov)
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                INSERT INTO movimentacoes_estoque
                    (produto_id, user_id, tipo, quantidade, unidade,
                     valor_unitario, unidade_valor, observacao)
                VALUES
                    (:produto_id, :user_id, :tipo, :quantidade, :unidade,
                     :valor_unitario, :unidade_valor, :observacao)
                """,
                row,
            )
            novo_id = cur.lastrowid
        log_database_operation("movimentacoes_estoque", "INSERT", 1, produto_id=mov.produto_id)
        return novo_id

    def listar(self, user_id: str, produto_id: Optional[int] = None) -> List[MovimentacaoEstoque]:
        sql = "SELECT * FROM movimentacoes_estoque WHERE user_id = ?"
        params: List[Any] = [user_id]
        if produto_id is not None:
            sql += " AND produto_id = ?"
            params.append(produto_id)
        rows = _leitura_segura(self.db_path, "movimentacoes_estoque", sql + " ORDER BY created_at, id", params)
        return [MovimentacaoEstoque.from_row(r) for r in rows]


# -------------------------
# Financeiro
# -------------------------

class TransacaoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def listar(self, user_id: str) -> List[TransacaoFinanceira]:
        rows = _leitura_segura(
            self.db_path,
            "transacoes_financeiras",
            "SELECT * FROM transacoes_financeiras WHERE user_id = ? ORDER BY id",
            (user_id,),
        )
        return [TransacaoFinanceira.from_row(r) for r in rows]

    def inserir_varios(self, user_id: str, rows: Iterable[Dict[str, Any]]) -> int:
        payload = []
        for r in rows:
            r = _as_dict(r)
            payload.append({
                "user_id": user_id,
                "descricao": r.get("descricao"),
                "categoria": r.get("categoria"),
                "valor": float(r.get("valor") or 0.0),
                "status": r.get("status"),
                "data_agendamento_pagamento": r.get("data_agendamento_pagamento"),
                "data_registro": r.get("data_registro"),
            })
        if not payload:
            return 0
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO transacoes_financeiras
                    (user_id, descricao, categoria, valor, status,
                     data_agendamento_pagamento, data_registro)
                VALUES
                    (:user_id, :descricao, :categoria, :valor, :status,
                     :data_agendamento_pagamento, COALESCE(:data_registro, date('now')))
                """,
                payload,
            )
        log_database_operation("transacoes_financeiras", "INSERT", len(payload), user_id=user_id)
        return len(payload)


# -------------------------
# Notificações
# -------------------------

class NotificacaoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def listar(self, user_id: str, somente_nao_lidas: bool = False) -> List[Dict[str, Any]]:
        sql = "SELECT id, user_id, payload, lida, created_at FROM notificacoes_produtor WHERE user_id = ?"
        if somente_nao_lidas:
            sql += " AND lida = 0"
        return _leitura_segura(self.db_path, "notificacoes_produtor", sql + " ORDER BY created_at DESC, id DESC", (user_id,))

    def inserir(self, user_id: str, payload: Any) -> int:
        texto = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
        with connect(self.db_path) as c:
            cur = c.execute(
                "INSERT INTO notificacoes_produtor (user_id, payload) VALUES (?, ?)",
                (user_id, texto),
            )
            novo_id = cur.lastrowid
        log_database_operation("notificacoes_produtor", "INSERT", 1, user_id=user_id)
        return novo_id

    def marcar_lida(self, notificacao_id: int, user_id: str) -> int:
        with connect(self.db_path) as c:
            cur = c.execute(
                "UPDATE notificacoes_produtor SET lida = 1 WHERE id = ? AND user_id = ?",
                (notificacao_id, user_id),
            )
            n = cur.rowcount
        log_database_operation("notificacoes_produtor", "UPDATE", n, id=notificacao_id)
        return n
