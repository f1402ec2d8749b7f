# safra/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: estoque, histórico de movimentações, lançamentos agrícolas e
    financeiro
V2: notificações do produtor e índices de consulta por usuário
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Linhas do estoque (entradas, saídas e aplicações)
    """
    CREATE TABLE IF NOT EXISTS estoque_de_produtos (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        produto_id INTEGER,
        nome_do_produto TEXT,
        marca_ou_fabricante TEXT,
        categoria TEXT,
        unidade_de_medida TEXT,
        quantidade_em_estoque REAL NOT NULL DEFAULT 0 CHECK (quantidade_em_estoque >= 0),
        quantidade_inicial REAL,
        valor_unitario REAL,
        unidade_valor_original TEXT,
        valor_total REAL,
        tipo_de_movimentacao TEXT,  -- 'entrada' | 'saida' | 'aplicacao' | NULL (legado)
        lote TEXT,
        validade TEXT,
        fornecedor TEXT,
        registro_mapa TEXT,
        entrada_referencia_id INTEGER,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now')),
        FOREIGN KEY (entrada_referencia_id) REFERENCES estoque_de_produtos(id) ON DELETE SET NULL
    );
    """,
    # Histórico de movimentações (auditoria)
    """
    CREATE TABLE IF NOT EXISTS movimentacoes_estoque (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        produto_id INTEGER,
        user_id TEXT NOT NULL,
        tipo TEXT NOT NULL,
        quantidade REAL NOT NULL,
        unidade TEXT,
        valor_unitario REAL,
        unidade_valor TEXT,
        observacao TEXT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
    );
    """,
    # Atividades agrícolas (manejo)
    """
    CREATE TABLE IF NOT EXISTS lancamentos_agricolas (
        atividade_id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        nome_atividade TEXT,
        data_atividade TEXT
    );
    """,
    # Produtos consumidos por atividade
    """
    CREATE TABLE IF NOT EXISTS lancamento_produtos (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        atividade_id INTEGER NOT NULL,
        produto_id INTEGER NOT NULL,
        quantidade_val REAL,
        quantidade_un TEXT,
        FOREIGN KEY (atividade_id) REFERENCES lancamentos_agricolas(atividade_id) ON DELETE CASCADE
    );
    """,
    # Transações financeiras
    """
    CREATE TABLE IF NOT EXISTS transacoes_financeiras (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        descricao TEXT,
        categoria TEXT,
        valor REAL NOT NULL DEFAULT 0,
        status TEXT,
        data_agendamento_pagamento TEXT,
        data_registro TEXT DEFAULT (date('now'))
    );
    """,
]

SCHEMA_V2: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS notificacoes_produtor (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        payload TEXT,
        lida INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
    );
    """,
    "CREATE INDEX IF NOT EXISTS ix_estoque_user ON estoque_de_produtos(user_id, created_at);",
    "CREATE INDEX IF NOT EXISTS ix_estoque_produto ON estoque_de_produtos(produto_id);",
    "CREATE INDEX IF NOT EXISTS ix_lanc_prod_produto ON lancamento_produtos(produto_id);",
    "CREATE INDEX IF NOT EXISTS ix_transacoes_user ON transacoes_financeiras(user_id);",
    "CREATE INDEX IF NOT EXISTS ix_notificacoes_user ON notificacoes_produtor(user_id, created_at);",
]

MIGRATIONS = [SCHEMA_V1, SCHEMA_V2]


def get_user_version(db_path: str) -> int:
    with connect(db_path) as c:
        return int(c.execute("PRAGMA user_version;").fetchone()[0])


def apply_migrations(db_path: str) -> int:
    """Aplica as migrações pendentes e retorna a versão final do schema."""
    atual = get_user_version(db_path)
    with connect(db_path) as c:
        for versao, stmts in enumerate(MIGRATIONS, start=1):
            if versao <= atual:
                continue
            for sql in stmts:
                c.execute(sql)
            c.execute(f"PRAGMA user_version = {versao};")
    return len(MIGRATIONS)
