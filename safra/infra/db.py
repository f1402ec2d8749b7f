# safra/infra/db.py
"""
Conexão com o banco relacional (SQLite).
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Abre uma conexão que funciona como uma transação:
    - foreign_keys ON e row_factory = sqlite3.Row
    - commit ao sair do bloco, rollback se houver exceção
    """
    conn = sqlite3.connect(db_path)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetch_dicts(conn: sqlite3.Connection, sql: str, params: Any = ()) -> List[Dict[str, Any]]:
    cur = conn.execute(sql, params)
    cols = [d[0] for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]
