import pytest

from safra.infra.db import connect, fetch_dicts
from safra.infra.migrations import MIGRATIONS, apply_migrations, get_user_version


def _tabelas(db_path):
    with connect(db_path) as c:
        rows = fetch_dicts(c, "SELECT name FROM sqlite_master WHERE type = 'table'")
    return {r["name"] for r in rows}


def test_apply_migrations_cria_tabelas(tmp_path):
    db_path = str(tmp_path / "novo.sqlite")
    assert get_user_version(db_path) == 0
    assert apply_migrations(db_path) == len(MIGRATIONS)
    assert get_user_version(db_path) == len(MIGRATIONS)
    assert {
        "estoque_de_produtos",
        "movimentacoes_estoque",
        "lancamentos_agricolas",
        "lancamento_produtos",
        "transacoes_financeiras",
        "notificacoes_produtor",
    } <= _tabelas(db_path)


def test_apply_migrations_eh_idempotente(db):
    with connect(db) as c:
        c.execute("INSERT INTO transacoes_financeiras (user_id, valor) VALUES ('u1', 10)")
    apply_migrations(db)
    with connect(db) as c:
        assert fetch_dicts(c, "SELECT COUNT(*) AS n FROM transacoes_financeiras")[0]["n"] == 1


def test_connect_desfaz_em_caso_de_erro(db):
    with pytest.raises(RuntimeError):
        with connect(db) as c:
            c.execute("INSERT INTO transacoes_financeiras (user_id, valor) VALUES ('u1', 10)")
            raise RuntimeError("falha no meio")
    with connect(db) as c:
        assert fetch_dicts(c, "SELECT COUNT(*) AS n FROM transacoes_financeiras")[0]["n"] == 0
