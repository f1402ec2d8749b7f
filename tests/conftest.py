from pathlib import Path

import pytest

from safra.domain.models import ProdutoEstoque
from safra.infra.migrations import apply_migrations


@pytest.fixture
def db(tmp_path: Path) -> str:
    """Banco SQLite temporário já migrado."""
    path = tmp_path / "safra_test.sqlite"
    apply_migrations(str(path))
    return str(path)


@pytest.fixture
def linha():
    """Fábrica de linhas do estoque com defaults razoáveis."""
    contador = {"id": 0}

    def _linha(nome="Ureia", quantidade=0.0, unidade="kg", tipo="entrada", **kwargs):
        contador["id"] += 1
        dados = {
            "id": contador["id"],
            "user_id": "produtor-1",
            "nome_produto": nome,
            "unidade": unidade,
            "quantidade": quantidade,
            "tipo_movimentacao": tipo,
            "created_at": f"2024-01-{contador['id']:02d}T08:00:00",
        }
        dados.update(kwargs)
        return ProdutoEstoque(**dados)

    return _linha
