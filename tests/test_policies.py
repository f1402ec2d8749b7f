import math

import pytest

from safra.domain.agrupamento import calcular_grupo
from safra.domain.policies import planejar_correcao, planejar_remocao, status_estoque


def test_correcao_abate_deficit_e_sobra_vira_estoque():
    c = planejar_correcao(saldo=-30, quantidade=40, valor_unitario=3, unidade="kg")
    assert c.quantidade_deficit == 30
    assert c.quantidade_disponivel == 10
    assert c.saldo_anterior == -30
    assert c.saldo_final == 10
    assert c.valor_total == 120
    assert c.unidade == "kg"


def test_correcao_menor_que_o_deficit():
    c = planejar_correcao(-30, 10, 2, "kg")
    assert c.quantidade_deficit == 10
    assert c.quantidade_disponivel == 0
    assert c.saldo_final == -20


def test_correcao_sem_deficit_credita_tudo():
    c = planejar_correcao(5, 10, 2, "L")
    assert c.quantidade_deficit == 0
    assert c.quantidade_disponivel == 10
    assert c.saldo_final == 15


def test_correcao_soma_das_partes_eh_a_quantidade():
    for saldo in (-100, -7.5, 0, 12):
        c = planejar_correcao(saldo, 9.25, 1, "kg")
        assert c.quantidade_deficit + c.quantidade_disponivel == pytest.approx(9.25)


@pytest.mark.parametrize("quantidade", [0, -1, "abc", None, math.nan, math.inf])
def test_correcao_quantidade_invalida(quantidade):
    with pytest.raises(ValueError):
        planejar_correcao(-10, quantidade, 1, "kg")


def test_correcao_preco_negativo():
    with pytest.raises(ValueError):
        planejar_correcao(-10, 5, -1, "kg")


def test_correcao_sem_preco_vale_zero():
    assert planejar_correcao(-10, 5, None, "kg").valor_unitario == 0.0


def test_planejar_remocao_usa_custo_medio(linha):
    grupo = calcular_grupo([linha(quantidade=10, valor_unitario=2, produto_id=5)])
    r = planejar_remocao(grupo, 4)
    assert r.produto_id == 5
    assert r.unidade == "kg"
    assert r.valor_total == pytest.approx(8)

    with pytest.raises(ValueError):
        planejar_remocao(grupo, 0)


@pytest.mark.parametrize(
    "saldo,esperado",
    [
        (-0.5, "DEFICIT"),
        (0, "ZERADO"),
        (3, "OK"),
        (None, "VERIFICAR"),
        ("x", "VERIFICAR"),
        (math.nan, "VERIFICAR"),
    ],
)
def test_status_estoque(saldo, esperado):
    assert status_estoque(saldo) == esperado
