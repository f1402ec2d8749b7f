import math

import pytest

from safra.domain.unidades import (
    Quantidade,
    auto_escalar_quantidade,
    converter_entre_unidades,
    converter_valor_de_unidade_padrao,
    converter_valor_entre_unidades,
    de_unidade_padrao,
    eh_unidade_massa,
    eh_unidade_outra,
    eh_unidade_volume,
    formatar_quantidade,
    formatar_quantidade_auto,
    melhor_unidade_exibicao,
    mesma_familia,
    normalizar_unidade,
    para_unidade_padrao,
)


@pytest.mark.parametrize("unidade", ["mg", "g", "kg", "ton", "mL", "L"])
def test_ida_e_volta_pela_unidade_padrao(unidade):
    padrao = para_unidade_padrao(2.5, unidade)
    assert de_unidade_padrao(padrao.quantidade, padrao.unidade, unidade) == pytest.approx(2.5)


@pytest.mark.parametrize(
    "qtd,de,para,esperado",
    [
        (2, "ton", "kg", 2000),
        (500, "g", "kg", 0.5),
        (1, "L", "mL", 1000),
        (250, "mL", "L", 0.25),
        (3, "kg", "kg", 3),
        (3, "kg", "L", 3),      # famílias diferentes: sem conversão
        (7, "un", "kg", 7),
    ],
)
def test_converter_entre_unidades(qtd, de, para, esperado):
    assert converter_entre_unidades(qtd, de, para) == pytest.approx(esperado)


def test_converter_entre_unidades_bate_com_o_pivo():
    via_pivo = de_unidade_padrao(para_unidade_padrao(1.2, "ton").quantidade, "mg", "g")
    assert converter_entre_unidades(1.2, "ton", "g") == pytest.approx(via_pivo)


def test_preco_converte_no_sentido_inverso_da_quantidade():
    # R$ 2/kg == R$ 2000/ton
    assert converter_valor_entre_unidades(2, "kg", "ton") == pytest.approx(2000)
    assert converter_valor_entre_unidades(2000, "ton", "kg") == pytest.approx(2)
    assert converter_valor_entre_unidades(5, "L", "mL") == pytest.approx(0.005)
    assert converter_valor_entre_unidades(5, "kg", "L") == 5


def test_converter_valor_de_unidade_padrao():
    assert converter_valor_de_unidade_padrao(0.001, "kg") == pytest.approx(1000)
    assert converter_valor_de_unidade_padrao(0.001, None) == 0.001
    assert converter_valor_de_unidade_padrao(0.5, "un") == 0.5


@pytest.mark.parametrize(
    "raw,esperado",
    [
        ("Kg", "kg"),
        ("kgs", "kg"),
        ("KG ", "kg"),
        ("litros", "L"),
        ("Lt", "L"),
        ("ml", "mL"),
        ("gr", "g"),
        ("unid.", "un"),
        ("Toneladas", "ton"),
        (None, ""),
        ("", ""),
    ],
)
def test_normalizar_unidade(raw, esperado):
    assert normalizar_unidade(raw) == esperado


def test_mesma_familia():
    assert mesma_familia("kg", "ton")
    assert mesma_familia("L", "mL")
    assert not mesma_familia("kg", "L")
    assert not mesma_familia("un", "un")


@pytest.mark.parametrize(
    "unidade,massa,volume,outra",
    [
        ("Kg", True, False, False),
        ("litros", False, True, False),
        ("unid.", False, False, True),
        ("caixa", False, False, False),
    ],
)
def test_familia_da_unidade(unidade, massa, volume, outra):
    assert eh_unidade_massa(unidade) is massa
    assert eh_unidade_volume(unidade) is volume
    assert eh_unidade_outra(unidade) is outra


def test_para_unidade_padrao_outras_unidades_passam():
    assert para_unidade_padrao(3, "un") == Quantidade(3, "un")
    assert para_unidade_padrao(3, "mg") == Quantidade(3, "mg")


@pytest.mark.parametrize(
    "qtd_padrao,unidade,esperado",
    [
        (2_500_000_000, "mg", Quantidade(2.5, "ton")),
        (12_345_000, "mg", Quantidade(12.3, "kg")),
        (1_500, "mg", Quantidade(1.5, "g")),
        (500, "mg", Quantidade(500, "mg")),
        (2_500, "mL", Quantidade(2.5, "L")),
        (500, "mL", Quantidade(500, "mL")),
    ],
)
def test_melhor_unidade_exibicao(qtd_padrao, unidade, esperado):
    assert melhor_unidade_exibicao(qtd_padrao, unidade) == esperado


def test_auto_escalar_quantidade():
    assert auto_escalar_quantidade(1500, "g") == Quantidade(1.5, "kg")
    assert auto_escalar_quantidade(5, None) == Quantidade(5, "un")
    assert auto_escalar_quantidade(4, "un") == Quantidade(4, "un")


@pytest.mark.parametrize("valor", [float("nan"), float("inf"), "abc", None])
def test_auto_escalar_quantidade_invalida_vira_zero(valor):
    q = auto_escalar_quantidade(valor, "kg")
    assert q.quantidade == 0.0
    assert q.unidade == "kg"
    assert not math.isnan(q.quantidade)


def test_formatar_quantidade():
    assert formatar_quantidade(10, "L") == "10 L"
    assert formatar_quantidade(1.5, "kg") == "1,50 kg"
    assert formatar_quantidade(1234.5, "kg") == "1.234,50 kg"
    assert formatar_quantidade(25000, "L") == "25.000 L"
    assert formatar_quantidade_auto(2500, "g") == "2,50 kg"
