import pytest

from safra.domain.similaridade import (
    agrupar_por_nome,
    distancia_levenshtein,
    extrair_formula,
    extrair_nome_base,
    normalizar_nome,
    sao_similares,
    similaridade,
)


def test_normalizar_nome():
    assert normalizar_nome("  URÉIA   Agrícola ") == "ureia agricola"
    assert normalizar_nome(None) == ""
    assert normalizar_nome(42) == ""


@pytest.mark.parametrize(
    "nome,esperado",
    [
        ("NPK 20-05-20", "20-05-20"),
        ("Ureia 45%", "45%"),
        ("Produto 10 20", "1020"),
        ("Ureia", ""),
        ("", ""),
    ],
)
def test_extrair_formula(nome, esperado):
    assert extrair_formula(nome) == esperado


def test_extrair_nome_base():
    assert extrair_nome_base("NPK 20-05-20") == "npk"
    assert extrair_nome_base("Ureia 45%") == "ureia"
    assert extrair_nome_base("20-05-20") == ""


def test_levenshtein_e_similaridade():
    assert distancia_levenshtein("kitten", "sitting") == 3
    assert distancia_levenshtein("", "abc") == 3
    assert similaridade("", "") == 1.0
    assert similaridade("glifosato", "glifosfato") == pytest.approx(0.9)


@pytest.mark.parametrize(
    "a,b,esperado",
    [
        ("Ureia", "URÉIA ", True),
        ("Glifosato", "Glifosfato", True),
        ("NPK 10-10-10", "NPK 20-20-20", False),
        ("Ureia", "Potássio", False),
        ("", "Ureia", False),
        (None, None, False),
        ("20-05-20", "NPK 20-05-20", False),
    ],
)
def test_sao_similares(a, b, esperado):
    assert sao_similares(a, b) is esperado


def test_sao_similares_eh_simetrico():
    pares = [("Glifosato", "Glifosfato"), ("NPK 10-10-10", "NPK 20-20-20"), ("Ureia", "ureia 45%")]
    for a, b in pares:
        assert sao_similares(a, b) == sao_similares(b, a)


def test_agrupar_por_nome_guloso():
    nomes = ["Ureia", "Glifosato", "URÉIA", "Glifosfato", "NPK 10-10-10", "NPK 20-20-20"]
    grupos = agrupar_por_nome(nomes)
    assert [chave for chave, _ in grupos] == ["Ureia", "Glifosato", "NPK 10-10-10", "NPK 20-20-20"]
    assert grupos[0][1] == ["Ureia", "URÉIA"]
    assert grupos[1][1] == ["Glifosato", "Glifosfato"]


def test_agrupar_por_nome_vazios_ficam_sozinhos():
    grupos = agrupar_por_nome(["", None, "Ureia"])
    assert len(grupos) == 3


def test_agrupar_por_nome_ordenado_independe_da_entrada():
    nomes = ["Ureia", "Glifosato", "URÉIA", "Glifosfato", "NPK 10-10-10"]

    def membros(grupos):
        return sorted(sorted(normalizar_nome(m) for m in ms) for _, ms in grupos)

    a = agrupar_por_nome(nomes, ordenar=True)
    b = agrupar_por_nome(list(reversed(nomes)), ordenar=True)
    assert membros(a) == membros(b)


def test_agrupar_por_nome_com_extrator():
    itens = [{"id": 2, "n": "Ureia"}, {"id": 1, "n": "ureia"}]
    grupos = agrupar_por_nome(itens, nome=lambda i: i["n"], ordenar=True)
    assert len(grupos) == 1
    assert [i["id"] for i in grupos[0][1]] == [1, 2]


def test_nomes_sem_relacao_nao_agrupam():
    assert not sao_similares("Roundup", "Gesso Agrícola")
    assert sao_similares("Ureia", "Uréia")
