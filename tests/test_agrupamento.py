import pytest

from safra.domain.agrupamento import agrupar_produtos, buscar_grupo, calcular_grupo
from safra.domain.models import LancamentoProduto


def test_media_ponderada_das_entradas(linha):
    g = calcular_grupo([
        linha(quantidade=10, valor_unitario=2),
        linha(quantidade=20, valor_unitario=5),
    ])
    assert g.total_entradas == pytest.approx(30)
    assert g.media_preco == pytest.approx(4)
    assert g.saldo == pytest.approx(30)
    assert g.unidade_referencia == "kg"


def test_unidades_mistas_convertidas_para_a_referencia(linha):
    g = calcular_grupo([
        linha(quantidade=1, unidade="ton", valor_unitario=2000, unidade_valor_original="ton"),
        linha(quantidade=500, unidade="kg", valor_unitario=2.5, unidade_valor_original="kg"),
    ])
    assert g.unidade_referencia == "ton"
    assert g.total_entradas == pytest.approx(1.5)
    assert g.media_preco == pytest.approx(3250 / 1.5)


def test_saldo_negativo_eh_deficit(linha):
    g = calcular_grupo([
        linha(quantidade=50),
        linha(quantidade=80, tipo="saida"),
    ])
    assert g.saldo == pytest.approx(-30)
    assert g.em_deficit
    assert g.valor_em_estoque == 0.0


def test_saida_em_outra_unidade(linha):
    g = calcular_grupo([
        linha(quantidade=2, unidade="kg", valor_unitario=10),
        linha(quantidade=500, unidade="g", tipo="aplicacao"),
    ])
    assert g.total_saidas == pytest.approx(0.5)
    assert g.saldo == pytest.approx(1.5)
    assert g.valor_em_estoque == pytest.approx(15)


def test_quantidade_inicial_prevalece_sobre_restante(linha):
    # lote já consumido pelo FIFO: restante 0, inicial 50
    g = calcular_grupo([
        linha(quantidade=0, quantidade_inicial=50),
        linha(quantidade=50, tipo="saida"),
    ])
    assert g.saldo == 0


def test_preco_derivado_do_valor_total(linha):
    g = calcular_grupo([linha(quantidade=10, valor_total=30)])
    assert g.media_preco == pytest.approx(3)


def test_linha_sem_tipo_conta_como_entrada(linha):
    g = calcular_grupo([linha(quantidade=7, tipo=None)])
    assert len(g.entradas) == 1
    assert g.saldo == 7


def test_produto_id_e_nome_do_grupo(linha):
    g = calcular_grupo([
        linha(nome="Ureia", quantidade=1, produto_id=99),
        linha(nome="ureia", quantidade=1),
        linha(nome="ureia", quantidade=1),
    ])
    assert g.produto_id == 99
    assert g.nome == "ureia"

    sem_id = calcular_grupo([linha(quantidade=1)])
    assert sem_id.produto_id == sem_id.entradas[0].id


def test_detalhamento_por_fornecedor(linha):
    g = calcular_grupo([
        linha(quantidade=10, valor_unitario=2, fornecedor="Agro Sul", marca="X"),
        linha(quantidade=5, valor_unitario=2, fornecedor="Agro Sul", marca="X"),
        linha(quantidade=3, valor_unitario=4),
    ])
    assert g.marcas == ["X", None]
    assert [f.fornecedor for f in g.fornecedores] == ["Agro Sul", "Desconhecido"]
    agro = g.fornecedores[0]
    assert agro.quantidade == pytest.approx(15)
    assert len(agro.ids) == 2


def test_consumos_filtrados_pelo_grupo(linha):
    a = linha(quantidade=10)
    consumos = [
        LancamentoProduto(produto_id=a.id, quantidade=2, unidade="kg", atividade_id=1),
        LancamentoProduto(produto_id=12345, quantidade=1, unidade="kg", atividade_id=2),
    ]
    g = calcular_grupo([a], consumos)
    assert [c.atividade_id for c in g.consumos] == [1]


def test_saldo_exibicao_autoescalado(linha):
    g = calcular_grupo([linha(quantidade=1500, unidade="g")])
    assert g.saldo_exibicao == "1,50 kg"
    assert g.saldo_padrao == (pytest.approx(1_500_000), "mg")


def test_agrupar_produtos(linha):
    linhas = [
        linha(nome="Ureia", quantidade=50),
        linha(nome="Glifosato", quantidade=10, unidade="L"),
        linha(nome="URÉIA", quantidade=30, tipo="saida"),
    ]
    grupos = agrupar_produtos(linhas)
    assert [g.nome for g in grupos] == ["Ureia", "Glifosato"]
    assert grupos[0].saldo == pytest.approx(20)
    assert agrupar_produtos([]) == []


def test_buscar_grupo(linha):
    grupos = agrupar_produtos([
        linha(nome="Ureia", quantidade=1),
        linha(nome="Glifosato", quantidade=1),
    ])
    assert buscar_grupo(grupos, "UREIA").nome == "Ureia"
    assert buscar_grupo(grupos, "Glifosfato").nome == "Glifosato"
    assert buscar_grupo(grupos, "Potássio") is None


@pytest.mark.parametrize("saida,saldo", [(30, 70), (120, -20)])
def test_saldo_liquido(linha, saida, saldo):
    g = calcular_grupo([linha(quantidade=100), linha(quantidade=saida, tipo="saida")])
    assert g.saldo == pytest.approx(saldo)
