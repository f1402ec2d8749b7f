import sqlite3
from datetime import datetime
from unittest.mock import Mock

import pytest

from safra.domain.agrupamento import calcular_grupo
from safra.domain.models import MovimentacaoEstoque
from safra.domain.notificacoes import AlertaFalta, NotificacaoGenerica
from safra.infra.cache import CacheConsumo
from safra.infra.procedures import ProcedimentoError
from safra.infra.repositories import EstoqueRepo, LancamentoProdutoRepo, NotificacaoRepo, TransacaoRepo
from safra.usecases.ajustes import ajustar_deficit
from safra.usecases.custo_safra import custo_da_safra
from safra.usecases.financeiro import saldo_consolidado, saldo_periodo, totais_por_categoria
from safra.usecases.historico import listar_historico, registrar_historico
from safra.usecases.notificacoes import gerar_alertas, listar_notificacoes, marcar_lida
from safra.usecases.registrar_entrada import registrar_entrada
from safra.usecases.registrar_saida import remover_quantidade_fifo
from safra.usecases.verificar_estoque import carregar_grupos, obter_grupo, resumir

USER = "produtor-1"
AGORA = datetime(2024, 6, 15, 12, 0)


def _produto_em_deficit(db):
    registrar_entrada(USER, "Ureia", 50, "kg", valor_total=100, db_path=db)
    grupo = obter_grupo(USER, "Ureia", db)
    remover_quantidade_fifo(USER, grupo, 80, db_path=db)
    return obter_grupo(USER, "Ureia", db)


# -------------------------
# leituras
# -------------------------

def test_leituras_devolvem_vazio_quando_o_banco_falha(tmp_path):
    db = str(tmp_path / "sem_schema.sqlite")
    assert EstoqueRepo(db).listar(USER) == []
    assert carregar_grupos(USER, db) == []
    assert TransacaoRepo(db).listar(USER) == []
    assert listar_historico(USER, db_path=db) == []
    assert listar_notificacoes(USER, db_path=db) == []


def test_carregar_grupos_com_consumo_por_atividade(db):
    pid = registrar_entrada(USER, "Ureia", 50, "kg", db_path=db)
    registrar_entrada(USER, "Glifosato", 5, "L", db_path=db)
    LancamentoProdutoRepo(db).registrar_atividade(
        USER, "Adubação", "2024-06-01", [{"produto_id": pid, "quantidade": 5, "unidade": "kg"}]
    )

    cache = CacheConsumo()
    grupos = carregar_grupos(USER, db, cache)
    assert [g.nome for g in grupos] == ["Ureia", "Glifosato"]
    assert [c.nome_atividade for c in grupos[0].consumos] == ["Adubação"]
    assert grupos[1].consumos == []
    assert len(cache) == 1


def test_resumir(db):
    _produto_em_deficit(db)
    registrar_entrada(USER, "Glifosato", 5, "L", valor_total=50, db_path=db)
    resumo = resumir(carregar_grupos(USER, db))
    assert resumo.produtos == 2
    assert resumo.em_deficit == 1
    assert resumo.zerados == 0
    assert resumo.valor_total == pytest.approx(50)


# -------------------------
# entrada / saída
# -------------------------

def test_registrar_entrada_grava_historico_e_invalida_cache(db):
    cache = CacheConsumo()
    cache.guardar([1], [])
    pid = registrar_entrada(USER, "Ureia", 50, "kg", valor_total=100, db_path=db, cache=cache)
    assert len(cache) == 0

    (mov,) = listar_historico(USER, db_path=db)
    assert mov.produto_id == pid
    assert mov.tipo == "entrada"
    assert mov.valor_unitario == pytest.approx(2)


def test_entradas_de_nome_similar_ficam_no_historico_do_grupo(db):
    registrar_entrada(USER, "Ureia", 50, "Kg", db_path=db)
    segunda = registrar_entrada(USER, "Uréia", 20, "kgs", db_path=db)
    grupo = obter_grupo(USER, "Ureia", db)
    assert segunda != grupo.produto_id
    assert EstoqueRepo(db).obter(segunda).produto_id == grupo.produto_id
    assert EstoqueRepo(db).obter(9999) is None

    historico = listar_historico(USER, grupo.produto_id, db_path=db)
    assert sorted(m.quantidade for m in historico) == [20, 50]
    assert {m.unidade for m in historico} == {"kg"}
    assert {m.unidade_valor for m in historico} == {"kg"}


def test_remover_quantidade_fifo_monta_o_pedido(linha):
    grupo = calcular_grupo([linha(quantidade=10, valor_unitario=2, produto_id=7)])
    procedimentos = Mock()
    procedimentos.rpc.return_value = 99
    movimentacoes = Mock()

    saida_id = remover_quantidade_fifo(
        USER, grupo, 10, tipo="aplicacao", procedimentos=procedimentos, movimentacoes=movimentacoes,
    )

    assert saida_id == 99
    nome, params = procedimentos.rpc.call_args[0]
    assert nome == "registrar_saida"
    assert params["p_produto_id"] == 7
    assert params["p_unidade"] == "kg"
    assert params["p_valor_total"] == pytest.approx(20)
    assert params["p_tipo"] == "aplicacao"

    (mov,) = movimentacoes.inserir.call_args[0]
    assert mov.quantidade == pytest.approx(10_000_000)
    assert mov.unidade == "mg"


def test_remover_quantidade_fifo_tipo_invalido(linha):
    grupo = calcular_grupo([linha(quantidade=10, produto_id=7)])
    procedimentos = Mock()
    with pytest.raises(ValueError):
        remover_quantidade_fifo(USER, grupo, 1, tipo="entrada", procedimentos=procedimentos)
    procedimentos.rpc.assert_not_called()


def test_saida_pelo_banco_abate_fifo(db):
    registrar_entrada(USER, "Ureia", 50, "kg", db_path=db)
    registrar_entrada(USER, "Ureia", 30, "kg", db_path=db)
    grupo = obter_grupo(USER, "Ureia", db)
    remover_quantidade_fifo(USER, grupo, 60, db_path=db)

    entradas = EstoqueRepo(db).listar_entradas(USER)
    assert [e.quantidade for e in entradas] == [0, pytest.approx(20)]
    assert obter_grupo(USER, "Ureia", db).saldo == pytest.approx(20)


# -------------------------
# ajuste de déficit
# -------------------------

def test_ajustar_deficit_fim_a_fim(db):
    grupo = _produto_em_deficit(db)
    assert grupo.saldo == pytest.approx(-30)

    cache = CacheConsumo()
    cache.guardar([1], [])
    r = ajustar_deficit(USER, grupo, 40, 3, db_path=db, cache=cache)

    assert r["quantidade_deficit"] == pytest.approx(30)
    assert r["quantidade_disponivel"] == pytest.approx(10)
    assert len(cache) == 0
    assert obter_grupo(USER, "Ureia", db).saldo == pytest.approx(10)

    ajuste = listar_historico(USER, db_path=db)[-1]
    assert ajuste.tipo == "entrada"
    assert ajuste.quantidade == pytest.approx(40_000_000)
    assert ajuste.unidade == "mg"
    assert ajuste.valor_unitario == pytest.approx(3)
    assert ajuste.unidade_valor == "kg"
    assert ajuste.observacao == "Ajuste manual"


def test_ajustar_deficit_falha_do_procedimento_nao_grava_nada(linha):
    grupo = calcular_grupo([linha(quantidade=50, produto_id=1), linha(quantidade=80, tipo="saida")])
    procedimentos = Mock()
    procedimentos.rpc.side_effect = ProcedimentoError("falhou")
    movimentacoes = Mock()
    cache = Mock()

    with pytest.raises(ProcedimentoError):
        ajustar_deficit(USER, grupo, 40, 3, cache=cache, procedimentos=procedimentos, movimentacoes=movimentacoes)

    movimentacoes.inserir.assert_not_called()
    cache.invalidar.assert_not_called()


def test_ajustar_deficit_falha_do_historico_eh_engolida(linha):
    grupo = calcular_grupo([linha(quantidade=50, produto_id=1), linha(quantidade=80, tipo="saida")])
    esperado = {"entrada_id": 3, "quantidade_deficit": 30.0, "quantidade_disponivel": 10.0}
    procedimentos = Mock()
    procedimentos.rpc.return_value = esperado
    movimentacoes = Mock()
    movimentacoes.inserir.side_effect = sqlite3.OperationalError("disk I/O error")
    cache = Mock()

    r = ajustar_deficit(USER, grupo, 40, 3, cache=cache, procedimentos=procedimentos, movimentacoes=movimentacoes)

    assert r == esperado
    movimentacoes.inserir.assert_called_once()
    cache.invalidar.assert_called_once()


@pytest.mark.parametrize("quantidade,preco", [(0, 3), (-5, 3), (10, -1)])
def test_ajustar_deficit_valida_antes_de_gravar(linha, quantidade, preco):
    grupo = calcular_grupo([linha(quantidade=50, produto_id=1)])
    procedimentos = Mock()
    with pytest.raises(ValueError):
        ajustar_deficit(USER, grupo, quantidade, preco, procedimentos=procedimentos, movimentacoes=Mock())
    procedimentos.rpc.assert_not_called()


def test_ajustar_deficit_grupo_sem_produto():
    grupo = calcular_grupo([])
    procedimentos = Mock()
    with pytest.raises(ValueError):
        ajustar_deficit(USER, grupo, 5, 1, procedimentos=procedimentos, movimentacoes=Mock())
    procedimentos.rpc.assert_not_called()


def test_registrar_historico_engole_erro_do_banco():
    repo = Mock()
    repo.inserir.side_effect = sqlite3.OperationalError("database is locked")
    mov = MovimentacaoEstoque(produto_id=1, user_id=USER, tipo="saida", quantidade=1.0)
    assert registrar_historico(mov, repo) is None


# -------------------------
# financeiro / custos
# -------------------------

@pytest.fixture
def transacoes(db):
    TransacaoRepo(db).inserir_varios(USER, [
        {"valor": 1000, "status": "Pago", "data_registro": "2024-06-01", "categoria": "Receita"},
        {"valor": 500, "status": "Agendado", "data_agendamento_pagamento": "2024-06-18", "categoria": "Receita"},
        {"valor": -200, "status": "Agendado", "data_agendamento_pagamento": "2024-06-20", "categoria": "Fertilizantes"},
        {"valor": 300, "status": "Pago", "data_agendamento_pagamento": "2024-06-17", "categoria": "Receita"},
        {"valor": -50, "status": "Agendado", "data_agendamento_pagamento": "2024-07-10", "categoria": "Transporte"},
    ])
    TransacaoRepo(db).inserir_varios("outro-produtor", [{"valor": 99999, "status": "Pago"}])
    return db


def test_saldo_consolidado_pelo_banco(transacoes):
    c = saldo_consolidado(USER, agora=AGORA, db_path=transacoes)
    assert c.saldo_real == 1300
    assert c.saldo_projetado == 1550
    assert c.total_transacoes_futuras == 3


def test_saldo_periodo_pelo_banco(transacoes):
    s = saldo_periodo(USER, "proximos-7-dias", agora=AGORA, db_path=transacoes)
    assert (s.total_entradas, s.total_saidas) == (500, 200)


def test_totais_por_categoria(transacoes):
    assert totais_por_categoria(USER, transacoes) == [
        ("Receita", 1800.0),
        ("Fertilizantes", -200.0),
        ("Transporte", -50.0),
    ]


def test_data_de_registro_padrao_eh_hoje(db):
    TransacaoRepo(db).inserir_varios(USER, [{"valor": 10}])
    (t,) = TransacaoRepo(db).listar(USER)
    assert t.data_registro


def test_custo_da_safra(db):
    TransacaoRepo(db).inserir_varios(USER, [
        {"valor": -1000, "status": "Pago", "categoria": "Fertilizantes"},
        {"valor": -500, "status": "Agendado", "data_agendamento_pagamento": "2099-01-01", "categoria": "Fertilizantes"},
        {"valor": 8000, "status": "Pago", "categoria": "Receita"},
    ])

    linhas, totais = custo_da_safra(USER, "10", "20", db_path=db)
    fert = next(l for l in linhas if l.categoria == "Fertilizantes")
    assert fert.real_hectare == pytest.approx(150)
    assert fert.real_saca == pytest.approx(7.5)
    assert totais.real_hectare == pytest.approx(150)

    linhas, _ = custo_da_safra(USER, "10", "20", somente_realizadas=True, db_path=db)
    fert = next(l for l in linhas if l.categoria == "Fertilizantes")
    assert fert.valor == pytest.approx(1000)


# -------------------------
# notificações
# -------------------------

def test_gerar_e_ler_alertas(db):
    _produto_em_deficit(db)
    NotificacaoRepo(db).inserir(USER, "Chuva forte prevista para amanhã")

    ids = gerar_alertas(USER, db)
    assert len(ids) == 1

    notificacoes = listar_notificacoes(USER, db_path=db)
    assert len(notificacoes) == 2
    alerta = next(n for n in notificacoes if n.id == ids[0])
    assert alerta.notificacao == AlertaFalta("Ureia", 30.0, "kg", None)
    assert not alerta.lida
    outra = next(n for n in notificacoes if n.id != ids[0])
    assert isinstance(outra.notificacao, NotificacaoGenerica)

    assert marcar_lida(ids[0], USER, db)
    assert not marcar_lida(ids[0], "outro-produtor", db)
    assert [n.id for n in listar_notificacoes(USER, somente_nao_lidas=True, db_path=db)] == [outra.id]
