import json

import pytest

from safra.domain.agrupamento import calcular_grupo
from safra.domain.models import LancamentoProduto
from safra.domain.notificacoes import AlertaFalta, NotificacaoGenerica, alertas_de_falta, interpretar_payload


def test_payload_de_alerta():
    n = interpretar_payload({
        "tipo": "alerta_falta",
        "nome_produto": "Ureia",
        "quantidade": "30",
        "unidade": "kg",
        "atividade_id": "7",
    })
    assert n == AlertaFalta("Ureia", 30.0, "kg", 7)
    assert n.tipo == "alerta_falta"


def test_payload_em_json_com_outros_nomes_de_campo():
    n = interpretar_payload(json.dumps({"productName": "Glifosato", "qty": 2.5, "unit": "L"}))
    assert isinstance(n, AlertaFalta)
    assert n.nome_produto == "Glifosato"
    assert n.atividade_id is None


@pytest.mark.parametrize(
    "payload",
    [
        "texto solto",
        {"mensagem": "bom dia"},
        [1, 2, 3],
        {"tipo": "falta", "nome_produto": "Ureia", "quantidade": "muito"},
    ],
)
def test_payload_generico(payload):
    n = interpretar_payload(payload)
    assert isinstance(n, NotificacaoGenerica)
    assert n.tipo == "generica"


def test_alertas_de_falta(linha):
    deficit = calcular_grupo(
        [linha(quantidade=50), linha(quantidade=80, tipo="saida")],
        [LancamentoProduto(produto_id=1, quantidade=80, unidade="kg", atividade_id=3)],
    )
    ok = calcular_grupo([linha(nome="Glifosato", quantidade=5, unidade="L")])
    alertas = alertas_de_falta([deficit, ok])
    assert alertas == [AlertaFalta("Ureia", 30.0, "kg", 3)]
