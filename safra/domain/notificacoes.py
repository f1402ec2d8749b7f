"""
Notificações do produtor.

O payload gravado pelo bot é JSON livre. Aqui ele é interpretado uma única
vez em um dos tipos conhecidos, em vez de ser sondado campo a campo por
quem exibe:

- ``AlertaFalta``: uma atividade usou mais produto do que havia em estoque;
- ``NotificacaoGenerica``: qualquer outro conteúdo, preservado em ``raw``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from safra.domain.models import ProdutoAgrupado

TIPO_ALERTA_FALTA = "alerta_falta"


@dataclass(frozen=True)
class AlertaFalta:
    nome_produto: str
    quantidade: float
    unidade: str
    atividade_id: Optional[int] = None
    tipo: str = field(default=TIPO_ALERTA_FALTA, init=False)


@dataclass(frozen=True)
class NotificacaoGenerica:
    raw: Any
    tipo: str = field(default="generica", init=False)


Notificacao = Union[AlertaFalta, NotificacaoGenerica]


def _primeiro(d: Dict[str, Any], *chaves: str) -> Any:
    for c in chaves:
        if d.get(c) is not None:
            return d[c]
    return None


def interpretar_payload(payload: Any) -> Notificacao:
    """Converte o payload (dict ou texto JSON) no tipo de notificação."""
    dados = payload
    if isinstance(payload, (str, bytes)):
        try:
            dados = json.loads(payload)
        except ValueError:
            return NotificacaoGenerica(raw=payload)
    if not isinstance(dados, dict):
        return NotificacaoGenerica(raw=payload)

    tipo = str(dados.get("tipo") or dados.get("type") or "").lower()
    nome = _primeiro(dados, "nome_produto", "produto", "productName")
    quantidade = _primeiro(dados, "quantidade", "quantidade_faltante", "qty")
    if tipo in (TIPO_ALERTA_FALTA, "falta", "estoque_insuficiente") or (nome and quantidade is not None):
        try:
            qtd = float(quantidade)
        except (TypeError, ValueError):
            return NotificacaoGenerica(raw=dados)
        atividade = _primeiro(dados, "atividade_id", "activityId", "lancamento_id")
        try:
            atividade = int(atividade) if atividade is not None else None
        except (TypeError, ValueError):
            atividade = None
        return AlertaFalta(
            nome_produto=str(nome or ""),
            quantidade=qtd,
            unidade=str(_primeiro(dados, "unidade", "unit") or ""),
            atividade_id=atividade,
        )
    return NotificacaoGenerica(raw=dados)


def alertas_de_falta(grupos: Iterable[ProdutoAgrupado]) -> List[AlertaFalta]:
    """Um alerta por grupo em déficit, com a quantidade faltante."""
    alertas = []
    for g in grupos:
        if not g.em_deficit:
            continue
        atividade = g.consumos[-1].atividade_id if g.consumos else None
        alertas.append(AlertaFalta(g.nome, -g.saldo, g.unidade_referencia, atividade))
    return alertas
