"""
Custos de produção: gasto real x referência CONAB.

A tabela de referência traz, para cada discriminação de despesa, o custo
por hectare e por saca de café publicado pela CONAB. Os gastos reais do
produtor (agrupados por categoria) são divididos pela área cultivada e
pela produtividade esperada para permitir a comparação lado a lado.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from safra.config import DEFAULTS
from safra.domain.models import CustoConabItem


SECAO_CUSTEIO = "DESPESAS DO CUSTEIO"
SECAO_OUTRAS = "OUTRAS DESPESAS"
SECAO_FIXOS = "OUTROS CUSTOS FIXOS"

CUSTO_CONAB_DATA: Tuple[CustoConabItem, ...] = (
    # I - DESPESAS DO CUSTEIO
    CustoConabItem("Máquinas e Equipamentos", 146.08, 5.2172, 0.67, 0.55),
    CustoConabItem("Irrigação", 0.0, 0.0, 0.0, 0.0),
    CustoConabItem("Aluguel de Máquinas", 962.50, 34.3750, 4.39, 3.65),
    CustoConabItem("Mão de obra", 11211.01, 400.3932, 51.08, 42.51),
    CustoConabItem("Gestão/Administração", 169.44, 6.0514, 0.77, 0.64),
    CustoConabItem("Sementes e mudas", 0.0, 0.0, 0.0, 0.0),
    CustoConabItem("Fertilizantes", 4945.69, 176.6318, 22.54, 18.75),
    CustoConabItem("Defensivos Agrícolas", 1381.83, 49.3511, 6.30, 5.24),
    CustoConabItem("Receita", 0.0, 0.0, 0.0, 0.0),
    CustoConabItem("Outros", 0.0, 0.0, 0.0, 0.0),
    CustoConabItem("Embalagens", 0.0, 0.0, 0.0, 0.0),
    CustoConabItem("Análise de Solo", 22.50, 0.8036, 0.10, 0.09),
    CustoConabItem("Despesas Gerais", 0.0, 0.0, 0.0, 0.0),
    CustoConabItem("Serviços Diversos", 0.0, 0.0, 0.0, 0.0),
    # II - OUTRAS DESPESAS
    CustoConabItem("Transporte", 84.00, 3.0000, 0.38, 0.32),
    CustoConabItem("Despesas administrativas", 565.17, 20.1846, 2.58, 2.14),
    CustoConabItem("Despesas de armazenagem", 48.73, 1.7404, 0.22, 0.18),
    CustoConabItem("Beneficiamento", 546.00, 19.5000, 2.49, 2.07),
    CustoConabItem("Seguro", 0.0, 0.0, 0.0, 0.0),
    CustoConabItem("Assistência Técnica", 0.0, 0.0, 0.0, 0.0),
    CustoConabItem("Classificação", 0.0, 0.0, 0.0, 0.0),
    # V - OUTROS CUSTOS FIXOS
    CustoConabItem("Manutenção e Instalações", 330.00, 11.7857, 1.50, 1.25),
    CustoConabItem("Encargos Sociais", 77.25, 2.7589, 0.35, 0.29),
    CustoConabItem("Arrendamento", 1130.87, 40.3883, 5.15, 4.29),
)

# fatias da tabela por seção
_SECOES = (
    (SECAO_CUSTEIO, 0, 14),
    (SECAO_OUTRAS, 14, 21),
    (SECAO_FIXOS, 21, 24),
)


@dataclass(frozen=True)
class LinhaCusto:
    categoria: str
    valor: float
    real_hectare: float
    real_saca: float
    referencia_hectare: float
    referencia_saca: float


@dataclass(frozen=True)
class TotaisCusto:
    real_hectare: float
    real_saca: float
    referencia_hectare: float
    referencia_saca: float


def _sem_acento(texto: str) -> str:
    s = unicodedata.normalize("NFD", texto)
    return "".join(ch for ch in s if not unicodedata.combining(ch))


def chave_pt_br(texto: str) -> Tuple[str, str]:
    """Chave de ordenação alfabética no estilo pt-BR (ignora acento e caixa)."""
    return (_sem_acento(texto).casefold(), texto)


def para_numero(x) -> float:
    """Converte número ou texto pt-BR ("1.234,5") em float; inválido vira 0."""
    if isinstance(x, bool):
        return 0.0
    if isinstance(x, (int, float)):
        return float(x)
    if isinstance(x, str):
        s = x.strip()
        if "," in s:
            s = s.replace(".", "").replace(",", ".")
        try:
            return float(s)
        except ValueError:
            return 0.0
    return 0.0


# -------------------------
# Tabela de referência
# -------------------------

def listar_custos() -> List[CustoConabItem]:
    return list(CUSTO_CONAB_DATA)


def custos_por_hectare() -> Dict[str, float]:
    return {item.discriminacao: item.custo_por_ha for item in CUSTO_CONAB_DATA}


def custos_por_saca() -> Dict[str, float]:
    return {item.discriminacao: item.custo_por_saca for item in CUSTO_CONAB_DATA}


def custo_por_discriminacao(discriminacao: str) -> Optional[CustoConabItem]:
    alvo = (discriminacao or "").lower()
    for item in CUSTO_CONAB_DATA:
        if item.discriminacao.lower() == alvo:
            return item
    return None


def custos_agrupados() -> Dict[str, List[CustoConabItem]]:
    return {secao: list(CUSTO_CONAB_DATA[ini:fim]) for secao, ini, fim in _SECOES}


def totais_por_secao() -> Dict[str, Dict[str, float]]:
    out: Dict[str, Dict[str, float]] = {}
    for secao, itens in custos_agrupados().items():
        out[secao] = {
            "custo_por_ha": round(sum(i.custo_por_ha for i in itens), 4),
            "custo_por_saca": round(sum(i.custo_por_saca for i in itens), 4),
        }
    return out


def custo_total() -> Dict[str, float]:
    return {
        "custo_por_ha": round(sum(i.custo_por_ha for i in CUSTO_CONAB_DATA), 4),
        "custo_por_saca": round(sum(i.custo_por_saca for i in CUSTO_CONAB_DATA), 4),
    }


def buscar_custos(termo: str) -> List[CustoConabItem]:
    t = (termo or "").lower()
    return [i for i in CUSTO_CONAB_DATA if t in i.discriminacao.lower()]


def custos_com_valor() -> List[CustoConabItem]:
    return [i for i in CUSTO_CONAB_DATA if i.custo_por_ha > 0 or i.custo_por_saca > 0]


# -------------------------
# Comparação real x referência
# -------------------------

def comparar_custos(
    gastos: Iterable[Tuple[Optional[str], float]],
    area_cultivada,
    produtividade,
) -> List[LinhaCusto]:
    """Compara os gastos reais com a tabela CONAB.

    Args:
        gastos: Pares ``(categoria, valor)``. A categoria "Receita" é
            ignorada e os valores entram em módulo.
        area_cultivada: Área em hectares (número ou texto pt-BR).
        produtividade: Sacas por hectare (número ou texto pt-BR).

    Returns:
        Uma linha por item da tabela de referência (mesmo sem gasto),
        em ordem alfabética.
    """
    area = para_numero(area_cultivada)
    prod = para_numero(produtividade)

    agrupado: Dict[str, float] = {}
    for categoria, valor in gastos:
        categoria = categoria or "Sem categoria"
        if categoria == DEFAULTS.categoria_receita:
            continue
        agrupado[categoria] = agrupado.get(categoria, 0.0) + abs(para_numero(valor))

    linhas = []
    for item in CUSTO_CONAB_DATA:
        valor = agrupado.get(item.discriminacao, 0.0)
        real_ha = valor / area if area > 0 else 0.0
        real_saca = real_ha / prod if prod > 0 else 0.0
        linhas.append(
            LinhaCusto(
                categoria=item.discriminacao,
                valor=valor,
                real_hectare=real_ha,
                real_saca=real_saca,
                referencia_hectare=item.custo_por_ha,
                referencia_saca=item.custo_por_saca,
            )
        )
    return sorted(linhas, key=lambda l: chave_pt_br(l.categoria))


def totalizar(linhas: Iterable[LinhaCusto]) -> TotaisCusto:
    linhas = list(linhas)
    return TotaisCusto(
        real_hectare=sum(l.real_hectare for l in linhas),
        real_saca=sum(l.real_saca for l in linhas),
        referencia_hectare=sum(l.referencia_hectare for l in linhas),
        referencia_saca=sum(l.referencia_saca for l in linhas),
    )
