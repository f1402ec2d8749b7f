"""
Saldos financeiros por período.

Cada transação é *realizada* ou *futura*:

- futura: status ``Agendado`` e data de pagamento estritamente depois
  de hoje;
- realizada: todo o resto (inclusive ``Agendado`` com data de hoje, no
  passado ou sem data).

A classificação é função pura de (status, data agendada, data atual) e
nunca altera a transação. Os saldos de período usam só transações
futuras nos filtros "próximos N dias" e só realizadas nos demais; o
saldo atual exibido é sempre o saldo realizado global.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from safra.domain.models import STATUS_AGENDADO, TransacaoFinanceira

DataLike = Union[str, date, datetime, None]

INICIO_HISTORICO = datetime(2020, 1, 1)
FIM_HISTORICO = datetime(2030, 12, 31, 23, 59, 59, 999999)


class EstadoTransacao(str, Enum):
    REALIZADA = "realizada"
    FUTURA = "futura"


class FiltroPeriodo(str, Enum):
    ULTIMOS_7_DIAS = "ultimos-7-dias"
    ULTIMOS_30_DIAS = "ultimos-30-dias"
    MES_ATUAL = "mes-atual"
    SAFRA_ATUAL = "safra-atual"
    PROXIMOS_7_DIAS = "proximos-7-dias"
    PROXIMOS_30_DIAS = "proximos-30-dias"
    PERSONALIZADO = "personalizado"
    TODOS = "todos"


FILTROS_SO_FUTURO = (FiltroPeriodo.PROXIMOS_7_DIAS, FiltroPeriodo.PROXIMOS_30_DIAS)
FILTROS_COM_IMPACTO = (FiltroPeriodo.TODOS, FiltroPeriodo.SAFRA_ATUAL, FiltroPeriodo.MES_ATUAL)


@dataclass(frozen=True)
class Periodo:
    inicio: datetime
    fim: datetime
    inclui_futuro: bool


@dataclass
class SaldoPeriodo:
    total_entradas: float = 0.0
    total_saidas: float = 0.0
    saldo_real: float = 0.0
    transacoes_realizadas: int = 0
    transacoes_futuras: int = 0
    saldo_projetado: Optional[float] = None
    impacto_futuro_7_dias: Optional[float] = None
    impacto_futuro_30_dias: Optional[float] = None


@dataclass
class SaldoConsolidado:
    saldo_real: float = 0.0
    saldo_projetado: float = 0.0
    impacto_futuro_7_dias: float = 0.0
    impacto_futuro_30_dias: float = 0.0
    total_transacoes_reais: int = 0
    total_transacoes_futuras: int = 0


# -------------------------
# datas
# -------------------------

def parse_data(valor: DataLike) -> Optional[datetime]:
    """Converte texto ISO, ``date`` ou ``datetime`` em ``datetime`` sem fuso."""
    if valor is None:
        return None
    if isinstance(valor, datetime):
        return valor.replace(tzinfo=None)
    if isinstance(valor, date):
        return datetime.combine(valor, time.min)
    s = str(valor).strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s).replace(tzinfo=None)
    except ValueError:
        return None


def inicio_do_dia(d: datetime) -> datetime:
    return datetime.combine(d.date(), time.min)


def fim_do_dia(d: datetime) -> datetime:
    return datetime.combine(d.date(), time.max)


def _hoje(agora: Optional[DataLike]) -> datetime:
    return parse_data(agora) or datetime.now()


# -------------------------
# classificação
# -------------------------

def classificar_transacao(t: TransacaoFinanceira, hoje: Optional[DataLike] = None) -> EstadoTransacao:
    """Classifica a transação em realizada ou futura em relação a ``hoje``."""
    if t.status != STATUS_AGENDADO:
        return EstadoTransacao.REALIZADA
    agendada = parse_data(t.data_agendamento_pagamento)
    if agendada is None:
        return EstadoTransacao.REALIZADA
    if agendada.date() <= _hoje(hoje).date():
        return EstadoTransacao.REALIZADA
    return EstadoTransacao.FUTURA


def eh_realizada(t: TransacaoFinanceira, hoje: Optional[DataLike] = None) -> bool:
    return classificar_transacao(t, hoje) is EstadoTransacao.REALIZADA


def eh_futura(t: TransacaoFinanceira, hoje: Optional[DataLike] = None) -> bool:
    return classificar_transacao(t, hoje) is EstadoTransacao.FUTURA


def data_da_transacao(t: TransacaoFinanceira) -> Optional[datetime]:
    return parse_data(t.data_agendamento_pagamento) or parse_data(t.data_registro)


def _no_intervalo(t: TransacaoFinanceira, inicio: datetime, fim: datetime) -> bool:
    d = data_da_transacao(t)
    return d is not None and inicio <= d <= fim


# -------------------------
# períodos
# -------------------------

def get_period_dates(
    filtro: Union[FiltroPeriodo, str],
    inicio: DataLike = None,
    fim: DataLike = None,
    agora: DataLike = None,
) -> Periodo:
    """Converte um filtro de período na janela ``[inicio, fim]``.

    ``inclui_futuro`` indica se a janela pode conter datas futuras (e,
    portanto, se faz sentido exibir saldo projetado). Filtro desconhecido
    é tratado como ``todos``.
    """
    hoje = _hoje(agora)
    try:
        filtro = FiltroPeriodo(filtro)
    except ValueError:
        filtro = FiltroPeriodo.TODOS

    if filtro is FiltroPeriodo.ULTIMOS_7_DIAS:
        return Periodo(inicio_do_dia(hoje - timedelta(days=7)), fim_do_dia(hoje), False)
    if filtro is FiltroPeriodo.ULTIMOS_30_DIAS:
        return Periodo(inicio_do_dia(hoje - timedelta(days=30)), fim_do_dia(hoje), False)
    if filtro is FiltroPeriodo.MES_ATUAL:
        primeiro = hoje.replace(day=1)
        proximo_mes = (primeiro + timedelta(days=32)).replace(day=1)
        return Periodo(inicio_do_dia(primeiro), fim_do_dia(proximo_mes - timedelta(days=1)), True)
    if filtro is FiltroPeriodo.SAFRA_ATUAL:
        # safra do café: maio a abril
        ano = hoje.year if hoje.month >= 5 else hoje.year - 1
        return Periodo(datetime(ano, 5, 1), fim_do_dia(datetime(ano + 1, 4, 30)), True)
    if filtro is FiltroPeriodo.PROXIMOS_7_DIAS:
        return Periodo(inicio_do_dia(hoje), fim_do_dia(hoje + timedelta(days=7)), True)
    if filtro is FiltroPeriodo.PROXIMOS_30_DIAS:
        return Periodo(inicio_do_dia(hoje), fim_do_dia(hoje + timedelta(days=30)), True)
    if filtro is FiltroPeriodo.PERSONALIZADO:
        ini = parse_data(inicio)
        fim_dt = parse_data(fim)
        return Periodo(
            inicio_do_dia(ini) if ini else INICIO_HISTORICO,
            fim_do_dia(fim_dt) if fim_dt else fim_do_dia(hoje),
            (fim_dt or hoje).date() > hoje.date(),
        )
    return Periodo(INICIO_HISTORICO, FIM_HISTORICO, True)


# -------------------------
# somatórios
# -------------------------

def calcular_entradas(transacoes: Iterable[TransacaoFinanceira]) -> float:
    return sum(float(t.valor) for t in transacoes if float(t.valor or 0) > 0)


def calcular_saidas(transacoes: Iterable[TransacaoFinanceira]) -> float:
    return sum(abs(float(t.valor)) for t in transacoes if float(t.valor or 0) < 0)


def calcular_saldo(transacoes: Iterable[TransacaoFinanceira]) -> float:
    return sum(float(t.valor or 0) for t in transacoes)


def soma_ate_hoje(transacoes: Iterable[TransacaoFinanceira], agora: DataLike = None) -> float:
    """Saldo realizado global (o "Saldo Atual" do painel)."""
    hoje = _hoje(agora)
    return calcular_saldo(t for t in transacoes if eh_realizada(t, hoje))


def _impacto(futuras: List[TransacaoFinanceira], hoje: datetime, dias: int) -> float:
    janela = [t for t in futuras if _no_intervalo(t, hoje, fim_do_dia(hoje + timedelta(days=dias)))]
    return calcular_entradas(janela) - calcular_saidas(janela)


def calcular_saldo_periodo(
    transacoes: Iterable[TransacaoFinanceira],
    filtro: Union[FiltroPeriodo, str],
    inicio: DataLike = None,
    fim: DataLike = None,
    agora: DataLike = None,
) -> SaldoPeriodo:
    """Calcula entradas, saídas e projeções para o período escolhido."""
    transacoes = list(transacoes)
    if not transacoes:
        return SaldoPeriodo()
    hoje = _hoje(agora)
    periodo = get_period_dates(filtro, inicio, fim, hoje)
    try:
        filtro = FiltroPeriodo(filtro)
    except ValueError:
        filtro = FiltroPeriodo.TODOS

    no_periodo = [t for t in transacoes if _no_intervalo(t, periodo.inicio, periodo.fim)]
    realizadas = [t for t in no_periodo if eh_realizada(t, hoje)]
    futuras = [t for t in no_periodo if eh_futura(t, hoje)]

    base = futuras if filtro in FILTROS_SO_FUTURO else realizadas
    saldo_global = soma_ate_hoje(transacoes, hoje)

    resultado = SaldoPeriodo(
        total_entradas=calcular_entradas(base),
        total_saidas=calcular_saidas(base),
        saldo_real=saldo_global,
        transacoes_realizadas=len(realizadas),
        transacoes_futuras=len(futuras),
    )

    if periodo.inclui_futuro:
        resultado.saldo_projetado = saldo_global + calcular_saldo(futuras)
        if filtro in FILTROS_COM_IMPACTO:
            todas_futuras = [t for t in transacoes if eh_futura(t, hoje)]
            resultado.impacto_futuro_7_dias = saldo_global + _impacto(todas_futuras, hoje, 7)
            resultado.impacto_futuro_30_dias = saldo_global + _impacto(todas_futuras, hoje, 30)

    return resultado


def calcular_saldo_consolidado(
    transacoes: Iterable[TransacaoFinanceira],
    agora: DataLike = None,
) -> SaldoConsolidado:
    """Saldo realizado, projetado e impacto das transações dos próximos 7/30 dias."""
    transacoes = list(transacoes)
    if not transacoes:
        return SaldoConsolidado()
    hoje = _hoje(agora)
    reais = [t for t in transacoes if eh_realizada(t, hoje)]
    futuras = [t for t in transacoes if eh_futura(t, hoje)]
    saldo_real = calcular_saldo(reais)
    return SaldoConsolidado(
        saldo_real=saldo_real,
        saldo_projetado=saldo_real + calcular_saldo(futuras),
        impacto_futuro_7_dias=_impacto(futuras, hoje, 7),
        impacto_futuro_30_dias=_impacto(futuras, hoje, 30),
        total_transacoes_reais=len(reais),
        total_transacoes_futuras=len(futuras),
    )


def resumo_por_categoria(transacoes: Iterable[TransacaoFinanceira]) -> List[Tuple[str, float]]:
    """Soma os valores (com sinal) por categoria, na ordem de aparição."""
    totais: "OrderedDict[str, float]" = OrderedDict()
    for t in transacoes:
        cat = t.categoria or "Sem categoria"
        totais[cat] = totais.get(cat, 0.0) + float(t.valor or 0)
    return list(totais.items())
