"""
Conversão de unidades de massa e volume.

Quantidades são convertidas usando uma unidade padrão como pivô
(miligrama para massa, mililitro para volume). Valores monetários por
unidade (preço por kg, por L, ...) convertem no sentido inverso das
quantidades: o preço por tonelada é mil vezes o preço por kg.

Todas as funções são puras e nunca levantam exceção: unidades
desconhecidas (ex.: ``"un"``) e conversões entre famílias diferentes
retornam o valor de entrada sem alteração.
"""

from __future__ import annotations

import math
import unicodedata
from typing import NamedTuple, Optional

from safra.config import DEFAULTS


class Quantidade(NamedTuple):
    quantidade: float
    unidade: str


MASS_TO_MG = {
    "ton": 1_000_000_000,
    "kg": 1_000_000,
    "g": 1_000,
    "mg": 1,
}

VOLUME_TO_ML = {
    "L": 1_000,
    "mL": 1,
}

# Variantes textuais comuns -> unidade canônica
UNIT_ALIASES = {
    # massa
    "t": "ton",
    "ton": "ton",
    "tonelada": "ton",
    "kg": "kg",
    "kilo": "kg",
    "kilograma": "kg",
    "quilo": "kg",
    "quilograma": "kg",
    "g": "g",
    "gr": "g",
    "grama": "g",
    "mg": "mg",
    "miligrama": "mg",
    # volume
    "l": "L",
    "lt": "L",
    "ltr": "L",
    "litro": "L",
    "ml": "mL",
    "mililitro": "mL",
    # outros
    "un": "un",
    "und": "un",
    "unid": "un",
    "unidade": "un",
    "pc": "un",
    "peca": "un",
}


def normalizar_unidade(raw: Optional[str]) -> str:
    """Mapeia a grafia informada pelo usuário para a unidade canônica.

    Exemplos: ``"Kg"`` → ``"kg"``, ``"litros"`` → ``"L"``, ``"unid."`` →
    ``"un"``. Texto não reconhecido volta limpo (minúsculo, sem acentos,
    pontos ou espaços); ``None`` vira ``""``.
    """
    if not raw or not isinstance(raw, str):
        return ""
    s = unicodedata.normalize("NFD", raw.strip().lower())
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = s.replace(".", "").replace(" ", "")
    if s in UNIT_ALIASES:
        return UNIT_ALIASES[s]
    if s.endswith("s") and s[:-1] in UNIT_ALIASES:
        return UNIT_ALIASES[s[:-1]]
    # heurísticas por substring para variações menos comuns
    if "mg" in s:
        return "mg"
    if "kg" in s or "kilo" in s or "quilo" in s:
        return "kg"
    if "ton" in s:
        return "ton"
    if "ml" in s:
        return "mL"
    if "litro" in s:
        return "L"
    if s.startswith(("un", "pc", "pe")):
        return "un"
    return s


def _canon(unidade: Optional[str]) -> str:
    return normalizar_unidade(unidade) or (unidade or "")


def eh_unidade_massa(unidade: Optional[str]) -> bool:
    return _canon(unidade) in MASS_TO_MG


def eh_unidade_volume(unidade: Optional[str]) -> bool:
    return _canon(unidade) in VOLUME_TO_ML


def eh_unidade_outra(unidade: Optional[str]) -> bool:
    return _canon(unidade) == "un"


def mesma_familia(a: Optional[str], b: Optional[str]) -> bool:
    """True se as duas unidades são de massa, ou ambas de volume."""
    return (eh_unidade_massa(a) and eh_unidade_massa(b)) or (
        eh_unidade_volume(a) and eh_unidade_volume(b)
    )


def _fator(unidade: str) -> Optional[float]:
    if unidade in MASS_TO_MG:
        return float(MASS_TO_MG[unidade])
    if unidade in VOLUME_TO_ML:
        return float(VOLUME_TO_ML[unidade])
    return None


def para_unidade_padrao(quantidade: float, unidade: Optional[str]) -> Quantidade:
    """Converte a quantidade para mg (massa) ou mL (volume).

    Outras unidades passam sem alteração; mg e mL são pontos fixos.
    """
    u = _canon(unidade)
    if u in MASS_TO_MG:
        return Quantidade(quantidade * MASS_TO_MG[u], "mg")
    if u in VOLUME_TO_ML:
        return Quantidade(quantidade * VOLUME_TO_ML[u], "mL")
    return Quantidade(quantidade, u)


def de_unidade_padrao(quantidade_padrao: float, unidade_padrao: Optional[str], unidade_desejada: Optional[str]) -> float:
    """Inverso de :func:`para_unidade_padrao`.

    Se ``unidade_padrao`` não corresponde à família da unidade desejada, a
    quantidade é devolvida sem alteração.
    """
    padrao = _canon(unidade_padrao)
    desejada = _canon(unidade_desejada)
    if padrao == "mg" and desejada in MASS_TO_MG:
        return quantidade_padrao / MASS_TO_MG[desejada]
    if padrao == "mL" and desejada in VOLUME_TO_ML:
        return quantidade_padrao / VOLUME_TO_ML[desejada]
    return quantidade_padrao


def _arredonda_exibicao(valor: float) -> float:
    return round(valor, 1 if abs(valor) >= 10 else 2)


def melhor_unidade_exibicao(quantidade_padrao: float, unidade_padrao: str) -> Quantidade:
    """Escolhe a unidade mais legível para uma quantidade em mg ou mL.

    Limiares: >= 1e9 mg → ton, >= 1e6 mg → kg, >= 1e3 mg → g, senão mg;
    >= 1e3 mL → L, senão mL. Arredonda para 1 casa decimal quando o valor
    escalado é >= 10, senão para 2 casas.
    """
    absq = abs(quantidade_padrao)
    padrao = _canon(unidade_padrao)
    if padrao == "mg":
        for unidade in ("ton", "kg", "g"):
            fator = MASS_TO_MG[unidade]
            if absq >= fator:
                return Quantidade(_arredonda_exibicao(quantidade_padrao / fator), unidade)
        return Quantidade(round(quantidade_padrao, 2), "mg")
    if padrao == "mL":
        if absq >= VOLUME_TO_ML["L"]:
            return Quantidade(_arredonda_exibicao(quantidade_padrao / VOLUME_TO_ML["L"]), "L")
        return Quantidade(round(quantidade_padrao, 2), "mL")
    return Quantidade(quantidade_padrao, unidade_padrao)


def auto_escalar_quantidade(quantidade, unidade: Optional[str]) -> Quantidade:
    """Converte para a unidade padrão e reescala para exibição.

    Entradas não numéricas, NaN ou infinitas resultam em quantidade zero.
    """
    if isinstance(quantidade, bool) or not isinstance(quantidade, (int, float)):
        return Quantidade(0.0, unidade or DEFAULTS.unidade_fallback)
    if math.isnan(quantidade) or math.isinf(quantidade):
        return Quantidade(0.0, unidade or DEFAULTS.unidade_fallback)
    if not unidade:
        return Quantidade(quantidade, DEFAULTS.unidade_fallback)
    padrao = para_unidade_padrao(quantidade, unidade)
    if padrao.unidade in ("mg", "mL"):
        return melhor_unidade_exibicao(padrao.quantidade, padrao.unidade)
    return Quantidade(quantidade, unidade)


def converter_entre_unidades(valor: float, de: Optional[str], para: Optional[str]) -> float:
    """Converte uma quantidade diretamente entre unidades da mesma família.

    Ex.: ``converter_entre_unidades(2, "ton", "kg") == 2000``. Mesma unidade
    ou famílias diferentes: retorna ``valor``.
    """
    origem = _canon(de)
    destino = _canon(para)
    if origem == destino or not mesma_familia(origem, destino):
        return valor
    return valor * (_fator(origem) / _fator(destino))


def converter_valor_entre_unidades(valor: float, de: Optional[str], para: Optional[str]) -> float:
    """Converte um valor por unidade (preço) entre unidades da mesma família.

    Sentido inverso ao da quantidade: R$ 2/kg equivale a R$ 2000/ton.
    """
    origem = _canon(de)
    destino = _canon(para)
    if origem == destino or not mesma_familia(origem, destino):
        return valor
    return valor * (_fator(destino) / _fator(origem))


def converter_valor_de_unidade_padrao(valor_por_unidade_padrao: float, unidade_original: Optional[str]) -> float:
    """Converte um valor por mg (ou mL) para valor por ``unidade_original``.

    Ex.: 0.001 por mg equivale a 1000 por kg.
    """
    if not unidade_original:
        return valor_por_unidade_padrao
    fator = _fator(_canon(unidade_original))
    if fator is None:
        return valor_por_unidade_padrao
    return valor_por_unidade_padrao * fator


def numero_br(valor: float, casas: int = 2) -> str:
    """1234.5 → "1.234,50" (ponto de milhar, vírgula decimal)."""
    txt = f"{valor:,.{casas}f}"
    return txt.replace(",", "_").replace(".", ",").replace("_", ".")


def formatar_quantidade(quantidade: float, unidade: str) -> str:
    """Formata como ``"1,50 kg"`` ou ``"1.234 kg"`` (inteiros sem casas decimais)."""
    casas = 0 if float(quantidade).is_integer() else 2
    return f"{numero_br(float(quantidade), casas)} {unidade}"


def formatar_quantidade_auto(quantidade, unidade: Optional[str]) -> str:
    escalada = auto_escalar_quantidade(quantidade, unidade)
    return formatar_quantidade(escalada.quantidade, escalada.unidade)
