"""
Utilidades de parsing e formatação no padrão brasileiro.

- ``parse_numero_br``: "1.234,56" → 1234.56
- ``parse_quantidade_raw``: "2,5 kg" → (2.5, "kg", None)
- ``formatar_moeda``: 1234.56 → "R$ 1.234,56"
- ``formatar_numero``: 1234.5 → "1.234,50"
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional, Tuple

from safra.domain.unidades import normalizar_unidade, numero_br

_MILHAR_RE = re.compile(r"^[-+]?\d{1,3}(\.\d{3})+$")
_QTD_RE = re.compile(r"^\s*([-+]?\d[\d.,]*)\s*(.*)$")


def parse_numero_br(valor: Any) -> Optional[float]:
    """Converte texto numérico pt-BR (ou número) em float.

    Aceita prefixo "R$", separador de milhar com ponto e decimal com
    vírgula. Sem vírgula, "1.234" é lido como milhar e "2.5" como
    decimal. Texto inválido, vazio ou NaN devolve ``None``.
    """
    if valor is None or isinstance(valor, bool):
        return None
    if isinstance(valor, (int, float)):
        f = float(valor)
        return None if math.isnan(f) else f
    s = str(valor).strip().replace("R$", "").replace(" ", "").replace(" ", "")
    if not s:
        return None
    if "," in s:
        s = s.replace(".", "").replace(",", ".")
    elif _MILHAR_RE.match(s):
        s = s.replace(".", "")
    try:
        f = float(s)
    except ValueError:
        return None
    return None if math.isnan(f) else f


def parse_quantidade_raw(txt: Any) -> Tuple[Optional[float], Optional[str], Optional[str]]:
    """Interpreta uma quantidade com unidade.

    O texto segue o padrão "<valor> <unidade> - <descrição>", com número
    em formato pt-BR e unidade em qualquer grafia conhecida.

    Exemplos:
        "2,5 kg"            → (2.5, "kg", None)
        "10 Litros"         → (10.0, "L", None)
        "1.000 g - adubo"   → (1000.0, "g", "adubo")

    Returns:
        Tupla (numero, unidade, descricao); o que não puder ser
        determinado vem como ``None``.
    """
    if txt is None:
        return None, None, None
    if isinstance(txt, (int, float)) and not isinstance(txt, bool):
        return parse_numero_br(txt), None, None
    s = str(txt).strip()
    if not s:
        return None, None, None

    head, desc = s, None
    if " - " in s:
        head, desc = s.split(" - ", 1)
        desc = desc.strip() or None

    m = _QTD_RE.match(head)
    if not m:
        return None, None, desc
    num = parse_numero_br(m.group(1))
    unidade = normalizar_unidade(m.group(2)) or None
    return num, unidade, desc


def formatar_numero(valor: Any, casas: int = 2) -> str:
    """Número com vírgula decimal e ponto de milhar; inválido vira "0"."""
    f = parse_numero_br(valor)
    if f is None or math.isinf(f):
        f = 0.0
    return numero_br(f, casas)


def formatar_moeda(valor: Any) -> str:
    """Valor em reais: 1234.56 → "R$ 1.234,56"; negativo → "-R$ 1.234,56"."""
    f = parse_numero_br(valor) or 0.0
    sinal = "-" if f < 0 else ""
    return f"{sinal}R$ {formatar_numero(abs(f), 2)}"
