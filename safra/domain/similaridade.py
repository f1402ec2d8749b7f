"""
Agrupamento aproximado de nomes de produtos.

Os nomes chegam em texto livre (digitados no WhatsApp), então o mesmo
insumo aparece como "Ureia", "URÉIA" ou "ureia ". A comparação usa duas
pistas:

- a *fórmula* numérica do produto (ex.: NPK ``20-05-20``, ``48%``):
  fórmulas diferentes nunca se agrupam;
- o *nome-base* (nome sem números), comparado pela distância de
  Levenshtein.

O agrupamento é guloso e de passada única: cada nome entra no primeiro
grupo existente cujo representante (primeiro nome visto) seja similar.
O resultado depende da ordem de entrada; use ``ordenar=True`` quando
for necessário um agrupamento determinístico.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar

from safra.config import DEFAULTS

T = TypeVar("T")

_NPK_RE = re.compile(r"\d+-\d+-\d+")
_PERCENT_RE = re.compile(r"\d+%")
_NUM_RE = re.compile(r"\d+")
_DASH_NUM_RE = re.compile(r"-?\d+(?:-\d+)*")


def normalizar_nome(nome: Any) -> str:
    """Minúsculas, sem acentos e com espaços colapsados."""
    if not nome or not isinstance(nome, str):
        return ""
    s = unicodedata.normalize("NFD", nome.lower())
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return re.sub(r"\s+", " ", s).strip()


def extrair_formula(nome: Any) -> str:
    """Extrai a fórmula numérica do nome do produto.

    Ordem de preferência: primeira trinca NPK (``10-10-10``); senão os
    percentuais concatenados (``48%``); senão os números concatenados;
    senão ``""``.
    """
    s = normalizar_nome(nome)
    if not s:
        return ""
    npk = _NPK_RE.search(s)
    if npk:
        return npk.group(0)
    percentuais = _PERCENT_RE.findall(s)
    if percentuais:
        return "".join(percentuais)
    return "".join(_NUM_RE.findall(s))


def extrair_nome_base(nome: Any) -> str:
    """Nome normalizado sem dígitos, sequências ``-número`` e ``%``."""
    s = normalizar_nome(nome)
    s = _DASH_NUM_RE.sub(" ", s)
    s = s.replace("%", " ")
    return re.sub(r"\s+", " ", s).strip()


def distancia_levenshtein(a: str, b: str) -> int:
    if not a:
        return len(b)
    if not b:
        return len(a)
    anterior = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        atual = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            custo = 0 if ca == cb else 1
            atual[j] = min(
                anterior[j] + 1,         # remoção
                atual[j - 1] + 1,        # inserção
                anterior[j - 1] + custo, # substituição
            )
        anterior = atual
    return anterior[len(b)]


def similaridade(a: str, b: str) -> float:
    """``1 - distancia / max(len(a), len(b))``; 1.0 para duas strings vazias."""
    maior = max(len(a), len(b))
    if maior == 0:
        return 1.0
    return 1.0 - distancia_levenshtein(a, b) / maior


def sao_similares(nome1: Any, nome2: Any) -> bool:
    """Decide se dois nomes de produto representam o mesmo insumo.

    Regras, em ordem:
        1. Nome vazio (após normalização) nunca é similar a nada.
        2. Nomes normalizados iguais são similares.
        3. Se ambos têm fórmula e as fórmulas diferem, não são similares,
           mesmo com o mesmo nome-base ("NPK 10-10-10" x "NPK 20-20-20").
        4. Com nome-base vazio em algum dos lados, compara os nomes
           completos (>= 90%); senão compara os nomes-base (>= 85%).
    """
    norm1 = normalizar_nome(nome1)
    norm2 = normalizar_nome(nome2)
    if not norm1 or not norm2:
        return False
    if norm1 == norm2:
        return True

    formula1 = extrair_formula(norm1)
    formula2 = extrair_formula(norm2)
    if formula1 and formula2 and formula1 != formula2:
        return False

    base1 = extrair_nome_base(norm1)
    base2 = extrair_nome_base(norm2)
    if not base1 or not base2:
        return similaridade(norm1, norm2) >= DEFAULTS.limiar_nome_completo
    return similaridade(base1, base2) >= DEFAULTS.limiar_nome_base


def _chave_ordenacao(nome: Callable[[Any], Any]) -> Callable[[Any], Any]:
    def chave(item):
        ident = getattr(item, "id", None)
        if ident is None and isinstance(item, dict):
            ident = item.get("id")
        return (normalizar_nome(nome(item)), ident if ident is not None else 0)
    return chave


def agrupar_por_nome(
    itens: Sequence[T],
    nome: Callable[[T], Optional[str]] = lambda item: item,
    ordenar: bool = False,
) -> List[Tuple[str, List[T]]]:
    """Agrupa itens por similaridade de nome (guloso, O(n·g)).

    Args:
        itens: Itens a agrupar, na ordem em que devem ser considerados.
        nome: Função que extrai o nome de cada item.
        ordenar: Se True, ordena antes por (nome normalizado, id), tornando
            o resultado independente da ordem de entrada.

    Returns:
        Lista de pares ``(nome do representante, itens)`` na ordem de
        criação dos grupos. Itens com nome vazio formam grupos unitários.
    """
    sequencia = sorted(itens, key=_chave_ordenacao(nome)) if ordenar else list(itens)
    grupos: List[Tuple[str, List[T]]] = []
    for item in sequencia:
        n = nome(item)
        if not normalizar_nome(n):
            grupos.append((n or "", [item]))
            continue
        for chave, membros in grupos:
            if sao_similares(n, chave):
                membros.append(item)
                break
        else:
            grupos.append((n, [item]))
    return grupos
