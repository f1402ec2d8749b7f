# safra/adapters/xlsx_loader.py
"""
Loaders de planilhas XLSX de ESTOQUE e de TRANSAÇÕES financeiras.

Essas funções:
- leem planilhas XLSX usando pandas (engine openpyxl);
- normalizam cabeçalhos (acentos, variações, sinônimos);
- retornam listas de dicionários com as chaves esperadas pelos casos de uso.

Observações:
- Números aceitam formato pt-BR ("1.234,56").
- A coluna de quantidade pode trazer a unidade junto ("2,5 kg"); a
  coluna de unidade, se existir, tem precedência.
- Datas são normalizadas para ISO (YYYY-MM-DD) quando possível.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from safra.adapters.parsers import parse_numero_br, parse_quantidade_raw
from safra.domain.unidades import normalizar_unidade


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


def _safe_get(row, key):
    """Lê ``key`` da linha tratando NA/ausente como None e texto vazio como None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    if isinstance(val, str):
        val = val.strip()
        return val or None
    return val


def _texto(val: Any) -> Optional[str]:
    """Célula como texto; números inteiros perdem o ".0" do Excel."""
    if val is None:
        return None
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val)


def _to_date_iso(val: Any) -> Optional[str]:
    """Converte valor para data ISO (YYYY-MM-DD) se possível."""
    if val is None or pd.isna(val):
        return None
    if isinstance(val, pd.Timestamp):
        return val.date().isoformat()
    s = str(val).strip()
    if not s:
        return None
    # ISO primeiro: dayfirst inverteria "2024-03-05"
    for fmt in ("%Y-%m-%d", "%Y-%m-%d %H:%M:%S", "%d/%m/%Y", "%d-%m-%Y", "%d/%m/%y"):
        try:
            return datetime.strptime(s, fmt).date().isoformat()
        except ValueError:
            continue
    d = pd.to_datetime(s, dayfirst=True, errors="coerce")
    if pd.isna(d):
        return None
    return d.date().isoformat()


ESTOQUE_ALIASES = {
    "produto": "nome",
    "nome": "nome",
    "nome do produto": "nome",
    "descricao": "nome",

    "marca": "marca",
    "fabricante": "marca",
    "marca ou fabricante": "marca",

    "categoria": "categoria",
    "tipo": "categoria",

    "unidade": "unidade",
    "un": "unidade",
    "unidade de medida": "unidade",

    "quantidade": "quantidade",
    "qtde": "quantidade",
    "qtd": "quantidade",

    "valor total": "valor_total",
    "total": "valor_total",
    "valor unitario": "valor_unitario",
    "preco": "valor_unitario",
    "preco unitario": "valor_unitario",

    "lote": "lote",
    "validade": "validade",
    "data validade": "validade",
    "fornecedor": "fornecedor",
    "registro mapa": "registro_mapa",
    "mapa": "registro_mapa",
}

TRANSACOES_ALIASES = {
    "descricao": "descricao",
    "historico": "descricao",
    "categoria": "categoria",
    "valor": "valor",
    "status": "status",
    "situacao": "status",
    "data": "data_registro",
    "data registro": "data_registro",
    "data de registro": "data_registro",
    "data agendamento": "data_agendamento_pagamento",
    "data pagamento": "data_agendamento_pagamento",
    "data agendamento pagamento": "data_agendamento_pagamento",
    "vencimento": "data_agendamento_pagamento",
}


def _normalize_columns(df: pd.DataFrame, aliases: Dict[str, str]) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos; sem alias, mantém o slug."""
    return df.rename(columns={col: aliases.get(_slug(col), _slug(col)) for col in df.columns})


def _read_xlsx(path: str, aliases: Dict[str, str]) -> pd.DataFrame:
    # sem dtype: células numéricas chegam como número e não passam pelo parse pt-BR
    df = pd.read_excel(path, engine="openpyxl")
    return _normalize_columns(df, aliases)


# ---------------------------
# loaders públicos (XLSX)
# ---------------------------

def load_estoque_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de ENTRADAS de estoque.

    Campos de saída (chaves do dict por linha):
      - nome, marca, categoria, lote, fornecedor, registro_mapa: str | None
      - unidade: unidade canônica ("kg", "L", ...) ou None
      - quantidade: float | None
      - valor_total: float | None (calculado a partir do unitário se preciso)
      - validade: ISO date | None

    Linhas sem nome são descartadas.
    """
    df = _read_xlsx(path, ESTOQUE_ALIASES)
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        nome = _safe_get(row, "nome")
        if not nome:
            continue
        qtd, un_qtd, _ = parse_quantidade_raw(_safe_get(row, "quantidade"))
        unidade = normalizar_unidade(_safe_get(row, "unidade")) or un_qtd
        valor_total = parse_numero_br(_safe_get(row, "valor_total"))
        if valor_total is None and qtd is not None:
            unitario = parse_numero_br(_safe_get(row, "valor_unitario"))
            if unitario is not None:
                valor_total = unitario * qtd
        out.append({
            "nome": _texto(nome),
            "marca": _texto(_safe_get(row, "marca")),
            "categoria": _texto(_safe_get(row, "categoria")),
            "unidade": unidade,
            "quantidade": qtd,
            "valor_total": valor_total,
            "lote": _texto(_safe_get(row, "lote")),
            "validade": _to_date_iso(_safe_get(row, "validade")),
            "fornecedor": _texto(_safe_get(row, "fornecedor")),
            "registro_mapa": _texto(_safe_get(row, "registro_mapa")),
        })
    return out


def load_transacoes_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de transações financeiras.

    Valor positivo é receita e negativo é despesa. Linhas sem valor
    numérico são descartadas.
    """
    df = _read_xlsx(path, TRANSACOES_ALIASES)
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        valor = parse_numero_br(_safe_get(row, "valor"))
        if valor is None:
            continue
        out.append({
            "descricao": _texto(_safe_get(row, "descricao")),
            "categoria": _texto(_safe_get(row, "categoria")),
            "valor": valor,
            "status": _texto(_safe_get(row, "status")),
            "data_agendamento_pagamento": _to_date_iso(_safe_get(row, "data_agendamento_pagamento")),
            "data_registro": _to_date_iso(_safe_get(row, "data_registro")),
        })
    return out
