"""
Políticas de ajuste e utilidades para o estoque.

Este módulo contém as regras puras que decidem *o que* deve ser gravado
quando o produtor corrige um déficit ou retira produto do estoque. A
gravação em si (procedimentos no banco, histórico, cache) fica na camada
de casos de uso, de modo que estas contas podem ser testadas sem banco.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from safra.domain.models import ProdutoAgrupado


@dataclass(frozen=True)
class CorrecaoEstoque:
    """Resultado do planejamento de uma entrada corretiva."""
    quantidade: float            # total informado pelo produtor
    quantidade_deficit: float    # parte usada para zerar o déficit
    quantidade_disponivel: float # sobra creditada como estoque novo
    saldo_anterior: float
    saldo_final: float
    valor_unitario: float
    unidade: str

    @property
    def valor_total(self) -> float:
        return self.quantidade * self.valor_unitario


@dataclass(frozen=True)
class RemocaoEstoque:
    """Pedido agregado de retirada (FIFO) de um grupo."""
    produto_id: Optional[int]
    quantidade: float
    unidade: str
    valor_unitario: float

    @property
    def valor_total(self) -> float:
        return self.quantidade * self.valor_unitario


def _valida_quantidade(quantidade) -> float:
    try:
        q = float(quantidade)
    except (TypeError, ValueError):
        raise ValueError("quantidade deve ser numérica")
    if math.isnan(q) or math.isinf(q) or q <= 0:
        raise ValueError("quantidade deve ser maior que zero")
    return q


def planejar_correcao(
    saldo: float,
    quantidade: float,
    valor_unitario: float,
    unidade: str,
) -> CorrecaoEstoque:
    """Distribui uma entrada corretiva entre o déficit e o estoque novo.

    A quantidade abate primeiro o déficit (saldo negativo); o que sobrar
    vira estoque disponível ao mesmo preço unitário.

    Args:
        saldo: Saldo atual do grupo, na unidade de referência.
        quantidade: Quantidade informada, na mesma unidade.
        valor_unitario: Preço por unidade de referência.
        unidade: Unidade de referência do grupo.

    Returns:
        ``CorrecaoEstoque`` com a divisão calculada.

    Raises:
        ValueError: quantidade não positiva ou preço negativo.
    """
    q = _valida_quantidade(quantidade)
    preco = float(valor_unitario or 0.0)
    if preco < 0:
        raise ValueError("valor_unitario não pode ser negativo")
    deficit = max(0.0, -float(saldo))
    abatido = min(q, deficit)
    return CorrecaoEstoque(
        quantidade=q,
        quantidade_deficit=abatido,
        quantidade_disponivel=q - abatido,
        saldo_anterior=float(saldo),
        saldo_final=float(saldo) + q,
        valor_unitario=preco,
        unidade=unidade,
    )


def planejar_remocao(grupo: ProdutoAgrupado, quantidade: float) -> RemocaoEstoque:
    """Monta o pedido de saída de ``quantidade`` (na unidade de referência).

    O valor total usa o custo médio ponderado do grupo. A retirada pode
    deixar o saldo negativo; quem decide abater os lotes mais antigos é o
    procedimento de saída.
    """
    q = _valida_quantidade(quantidade)
    return RemocaoEstoque(
        produto_id=grupo.produto_id,
        quantidade=q,
        unidade=grupo.unidade_referencia,
        valor_unitario=grupo.media_preco,
    )


def status_estoque(saldo: Optional[float]) -> str:
    """Classifica o saldo de um grupo.

    Regras:
        - ``None`` ou não numérico → ``'VERIFICAR'``
        - ``saldo < 0`` → ``'DEFICIT'``
        - ``saldo == 0`` → ``'ZERADO'``
        - ``saldo > 0`` → ``'OK'``
    """
    try:
        s = float(saldo) if saldo is not None else None
    except (TypeError, ValueError):
        return "VERIFICAR"
    if s is None or math.isnan(s):
        return "VERIFICAR"
    if s < 0:
        return "DEFICIT"
    if s == 0:
        return "ZERADO"
    return "OK"
