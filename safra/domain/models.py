"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios leem linhas do SQLite como dicionários e os convertem
  com ``from_row``; chaves ausentes viram ``None``.
- ``ProdutoAgrupado`` é derivado (nunca persistido): é recalculado a
  cada leitura a partir do conjunto completo de linhas do estoque.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from safra.domain.unidades import Quantidade, auto_escalar_quantidade, formatar_quantidade, para_unidade_padrao

TIPO_ENTRADA = "entrada"
TIPO_SAIDA = "saida"
TIPO_APLICACAO = "aplicacao"
TIPOS_SAIDA = (TIPO_SAIDA, TIPO_APLICACAO)

STATUS_AGENDADO = "Agendado"


def _from_row(cls, row: Dict[str, Any]):
    nomes = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in dict(row).items() if k in nomes})


@dataclass
class ProdutoEstoque:
    """Uma movimentação física (entrada, saída ou aplicação) de um lote."""
    id: int
    user_id: str
    nome_produto: str
    marca: Optional[str] = None
    categoria: Optional[str] = None
    unidade: Optional[str] = None
    quantidade: float = 0.0                    # restante no lote (entradas) / movimentado (saídas)
    quantidade_inicial: Optional[float] = None # como informado, na unidade da linha
    valor_unitario: Optional[float] = None
    unidade_valor_original: Optional[str] = None
    valor_total: Optional[float] = None
    tipo_movimentacao: Optional[str] = None    # 'entrada' | 'saida' | 'aplicacao' | None (legado)
    lote: Optional[str] = None
    validade: Optional[str] = None
    fornecedor: Optional[str] = None
    registro_mapa: Optional[str] = None
    created_at: Optional[str] = None
    entrada_referencia_id: Optional[int] = None
    produto_id: Optional[int] = None

    from_row = classmethod(_from_row)

    @property
    def eh_entrada(self) -> bool:
        return not self.tipo_movimentacao or self.tipo_movimentacao == TIPO_ENTRADA

    @property
    def eh_saida(self) -> bool:
        return self.tipo_movimentacao in TIPOS_SAIDA


@dataclass
class LancamentoProduto:
    """Consumo de um lote por uma atividade agrícola (somente leitura)."""
    produto_id: int
    quantidade: float
    unidade: Optional[str] = None
    atividade_id: Optional[int] = None
    nome_atividade: Optional[str] = None
    data_atividade: Optional[str] = None

    from_row = classmethod(_from_row)


@dataclass
class FornecedorResumo:
    fornecedor: str
    valor: Optional[float]
    quantidade: float = 0.0
    registro_mapa: Optional[str] = None
    ids: List[int] = field(default_factory=list)


@dataclass
class ProdutoAgrupado:
    """Grupo de linhas do estoque que representam o mesmo produto."""
    nome: str
    entradas: List[ProdutoEstoque]
    saidas: List[ProdutoEstoque]
    unidade_referencia: str
    total_entradas: float
    total_saidas: float
    saldo: float
    media_preco: float
    produto_id: Optional[int] = None
    marcas: List[Optional[str]] = field(default_factory=list)
    categorias: List[Optional[str]] = field(default_factory=list)
    unidades: List[Optional[str]] = field(default_factory=list)
    lotes: List[Optional[str]] = field(default_factory=list)
    validades: List[Optional[str]] = field(default_factory=list)
    fornecedores: List[FornecedorResumo] = field(default_factory=list)
    consumos: List[LancamentoProduto] = field(default_factory=list)

    @property
    def produtos(self) -> List[ProdutoEstoque]:
        return sorted(self.entradas + self.saidas, key=lambda p: (p.created_at or "", p.id))

    @property
    def unidade_valor_original(self) -> str:
        return self.unidade_referencia

    @property
    def em_deficit(self) -> bool:
        return self.saldo < 0

    @property
    def saldo_padrao(self) -> Quantidade:
        return para_unidade_padrao(self.saldo, self.unidade_referencia)

    @property
    def saldo_exibicao(self) -> str:
        escalado = auto_escalar_quantidade(self.saldo, self.unidade_referencia)
        return formatar_quantidade(escalado.quantidade, escalado.unidade)

    @property
    def valor_em_estoque(self) -> float:
        return max(self.saldo, 0.0) * self.media_preco


@dataclass
class MovimentacaoEstoque:
    """Registro de histórico de uma movimentação (auditoria)."""
    produto_id: int
    user_id: str
    tipo: str
    quantidade: float
    unidade: Optional[str] = None
    valor_unitario: Optional[float] = None
    unidade_valor: Optional[str] = None
    observacao: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[str] = None

    from_row = classmethod(_from_row)


@dataclass
class TransacaoFinanceira:
    """Lançamento financeiro: valor > 0 é receita, < 0 é despesa."""
    id: int
    user_id: str
    valor: float
    status: Optional[str] = None
    data_agendamento_pagamento: Optional[str] = None
    data_registro: Optional[str] = None
    descricao: Optional[str] = None
    categoria: Optional[str] = None

    from_row = classmethod(_from_row)


@dataclass(frozen=True)
class CustoConabItem:
    """Custo de referência CONAB para uma discriminação de despesa."""
    discriminacao: str
    custo_por_ha: float
    custo_por_saca: float
    participacao_cv: float
    participacao_ct: float
