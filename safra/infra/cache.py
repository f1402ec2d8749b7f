# safra/infra/cache.py
"""
Cache em memória do consumo por atividade.

A consulta de ``lancamento_produtos`` é a mais cara da tela de estoque e
o resultado muda pouco, então guardamos o último resultado por conjunto
de lotes durante alguns segundos. Qualquer escrita no estoque deve
chamar ``invalidar()``.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from safra.config import DEFAULTS
from safra.domain.models import LancamentoProduto


Chave = FrozenSet[int]


class CacheConsumo:
    def __init__(self, ttl: Optional[float] = None, relogio: Callable[[], float] = time.monotonic):
        self.ttl = DEFAULTS.cache_ttl_segundos if ttl is None else float(ttl)
        self._relogio = relogio
        self._dados: Dict[Chave, Tuple[float, List[LancamentoProduto]]] = {}

    @staticmethod
    def chave(ids: Iterable[int]) -> Chave:
        return frozenset(int(i) for i in ids if i is not None)

    def obter(self, ids: Iterable[int]) -> Optional[List[LancamentoProduto]]:
        """Retorna a lista guardada para ``ids`` ou ``None`` se ausente/expirada."""
        k = self.chave(ids)
        item = self._dados.get(k)
        if item is None:
            return None
        gravado_em, valor = item
        if self._relogio() - gravado_em > self.ttl:
            del self._dados[k]
            return None
        return list(valor)

    def guardar(self, ids: Iterable[int], valor: Iterable[LancamentoProduto]) -> None:
        agora = self._relogio()
        # chaves mudam a cada lote novo; as expiradas não voltam a ser lidas
        for k in [k for k, (gravado_em, _) in self._dados.items() if agora - gravado_em > self.ttl]:
            del self._dados[k]
        self._dados[self.chave(ids)] = (agora, list(valor))

    def obter_ou_carregar(
        self,
        ids: Iterable[int],
        carregar: Callable[[List[int]], List[LancamentoProduto]],
    ) -> List[LancamentoProduto]:
        ids = sorted(self.chave(ids))
        valor = self.obter(ids)
        if valor is None:
            valor = list(carregar(ids))
            self.guardar(ids, valor)
        return valor

    def invalidar(self) -> None:
        self._dados.clear()

    def __len__(self) -> int:
        return len(self._dados)
