from safra.domain.models import LancamentoProduto
from safra.infra.cache import CacheConsumo


class Relogio:
    def __init__(self):
        self.agora = 100.0

    def __call__(self):
        return self.agora


def _consumo(pid):
    return LancamentoProduto(produto_id=pid, quantidade=1.0, unidade="kg")


def test_chave_ignora_ordem_e_repeticao():
    assert CacheConsumo.chave([3, 1, 1, None]) == frozenset({1, 3})


def test_expira_depois_do_ttl():
    relogio = Relogio()
    cache = CacheConsumo(ttl=30, relogio=relogio)
    cache.guardar([1, 2], [_consumo(1)])

    relogio.agora += 30
    assert cache.obter([2, 1]) == [_consumo(1)]

    relogio.agora += 0.1
    assert cache.obter([1, 2]) is None
    assert len(cache) == 0


def test_obter_ou_carregar_chama_o_carregador_uma_vez():
    chamadas = []

    def carregar(ids):
        chamadas.append(ids)
        return [_consumo(i) for i in ids]

    cache = CacheConsumo(relogio=Relogio())
    a = cache.obter_ou_carregar([2, 1], carregar)
    b = cache.obter_ou_carregar({1, 2}, carregar)
    assert a == b
    assert chamadas == [[1, 2]]


def test_invalidar_limpa_tudo():
    cache = CacheConsumo(relogio=Relogio())
    cache.guardar([1], [])
    cache.guardar([2], [])
    cache.invalidar()
    assert len(cache) == 0
    assert cache.obter([1]) is None


def test_ttl_padrao():
    assert CacheConsumo().ttl == 30.0


def test_guardar_descarta_chaves_expiradas():
    relogio = Relogio()
    cache = CacheConsumo(ttl=30, relogio=relogio)
    cache.guardar([1], [_consumo(1)])
    relogio.agora += 10
    cache.guardar([1, 2], [_consumo(1), _consumo(2)])

    relogio.agora += 25
    cache.guardar([1, 2, 3], [])
    assert len(cache) == 2
    assert cache.obter([1]) is None
    assert cache.obter([1, 2]) == [_consumo(1), _consumo(2)]
