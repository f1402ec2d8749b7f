# safra/usecases/notificacoes.py
"""
Notificações do produtor: leitura das gravadas pelo bot e geração de
alertas de falta a partir do estoque atual.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import List, Optional

from safra.config import DB_PATH
from safra.domain.notificacoes import AlertaFalta, Notificacao, alertas_de_falta, interpretar_payload
from safra.infra.cache import CacheConsumo
from safra.infra.logger import log_system_event
from safra.infra.repositories import NotificacaoRepo
from safra.usecases.verificar_estoque import carregar_grupos


@dataclass
class NotificacaoRegistrada:
    id: int
    notificacao: Notificacao
    lida: bool
    created_at: Optional[str] = None


def listar_notificacoes(
    user_id: str,
    somente_nao_lidas: bool = False,
    db_path: str = DB_PATH,
) -> List[NotificacaoRegistrada]:
    """Notificações do usuário, mais recentes primeiro, já interpretadas."""
    rows = NotificacaoRepo(db_path).listar(user_id, somente_nao_lidas)
    return [
        NotificacaoRegistrada(
            id=r["id"],
            notificacao=interpretar_payload(r.get("payload")),
            lida=bool(r.get("lida")),
            created_at=r.get("created_at"),
        )
        for r in rows
    ]


def marcar_lida(notificacao_id: int, user_id: str, db_path: str = DB_PATH) -> bool:
    return NotificacaoRepo(db_path).marcar_lida(notificacao_id, user_id) > 0


def alertas_atuais(
    user_id: str,
    db_path: str = DB_PATH,
    cache: Optional[CacheConsumo] = None,
) -> List[AlertaFalta]:
    return alertas_de_falta(carregar_grupos(user_id, db_path, cache))


def gerar_alertas(
    user_id: str,
    db_path: str = DB_PATH,
    cache: Optional[CacheConsumo] = None,
) -> List[int]:
    """Grava um alerta de falta para cada produto em déficit."""
    repo = NotificacaoRepo(db_path)
    ids = [repo.inserir(user_id, asdict(a)) for a in alertas_atuais(user_id, db_path, cache)]
    log_system_event("alertas_gerados", {"user_id": user_id, "quantidade": len(ids)})
    return ids
