# safra/config.py
"""
Configurações globais e valores padrão do Zé da Safra.
"""

import os
from dataclasses import dataclass
from pathlib import Path


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("SAFRA_DB") or os.path.join(os.getcwd(), "safra.db")

# Diretório de logs (na pasta do pacote, salvo override)
LOGS_DIR = Path(os.environ.get("SAFRA_LOGS_DIR") or Path(__file__).parent / "logs")

# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = os.environ.get("SAFRA_LOG", "").strip().lower() in {"1", "true", "sim", "yes"}


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    cache_ttl_segundos: float = 30.0     # validade do cache de consumo por atividade
    limiar_nome_base: float = 0.85       # similaridade mínima entre nomes-base
    limiar_nome_completo: float = 0.90   # similaridade mínima quando não há nome-base
    unidade_fallback: str = "un"
    fornecedor_desconhecido: str = "Desconhecido"
    observacao_ajuste: str = "Ajuste manual"
    categoria_receita: str = "Receita"


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
