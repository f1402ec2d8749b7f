# safra/infra/logger.py
"""
Sistema de logging das operações do painel.

Um logger por assunto (transações, estoque, financeiro, banco e sistema),
cada um gravando em seu próprio arquivo dentro de ``LOGS_DIR``. Os
arquivos só são criados na primeira mensagem efetivamente emitida e os
helpers não fazem nada enquanto ``ENABLE_LOGGING`` estiver desligado.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from safra import config


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOG_FILES = {
    "transactions": "transactions.log",
    "estoque": "estoque.log",
    "financeiro": "financeiro.log",
    "database": "database.log",
    "system": "system.log",
}


def _logging_ativo() -> bool:
    return config.ENABLE_LOGGING


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        handler = logger.handlers[0]
        logger.removeHandler(handler)
        handler.close()

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # delay=True: o arquivo só é aberto no primeiro registro
    file_handler = logging.FileHandler(log_path, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)
    return logger


_loggers: Dict[str, logging.Logger] = {}


def get_logger(tipo: str) -> logging.Logger:
    """Logger do assunto ``tipo`` (uma das chaves de ``LOG_FILES``)."""
    if tipo not in _loggers:
        _loggers[tipo] = setup_logger(
            f"safra.{tipo}", str(Path(config.LOGS_DIR) / LOG_FILES[tipo])
        )
    return _loggers[tipo]


def reset_loggers() -> None:
    """Descarta os loggers configurados (ex.: após trocar ``LOGS_DIR``)."""
    for logger in _loggers.values():
        while logger.handlers:
            handler = logger.handlers[0]
            logger.removeHandler(handler)
            handler.close()
    _loggers.clear()


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma operação de escrita completa (procedimento + efeitos).

    Args:
        operation: Nome da operação (ajustar_deficit, registrar_saida...)
        data: Parâmetros da operação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not _logging_ativo():
        return
    logger = get_logger("transactions")
    if error:
        logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_estoque(action: str, produto: Any, quantidade: Any = None, unidade: Optional[str] = None, level: str = "info", **kwargs) -> None:
    """Log de movimentações de estoque (entrada, saída, ajuste, histórico)."""
    if not _logging_ativo():
        return
    log_data = {
        "action": action,
        "produto": produto,
        "quantidade": quantidade,
        "unidade": unidade,
        **kwargs,
    }
    logger = get_logger("estoque")
    getattr(logger, level.lower(), logger.info)(f"ESTOQUE_{action.upper()}: {log_data}")


def log_financeiro(action: str, user_id: str, **kwargs) -> None:
    if not _logging_ativo():
        return
    log_data = {"user_id": user_id, **kwargs}
    get_logger("financeiro").info(f"FINANCEIRO_{action.upper()}: {log_data}")


def log_database_operation(table: str, operation: str, affected_rows: int = 0, level: str = "info", **kwargs) -> None:
    """
    Log específico para operações no banco de dados.

    Args:
        table: Nome da tabela (ou do procedimento)
        operation: Operação (INSERT, UPDATE, SELECT, RPC)
        affected_rows: Número de linhas afetadas
        level: Nível do log (info, warning, error)
        **kwargs: Dados adicionais
    """
    if not _logging_ativo():
        return
    log_data = {
        "table": table,
        "operation": operation,
        "affected_rows": affected_rows,
        **kwargs,
    }
    logger = get_logger("database")
    getattr(logger, level.lower(), logger.info)(f"DB_{operation}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    if not _logging_ativo():
        return
    log_data = {"event": event, "details": details or {}}
    logger = get_logger("system")
    getattr(logger, level.lower(), logger.info)(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """Log de importação de planilhas."""
    if not _logging_ativo():
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        **kwargs,
    }
    get_logger("system").info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> str:
    """
    Obtém as últimas linhas de um dos arquivos de log.

    Args:
        log_type: transactions, estoque, financeiro, database ou system
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string
    """
    nome = LOG_FILES.get(log_type)
    if nome is None:
        return f"Log {log_type} não encontrado."
    log_file = Path(config.LOGS_DIR) / nome
    if not log_file.exists():
        return f"Log {log_type} não encontrado."
    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
    except OSError as e:
        return f"Erro ao ler log {log_type}: {e}"
    return ''.join(all_lines[-lines:])
