# serialmon/logging_config.py
"""
Конфигурация логирования для всего Serial Monitor.
Порт, сессия и API пишут в общий лог и в отдельные файлы.
"""

import logging
import logging.handlers
import os
from pathlib import Path


def setup_logging(log_level: str = "DEBUG", log_to_file: bool = True):
    """
    Настройка системы логирования для всего проекта.

    Args:
        log_level: Уровень логирования (DEBUG, INFO, WARNING, ERROR)
        log_to_file: Записывать логи в файл или только в консоль
    """
    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d [%(name)20s] %(levelname)8s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_formatter = logging.Formatter(
        fmt="%(asctime)s [%(name)15s] %(levelname)5s: %(message)s",
        datefmt="%H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)  # в консоль меньше деталей
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    log_dir = Path("logs")
    if log_to_file:
        log_dir.mkdir(exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "serial_monitor.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5
        )
        file_handler.setLevel(getattr(logging, log_level))
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

        # Только обмен с портом (TX/RX, открытие/закрытие)
        port_handler = logging.handlers.RotatingFileHandler(
            log_dir / "port_io.log",
            maxBytes=5 * 1024 * 1024,   # 5 MB
            backupCount=10
        )
        port_handler.setLevel(logging.DEBUG)
        port_handler.setFormatter(detailed_formatter)
        port_handler.addFilter(lambda record: record.name.startswith('port.'))
        root_logger.addHandler(port_handler)

        # Жизненный цикл сессии и уведомления
        session_handler = logging.handlers.RotatingFileHandler(
            log_dir / "session_events.log",
            maxBytes=5 * 1024 * 1024,   # 5 MB
            backupCount=5
        )
        session_handler.setLevel(logging.INFO)
        session_handler.setFormatter(detailed_formatter)
        session_handler.addFilter(lambda record: record.name == 'ByteSession')
        root_logger.addHandler(session_handler)

    loggers_config = {
        'port.serial': logging.DEBUG,
        'port.loopback': logging.DEBUG,
        'ByteSession': logging.DEBUG,
        'API': logging.INFO,
        'uvicorn': logging.INFO,
        'uvicorn.access': logging.WARNING,  # меньше шума от HTTP запросов
        'asyncio': logging.WARNING
    }

    for logger_name, level in loggers_config.items():
        logging.getLogger(logger_name).setLevel(level)

    setup_log = logging.getLogger("LoggingSetup")
    setup_log.info("=== LOGGING SYSTEM INITIALIZED ===")
    setup_log.info("Log level: %s", log_level)
    setup_log.info("Log to file: %s", log_to_file)
    if log_to_file:
        setup_log.info("Log directory: %s", log_dir.absolute())
    setup_log.info("Configured loggers: %s", list(loggers_config.keys()))


def get_logger(name: str) -> logging.Logger:
    """Получить логгер с заданным именем."""
    return logging.getLogger(name)


def log_hex_data(logger: logging.Logger, level: int, message: str, data: bytes, max_bytes: int = 64):
    """
    Логирование бинарных данных в hex формате с ограничением размера.

    Args:
        logger: Логгер для вывода
        level: Уровень логирования (logging.DEBUG, logging.INFO и т.д.)
        message: Описательное сообщение
        data: Бинарные данные
        max_bytes: Максимальное количество байт для отображения
    """
    if not logger.isEnabledFor(level):
        return

    if len(data) <= max_bytes:
        logger.log(level, "%s (%d bytes): %s", message, len(data), data.hex(" "))
    else:
        hex_start = data[:max_bytes//2].hex(" ")
        hex_end = data[-max_bytes//2:].hex(" ")
        logger.log(level, "%s (%d bytes): %s ... %s",
                   message, len(data), hex_start, hex_end)


def log_io_summary(logger: logging.Logger, direction: str, port: str, details: str = ""):
    """
    Однострочная сводка по обмену с портом.

    Args:
        direction: "TX" или "RX"
        port: Имя порта
        details: Дополнительные детали
    """
    marker = ">>>" if direction == "TX" else "<<<"
    logger.info("%s %s: %s", marker, port, details)


if os.getenv("SERIAL_MONITOR_AUTO_LOGGING", "0") == "1":
    setup_logging(
        os.getenv("SERIAL_MONITOR_LOG_LEVEL", "DEBUG"),
        os.getenv("SERIAL_MONITOR_LOG_TO_FILE", "1") == "1",
    )
