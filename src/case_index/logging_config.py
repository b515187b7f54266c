"""
Logging configuration for the case index service.

Keeps the application loggers at the configured level while holding the
HTTP client and server libraries at WARNING, so upstream request chatter
does not drown out view and cache diagnostics.
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "asyncio",
    "uvicorn.access",
    "websockets",
    "websockets.protocol",
)


def configure_logging(
    log_level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    enable_console_logging: bool = True,
) -> None:
    """
    Configure root logging with console and optional file output.

    Args:
        log_level: Level for console output and the ``case_index`` loggers
            (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file. The file captures DEBUG and
            above regardless of ``log_level``.
        enable_console_logging: Whether to log to stdout.

    Example:
        >>> from case_index.logging_config import configure_logging
        >>> configure_logging(log_level="INFO")
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    handlers: list[logging.Handler] = []

    if enable_console_logging:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S',
            )
        )
        handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S',
            )
        )
        handlers.append(file_handler)

    # Root at DEBUG when a file is attached; handlers decide what is emitted.
    root_level = logging.DEBUG if log_file else level
    logging.basicConfig(level=root_level, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app_level = logging.DEBUG if log_file else level
    logging.getLogger('case_index').setLevel(app_level)
    logging.getLogger('__main__').setLevel(app_level)

    logger = logging.getLogger(__name__)
    logger.info("Logging configured (level=%s, file=%s)", log_level.upper(), log_path if log_file else None)
