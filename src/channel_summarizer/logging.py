"""Logging setup on top of Loguru.

Application code logs through Loguru. Records are handed to stdlib logging,
whose root logger only enqueues them; a QueueListener thread does the actual
writing to the console and the optional rotating file.
"""

import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path

from loguru import logger

from channel_summarizer.config.settings import settings

LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)-5s | %(name)s | %(message)s"
QUIET_LIBRARIES = ("httpx", "httpcore", "telegram", "openai")

_CONTEXT_LABELS = {
    "user": "USER",
    "source": "SRC",
    "message_id": "MSG",
    "update_id": "UPDATE",
    "count": "COUNT",
    "tokens": "TOKENS",
}

_listener: QueueListener | None = None


def _build_handlers(
    level: str,
    log_file: str | Path | None,
    max_bytes: int,
    backup_count: int,
) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
    return handlers


def _forward_to_stdlib(message) -> None:
    record = message.record
    exception = record["exception"]
    exc_info = (exception.type, exception.value, exception.traceback) if exception else None
    name = record["extra"].get("name") or record["name"]
    logging.getLogger(name).log(record["level"].no, record["message"], exc_info=exc_info)


def configure_logging(
    log_level: str | None = None,
    log_file: str | Path | None = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 7,
) -> None:
    """Route Loguru output through a queue to the console and optional file.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to LOG_LEVEL.
        log_file: Rotating log file path. Defaults to LOG_FILE; console only when unset.
        max_bytes: Size at which the log file is rotated.
        backup_count: Number of rotated files kept.

    Safe to call again: the previous listener is stopped and replaced.
    """
    global _listener

    level = (log_level or settings.LOG_LEVEL).upper()
    handlers = _build_handlers(level, log_file or settings.LOG_FILE, max_bytes, backup_count)

    shutdown_logging()
    log_queue: queue.SimpleQueue = queue.SimpleQueue()
    root = logging.getLogger()
    root.handlers = [QueueHandler(log_queue)]
    root.setLevel(level)
    _listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
    _listener.start()

    logger.remove()
    logger.add(_forward_to_stdlib, level=level, backtrace=True, diagnose=False)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def shutdown_logging() -> None:
    """Flush queued records and stop the listener thread."""
    global _listener

    if _listener is not None:
        _listener.stop()
        _listener = None


def format_log_context(kind: str, **fields: object) -> str:
    """
    Build the `KEY=value ... | kind` prefix used by every log line.

    `channel` renders as CH=, otherwise `component` as SYS=. Empty values are
    skipped.

    Example:
        CH=telegram USER=123 MSG=42 | forward_received
    """
    channel = fields.pop("channel", None)
    component = fields.pop("component", None)

    parts = [f"CH={channel}"] if channel else [f"SYS={component}"] if component else []
    parts.extend(
        f"{_CONTEXT_LABELS.get(key, key.upper())}={value}"
        for key, value in fields.items()
        if value is not None and value != ""
    )
    return f"{' '.join(parts)} | {kind}" if parts else str(kind)


def truncate_log_text(text: str | None, limit: int = 200) -> str:
    """Collapse whitespace and cut `text` to `limit` characters."""
    if text is None:
        return ""
    cleaned = " ".join(str(text).split())
    return cleaned if len(cleaned) <= limit else f"{cleaned[:limit]}..."


def get_logger(name: str | None = None):
    """Loguru logger, bound to `name` so stdlib records keep the module name."""
    return logger.bind(name=name) if name else logger


__all__ = [
    "configure_logging",
    "shutdown_logging",
    "format_log_context",
    "truncate_log_text",
    "get_logger",
    "logger",
]
