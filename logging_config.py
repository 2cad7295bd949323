# logging_config.py
from __future__ import annotations

import contextvars
import json
import logging
from logging.config import dictConfig
from typing import Any, Dict

from config import settings

# Контекст для корреляции логов с апдейтом
user_id_var = contextvars.ContextVar("user_id", default="-")
chat_id_var = contextvars.ContextVar("chat_id", default="-")
update_id_var = contextvars.ContextVar("update_id", default="-")

_CONTEXT_VARS = {
    "user_id": user_id_var,
    "chat_id": chat_id_var,
    "update_id": update_id_var,
}


def _fill_context(record: logging.LogRecord) -> None:
    for name, var in _CONTEXT_VARS.items():
        if not hasattr(record, name):
            setattr(record, name, var.get())


class ContextFormatter(logging.Formatter):
    """Форматер для dev: добавляет user_id / chat_id / update_id из contextvars."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        _fill_context(record)
        return super().format(record)


class JsonFormatter(logging.Formatter):
    """JSON-логгер для проды."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        _fill_context(record)

        log: Dict[str, Any] = {
            "ts": self.formatTime(record, self.datefmt),
            "env": settings.env,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "user_id": record.user_id,
            "chat_id": record.chat_id,
            "update_id": record.update_id,
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log, ensure_ascii=False)


def build_logging_config() -> dict:
    """Собираем dictConfig для logging."""

    is_prod = settings.env == "prod"
    level = settings.log_level

    formatter_name = "json" if is_prod else "console"

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter_name,
            "level": level,
        },
    }
    if settings.log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": settings.log_file,
            "encoding": "utf-8",
            "formatter": formatter_name,
            "level": level,
        }
    handler_names = list(handlers)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": "logging_config.ContextFormatter",
                "format": (
                    "%(asctime)s | %(levelname)-8s | %(name)s | "
                    "u=%(user_id)s c=%(chat_id)s upd=%(update_id)s | %(message)s"
                ),
            },
            "json": {
                "()": "logging_config.JsonFormatter",
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": handler_names,
            "level": level,
        },
        # Болтливые логгеры сторонних либ
        "loggers": {
            "aiogram": {
                "level": "INFO",
                "handlers": handler_names,
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "WARNING",
                "handlers": handler_names,
                "propagate": False,
            },
            "aiosqlite": {
                "level": "WARNING",
                "handlers": handler_names,
                "propagate": False,
            },
        },
    }


_CONFIGURED = False


def setup_logging() -> logging.Logger:
    """Инициализация логирования для всего приложения (идемпотентная)."""
    global _CONFIGURED
    if not _CONFIGURED:
        dictConfig(build_logging_config())
        _CONFIGURED = True

    logger = logging.getLogger(__name__)
    logger.debug(
        "Logging initialized (env=%s, level=%s, file=%s)",
        settings.env,
        settings.log_level,
        settings.log_file or "-",
    )
    return logger

