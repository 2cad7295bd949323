# middlewares/__init__.py
from .db import DbSessionMiddleware
from .logging_context import LoggingContextMiddleware, extract_user_chat

__all__ = [
    "DbSessionMiddleware",
    "LoggingContextMiddleware",
    "extract_user_chat",
]
