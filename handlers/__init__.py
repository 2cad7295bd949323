# handlers/__init__.py

from .start import router as start_router
from .connections import router as connections_router
from .connection_requests import router as connection_requests_router

__all__ = [
    "start_router",
    "connections_router",
    "connection_requests_router",
]
