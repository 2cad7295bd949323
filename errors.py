# errors.py
from __future__ import annotations

# ===== причины (reason) - стабильные коды для хендлеров и логов =====

SELF_REQUEST = "self_request"
MESSAGE_TOO_LONG = "message_too_long"
NOTE_TOO_LONG = "note_too_long"
INVALID_SOURCE = "invalid_source"
INVALID_ACTION = "invalid_action"
INVALID_DIRECTION = "invalid_direction"
ALREADY_CONNECTED = "already_connected"
DUPLICATE_PENDING = "duplicate_pending"
EDGE_EXISTS = "edge_exists"
DAILY_LIMIT = "daily_limit"
INVALID_USER_ID = "invalid_user_id"
INVALID_REQUEST_ID = "invalid_request_id"
INVALID_TAGS = "invalid_tags"
BLOCKED = "blocked"
ALREADY_BLOCKED = "already_blocked"


class ConnectionServiceError(Exception):
    """
    Базовая ошибка графа коннектов.

    code   - вид ошибки (не меняется, по нему хендлеры выбирают текст)
    reason - уточнение внутри вида, может быть None
    """

    code = "internal_error"

    def __init__(self, message: str | None = None, *, reason: str | None = None):
        self.reason = reason
        self.message = message or reason or self.code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} code={self.code} reason={self.reason}>"


class ValidationError(ConnectionServiceError):
    code = "validation_error"


class ConflictError(ConnectionServiceError):
    code = "conflict"


class AuthorizationError(ConnectionServiceError):
    code = "forbidden"


class StateError(ConnectionServiceError):
    code = "invalid_state"


class NotFoundError(ConnectionServiceError):
    code = "not_found"


class RateLimitError(ConnectionServiceError):
    code = "rate_limited"


class InternalError(ConnectionServiceError):
    code = "internal_error"
