# services/__init__.py
from .connections import (
    ConnectionStatus,
    ResponseAction,
    send_connection_request,
    respond_to_connection_request,
    accept_connection_request,
    decline_connection_request,
    cancel_connection_request,
    remove_connection,
    block_user,
    unblock_user,
    update_connection_note,
    update_connection_tags,
    get_connection,
    get_connection_request,
    list_pending_requests,
    count_pending_requests,
    list_connections,
    get_connection_status,
)
from .mutual import (
    compute_mutual_connections,
    count_mutual_connections,
)
from .notifications import (
    ConnectionEvent,
    EventType,
    NotificationSink,
    LoggingNotificationSink,
    TelegramNotificationSink,
)
from .optimistic import OptimisticAction, run_optimistic

__all__ = [
    "ConnectionStatus",
    "ResponseAction",
    "send_connection_request",
    "respond_to_connection_request",
    "accept_connection_request",
    "decline_connection_request",
    "cancel_connection_request",
    "remove_connection",
    "block_user",
    "unblock_user",
    "update_connection_note",
    "update_connection_tags",
    "get_connection",
    "get_connection_request",
    "list_pending_requests",
    "count_pending_requests",
    "list_connections",
    "get_connection_status",
    "compute_mutual_connections",
    "count_mutual_connections",
    "ConnectionEvent",
    "EventType",
    "NotificationSink",
    "LoggingNotificationSink",
    "TelegramNotificationSink",
    "OptimisticAction",
    "run_optimistic",
]
