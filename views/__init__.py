# views/__init__.py
from .connections import (
    format_user_link,
    format_connection_error,
    format_request_card,
    format_pending_header,
    format_connections_list,
    format_mutual_connections,
    format_connection_status,
    format_connection_event,
)
from .keyboards import (
    MENU_RECEIVED,
    MENU_SENT,
    MENU_CONNECTIONS,
    MENU_HELP,
    build_main_menu_keyboard,
    received_request_keyboard,
    sent_request_keyboard,
    send_request_keyboard,
    request_in_flight_keyboard,
)
from .safe import html_safe


__all__ = [
    "format_user_link",
    "format_connection_error",
    "format_request_card",
    "format_pending_header",
    "format_connections_list",
    "format_mutual_connections",
    "format_connection_status",
    "format_connection_event",
    "MENU_RECEIVED",
    "MENU_SENT",
    "MENU_CONNECTIONS",
    "MENU_HELP",
    "build_main_menu_keyboard",
    "received_request_keyboard",
    "sent_request_keyboard",
    "send_request_keyboard",
    "request_in_flight_keyboard",
    "html_safe",
]
