from datetime import datetime

import pytest

from errors import (
    ALREADY_CONNECTED,
    AuthorizationError,
    ConflictError,
    ConnectionServiceError,
    InternalError,
    StateError,
    ValidationError,
)
from models import ConnectionRequest, RequestSource, RequestStatus
from services.connections import ConnectionStatus
from services.notifications import ConnectionEvent, EventType
from views import (
    format_connection_error,
    format_connection_event,
    format_connection_status,
    format_connections_list,
    format_mutual_connections,
    format_pending_header,
    format_request_card,
    html_safe,
)


class TestHtmlSafe:

    def test_escapes_markup(self):
        assert html_safe("<b>&</b>") == "&lt;b&gt;&amp;&lt;/b&gt;"

    def test_empty_values_use_default(self):
        assert html_safe(None) == "—"
        assert html_safe("   ", default="-") == "-"

    def test_truncates_before_escaping(self):
        assert html_safe("abcdef", max_length=4) == "abc…"
        assert html_safe("&&&&&&", max_length=3) == "&amp;&amp;…"


@pytest.mark.parametrize(
    "exc, expected",
    [
        (ConflictError(reason=ALREADY_CONNECTED), "Вы уже на связи 🤝"),
        (ConflictError(reason="something_new"), "Конфликт, попробуй ещё раз."),
        (AuthorizationError(), "Это не твоя заявка"),
        (StateError(), "Эта заявка уже обработана"),
        (ValidationError(reason="self_request"), "Это ты сам 😄"),
        (InternalError(), "Что-то пошло не так, мы уже чиним 🛠"),
        (ConnectionServiceError(), "Что-то пошло не так, мы уже чиним 🛠"),
    ],
)
def test_format_connection_error(exc, expected):
    assert format_connection_error(exc) == expected


def test_request_card_for_recipient():
    req = ConnectionRequest(
        requester_id=1,
        recipient_id=2,
        user_low=1,
        user_high=2,
        message="<script>",
        source=RequestSource.SEARCH,
        status=RequestStatus.PENDING,
        created_at=datetime(2026, 3, 1, 12, 30),
    )

    card = format_request_card(req, viewer_id=2)

    assert card.startswith('От: <a href="tg://user?id=1">id 1</a>')
    assert "&lt;script&gt;" in card
    assert "Источник: поиск" in card
    assert "Отправлена: 01.03.2026 12:30" in card

    assert format_request_card(req, viewer_id=1).startswith("Кому:")


def test_pending_header():
    assert format_pending_header("received", 0) == "Входящие заявки: пусто."
    assert format_pending_header("sent", 3) == "Исходящие заявки: 3"


def test_connections_list():
    assert "нет контактов" in format_connections_list([])
    text = format_connections_list([5, 6], total=10)
    assert text.splitlines()[0] == "Твои контакты (10):"
    assert len(text.splitlines()) == 3


def test_mutual_connections_mentions_rest():
    text = format_mutual_connections(9, [3, 4], total=5)
    assert "Общие контакты" in text
    assert text.endswith("…и ещё 3")
    assert "нет" in format_mutual_connections(9, [], total=0)


def test_connection_status_with_mutuals():
    text = format_connection_status(9, "connected", mutual_count=2)
    assert "Вы на связи" in text
    assert "Общих контактов: 2" in text


def test_event_texts():
    requested = ConnectionEvent(
        type=EventType.CONNECTION_REQUESTED,
        actor_id=1,
        target_id=2,
        request_id=7,
        message="привет",
    )
    declined = ConnectionEvent(
        type=EventType.CONNECTION_DECLINED,
        actor_id=2,
        target_id=1,
        request_id=7,
    )

    assert "заявка на коннект" in format_connection_event(requested)
    assert "привет" in format_connection_event(requested)
    assert "отклонили" in format_connection_event(declined)


def test_connection_status_card_with_note_and_tags():
    text = format_connection_status(
        9,
        ConnectionStatus.CONNECTED,
        note="познакомились на <митапе>",
        tags=["python", "ml"],
    )
    assert "Вы на связи" in text
    assert "Заметка: познакомились на &lt;митапе&gt;" in text
    assert "Теги: python, ml" in text
    assert "Общих контактов" not in text


def test_connection_status_blocked():
    assert "блокировка" in format_connection_status(9, ConnectionStatus.BLOCKED)
    assert "блокировка" in format_connection_status(9, "blocked")
