# views/keyboards.py
from aiogram.types import InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder, ReplyKeyboardBuilder

MENU_RECEIVED = "📩 Входящие заявки"
MENU_SENT = "📤 Исходящие заявки"
MENU_CONNECTIONS = "👥 Контакты"
MENU_HELP = "❓ Помощь"


def build_main_menu_keyboard() -> ReplyKeyboardBuilder:
    kb = ReplyKeyboardBuilder()
    kb.button(text=MENU_RECEIVED)
    kb.button(text=MENU_SENT)
    kb.button(text=MENU_CONNECTIONS)
    kb.button(text=MENU_HELP)
    kb.adjust(2, 2)
    return kb


def received_request_keyboard(request_id: int) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.button(text="✅ Принять", callback_data=f"conn_accept:{request_id}")
    kb.button(text="❌ Отклонить", callback_data=f"conn_reject:{request_id}")
    kb.adjust(2)
    return kb.as_markup()


def sent_request_keyboard(request_id: int) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.button(text="↩️ Отозвать заявку", callback_data=f"conn_cancel:{request_id}")
    return kb.as_markup()


def send_request_keyboard(user_id: int) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.button(text="🤝 Отправить заявку", callback_data=f"conn_send:{user_id}")
    return kb.as_markup()


def request_in_flight_keyboard() -> InlineKeyboardMarkup:
    # кнопка-заглушка, пока заявка реально создаётся
    kb = InlineKeyboardBuilder()
    kb.button(text="⏳ Заявка отправляется…", callback_data="conn_noop")
    return kb.as_markup()
