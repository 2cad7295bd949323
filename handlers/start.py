# handlers/start.py

import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from models import PendingDirection
from services import count_pending_requests
from views import MENU_HELP, build_main_menu_keyboard

router = Router()
logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Основное:\n"
    "/connect &lt;id&gt; [сообщение] — отправить заявку на коннект\n"
    "/requests — входящие заявки\n"
    "/sent — исходящие заявки\n"
    "/connections — твои контакты\n"
    "/mutual &lt;id&gt; — общие контакты\n"
    "/status &lt;id&gt; — статус отношений с пользователем\n"
    "/disconnect &lt;id&gt; — удалить из контактов\n"
    "/note &lt;id&gt; [текст] — заметка к контакту\n"
    "/tags &lt;id&gt; тег1, тег2 — теги контакта\n"
    "/block &lt;id&gt; / /unblock &lt;id&gt; — блокировка\n\n"
    "Списки заявок и контактов доступны с кнопок меню внизу.\n"
)


# ===== /start =====


@router.message(CommandStart())
async def cmd_start(message: Message, session: AsyncSession):
    user = message.from_user
    logger.info(
        "cmd_start_called user_id=%s username=%s",
        user.id if user else None,
        user.username if user else None,
    )

    # счётчик считаем из БД на каждый показ, нигде его не кэшируем
    incoming = await count_pending_requests(
        session,
        user_id=message.from_user.id,
        direction=PendingDirection.RECEIVED,
    )

    text = f"Привет! Твой id в Link IT: <code>{message.from_user.id}</code>"
    if incoming:
        text += f"\n\nУ тебя {incoming} входящих заявок ждут ответа 📩"

    kb = build_main_menu_keyboard()
    await message.answer(text, reply_markup=kb.as_markup(resize_keyboard=True))


@router.message(Command("help"))
@router.message(F.text == MENU_HELP)
async def cmd_help(message: Message):
    logger.info(
        "cmd_help_called user_id=%s",
        message.from_user.id if message.from_user else None,
    )
    await message.answer(HELP_TEXT)
