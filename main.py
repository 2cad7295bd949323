# main.py
import asyncio
from contextlib import suppress

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from config import settings
from handlers import (
    connection_requests_router,
    connections_router,
    start_router,
)
from handlers.errors import setup_error_handlers
from init_db import init_db
from logging_config import setup_logging
from middlewares import DbSessionMiddleware, LoggingContextMiddleware
from services import TelegramNotificationSink


async def main() -> None:
    # 1. Логирование
    logger = setup_logging()
    logger.info("Starting LinkIT connections bot in %s environment", settings.env)

    if not settings.bot_token:
        logger.error("BOT_TOKEN is not set, exiting")
        return

    # 2. Проверка БД (если тут всё упало - логируем и выходим)
    try:
        await init_db()
    except Exception:
        logger.exception("Database initialization failed")
        return

    logger.info("Database is initialized")

    # 3. Бот и диспетчер
    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    # notifier попадает в хендлеры как аргумент (workflow data)
    dp = Dispatcher(notifier=TelegramNotificationSink(bot))

    # 3.1. Middleware
    # Сначала - контекст логов (user/chat/update),
    # потом - сессия БД (чтобы в логах уже были user_id/chat_id).
    dp.update.outer_middleware(LoggingContextMiddleware())
    dp.update.outer_middleware(DbSessionMiddleware())

    # 4. Роутеры
    dp.include_router(start_router)
    dp.include_router(connections_router)
    dp.include_router(connection_requests_router)

    logger.info("Routers and middlewares are configured")

    # 5. Error-handlers (глобальный ловец исключений в апдейтах)
    setup_error_handlers(dp, bot)
    logger.info("Error handlers are set up")

    # 6. Стартуем поллинг
    try:
        logger.info("Starting polling")
        await dp.start_polling(bot)
    except asyncio.CancelledError:
        logger.info("Bot polling cancelled, shutting down...")
    except Exception:
        logger.exception("Bot stopped by unexpected error")
    finally:
        with suppress(Exception):
            await bot.session.close()

        logger.info("Bot shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
