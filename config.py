# config.py
from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Telegram bot (ядру и тестам токен не нужен, его проверяет main.py)
    bot_token: Optional[str] = Field(default=None, alias="BOT_TOKEN")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./linkit.db",
        alias="DATABASE_URL",
    )

    # Environment
    env: Literal["dev", "stage", "prod"] = Field("dev", alias="ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field("bot.log", alias="LOG_FILE")

    # Заявки на коннект
    # 0 - лимит выключен
    max_connection_requests_per_day: int = Field(
        10,
        alias="MAX_CONNECTION_REQUESTS_PER_DAY",
    )
    connection_message_max_length: int = Field(
        300,
        alias="CONNECTION_MESSAGE_MAX_LENGTH",
    )
    connection_note_max_length: int = Field(
        500,
        alias="CONNECTION_NOTE_MAX_LENGTH",
    )
    # Теги контакта: лишние сверх лимита отбрасываем
    connection_tags_max: int = Field(
        10,
        alias="CONNECTION_TAGS_MAX",
    )
    connection_tag_max_length: int = Field(
        32,
        alias="CONNECTION_TAG_MAX_LENGTH",
    )
    connections_page_size: int = Field(
        20,
        alias="CONNECTIONS_PAGE_SIZE",
    )

    # Admin / alerts
    admin_chat_id: Optional[int] = Field(
        default=None,
        alias="ADMIN_CHAT_ID",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return str(v).strip().upper() or "INFO"

    @field_validator(
        "max_connection_requests_per_day",
        "connections_page_size",
        mode="before",
    )
    @classmethod
    def parse_first_int(cls, v):
        """
        Поддержка формата:
        - просто число: "10"
        - несколько чисел через запятую: "10,20" -> берём первое (10)
        """
        if isinstance(v, str):
            first = v.split(",")[0].strip()
            return int(first)
        return int(v)


@lru_cache
def get_settings() -> Settings:
    # кэшируем, чтобы не читать .env каждый раз
    return Settings()


settings = get_settings()
