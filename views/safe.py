# views/safe.py
from __future__ import annotations

from html import escape


def html_safe(value, default: str = "—", max_length: int | None = None) -> str:
    """
    Экранирует пользовательский текст для ParseMode.HTML.
    - None/пустое -> default
    - длиннее max_length -> обрезаем и ставим «…» (режем ДО экранирования,
      чтобы не разрезать сущность вроде &amp;)
    """
    if value is None:
        return default

    s = str(value).strip()
    if not s:
        return default

    if max_length is not None and len(s) > max_length:
        s = s[: max(max_length - 1, 0)].rstrip() + "…"

    return escape(s, quote=True)
