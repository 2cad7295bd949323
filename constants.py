# constants.py

# Статусы заявки (значения RequestStatus)
REQUEST_STATUS_LABELS = {
    "pending": "⏳ ждёт ответа",
    "accepted": "✅ принята",
    "declined": "❌ отклонена",
    "cancelled": "↩️ отозвана",
}

# Откуда пришла заявка (значения RequestSource)
REQUEST_SOURCE_LABELS = {
    "search": "поиск",
    "mutual_connection": "общие контакты",
    "profile_view": "просмотр профиля",
    "other": "другое",
}

# Статус отношений двух пользователей (значения ConnectionStatus)
CONNECTION_STATUS_LABELS = {
    "self": "Это ты сам 😄",
    "connected": "Вы на связи 🤝",
    "pending_sent": "Ты отправил(а) заявку, ждём ответа ⏳",
    "pending_received": "Тебе пришла заявка от этого пользователя 📩",
    "blocked": "Между вами стоит блокировка 🚫",
    "not_connected": "Вы пока не на связи",
}

# Тексты ошибок: сначала ищем (code, reason), потом (code, None)
CONNECTION_ERROR_MESSAGES = {
    ("validation_error", "self_request"): "Это ты сам 😄",
    ("validation_error", "message_too_long"): "Сообщение к заявке слишком длинное.",
    ("validation_error", "note_too_long"): "Заметка слишком длинная.",
    ("validation_error", "invalid_user_id"): "Такого id не бывает, проверь число.",
    ("validation_error", "invalid_tags"): "Теги: через запятую, каждый не длиннее 32 символов.",
    ("validation_error", None): "Некорректный запрос.",
    ("conflict", "already_connected"): "Вы уже на связи 🤝",
    ("conflict", "duplicate_pending"): "Заявка между вами уже висит, ждём ответа.",
    ("conflict", "edge_exists"): "Вы уже на связи — заявку оставили как есть.",
    ("conflict", None): "Конфликт, попробуй ещё раз.",
    ("conflict", "already_blocked"): "Этот пользователь уже в блоке.",
    ("forbidden", "blocked"): "Отправить заявку этому пользователю нельзя.",
    ("forbidden", None): "Это не твоя заявка",
    ("invalid_state", None): "Эта заявка уже обработана",
    ("not_found", None): "Не найдено",
    ("rate_limited", None): "Ты достиг лимита заявок на сегодня, завтра счётчик обнулится 🙂",
    ("internal_error", None): "Что-то пошло не так, мы уже чиним 🛠",
}

PENDING_DIRECTION_TITLES = {
    "received": "Входящие заявки",
    "sent": "Исходящие заявки",
}
