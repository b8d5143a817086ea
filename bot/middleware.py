from telegram import Update
from telegram.ext import ApplicationHandlerStop, ContextTypes

from bot.messages import ACCESS_DENIED_MESSAGE
from database.operations import is_user_allowed
from logger import logger

# Команды, доступные без авторизации
PUBLIC_COMMANDS = ('/start', '/my_id')


def command_of(message):
    """Возвращает команду сообщения без упоминания бота (/move@bot -> /move)."""
    if not message or not message.text or not message.text.startswith('/'):
        return None
    return message.text.split()[0].split('@')[0]


async def authorization_middleware(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Пропускает дальше только пользователей из ALLOWED_USERS или таблицы allowed_users.

    Для остальных отвечает сообщением с их ID и прерывает обработку обновления,
    в том числе загрузку CSV-файлов.
    """
    user = update.effective_user
    if not user:
        return

    if command_of(update.message) in PUBLIC_COMMANDS:
        return

    if is_user_allowed(user.id):
        return

    logger.warning(f"Отказано в доступе: {user.id} ({user.username or user.first_name})")
    if update.effective_message:
        await update.effective_message.reply_text(ACCESS_DENIED_MESSAGE.format(user_id=user.id))
    raise ApplicationHandlerStop
