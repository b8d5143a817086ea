# main.py
from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from bot.handlers import (
    start, help_command, get_my_id, list_projects,
    show_critical_path, send_gantt_chart, check_task_dates, move_task, import_csv
)
from bot.middleware import authorization_middleware
from config import BOT_TOKEN
from database.operations import init_db
from logger import logger


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Обработчик ошибок."""
    logger.error(f"Произошла ошибка: {context.error}")
    try:
        if isinstance(update, Update) and update.effective_message:
            await update.effective_message.reply_text(
                "Произошла ошибка. Попробуйте повторить команду позже."
            )
    except Exception as e:
        logger.error(f"Ошибка при отправке сообщения об ошибке: {str(e)}")


def build_application(token):
    """Создает приложение бота и регистрирует обработчики."""
    application = Application.builder().token(token).build()

    # Middleware для авторизации выполняется раньше всех обработчиков
    application.add_handler(MessageHandler(filters.ALL, authorization_middleware), group=-999)

    application.add_handler(CommandHandler('start', start))
    application.add_handler(CommandHandler('help', help_command))
    application.add_handler(CommandHandler('my_id', get_my_id))
    application.add_handler(CommandHandler('projects', list_projects))
    application.add_handler(CommandHandler('critical', show_critical_path))
    application.add_handler(CommandHandler('gantt', send_gantt_chart))
    application.add_handler(CommandHandler('check', check_task_dates))
    application.add_handler(CommandHandler('move', move_task))
    application.add_handler(MessageHandler(filters.Document.FileExtension("csv"), import_csv))

    application.add_error_handler(error_handler)
    return application


def main():
    """Запуск бота."""
    logger.info("Запуск бота...")

    if not BOT_TOKEN:
        logger.error("Не задан BOT_TOKEN, запуск невозможен")
        raise SystemExit(1)

    logger.info("Инициализация базы данных...")
    init_db()
    logger.info("База данных инициализирована")

    application = build_application(BOT_TOKEN)
    logger.info("Бот запущен")
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == '__main__':
    main()
