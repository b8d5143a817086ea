import os
from dotenv import load_dotenv

# Загрузка переменных окружения из .env файла
load_dotenv()

# Токен Telegram бота
BOT_TOKEN = os.getenv("BOT_TOKEN")

# Пользователи, которым доступ открыт без записи в БД
ALLOWED_USERS = [
    int(user_id) for user_id in os.getenv("ALLOWED_USERS", "").split(",") if user_id.strip()
]

# Настройки базы данных
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///scheduler.db")

# Верхняя граница размера графа задач для одного расчета
MAX_SCHEDULE_TASKS = int(os.getenv("MAX_SCHEDULE_TASKS", "5000"))

# Настройки логирования
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "")
