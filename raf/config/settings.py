import os
import logging
from pathlib import Path

from dotenv import load_dotenv

# Определяем корневую директорию проекта
BASE_DIR = Path(__file__).parent.parent.parent

# Загружаем .env файл если он существует
env_path = BASE_DIR / '.env'
if env_path.exists():
    load_dotenv(env_path, override=True)

# Настройки логирования
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(), # Вывод в консоль
        logging.FileHandler(LOG_FILE) if LOG_FILE else logging.NullHandler() # Вывод в файл, если указан
    ]
)

# Основные настройки
DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")

# Настройки бота
BOT_TOKEN = os.getenv("BOT_TOKEN")
# Имя бота без @, используется для построения реферальных ссылок
BOT_NAME = os.getenv("BOT_NAME", "").strip().lstrip("@")

# Настройки базы данных (по умолчанию SQLite-файл в рабочей директории)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///raf.db")

# Сколько секунд пользователь ждет вступления в канал после нажатия "Accept"
JOIN_WAIT_SECONDS = int(os.getenv("JOIN_WAIT_SECONDS", "10"))

# Пауза перед перезапуском поллинга после ошибки Telegram API
POLLING_RETRY_DELAY = int(os.getenv("POLLING_RETRY_DELAY", "60"))


def validate():
    """
    Проверка обязательных переменных окружения.

    Raises:
        ValueError: если не задан BOT_TOKEN или BOT_NAME
    """
    if not BOT_TOKEN:
        raise ValueError("BOT_TOKEN не задан в переменных окружения")
    if not BOT_NAME:
        raise ValueError("BOT_NAME не задан в переменных окружения")

    if DEBUG:
        logging.info(f"Конфигурация загружена. Режим отладки: {DEBUG}")
        logging.info(f"База данных: {DATABASE_URL}")
        logging.info(f"Имя бота: {BOT_NAME}")
        logging.info(f"Ожидание вступления в канал: {JOIN_WAIT_SECONDS} сек.")
