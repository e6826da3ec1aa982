import os
import math
import logging
from pathlib import Path

from dotenv import load_dotenv

# Загружаем переменные окружения из .env файла
load_dotenv()

# Определяем, запущены ли мы в контейнере
IN_CONTAINER = os.path.exists('/app') and os.access('/app', os.W_OK)

if IN_CONTAINER:
    DATA_DIR = Path(os.getenv('DATA_DIR', '/app/data'))
else:
    DATA_DIR = Path(os.getenv('DATA_DIR', './data'))
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Настройка логирования
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(DATA_DIR / 'bot.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# ===== ОСНОВНЫЕ НАСТРОЙКИ БОТА =====
# Токен приходит только из окружения или .env (который игнорируется git).
BOT_TOKEN = os.getenv('BOT_TOKEN', '')

REQUIRE_BOT_TOKEN = os.getenv('REQUIRE_BOT_TOKEN', 'true').lower() == 'true'
if REQUIRE_BOT_TOKEN and not BOT_TOKEN:
    logger.error("❌ BOT_TOKEN не установлен!")
    raise ValueError("BOT_TOKEN обязателен")

# ===== TELEGRAM BOT API SERVER =====
USE_LOCAL_BOT_API = os.getenv('USE_LOCAL_BOT_API', 'false').lower() == 'true'
LOCAL_BOT_API_URL = os.getenv('LOCAL_BOT_API_URL', 'http://localhost:8083')

# ===== ОЧЕРЕДЬ =====
QUEUE_LIMIT = int(os.getenv('QUEUE_LIMIT', '100'))

# ===== РАБОЧИЕ ДИРЕКТОРИИ =====
OPERATIONS_DIR = Path(os.getenv('OPERATIONS_DIR', str(DATA_DIR / 'operations')))
OPERATIONS_DIR.mkdir(parents=True, exist_ok=True)

# ===== ОГРАНИЧЕНИЯ НА ФАЙЛЫ =====
MAX_FILE_SIZE_MB = int(os.getenv('MAX_FILE_SIZE_MB', '512'))
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
MAX_DURATION_SECONDS = int(os.getenv('MAX_DURATION_SECONDS', '90'))
MAX_WIDTH = int(os.getenv('MAX_WIDTH', '2048'))
MAX_HEIGHT = int(os.getenv('MAX_HEIGHT', '1556'))
MAX_DIAMETER = math.ceil(math.sqrt(MAX_WIDTH ** 2 + MAX_HEIGHT ** 2))
SUPPORTED_MIME_TYPES = (
    'video/quicktime',
    'video/mp4',
    'audio/ogg',
    'audio/mpeg',
)

# ===== ОБРАБОТКА =====
PROGRESS_INTERVAL_SECONDS = float(os.getenv('PROGRESS_INTERVAL_SECONDS', '5'))
NOTIFIER_CLOSE_TIMEOUT_SECONDS = float(os.getenv('NOTIFIER_CLOSE_TIMEOUT_SECONDS', '1'))
TOOL_TIMEOUT_SECONDS = float(os.getenv('TOOL_TIMEOUT_SECONDS', '600'))
DOWNLOAD_TIMEOUT_SECONDS = float(os.getenv('DOWNLOAD_TIMEOUT_SECONDS', '300'))
FRAME_RATE = int(os.getenv('FRAME_RATE', '24'))

logger.info("✅ Конфигурация загружена успешно")
logger.info(f"🏠 Режим: {'контейнер' if IN_CONTAINER else 'локальный'}")
logger.info(f"📁 Директория операций: {OPERATIONS_DIR}")
logger.info(f"📥 Размер очереди: {QUEUE_LIMIT}")
logger.info(f"🔧 Максимальный размер файла: {MAX_FILE_SIZE_MB} МБ")
logger.info(f"⏱️ Максимальная длительность: {MAX_DURATION_SECONDS} секунд")


__all__ = [
    "BOT_TOKEN",
    "IN_CONTAINER",
    "OPERATIONS_DIR",
    "QUEUE_LIMIT",
    "logger",
]
