from telegram import Update
from telegram.ext import ContextTypes

from distortion_modules.config import logger, MAX_DURATION_SECONDS, MAX_FILE_SIZE_MB

from .handlers import QUEUE_KEY

HELP_TEXT = (
    "Send me a voice message, an audio file, a sticker, a photo, a video, "
    "a video note or a GIF and I will send it back distorted.\n\n"
    f"Limits: up to {MAX_DURATION_SECONDS} seconds and {MAX_FILE_SIZE_MB} MB per file."
)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Обработчик команды /start"""
    logger.info("Start command", extra={"chat_id": update.effective_chat.id})
    await update.effective_message.reply_text(HELP_TEXT)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Обработчик команды /help"""
    await update.effective_message.reply_text(HELP_TEXT)


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Обработчик команды /status: размер очереди"""
    queue = context.application.bot_data.get(QUEUE_KEY)
    if queue is None:
        await update.effective_message.reply_text("Queue is not running.")
        return
    waiting = queue.pending_count + (1 if queue.is_running else 0)
    await update.effective_message.reply_text(
        f"Jobs in progress or waiting: {waiting} (capacity: {queue.limit})"
    )
