#!/usr/bin/env python3

from telegram import Update
from telegram.ext import (
    Application, ApplicationBuilder, CommandHandler, MessageHandler, filters
)
from telegram.request import HTTPXRequest

from distortion_modules.config import (
    logger,
    BOT_TOKEN,
    QUEUE_LIMIT,
    USE_LOCAL_BOT_API,
    LOCAL_BOT_API_URL,
)
from distortion_modules.bot.commands import start_command, help_command, status_command
from distortion_modules.bot.handlers import QUEUE_KEY, handle_media
from distortion_modules.jobs import BoundedJobQueue

MEDIA_FILTER = (
    filters.VOICE
    | filters.AUDIO
    | filters.Sticker.ALL
    | filters.PHOTO
    | filters.VIDEO_NOTE
    | filters.VIDEO
    | filters.ANIMATION
    | filters.Document.ALL
)


async def start_job_queue(application: Application) -> None:
    """Очередь живёт всё время работы процесса; создаётся один раз при старте."""
    queue = BoundedJobQueue(QUEUE_LIMIT)
    application.bot_data[QUEUE_KEY] = queue
    queue.start()


async def stop_job_queue(application: Application) -> None:
    queue = application.bot_data.pop(QUEUE_KEY, None)
    if queue is not None:
        await queue.stop()


def build_application() -> Application:
    # Увеличенные таймауты для больших файлов
    request = HTTPXRequest(
        connection_pool_size=8,
        read_timeout=1800,
        write_timeout=1800,
        connect_timeout=60,
        pool_timeout=60,
    )

    builder = (
        ApplicationBuilder()
        .token(BOT_TOKEN)
        .request(request)
        .concurrent_updates(True)
        .post_init(start_job_queue)
        .post_shutdown(stop_job_queue)
    )

    if USE_LOCAL_BOT_API:
        logger.info(f"🚀 Настройка локального Bot API Server: {LOCAL_BOT_API_URL}")
        builder = builder.base_url(f"{LOCAL_BOT_API_URL}/bot")
        builder = builder.base_file_url(f"{LOCAL_BOT_API_URL}/file/bot")
        builder = builder.local_mode(True)

    application = builder.build()

    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("status", status_command))
    application.add_handler(MessageHandler(MEDIA_FILTER & ~filters.COMMAND, handle_media))
    return application


def main() -> None:
    """Главная функция для запуска бота."""
    logger.info("Запуск бота...")
    application = build_application()
    logger.info("Бот запущен и слушает сообщения...")
    application.run_polling(allowed_updates=Update.ALL_TYPES, drop_pending_updates=True)


if __name__ == '__main__':
    main()
