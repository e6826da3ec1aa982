"""
Обработчики сообщений: проверка вложения, постановка задачи в очередь
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from telegram import Update
from telegram.ext import ContextTypes

from distortion_modules.config import logger
from distortion_modules.jobs import (
    BoundedJobQueue,
    Job,
    JobState,
    TelegramStatusNotifier,
    build_services,
    new_job_id,
    stages_for,
)
from distortion_modules.jobs.progress import (
    QUEUED_MESSAGE,
    QUEUE_FULL_MESSAGE,
    WARMING_UP_MESSAGE,
)

from .transport import telegram_downloader, telegram_sender
from .validation import (
    DEFAULT_LIMITS,
    DOCUMENTS_NOT_SUPPORTED,
    MediaLimits,
    pick_photo,
    validate_animation,
    validate_audio,
    validate_sticker,
    validate_video,
    validate_video_note,
    validate_voice,
)

QUEUE_KEY = "job_queue"


@dataclass(frozen=True)
class MediaSubmission:
    """Attachment accepted for processing."""

    kind: str
    file_id: str
    file_name: Optional[str] = None


def extract_submission(
    message: Any,
    limits: MediaLimits = DEFAULT_LIMITS,
) -> Tuple[Optional[MediaSubmission], Optional[str]]:
    """Return ``(submission, None)`` or ``(None, rejection text)``.

    ``(None, None)`` means the message carries nothing we handle.
    """
    # Анимации приходят вместе с полем document, поэтому проверяем их первыми
    if message.animation:
        problem = validate_animation(message.animation, limits)
        return _result("animation", message.animation, problem)
    if message.voice:
        problem = validate_voice(message.voice, limits)
        return _result("voice", message.voice, problem)
    if message.audio:
        problem = validate_audio(message.audio, limits)
        return _result("audio", message.audio, problem, file_name=message.audio.file_name)
    if message.sticker:
        problem = validate_sticker(message.sticker, limits)
        return _result("sticker", message.sticker, problem)
    if message.photo:
        photo = pick_photo(message.photo, limits)
        if photo is None:
            return None, "Photo is too large or invalid"
        return _result("photo", photo, None)
    if message.video_note:
        problem = validate_video_note(message.video_note, limits)
        return _result("video_note", message.video_note, problem)
    if message.video:
        problem = validate_video(message.video, limits)
        return _result("video", message.video, problem)
    if message.document:
        return None, DOCUMENTS_NOT_SUPPORTED
    return None, None


def _result(
    kind: str,
    attachment: Any,
    problem: Optional[str],
    *,
    file_name: Optional[str] = None,
) -> Tuple[Optional[MediaSubmission], Optional[str]]:
    if problem:
        return None, problem
    return MediaSubmission(kind=kind, file_id=attachment.file_id, file_name=file_name), None


def build_job(
    submission: MediaSubmission,
    *,
    bot: Any,
    chat_id: int,
    reply_to_message_id: int,
    status_message_id: int,
) -> Job:
    job_id = new_job_id()
    services = build_services(
        download=telegram_downloader(bot, submission.file_id),
        deliver=telegram_sender(
            bot,
            submission.kind,
            chat_id=chat_id,
            reply_to_message_id=reply_to_message_id,
            file_name=submission.file_name,
        ),
    )
    return Job(
        id=job_id,
        kind=submission.kind,
        stages=stages_for(submission.kind),
        notifier=TelegramStatusNotifier(job_id, bot, chat_id, status_message_id),
        services=services,
        payload={
            "file_id": submission.file_id,
            "chat_id": chat_id,
            "message_id": reply_to_message_id,
        },
    )


async def handle_media(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Validate the attachment and offer a job to the queue."""
    message = update.effective_message
    if message is None:
        return

    submission, rejection = extract_submission(message)
    if rejection:
        logger.info(
            "Media rejected",
            extra={"chat_id": message.chat_id, "reason": rejection},
        )
        await message.reply_text(rejection)
        return
    if submission is None:
        return

    queue: BoundedJobQueue = context.application.bot_data[QUEUE_KEY]
    status_message = await message.reply_text(
        WARMING_UP_MESSAGE,
        do_quote=True,
        disable_notification=True,
    )
    job = build_job(
        submission,
        bot=context.bot,
        chat_id=message.chat_id,
        reply_to_message_id=message.message_id,
        status_message_id=status_message.message_id,
    )

    admission = await queue.admit(job)
    if not admission.accepted:
        # Задача отброшена: доставляем сообщение и останавливаем отправителя
        await job.notifier.notify(QUEUE_FULL_MESSAGE)
        await job.notifier.flush()
        return

    # Тот же канал, что и у пайплайна: "Queued..." уйдёт раньше "Downloading..."
    if admission.position and job.state is JobState.PENDING:
        await job.notifier.notify(QUEUED_MESSAGE)


__all__ = [
    "QUEUE_KEY",
    "MediaSubmission",
    "extract_submission",
    "build_job",
    "handle_media",
]
