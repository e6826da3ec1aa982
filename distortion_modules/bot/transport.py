"""Telegram-bound download and delivery services for media jobs."""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Tuple

from telegram import ReplyParameters

from distortion_modules.config import logger, USE_LOCAL_BOT_API
from distortion_modules.media.download import download_file

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from distortion_modules.jobs.pipeline import PipelineContext

# kind -> (Bot method, media argument name)
SENDERS: Dict[str, Tuple[str, str]] = {
    "voice": ("send_voice", "voice"),
    "audio": ("send_audio", "audio"),
    "sticker": ("send_sticker", "sticker"),
    "photo": ("send_photo", "photo"),
    "video": ("send_video", "video"),
    "video_note": ("send_video_note", "video_note"),
    "animation": ("send_animation", "animation"),
}


def distorted_filename(file_name: Optional[str]) -> str:
    if not file_name:
        return "distorted.mp3"
    return re.sub(r"\.mp3$", " (distorted).mp3", file_name, flags=re.IGNORECASE)


def telegram_downloader(bot: Any, file_id: str) -> Callable[["PipelineContext", Path], Awaitable[Path]]:
    async def _download(context: "PipelineContext", destination: Path) -> Path:
        tg_file = await bot.get_file(file_id)
        file_path = tg_file.file_path or ""
        # Локальный Bot API Server отдаёт абсолютный путь к файлу на диске
        local_path = Path(file_path)
        if USE_LOCAL_BOT_API and local_path.is_absolute() and local_path.is_file():
            shutil.copyfile(local_path, destination)
        else:
            await download_file(file_path, destination)
        logger.info(
            "Media downloaded",
            extra={"job_id": context.job.id, "path": str(destination)},
        )
        return destination

    return _download


def telegram_sender(
    bot: Any,
    kind: str,
    *,
    chat_id: int,
    reply_to_message_id: int,
    file_name: Optional[str] = None,
) -> Callable[["PipelineContext", Path], Awaitable[Any]]:
    try:
        method_name, argument = SENDERS[kind]
    except KeyError:
        raise ValueError(f"Unsupported media kind '{kind}'.") from None

    async def _deliver(context: "PipelineContext", output_path: Path) -> Any:
        method = getattr(bot, method_name)
        kwargs: Dict[str, Any] = {}
        if kind == "audio":
            kwargs["filename"] = distorted_filename(file_name)
        with Path(output_path).open("rb") as handle:
            kwargs[argument] = handle
            sent = await method(
                chat_id=chat_id,
                reply_parameters=ReplyParameters(message_id=reply_to_message_id),
                **kwargs,
            )
        logger.info(
            "Result delivered",
            extra={"job_id": context.job.id, "chat_id": chat_id, "job_type": kind},
        )
        return sent

    return _deliver


__all__ = ["SENDERS", "distorted_filename", "telegram_downloader", "telegram_sender"]
