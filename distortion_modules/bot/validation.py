"""Per-message checks run before a job is admitted.

Each ``validate_*`` function returns a user-facing rejection text, or
``None`` when the attachment can be processed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from distortion_modules.config import (
    MAX_DIAMETER,
    MAX_DURATION_SECONDS,
    MAX_FILE_SIZE_BYTES,
    MAX_HEIGHT,
    MAX_WIDTH,
    SUPPORTED_MIME_TYPES,
)


@dataclass(frozen=True)
class MediaLimits:
    max_size_bytes: int = MAX_FILE_SIZE_BYTES
    max_duration_seconds: int = MAX_DURATION_SECONDS
    max_width: int = MAX_WIDTH
    max_height: int = MAX_HEIGHT
    max_diameter: int = MAX_DIAMETER
    supported_mime_types: Tuple[str, ...] = SUPPORTED_MIME_TYPES


DEFAULT_LIMITS = MediaLimits()

DOCUMENTS_NOT_SUPPORTED = "Sorry, documents not supported."


def check_duration(duration: Any, limits: MediaLimits = DEFAULT_LIMITS) -> Optional[str]:
    # Newer python-telegram-bot releases may expose durations as timedelta
    if hasattr(duration, "total_seconds"):
        duration = int(duration.total_seconds())
    if duration is not None and duration > limits.max_duration_seconds:
        return f"Max duration: {limits.max_duration_seconds} seconds (provided: {duration})"
    return None


def check_size(size: Optional[int], limits: MediaLimits = DEFAULT_LIMITS) -> Optional[str]:
    if not size:
        return "Could not determine file size"
    if size > limits.max_size_bytes:
        return f"Max size: {limits.max_size_bytes} bytes (provided: {size})"
    return None


def check_mime_type(mime_type: Optional[str], limits: MediaLimits = DEFAULT_LIMITS) -> Optional[str]:
    if not mime_type:
        return "Could not determine file mime type"
    if mime_type not in limits.supported_mime_types:
        return f"Unsupported mime type: {mime_type}"
    return None


def check_dimensions(width: int, height: int, limits: MediaLimits = DEFAULT_LIMITS) -> Optional[str]:
    if width > limits.max_width:
        return f"Max width: {limits.max_width} (provided: {width})"
    if height > limits.max_height:
        return f"Max height: {limits.max_height} (provided: {height})"
    return None


def check_diameter(diameter: int, limits: MediaLimits = DEFAULT_LIMITS) -> Optional[str]:
    if diameter > limits.max_diameter:
        return f"Max diameter: {limits.max_diameter} (provided: {diameter})"
    return None


def _first_problem(*problems: Optional[str]) -> Optional[str]:
    for problem in problems:
        if problem:
            return problem
    return None


def validate_voice(voice: Any, limits: MediaLimits = DEFAULT_LIMITS) -> Optional[str]:
    return _first_problem(
        check_duration(voice.duration, limits),
        check_mime_type(voice.mime_type, limits),
        check_size(voice.file_size, limits),
    )


validate_audio = validate_voice


def validate_sticker(sticker: Any, limits: MediaLimits = DEFAULT_LIMITS) -> Optional[str]:
    if sticker.type != "regular":
        return "Masks and custom emojis are not supported"
    if sticker.is_animated:
        return "Animated stickers are not supported"
    if sticker.is_video:
        return "Sorry, video stickers are not supported yet. Coming soon!"
    return check_size(sticker.file_size, limits)


def pick_photo(photos: Sequence[Any], limits: MediaLimits = DEFAULT_LIMITS) -> Optional[Any]:
    """Largest photo size that fits every limit."""
    candidates = [
        photo
        for photo in photos
        if photo.file_size
        and photo.file_size <= limits.max_size_bytes
        and photo.width <= limits.max_width
        and photo.height <= limits.max_height
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda photo: photo.width * photo.height)


def validate_video_note(video_note: Any, limits: MediaLimits = DEFAULT_LIMITS) -> Optional[str]:
    return _first_problem(
        check_duration(video_note.duration, limits),
        check_size(video_note.file_size, limits),
        check_diameter(video_note.length, limits),
    )


def validate_video(video: Any, limits: MediaLimits = DEFAULT_LIMITS) -> Optional[str]:
    return _first_problem(
        check_duration(video.duration, limits),
        check_size(video.file_size, limits),
        check_dimensions(video.width, video.height, limits),
        check_mime_type(video.mime_type, limits),
    )


validate_animation = validate_video


__all__ = [
    "MediaLimits",
    "DEFAULT_LIMITS",
    "DOCUMENTS_NOT_SUPPORTED",
    "check_duration",
    "check_size",
    "check_mime_type",
    "check_dimensions",
    "check_diameter",
    "validate_voice",
    "validate_audio",
    "validate_sticker",
    "pick_photo",
    "validate_video_note",
    "validate_video",
    "validate_animation",
]
