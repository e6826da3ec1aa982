"""Service hooks used by media pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from distortion_modules.config import logger
from distortion_modules.media import tools

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from .pipeline import PipelineContext

DownloadFn = Callable[["PipelineContext", Path], Awaitable[Any]]
DeliverFn = Callable[["PipelineContext", Path], Awaitable[Any]]


@dataclass(frozen=True)
class MediaPipelineServices:
    """External operations used by media pipeline stages.

    ``download`` and ``deliver`` depend on the transport and are bound per
    job by the message handler; the transforms default to the real tools.
    """

    download: DownloadFn
    deliver: DeliverFn
    extract_frames: Callable[..., Awaitable[Any]] = tools.extract_frames
    get_audio_sample_rate: Callable[..., Awaitable[int]] = tools.get_audio_sample_rate
    get_image_dimensions: Callable[..., Awaitable[Any]] = tools.get_image_dimensions
    distort_image: Callable[..., Awaitable[Any]] = tools.distort_image
    distort_audio: Callable[..., Awaitable[Any]] = tools.distort_audio
    combine_frames: Callable[..., Awaitable[Any]] = tools.combine_frames


def _unimplemented(name: str) -> Callable[..., Awaitable[Any]]:
    async def _missing(*_args: Any, **_kwargs: Any) -> Any:
        logger.error("Pipeline service not implemented", extra={"service": name})
        raise NotImplementedError(f"Pipeline service '{name}' is not bound for this job.")

    return _missing


def default_media_services() -> MediaPipelineServices:
    """Real transforms, unbound download/deliver."""
    return MediaPipelineServices(
        download=_unimplemented("download"),
        deliver=_unimplemented("deliver"),
    )


def build_services(**overrides: Callable[..., Awaitable[Any]]) -> MediaPipelineServices:
    """Default services with selected operations replaced."""
    base = default_media_services()
    if not overrides:
        return base
    for key, candidate in overrides.items():
        if not hasattr(base, key):
            raise TypeError(f"Unknown pipeline service '{key}'.")
        if not callable(candidate):
            raise TypeError(f"Service override for '{key}' must be callable.")
    logger.debug(
        "Media services constructed",
        extra={"overrides": sorted(overrides.keys())},
    )
    return replace(base, **overrides)


__all__ = [
    "MediaPipelineServices",
    "default_media_services",
    "build_services",
]
