"""Stage plans for each supported media kind."""

from __future__ import annotations

from typing import Callable, Dict, List

from .stages import (
    CombineFramesStage,
    DeliverStage,
    DistortAudioStage,
    DistortFramesStage,
    DistortImageStage,
    DownloadStage,
    ExtractFramesStage,
    PipelineStage,
    VerifyStage,
)

AUDIO_VIBRATO = 0.7
AUDIO_PITCH = 1.25
IMAGE_RESCALE = 50


def voice_stages() -> List[PipelineStage]:
    return [
        DownloadStage("input.ogg"),
        VerifyStage(audio=True),
        DistortAudioStage("output.ogg", vibrato=AUDIO_VIBRATO, pitch=AUDIO_PITCH, codec="libopus"),
        DeliverStage(),
    ]


def audio_stages() -> List[PipelineStage]:
    return [
        DownloadStage("input.mp3"),
        VerifyStage(audio=True),
        DistortAudioStage("output.mp3", vibrato=AUDIO_VIBRATO, pitch=AUDIO_PITCH, codec="libmp3lame"),
        DeliverStage(),
    ]


def sticker_stages() -> List[PipelineStage]:
    return [
        DownloadStage("input.webp"),
        VerifyStage(dimensions_from="input"),
        DistortImageStage("output.webp", rescale=IMAGE_RESCALE),
        DeliverStage(),
    ]


def photo_stages() -> List[PipelineStage]:
    return [
        DownloadStage("input.jpeg"),
        VerifyStage(dimensions_from="input"),
        DistortImageStage("output.jpeg", rescale=IMAGE_RESCALE),
        DeliverStage(),
    ]


def _frame_stages(*, audio: bool, description: str) -> List[PipelineStage]:
    return [
        DownloadStage("input.mp4"),
        ExtractFramesStage(),
        VerifyStage(audio=audio, dimensions_from="frames"),
        DistortFramesStage(),
        CombineFramesStage(
            "output.mp4",
            description=description,
            audio=audio,
            vibrato=AUDIO_VIBRATO,
            pitch=AUDIO_PITCH,
        ),
        DeliverStage(),
    ]


def video_stages() -> List[PipelineStage]:
    return _frame_stages(audio=True, description="Creating a video...")


def video_note_stages() -> List[PipelineStage]:
    return _frame_stages(audio=True, description="Creating a video note...")


def animation_stages() -> List[PipelineStage]:
    return _frame_stages(audio=False, description="Creating an animation...")


STAGE_PLANS: Dict[str, Callable[[], List[PipelineStage]]] = {
    "voice": voice_stages,
    "audio": audio_stages,
    "sticker": sticker_stages,
    "photo": photo_stages,
    "video": video_stages,
    "video_note": video_note_stages,
    "animation": animation_stages,
}


def stages_for(kind: str) -> List[PipelineStage]:
    """Fresh stage list for ``kind``; raises ``KeyError`` for unknown kinds."""
    try:
        factory = STAGE_PLANS[kind]
    except KeyError:
        raise KeyError(f"No stage plan for media kind '{kind}'.") from None
    return factory()


__all__ = [
    "STAGE_PLANS",
    "stages_for",
    "voice_stages",
    "audio_stages",
    "sticker_stages",
    "photo_stages",
    "video_stages",
    "video_note_stages",
    "animation_stages",
]
