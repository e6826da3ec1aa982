"""Pipeline stage definitions for media processing."""

from __future__ import annotations

import inspect
import math
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Union

from distortion_modules.config import FRAME_RATE, PROGRESS_INTERVAL_SECONDS
from distortion_modules.media.tools import list_frames

from .progress import ProgressThrottle

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .pipeline import PipelineContext

StageResult = Optional[Dict[str, Any]]


class PipelineStage(ABC):
    """Base class for a pipeline stage."""

    name: str = "stage"

    def describe(self) -> str:
        return self.name

    @abstractmethod
    async def run(self, context: "PipelineContext") -> StageResult:
        """Execute stage and optionally return artifact updates."""

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.__class__.__name__}(name={self.name!r})"


class FunctionStage(PipelineStage):
    """Stage backed by a plain callable (sync or async)."""

    def __init__(
        self,
        name: str,
        func: Callable[["PipelineContext"], Union[StageResult, Awaitable[StageResult]]],
        *,
        description: Optional[str] = None,
    ) -> None:
        self.name = name
        self.func = func
        self.description = description or name

    def describe(self) -> str:
        return self.description

    async def run(self, context: "PipelineContext") -> StageResult:
        result = self.func(context)
        if inspect.isawaitable(result):
            result = await result
        return result


def _require(context: "PipelineContext", key: str, producer: str) -> Any:
    value = context.artifacts.get(key)
    if value is None:
        raise RuntimeError(f"Artifact '{key}' is missing; {producer} stage must run first.")
    return value


class DownloadStage(PipelineStage):
    name = "download"

    def __init__(self, filename: str) -> None:
        self.filename = filename

    def describe(self) -> str:
        return "Downloading..."

    async def run(self, context: "PipelineContext") -> StageResult:
        destination = context.workspace.path(self.filename)
        await context.services.download(context, destination)
        if not destination.exists():
            raise RuntimeError("Downloader did not produce the input file.")
        return {"input_path": destination}


class ExtractFramesStage(PipelineStage):
    name = "extract_frames"

    def __init__(self, *, frame_rate: int = FRAME_RATE) -> None:
        self.frame_rate = frame_rate

    def describe(self) -> str:
        return "Extracting frames..."

    async def run(self, context: "PipelineContext") -> StageResult:
        input_path = _require(context, "input_path", "download")
        frames_dir = context.workspace.subdir("original")
        await context.services.extract_frames(input_path, frames_dir, frame_rate=self.frame_rate)
        frames = list_frames(frames_dir)
        if not frames:
            raise RuntimeError("No frames were extracted.")
        return {"frames_dir": frames_dir, "frames": frames}


class VerifyStage(PipelineStage):
    """Probe the input: audio sample rate and/or image dimensions.

    ``dimensions_from`` is ``"input"`` for still images and ``"frames"`` for
    videos (the first extracted frame is measured).
    """

    name = "verify"

    def __init__(self, *, audio: bool = False, dimensions_from: Optional[str] = None) -> None:
        if dimensions_from not in (None, "input", "frames"):
            raise ValueError(f"Unsupported dimensions source: {dimensions_from!r}")
        self.audio = audio
        self.dimensions_from = dimensions_from

    def describe(self) -> str:
        return "Verifying..."

    async def run(self, context: "PipelineContext") -> StageResult:
        input_path = _require(context, "input_path", "download")
        result: Dict[str, Any] = {}
        if self.audio:
            result["sample_rate"] = await context.services.get_audio_sample_rate(input_path)
        if self.dimensions_from == "input":
            result["dimensions"] = tuple(await context.services.get_image_dimensions(input_path))
        elif self.dimensions_from == "frames":
            frames = _require(context, "frames", "extract_frames")
            result["dimensions"] = tuple(await context.services.get_image_dimensions(frames[0]))
        return result


class DistortAudioStage(PipelineStage):
    name = "distort_audio"

    def __init__(
        self,
        output_filename: str,
        *,
        vibrato: float = 0.7,
        pitch: float = 1.25,
        codec: str = "libopus",
    ) -> None:
        self.output_filename = output_filename
        self.vibrato = vibrato
        self.pitch = pitch
        self.codec = codec

    def describe(self) -> str:
        return "Distorting..."

    async def run(self, context: "PipelineContext") -> StageResult:
        input_path = _require(context, "input_path", "download")
        sample_rate = _require(context, "sample_rate", "verify")
        output_path = context.workspace.path(self.output_filename)
        await context.services.distort_audio(
            input_path,
            output_path,
            sample_rate=sample_rate,
            vibrato=self.vibrato,
            pitch=self.pitch,
            codec=self.codec,
        )
        return {"output_path": output_path}


class DistortImageStage(PipelineStage):
    name = "distort_image"

    def __init__(self, output_filename: str, *, rescale: float = 50) -> None:
        self.output_filename = output_filename
        self.rescale = rescale

    def describe(self) -> str:
        return "Distorting..."

    async def run(self, context: "PipelineContext") -> StageResult:
        input_path = _require(context, "input_path", "download")
        width, height = _require(context, "dimensions", "verify")
        output_path = context.workspace.path(self.output_filename)
        await context.services.distort_image(
            input_path,
            output_path,
            width=width,
            height=height,
            rescale=self.rescale,
        )
        return {"output_path": output_path}


def frame_rescale(index: int, total: int, *, minimum: float = 40, span: float = 50) -> float:
    """Distortion ramps up over the clip: ``minimum + span`` percent at the first frame, ``minimum`` at the last."""
    percentage = index / (total - 1) if total > 1 else 0.0
    return minimum + span * (1 - percentage)


class DistortFramesStage(PipelineStage):
    """Liquid-rescale every frame; emits throttled percentage updates."""

    name = "distort_frames"

    def __init__(
        self,
        *,
        minimum_rescale: float = 40,
        rescale_span: float = 50,
        progress_interval: float = PROGRESS_INTERVAL_SECONDS,
    ) -> None:
        self.minimum_rescale = minimum_rescale
        self.rescale_span = rescale_span
        self.progress_interval = progress_interval

    def describe(self) -> str:
        return "Distorting frames..."

    async def run(self, context: "PipelineContext") -> StageResult:
        frames = _require(context, "frames", "extract_frames")
        width, height = _require(context, "dimensions", "verify")
        distorted_dir = context.workspace.subdir("distorted")
        throttle = ProgressThrottle(context.notifier, interval=self.progress_interval)

        total = len(frames)
        for index, frame in enumerate(frames):
            await throttle.maybe_notify(
                f"Distorting frames ({math.floor(index / total * 100)}%)"
            )
            await context.services.distort_image(
                frame,
                distorted_dir / Path(frame).name,
                width=width,
                height=height,
                rescale=frame_rescale(
                    index,
                    total,
                    minimum=self.minimum_rescale,
                    span=self.rescale_span,
                ),
            )
        return {"distorted_dir": distorted_dir}


class CombineFramesStage(PipelineStage):
    name = "combine_frames"

    def __init__(
        self,
        output_filename: str,
        *,
        description: str = "Creating a video...",
        audio: bool = True,
        vibrato: float = 0.7,
        pitch: float = 1.25,
        frame_rate: int = FRAME_RATE,
    ) -> None:
        self.output_filename = output_filename
        self.description = description
        self.audio = audio
        self.vibrato = vibrato
        self.pitch = pitch
        self.frame_rate = frame_rate

    def describe(self) -> str:
        return self.description

    async def run(self, context: "PipelineContext") -> StageResult:
        input_path = _require(context, "input_path", "download")
        distorted_dir = _require(context, "distorted_dir", "distort_frames")
        sample_rate = _require(context, "sample_rate", "verify") if self.audio else None
        output_path = context.workspace.path(self.output_filename)
        await context.services.combine_frames(
            input_path,
            distorted_dir,
            output_path,
            sample_rate=sample_rate,
            vibrato=self.vibrato,
            pitch=self.pitch,
            audio=self.audio,
            frame_rate=self.frame_rate,
        )
        return {"output_path": output_path}


class DeliverStage(PipelineStage):
    name = "deliver"

    def describe(self) -> str:
        return "Sending..."

    async def run(self, context: "PipelineContext") -> StageResult:
        output_path = _require(context, "output_path", "distort")
        await context.services.deliver(context, output_path)
        return None


__all__ = [
    "PipelineStage",
    "FunctionStage",
    "DownloadStage",
    "ExtractFramesStage",
    "VerifyStage",
    "DistortAudioStage",
    "DistortImageStage",
    "DistortFramesStage",
    "CombineFramesStage",
    "DeliverStage",
    "frame_rescale",
]
