"""Wrappers around ffmpeg, ffprobe and ImageMagick.

Every operation runs the tool as an asyncio subprocess, so the event loop
(and queue admission) stays responsive while a job is being processed.
Failures surface as :class:`ToolError`; a timeout kills the process and
raises :class:`ToolTimeout`.
"""

from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from distortion_modules.config import logger, TOOL_TIMEOUT_SECONDS, FRAME_RATE

from .errors import ToolError, ToolTimeout

PathLike = Union[str, Path]

FRAME_PATTERN = "%d.jpg"


async def run_tool(command: Sequence[object], *, timeout: Optional[float] = TOOL_TIMEOUT_SECONDS) -> str:
    """Run ``command`` and return its stdout; raise ``ToolError`` on failure."""
    command = [str(part) for part in command]
    logger.debug("Запускаю %s", command[0], extra={"command": " ".join(command)})
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ToolError(command, None, str(exc)) from exc

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        raise ToolTimeout(command, timeout or 0)

    if process.returncode != 0:
        raise ToolError(command, process.returncode, stderr.decode(errors="replace"))
    return stdout.decode(errors="replace")


def build_audio_filters(*, sample_rate: int, vibrato: float, pitch: float) -> List[str]:
    filters = []
    if vibrato != 0:
        filters.append(f"vibrato=f=10:d={vibrato:g}")
    if pitch != 1:
        filters.append(
            f"asetrate={sample_rate}*{pitch:g},aresample={sample_rate},atempo=1/{pitch:g}"
        )
    return filters


def _filter_arguments(filters: List[str]) -> List[str]:
    if not filters:
        return []
    return ["-filter:a", ",".join(filters)]


def list_frames(directory: PathLike) -> List[Path]:
    """Frames in playback order (1.jpg, 2.jpg, ..., 10.jpg), not alphabetical."""
    frames = [path for path in Path(directory).glob("*.jpg") if path.stem.isdigit()]
    return sorted(frames, key=lambda path: int(path.stem))


async def extract_frames(
    input_path: PathLike,
    output_dir: PathLike,
    *,
    frame_rate: int = FRAME_RATE,
    timeout: Optional[float] = TOOL_TIMEOUT_SECONDS,
) -> List[Path]:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    await run_tool(
        ["ffmpeg", "-y", "-i", input_path, "-r", frame_rate, output_dir / FRAME_PATTERN],
        timeout=timeout,
    )
    return list_frames(output_dir)


async def get_audio_sample_rate(path: PathLike, *, timeout: Optional[float] = TOOL_TIMEOUT_SECONDS) -> int:
    command = [
        "ffprobe",
        "-v", "error",
        "-select_streams", "a",
        "-of", "default=noprint_wrappers=1:nokey=1",
        "-show_entries", "stream=sample_rate",
        path,
    ]
    output = await run_tool(command, timeout=timeout)
    first_line = output.strip().splitlines()[0] if output.strip() else ""
    if not first_line.isdigit():
        raise ToolError(command, 0, f"Could not determine sample rate (got {first_line!r})")
    return int(first_line)


async def get_image_dimensions(
    path: PathLike,
    *,
    timeout: Optional[float] = TOOL_TIMEOUT_SECONDS,
) -> Tuple[int, int]:
    command = ["magick", "identify", "-format", "%w %h", path]
    output = await run_tool(command, timeout=timeout)
    parts = output.split()
    if len(parts) < 2 or not parts[0].isdigit() or not parts[1].isdigit():
        raise ToolError(command, 0, f"Could not determine image dimensions (got {output!r})")
    return int(parts[0]), int(parts[1])


async def distort_image(
    input_path: PathLike,
    output_path: PathLike,
    *,
    width: int,
    height: int,
    rescale: float,
    timeout: Optional[float] = TOOL_TIMEOUT_SECONDS,
) -> Path:
    """Liquid-rescale the image to ``rescale`` percent, then stretch it back."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    await run_tool(
        [
            "magick", input_path,
            "-liquid-rescale", f"{int(rescale)}%",
            "-resize", f"{width}x{height}",
            output_path,
        ],
        timeout=timeout,
    )
    return output_path


async def distort_audio(
    input_path: PathLike,
    output_path: PathLike,
    *,
    sample_rate: int,
    vibrato: float,
    pitch: float,
    codec: str = "libopus",
    timeout: Optional[float] = TOOL_TIMEOUT_SECONDS,
) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    filters = build_audio_filters(sample_rate=sample_rate, vibrato=vibrato, pitch=pitch)
    await run_tool(
        [
            "ffmpeg", "-y",
            "-i", input_path,
            *_filter_arguments(filters),
            "-c:a", codec,
            "-shortest",
            output_path,
        ],
        timeout=timeout,
    )
    return output_path


async def combine_frames(
    input_path: PathLike,
    frames_dir: PathLike,
    output_path: PathLike,
    *,
    sample_rate: Optional[int] = None,
    vibrato: float = 0,
    pitch: float = 1,
    audio: bool = True,
    frame_rate: int = FRAME_RATE,
    timeout: Optional[float] = TOOL_TIMEOUT_SECONDS,
) -> Path:
    """Encode numbered frames into a video, optionally with the source's distorted audio."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    command: List[object] = [
        "ffmpeg", "-y",
        "-framerate", frame_rate,
        "-start_number", 1,
        "-i", Path(frames_dir) / FRAME_PATTERN,
    ]
    if audio:
        if sample_rate is None:
            raise ValueError("sample_rate is required when audio is enabled.")
        filters = build_audio_filters(sample_rate=sample_rate, vibrato=vibrato, pitch=pitch)
        command += [
            "-i", input_path,
            "-map", "0:v:0",
            "-map", "1:a:0",
            *_filter_arguments(filters),
            "-c:a", "libopus",
            "-b:a", "192k",
            "-shortest",
        ]
    else:
        command += ["-an"]
    command += [
        # libx264 + yuv420p требуют чётных размеров кадра
        "-vf", "scale=trunc(iw/2)*2:trunc(ih/2)*2",
        "-c:v", "libx264",
        "-crf", 18,
        "-preset", "slow",
        "-pix_fmt", "yuv420p",
        output_path,
    ]
    await run_tool(command, timeout=timeout)
    return output_path


__all__ = [
    "run_tool",
    "build_audio_filters",
    "list_frames",
    "extract_frames",
    "get_audio_sample_rate",
    "get_image_dimensions",
    "distort_image",
    "distort_audio",
    "combine_frames",
]
