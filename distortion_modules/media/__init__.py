"""External media operations: downloads and ffmpeg/ImageMagick tools."""

from .errors import DownloadError, ToolError, ToolTimeout
from .download import download_file
from .tools import (
    build_audio_filters,
    combine_frames,
    distort_audio,
    distort_image,
    extract_frames,
    get_audio_sample_rate,
    get_image_dimensions,
    list_frames,
    run_tool,
)

__all__ = [
    "DownloadError",
    "ToolError",
    "ToolTimeout",
    "download_file",
    "build_audio_filters",
    "combine_frames",
    "distort_audio",
    "distort_image",
    "extract_frames",
    "get_audio_sample_rate",
    "get_image_dimensions",
    "list_frames",
    "run_tool",
]
