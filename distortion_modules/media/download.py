"""HTTP download of submitted files."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Union

import aiohttp

from distortion_modules.config import logger, DOWNLOAD_TIMEOUT_SECONDS

from .errors import DownloadError

CHUNK_SIZE = 64 * 1024


async def download_file(
    url: str,
    destination: Union[str, Path],
    *,
    timeout: Optional[float] = DOWNLOAD_TIMEOUT_SECONDS,
    session: Optional[aiohttp.ClientSession] = None,
) -> Path:
    """Stream ``url`` into ``destination``.

    The URL is never included in errors or logs: Telegram file links embed
    the bot token.
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    owns_session = session is None
    if owns_session:
        session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout))
    try:
        async with session.get(url) as resp:
            if resp.status // 100 != 2:
                raise DownloadError(
                    f"Failed to download file due to invalid status code: {resp.status}"
                )
            with destination.open("wb") as handle:
                async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
                    handle.write(chunk)
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise DownloadError(f"Failed to download file: {exc.__class__.__name__}") from exc
    finally:
        if owns_session:
            await session.close()

    if not destination.exists() or destination.stat().st_size == 0:
        raise DownloadError("Failed to download file due to empty response body")

    logger.debug(
        "File downloaded",
        extra={"path": str(destination), "size": destination.stat().st_size},
    )
    return destination


__all__ = ["download_file", "CHUNK_SIZE"]
