"""Errors raised by external media operations."""

from __future__ import annotations

from typing import Optional, Sequence


class ToolError(RuntimeError):
    """An external media tool exited with an error."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        program = command[0] if command else "<unknown>"
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        message = f"{program} failed (returncode={returncode})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr


class ToolTimeout(ToolError):
    """An external media tool did not finish in time and was killed."""

    def __init__(self, command: Sequence[str], timeout: float) -> None:
        super().__init__(command, returncode=None, stderr=f"timed out after {timeout:g}s")
        self.timeout = timeout


class DownloadError(RuntimeError):
    """Downloading the submitted file failed."""


__all__ = ["ToolError", "ToolTimeout", "DownloadError"]
