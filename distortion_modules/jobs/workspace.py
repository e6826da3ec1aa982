"""Job-scoped scratch directories."""

from __future__ import annotations

import contextlib
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

from distortion_modules.config import logger, OPERATIONS_DIR

from .errors import CleanupFailure

PathLike = Union[str, Path]


@dataclass(frozen=True)
class Workspace:
    """Directory owned by exactly one job for the duration of its run."""

    job_id: str
    root: Path

    def path(self, *parts: str) -> Path:
        return self.root.joinpath(*parts)

    def subdir(self, name: str) -> Path:
        directory = self.root / name
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def exists(self) -> bool:
        return self.root.is_dir()


def _validate_job_id(job_id: str) -> str:
    job_id = str(job_id or "").strip()
    if not job_id or job_id in (".", "..") or "/" in job_id or "\\" in job_id:
        raise ValueError(f"Invalid job id for workspace: {job_id!r}")
    return job_id


def create_workspace(job_id: str, root: Optional[PathLike] = None) -> Workspace:
    """Create (or reuse) the workspace directory for ``job_id``."""
    job_id = _validate_job_id(job_id)
    base = Path(root) if root is not None else OPERATIONS_DIR
    directory = base / job_id
    directory.mkdir(parents=True, exist_ok=True)
    logger.debug(
        "Workspace prepared",
        extra={"job_id": job_id, "workspace": str(directory)},
    )
    return Workspace(job_id=job_id, root=directory)


def destroy_workspace(workspace: Workspace) -> bool:
    """Recursively remove the workspace. Never raises; returns True if it is gone."""
    try:
        shutil.rmtree(workspace.root)
    except FileNotFoundError:
        pass
    except Exception as exc:  # noqa: BLE001 - teardown must not raise
        failure = CleanupFailure(workspace.job_id, exc)
        logger.warning(
            "Workspace cleanup failed",
            extra={"job_id": workspace.job_id, "workspace": str(workspace.root), "error": str(failure)},
        )
        return not workspace.root.exists()

    logger.debug(
        "Workspace cleaned",
        extra={"job_id": workspace.job_id, "workspace": str(workspace.root)},
    )
    return True


@contextlib.contextmanager
def workspace_scope(job_id: str, root: Optional[PathLike] = None) -> Iterator[Workspace]:
    """Pair workspace creation with unconditional teardown."""
    workspace = create_workspace(job_id, root)
    try:
        yield workspace
    finally:
        destroy_workspace(workspace)


__all__ = ["Workspace", "create_workspace", "destroy_workspace", "workspace_scope"]
