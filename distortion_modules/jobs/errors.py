"""Errors raised by the job queue and pipeline executor."""

from __future__ import annotations

from typing import Optional


class JobError(Exception):
    """Base class for job queue and pipeline errors."""


class CapacityExceeded(JobError):
    """Raised when the pending backlog is full and a job cannot be admitted."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Job queue is full (limit={limit}).")
        self.limit = limit


class StageFailure(JobError):
    """A pipeline stage failed; the job is terminal."""

    def __init__(self, stage_name: str, cause: Optional[BaseException] = None) -> None:
        message = f"Stage '{stage_name}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.stage_name = stage_name
        self.cause = cause


class CleanupFailure(JobError):
    """Workspace teardown failed. Logged, never propagated past the executor."""

    def __init__(self, job_id: str, cause: BaseException) -> None:
        super().__init__(f"Cleanup failed for job {job_id}: {cause}")
        self.job_id = job_id
        self.cause = cause


__all__ = ["JobError", "CapacityExceeded", "StageFailure", "CleanupFailure"]
