"""Bounded in-memory job queue drained by a single worker task."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Dict, Optional

from distortion_modules.config import logger

from .errors import CapacityExceeded
from .models import Job, JobState
from .pipeline import PipelineResult, run_pipeline

CAPACITY_EXCEEDED = "capacity-exceeded"
UNHANDLED_STAGE = "unhandled"
INTERRUPTED_STAGE = "interrupted"

JobRunner = Callable[[Job], Awaitable[PipelineResult]]


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of offering a job to the queue."""

    accepted: bool
    position: Optional[int] = None
    reason: Optional[str] = None
    job_id: Optional[str] = None


class BoundedJobQueue:
    """FIFO backlog of at most ``limit`` pending jobs, executed one at a time.

    ``position`` reported on admission is the number of jobs that will run
    before the admitted one: pending jobs ahead of it plus the running job.
    It is not refreshed afterwards.
    """

    def __init__(self, limit: int, *, runner: Optional[JobRunner] = None) -> None:
        if limit < 0:
            raise ValueError("Queue limit must be non-negative.")
        self._limit = int(limit)
        self._runner: JobRunner = runner or run_pipeline
        self._pending: Deque[Job] = deque()
        self._running: Optional[Job] = None
        self._lock = asyncio.Lock()
        self._changed = asyncio.Condition(self._lock)
        self._worker_task: Optional[asyncio.Task] = None
        self._succeeded_jobs = 0
        self._failed_jobs = 0
        self._total_job_time = 0.0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def current_job(self) -> Optional[Job]:
        return self._running

    @property
    def is_running(self) -> bool:
        return self._running is not None

    @property
    def worker_started(self) -> bool:
        return self._worker_task is not None and not self._worker_task.done()

    async def admit(self, job: Job) -> AdmissionResult:
        """Append ``job`` to the backlog unless it is full."""
        async with self._lock:
            if job.state is not JobState.PENDING or job is self._running or job in self._pending:
                raise ValueError(f"Job {job.id} is already queued or has run.")
            if len(self._pending) >= self._limit:
                logger.warning(
                    "Job rejected; queue is full",
                    extra={"job_id": job.id, "limit": self._limit},
                )
                return AdmissionResult(accepted=False, reason=CAPACITY_EXCEEDED, job_id=job.id)
            position = len(self._pending) + (1 if self._running is not None else 0)
            self._pending.append(job)
            self._changed.notify_all()

        logger.info(
            "Job enqueued",
            extra={"job_id": job.id, "job_type": job.kind, "position": position},
        )
        return AdmissionResult(accepted=True, position=position, job_id=job.id)

    async def admit_or_raise(self, job: Job) -> int:
        """Like :meth:`admit` but raises ``CapacityExceeded``; returns the position."""
        admission = await self.admit(job)
        if not admission.accepted:
            raise CapacityExceeded(self._limit)
        return admission.position

    def start(self) -> None:
        """Spawn the worker task on the running loop (idempotent)."""
        if self.worker_started:
            return
        self._worker_task = asyncio.create_task(self._worker(), name="job-queue-worker")
        logger.info("Job queue worker started", extra={"limit": self._limit})

    async def stop(self) -> None:
        """Cancel the worker task.

        A job that is running at that moment ends as ``failed`` with
        ``failed_stage="interrupted"``; pending jobs are dropped (no persistence).
        """
        task = self._worker_task
        self._worker_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        if self._pending:
            logger.warning(
                "Job queue stopped with pending jobs",
                extra={"pending": len(self._pending)},
            )
        self._log_summary()

    async def join(self) -> None:
        """Wait until the backlog is empty and no job is running."""
        async with self._lock:
            await self._changed.wait_for(
                lambda: not self._pending and self._running is None
            )

    async def _worker(self) -> None:
        while True:
            async with self._lock:
                while not self._pending:
                    await self._changed.wait()
                job = self._pending.popleft()
                self._running = job
                job.mark_running()
            try:
                await self._execute(job)
            finally:
                async with self._lock:
                    self._running = None
                    self._changed.notify_all()

    async def _execute(self, job: Job) -> None:
        logger.info(
            "Processing job",
            extra={"job_id": job.id, "job_type": job.kind},
        )
        started = time.monotonic()
        try:
            result = await self._runner(job)
        except asyncio.CancelledError as exc:
            # Воркер остановлен посреди задачи
            job.result = PipelineResult.failure(job.id, INTERRUPTED_STAGE, exc)
            job.mark_finished(False)
            self._failed_jobs += 1
            logger.warning(
                "Job interrupted by queue shutdown",
                extra={"job_id": job.id},
            )
            raise
        except Exception as exc:  # noqa: BLE001 - one job must not stop the worker
            logger.exception(
                "Job failed outside of pipeline stages",
                extra={"job_id": job.id},
            )
            result = PipelineResult.failure(job.id, UNHANDLED_STAGE, exc)

        duration = time.monotonic() - started
        self._total_job_time += duration
        job.result = result
        job.mark_finished(result.succeeded)
        if result.succeeded:
            self._succeeded_jobs += 1
        else:
            self._failed_jobs += 1
        logger.info(
            "Job processed",
            extra={
                "job_id": job.id,
                "state": job.state.value,
                "failed_stage": result.failed_stage,
                "duration_seconds": round(duration, 3),
            },
        )

    def stats(self) -> Dict[str, object]:
        total_jobs = self._succeeded_jobs + self._failed_jobs
        return {
            "limit": self._limit,
            "pending": len(self._pending),
            "running": self._running.id if self._running else None,
            "succeeded_jobs": self._succeeded_jobs,
            "failed_jobs": self._failed_jobs,
            "average_duration_seconds": round(self._total_job_time / total_jobs, 3) if total_jobs else 0.0,
        }

    def _log_summary(self) -> None:
        logger.info("Job queue summary", extra=self.stats())


__all__ = [
    "AdmissionResult",
    "BoundedJobQueue",
    "CAPACITY_EXCEEDED",
    "JobRunner",
]
