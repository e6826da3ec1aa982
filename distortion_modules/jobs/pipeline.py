"""Staged pipeline executor."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from distortion_modules.config import logger

from .errors import StageFailure
from .models import Job
from .progress import DONE_MESSAGE, FAILURE_MESSAGE, JobNotifier
from .services import MediaPipelineServices, default_media_services
from .workspace import Workspace, workspace_scope

WORKSPACE_STAGE = "prepare_workspace"


@dataclass
class PipelineContext:
    """In-memory context passed across pipeline stages."""

    job: Job
    workspace: Workspace
    notifier: JobNotifier
    services: MediaPipelineServices = field(default_factory=default_media_services)
    artifacts: Dict[str, Any] = field(default_factory=dict)

    @property
    def payload(self) -> Dict[str, Any]:
        return self.job.payload


@dataclass
class PipelineResult:
    """Terminal outcome of one pipeline run."""

    job_id: str
    succeeded: bool
    failed_stage: Optional[str] = None
    error: Optional[BaseException] = None
    artifacts: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, job_id: str, artifacts: Optional[Dict[str, Any]] = None) -> "PipelineResult":
        return cls(job_id=job_id, succeeded=True, artifacts=dict(artifacts or {}))

    @classmethod
    def failure(
        cls,
        job_id: str,
        failed_stage: str,
        error: BaseException,
        artifacts: Optional[Dict[str, Any]] = None,
    ) -> "PipelineResult":
        return cls(
            job_id=job_id,
            succeeded=False,
            failed_stage=failed_stage,
            error=error,
            artifacts=dict(artifacts or {}),
        )

    def as_exception(self) -> Optional[StageFailure]:
        if self.succeeded:
            return None
        return StageFailure(self.failed_stage or "unknown", self.error)


async def run_pipeline(
    job: Job,
    *,
    services: Optional[MediaPipelineServices] = None,
    workspace_root: Optional[Union[str, Path]] = None,
) -> PipelineResult:
    """Execute the job's stages in order inside a fresh workspace.

    Stage errors never escape: the first failing stage aborts the rest and is
    reported through the result. The workspace is removed on every exit path
    and the submitter only ever sees a generic failure message.
    """
    notifier = job.notifier
    services = services or job.services or default_media_services()

    try:
        with workspace_scope(job.id, workspace_root) as workspace:
            context = PipelineContext(
                job=job,
                workspace=workspace,
                notifier=notifier,
                services=services,
            )
            result = await _run_stages(context)
            await notifier.notify(DONE_MESSAGE if result.succeeded else FAILURE_MESSAGE)
    except Exception as exc:  # noqa: BLE001 - workspace could not be prepared
        logger.exception(
            "Media pipeline aborted before the first stage",
            extra={"job_id": job.id},
        )
        result = PipelineResult.failure(job.id, WORKSPACE_STAGE, exc)
        await notifier.notify(FAILURE_MESSAGE)
    finally:
        await notifier.close()

    logger.info(
        "Media pipeline finished",
        extra={
            "job_id": job.id,
            "succeeded": result.succeeded,
            "failed_stage": result.failed_stage,
        },
    )
    return result


async def _run_stages(context: PipelineContext) -> PipelineResult:
    job = context.job
    if not job.stages:
        logger.warning(
            "Media pipeline invoked without stages",
            extra={"job_id": job.id},
        )
        return PipelineResult.success(job.id)

    for stage in job.stages:
        stage_name = getattr(stage, "name", stage.__class__.__name__)
        try:
            await context.notifier.notify(stage.describe())
            update = await stage.run(context)
        except Exception as exc:  # noqa: BLE001 - any stage error fails the job
            logger.exception(
                "Media pipeline stage failed",
                extra={"job_id": job.id, "stage": stage_name},
            )
            return PipelineResult.failure(job.id, stage_name, exc, context.artifacts)
        if update:
            context.artifacts.update(update)

    return PipelineResult.success(job.id, context.artifacts)


__all__ = ["PipelineContext", "PipelineResult", "run_pipeline"]
