"""In-memory job model shared by the queue and the pipeline executor."""

from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .progress import JobNotifier, LoggingNotifier
from .services import MediaPipelineServices

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .pipeline import PipelineResult
    from .stages import PipelineStage


class JobState(str, Enum):
    """Lifecycle states of a job."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def new_job_id() -> str:
    """Collision-resistant identifier, also used as the workspace directory name."""
    return uuid.uuid4().hex


@dataclass(eq=False)
class Job:
    """One unit of pipeline work submitted to the queue."""

    stages: List["PipelineStage"]
    kind: str = "generic"
    payload: Dict[str, Any] = field(default_factory=dict)
    notifier: Optional[JobNotifier] = None
    services: Optional[MediaPipelineServices] = None
    id: str = field(default_factory=new_job_id)
    created_at: dt.datetime = field(default_factory=_utcnow)
    state: JobState = JobState.PENDING
    started_at: Optional[dt.datetime] = None
    finished_at: Optional[dt.datetime] = None
    result: Optional["PipelineResult"] = None

    def __post_init__(self) -> None:
        self.stages = list(self.stages)
        if self.notifier is None:
            self.notifier = LoggingNotifier(self.id)

    def mark_running(self) -> None:
        self.state = JobState.RUNNING
        self.started_at = _utcnow()

    def mark_finished(self, succeeded: bool) -> None:
        self.state = JobState.SUCCEEDED if succeeded else JobState.FAILED
        self.finished_at = _utcnow()

    @property
    def stage_names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Job(id={self.id!r}, kind={self.kind!r}, state={self.state.value!r})"


__all__ = ["Job", "JobState", "new_job_id"]
