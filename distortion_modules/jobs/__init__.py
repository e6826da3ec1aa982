"""Job queue and media pipeline package."""

from .errors import CapacityExceeded, CleanupFailure, JobError, StageFailure
from .models import Job, JobState, new_job_id
from .progress import (
    JobNotifier,
    LoggingNotifier,
    ProgressThrottle,
    TelegramStatusNotifier,
)
from .workspace import Workspace, create_workspace, destroy_workspace, workspace_scope
from .services import MediaPipelineServices, build_services, default_media_services
from .stages import (
    PipelineStage,
    FunctionStage,
    DownloadStage,
    ExtractFramesStage,
    VerifyStage,
    DistortAudioStage,
    DistortImageStage,
    DistortFramesStage,
    CombineFramesStage,
    DeliverStage,
)
from .pipeline import PipelineContext, PipelineResult, run_pipeline
from .plans import STAGE_PLANS, stages_for
from .queue import AdmissionResult, BoundedJobQueue, CAPACITY_EXCEEDED

__all__ = [
    "CapacityExceeded",
    "CleanupFailure",
    "JobError",
    "StageFailure",
    "Job",
    "JobState",
    "new_job_id",
    "JobNotifier",
    "LoggingNotifier",
    "ProgressThrottle",
    "TelegramStatusNotifier",
    "Workspace",
    "create_workspace",
    "destroy_workspace",
    "workspace_scope",
    "MediaPipelineServices",
    "build_services",
    "default_media_services",
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
    "PipelineContext",
    "PipelineResult",
    "run_pipeline",
    "STAGE_PLANS",
    "stages_for",
    "AdmissionResult",
    "BoundedJobQueue",
    "CAPACITY_EXCEEDED",
]
