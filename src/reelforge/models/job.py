"""Processing job models used by the progress tracker."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            JobStatus.COMPLETED,
            JobStatus.COMPLETED_WITH_ERRORS,
            JobStatus.FAILED,
        )


class JobEvent(str, Enum):
    """Notifications observers can subscribe to."""

    STAGE_START = "stage_start"
    STAGE_COMPLETE = "stage_complete"
    PROGRESS = "progress"
    WARNING = "warning"
    ERROR = "error"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Stage:
    """A named, timed phase within a job."""

    name: str
    status: str = "in_progress"  # in_progress, completed, failed
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    details: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: Optional[str] = None

    @property
    def elapsed_time(self) -> float:
        end = self.end_time if self.end_time else time.time()
        return end - self.start_time

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "status": self.status,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "elapsed_seconds": round(self.elapsed_time, 3),
            "details": self.details,
            "result": self.result,
            "error": self.error,
        }


@dataclass
class JobIssue:
    """A warning or error recorded against a job."""

    message: str
    stage: Optional[str] = None
    scene_id: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "stage": self.stage,
            "scene_id": self.scene_id,
            "details": self.details,
            "timestamp": self.timestamp,
        }


@dataclass
class ProcessingJob:
    """State of one pipeline run."""

    job_id: str
    job_type: str = "video-generation"
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    stages: list[Stage] = field(default_factory=list)
    current_stage: Optional[str] = None
    warnings: list[JobIssue] = field(default_factory=list)
    errors: list[JobIssue] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    result: dict[str, Any] = field(default_factory=dict)
    failure_reason: Optional[str] = None
    last_message: Optional[str] = None

    @property
    def duration(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def is_finished(self) -> bool:
        return self.status.is_terminal

    @property
    def last_error(self) -> Optional[JobIssue]:
        return self.errors[-1] if self.errors else None

    def get_stage(self, name: str) -> Optional[Stage]:
        for stage in reversed(self.stages):
            if stage.name == name:
                return stage
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.job_id,
            "type": self.job_type,
            "status": self.status.value,
            "progress": self.progress,
            "current_stage": self.current_stage,
            "stages": [s.to_dict() for s in self.stages],
            "warnings": [w.to_dict() for w in self.warnings],
            "errors": [e.to_dict() for e in self.errors],
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "metadata": self.metadata,
            "result": self.result,
            "failure_reason": self.failure_reason,
            "last_message": self.last_message,
        }
