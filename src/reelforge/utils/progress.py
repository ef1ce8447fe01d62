"""Job and progress tracking for pipeline runs.

The tracker owns every ProcessingJob. Each job has its own lock so parallel
asset-resolution workers can report into it without corrupting state, while
different jobs never contend with each other. Observers subscribe per job and
get a handle to revoke the subscription.

Example usage:
    tracker = JobTracker()
    job = tracker.create_job()
    sub = tracker.subscribe(job.job_id, print)

    tracker.start_stage(job.job_id, "scene_resolution")
    tracker.update_stage_progress(job.job_id, 0.5)
    tracker.start_stage(job.job_id, "rendering")  # closes scene_resolution
    tracker.finish_job(job.job_id, artifact_path="out.mp4", artifact_kind="video")

    sub.unsubscribe()
"""

import copy
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from reelforge.models.job import JobEvent, JobIssue, JobStatus, ProcessingJob, Stage
from reelforge.utils.logging import get_logger

logger = get_logger(__name__)

# Stage order and the share of the 0-100 progress band each one owns
STAGE_WEIGHTS: dict[str, int] = {
    "scene_resolution": 50,
    "caption_generation": 10,
    "timeline_assembly": 10,
    "rendering": 30,
}

HISTORY_LIMIT = 1000

JobCallback = Callable[[JobEvent, dict], None]


class JobNotFoundError(KeyError):
    """Raised when an operation names a job the tracker does not know."""


@dataclass
class Subscription:
    """Handle returned by JobTracker.subscribe()."""

    job_id: str
    callback: JobCallback
    events: Optional[frozenset[JobEvent]]
    _tracker: "JobTracker" = field(repr=False)
    active: bool = True

    def wants(self, event: JobEvent) -> bool:
        return self.active and (self.events is None or event in self.events)

    def unsubscribe(self) -> None:
        if self.active:
            self._tracker._remove_subscription(self)
            self.active = False


@dataclass
class _JobRecord:
    job: ProcessingJob
    lock: threading.RLock = field(default_factory=threading.RLock)
    subscriptions: list[Subscription] = field(default_factory=list)


class JobTracker:
    """Tracks stage transitions, progress, warnings and errors per job."""

    def __init__(
        self,
        stage_weights: Optional[dict[str, int]] = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.stage_weights = dict(stage_weights or STAGE_WEIGHTS)
        self._stage_order = list(self.stage_weights)
        self._records: dict[str, _JobRecord] = {}
        self._registry_lock = threading.Lock()
        self.history: deque[dict] = deque(maxlen=history_limit)

    # ------------------------------------------------------------------
    # Job lifecycle
    # ------------------------------------------------------------------

    def create_job(
        self,
        job_id: Optional[str] = None,
        job_type: str = "video-generation",
        metadata: Optional[dict] = None,
    ) -> ProcessingJob:
        job = ProcessingJob(
            job_id=job_id or str(uuid.uuid4()),
            job_type=job_type,
            metadata=dict(metadata or {}),
        )
        with self._registry_lock:
            if job.job_id in self._records:
                raise ValueError(f"Job {job.job_id} already exists")
            self._records[job.job_id] = _JobRecord(job=job)

        logger.info("job_created", job_id=job.job_id, job_type=job_type)
        return copy.deepcopy(job)

    def finish_job(
        self,
        job_id: str,
        artifact_path: Optional[str] = None,
        artifact_kind: Optional[str] = None,
        result: Optional[dict] = None,
    ) -> JobStatus:
        """Close the job and settle its final status.

        completed when there were no errors, completed_with_errors when errors
        were recorded but an artifact exists, failed when there is no artifact.
        """
        if not artifact_path:
            self.fail_job(job_id, "Pipeline produced no artifact")
            return JobStatus.FAILED

        record = self._record(job_id)
        with record.lock:
            job = record.job
            if job.status.is_terminal:
                return job.status
            closed = self._close_current_stage(job)
            closed_payload = self._payload(job, stage=closed.name) if closed else None
            job.end_time = time.time()
            job.status = (
                JobStatus.COMPLETED_WITH_ERRORS if job.errors else JobStatus.COMPLETED
            )
            job.progress = 100
            job.result = {
                **(result or {}),
                "artifact_path": str(artifact_path),
                "artifact_kind": artifact_kind,
            }
            self._append_history(job)
            payload = self._payload(job, artifact_path=str(artifact_path), artifact_kind=artifact_kind)
            status = job.status
            duration = job.duration or 0.0
            counts = (len(job.warnings), len(job.errors))

        logger.info(
            "job_completed",
            job_id=job_id,
            status=status.value,
            duration=f"{duration:.2f}s",
            warnings=counts[0],
            errors=counts[1],
        )
        if closed_payload:
            self._dispatch(record, JobEvent.STAGE_COMPLETE, closed_payload)
        self._dispatch(record, JobEvent.COMPLETED, payload, final=True)
        return status

    def fail_job(self, job_id: str, error: Any, **details) -> ProcessingJob:
        """Record a fatal error and move the job to failed."""
        message = _error_message(error)
        record = self._record(job_id)
        with record.lock:
            job = record.job
            if job.status.is_terminal:
                return copy.deepcopy(job)
            job.errors.append(JobIssue(message=message, stage=job.current_stage, details=details))
            if job.current_stage:
                stage = job.get_stage(job.current_stage)
                if stage and stage.status == "in_progress":
                    stage.status = "failed"
                    stage.error = message
                    stage.end_time = time.time()
            job.end_time = time.time()
            job.status = JobStatus.FAILED
            job.failure_reason = message
            self._append_history(job)
            payload = self._payload(job, error=message)
            snapshot = copy.deepcopy(job)

        logger.error("job_failed", job_id=job_id, error=message, stage=snapshot.current_stage)
        self._dispatch(record, JobEvent.FAILED, payload, final=True)
        return snapshot

    # ------------------------------------------------------------------
    # Stages and progress
    # ------------------------------------------------------------------

    def start_stage(self, job_id: str, stage_name: str, details: Optional[dict] = None) -> Stage:
        """Start a stage, implicitly completing the current one."""
        record = self._record(job_id)
        with record.lock:
            job = record.job
            self._ensure_active(job)
            closed = self._close_current_stage(job)
            closed_payload = self._payload(job, stage=closed.name) if closed else None
            stage = Stage(name=stage_name, details=dict(details or {}))
            job.stages.append(stage)
            job.current_stage = stage_name
            job.status = JobStatus.PROCESSING
            self._raise_progress(job, self._stage_base(stage_name))
            payload = self._payload(job, stage=stage_name, details=stage.details)
            snapshot = copy.deepcopy(stage)

        if closed_payload:
            self._dispatch(record, JobEvent.STAGE_COMPLETE, closed_payload)
        logger.info("stage_started", job_id=job_id, stage=stage_name)
        self._dispatch(record, JobEvent.STAGE_START, payload)
        return snapshot

    def complete_stage(self, job_id: str, result: Any = None) -> Optional[Stage]:
        """Complete the current stage, attaching an optional result payload."""
        record = self._record(job_id)
        with record.lock:
            job = record.job
            if job.current_stage is None:
                return None
            stage = job.get_stage(job.current_stage)
            if result is not None and stage is not None:
                stage.result = result
            closed = self._close_current_stage(job)
            if closed is None:
                return None
            snapshot = copy.deepcopy(closed)
            payload = self._payload(job, stage=closed.name, result=result)

        self._dispatch(record, JobEvent.STAGE_COMPLETE, payload)
        return snapshot

    def update_stage_progress(
        self, job_id: str, fraction: float, message: Optional[str] = None
    ) -> int:
        """Report progress inside the current stage (fraction in [0, 1])."""
        record = self._record(job_id)
        with record.lock:
            job = record.job
            if job.status.is_terminal or job.current_stage is None:
                return job.progress
            fraction = min(1.0, max(0.0, fraction))
            weight = self.stage_weights.get(job.current_stage, 0)
            target = self._stage_base(job.current_stage) + weight * fraction
            changed = self._raise_progress(job, target)
            if message:
                job.last_message = message
            payload = self._payload(job, stage=job.current_stage, message=message)
            progress = job.progress

        if changed:
            self._dispatch(record, JobEvent.PROGRESS, payload)
        return progress

    def update_progress(self, job_id: str, percent: float, message: Optional[str] = None) -> int:
        """Report absolute progress; values lower than the current one are ignored."""
        record = self._record(job_id)
        with record.lock:
            job = record.job
            if job.status.is_terminal:
                return job.progress
            changed = self._raise_progress(job, percent)
            if message:
                job.last_message = message
            payload = self._payload(job, message=message)
            progress = job.progress

        if changed:
            self._dispatch(record, JobEvent.PROGRESS, payload)
        return progress

    # ------------------------------------------------------------------
    # Warnings and errors
    # ------------------------------------------------------------------

    def add_warning(
        self, job_id: str, message: str, scene_id: Optional[str] = None, **details
    ) -> None:
        """Warnings are informational and never change the job status."""
        record = self._record(job_id)
        with record.lock:
            job = record.job
            issue = JobIssue(message=message, stage=job.current_stage, scene_id=scene_id, details=details)
            job.warnings.append(issue)
            payload = self._payload(job, warning=issue.to_dict())

        logger.warning("job_warning", job_id=job_id, warning=message, stage=issue.stage, scene_id=scene_id)
        self._dispatch(record, JobEvent.WARNING, payload)

    def add_error(
        self, job_id: str, error: Any, scene_id: Optional[str] = None, **details
    ) -> None:
        """Errors accumulate; they only affect the status when the job finishes."""
        message = _error_message(error)
        record = self._record(job_id)
        with record.lock:
            job = record.job
            issue = JobIssue(message=message, stage=job.current_stage, scene_id=scene_id, details=details)
            job.errors.append(issue)
            payload = self._payload(job, error=issue.to_dict())

        logger.error("job_error", job_id=job_id, error=message, stage=issue.stage, scene_id=scene_id)
        self._dispatch(record, JobEvent.ERROR, payload)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_job(self, job_id: str) -> Optional[ProcessingJob]:
        """Detached snapshot of a job, or None if unknown."""
        with self._registry_lock:
            record = self._records.get(job_id)
        if record is None:
            return None
        with record.lock:
            return copy.deepcopy(record.job)

    def active_jobs(self) -> list[ProcessingJob]:
        return [job for job in self._snapshots() if not job.is_finished]

    def get_statistics(self) -> dict:
        jobs = self._snapshots()
        finished = [j for j in jobs if j.is_finished]
        stats = {
            "active": len(jobs) - len(finished),
            "completed": sum(1 for j in finished if j.status == JobStatus.COMPLETED),
            "failed": sum(1 for j in finished if j.status == JobStatus.FAILED),
            "with_errors": sum(
                1 for j in finished if j.status == JobStatus.COMPLETED_WITH_ERRORS
            ),
            "total_processed": len(self.history),
            "average_duration": 0.0,
            "success_rate": 0.0,
        }
        if finished:
            durations = [j.duration for j in finished if j.duration is not None]
            if durations:
                stats["average_duration"] = sum(durations) / len(durations)
            successful = sum(1 for j in finished if j.status != JobStatus.FAILED)
            stats["success_rate"] = successful / len(finished) * 100
        return stats

    def clean_old_jobs(self, max_age_seconds: float = 24 * 60 * 60) -> int:
        """Forget finished jobs that ended more than max_age_seconds ago."""
        cutoff = time.time() - max_age_seconds
        with self._registry_lock:
            stale = [
                job_id
                for job_id, record in self._records.items()
                if record.job.is_finished and record.job.end_time is not None
                and record.job.end_time < cutoff
            ]
            for job_id in stale:
                del self._records[job_id]

        if stale:
            logger.info("cleaned_old_jobs", cleaned=len(stale), remaining=len(self._records))
        return len(stale)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        job_id: str,
        callback: JobCallback,
        events: Optional[Iterable[JobEvent]] = None,
    ) -> Subscription:
        """Register callback(event, payload) for one job.

        Subscriptions end automatically once the job completes or fails.
        """
        record = self._record(job_id)
        subscription = Subscription(
            job_id=job_id,
            callback=callback,
            events=frozenset(events) if events is not None else None,
            _tracker=self,
        )
        with record.lock:
            record.subscriptions.append(subscription)
        return subscription

    def subscriber_count(self, job_id: str) -> int:
        record = self._record(job_id)
        with record.lock:
            return len(record.subscriptions)

    def _remove_subscription(self, subscription: Subscription) -> None:
        with self._registry_lock:
            record = self._records.get(subscription.job_id)
        if record is None:
            return
        with record.lock:
            if subscription in record.subscriptions:
                record.subscriptions.remove(subscription)

    def _dispatch(
        self, record: _JobRecord, event: JobEvent, payload: dict, final: bool = False
    ) -> None:
        # Callbacks run outside the job lock so they may call back into the tracker
        with record.lock:
            targets = [s for s in record.subscriptions if s.wants(event)]
            if final:
                for subscription in record.subscriptions:
                    subscription.active = False
                record.subscriptions.clear()

        for subscription in targets:
            try:
                subscription.callback(event, payload)
            except Exception as e:
                logger.warning("subscriber_failed", job_id=payload.get("job_id"), job_event=event.value, error=str(e))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record(self, job_id: str) -> _JobRecord:
        with self._registry_lock:
            record = self._records.get(job_id)
        if record is None:
            raise JobNotFoundError(job_id)
        return record

    def _snapshots(self) -> list[ProcessingJob]:
        with self._registry_lock:
            records = list(self._records.values())
        snapshots = []
        for record in records:
            with record.lock:
                snapshots.append(copy.deepcopy(record.job))
        return snapshots

    @staticmethod
    def _ensure_active(job: ProcessingJob) -> None:
        if job.status.is_terminal:
            raise RuntimeError(f"Job {job.job_id} already finished ({job.status.value})")

    def _stage_base(self, stage_name: str) -> float:
        """Progress owned by the stages that come before stage_name."""
        if stage_name not in self.stage_weights:
            return 0.0
        index = self._stage_order.index(stage_name)
        return float(sum(self.stage_weights[name] for name in self._stage_order[:index]))

    @staticmethod
    def _raise_progress(job: ProcessingJob, target: float) -> bool:
        new_value = int(min(100, max(0, target)))
        if new_value > job.progress:
            job.progress = new_value
            return True
        return False

    def _close_current_stage(self, job: ProcessingJob) -> Optional[Stage]:
        """Complete the in-progress stage; returns it, or None if nothing was open."""
        if job.current_stage is None:
            return None
        stage = job.get_stage(job.current_stage)
        job.current_stage = None
        if stage is None or stage.status != "in_progress":
            return None
        stage.status = "completed"
        stage.end_time = time.time()
        weight_end = self._stage_base(stage.name) + self.stage_weights.get(stage.name, 0)
        self._raise_progress(job, weight_end)
        logger.info(
            "stage_completed",
            job_id=job.job_id,
            stage=stage.name,
            duration=f"{stage.elapsed_time:.2f}s",
        )
        return stage

    def _append_history(self, job: ProcessingJob) -> None:
        self.history.append(
            {
                "id": job.job_id,
                "type": job.job_type,
                "status": job.status.value,
                "duration": job.duration,
                "completed_at": job.end_time,
                "errors_count": len(job.errors),
                "warnings_count": len(job.warnings),
            }
        )

    @staticmethod
    def _payload(job: ProcessingJob, **extra) -> dict:
        return {
            "job_id": job.job_id,
            "status": job.status.value,
            "progress": job.progress,
            "stage": job.current_stage,
            **extra,
        }


def _error_message(error: Any) -> str:
    if isinstance(error, BaseException):
        return str(error) or error.__class__.__name__
    return str(error)
