"""Unit tests for JobTracker: state machine, progress, events and housekeeping."""

import threading
import time

import pytest

from reelforge.models.job import JobEvent, JobStatus
from reelforge.utils.progress import HISTORY_LIMIT, JobNotFoundError, JobTracker


class TestJobLifecycle:
    def test_new_job_is_queued(self, tracker):
        job = tracker.create_job(metadata={"title": "demo"})

        assert job.status == JobStatus.QUEUED
        assert job.progress == 0
        assert job.metadata == {"title": "demo"}
        assert tracker.get_job(job.job_id).status == JobStatus.QUEUED

    def test_duplicate_job_id_rejected(self, tracker):
        tracker.create_job(job_id="job-1")
        with pytest.raises(ValueError):
            tracker.create_job(job_id="job-1")

    def test_starting_stage_moves_to_processing(self, tracker):
        job = tracker.create_job()
        tracker.start_stage(job.job_id, "scene_resolution")

        snapshot = tracker.get_job(job.job_id)
        assert snapshot.status == JobStatus.PROCESSING
        assert snapshot.current_stage == "scene_resolution"

    def test_completed_without_errors(self, tracker):
        job = tracker.create_job()
        tracker.start_stage(job.job_id, "rendering")
        tracker.add_warning(job.job_id, "slow provider")

        status = tracker.finish_job(job.job_id, artifact_path="/tmp/out.mp4", artifact_kind="video")

        snapshot = tracker.get_job(job.job_id)
        assert status == JobStatus.COMPLETED
        assert snapshot.progress == 100
        assert snapshot.result["artifact_kind"] == "video"
        assert len(snapshot.warnings) == 1

    def test_errors_with_artifact_complete_with_errors(self, tracker):
        job = tracker.create_job()
        tracker.start_stage(job.job_id, "scene_resolution")
        tracker.add_error(job.job_id, "scene_2 unresolved", scene_id="scene_2")

        # Errors do not change status until the job finishes
        assert tracker.get_job(job.job_id).status == JobStatus.PROCESSING

        status = tracker.finish_job(job.job_id, artifact_path="/tmp/out.html", artifact_kind="slideshow")
        assert status == JobStatus.COMPLETED_WITH_ERRORS

    def test_no_artifact_fails_job(self, tracker):
        job = tracker.create_job()
        tracker.start_stage(job.job_id, "rendering")

        status = tracker.finish_job(job.job_id, artifact_path=None)

        snapshot = tracker.get_job(job.job_id)
        assert status == JobStatus.FAILED
        assert snapshot.last_error.message == "Pipeline produced no artifact"
        assert snapshot.get_stage("rendering").status == "failed"

    def test_fail_job_keeps_last_error_actionable(self, tracker):
        job = tracker.create_job()
        tracker.start_stage(job.job_id, "scene_resolution")
        tracker.add_error(job.job_id, "scene_1 unresolved")
        tracker.fail_job(job.job_id, RuntimeError("No scene could be resolved"))

        snapshot = tracker.get_job(job.job_id)
        assert snapshot.status == JobStatus.FAILED
        assert snapshot.last_error.message == "No scene could be resolved"
        assert snapshot.failure_reason == "No scene could be resolved"

    def test_finished_job_rejects_new_stages(self, tracker):
        job = tracker.create_job()
        tracker.fail_job(job.job_id, "boom")
        with pytest.raises(RuntimeError):
            tracker.start_stage(job.job_id, "rendering")

    def test_unknown_job(self, tracker):
        assert tracker.get_job("missing") is None
        with pytest.raises(JobNotFoundError):
            tracker.start_stage("missing", "rendering")

    def test_snapshots_are_detached(self, tracker):
        job = tracker.create_job()
        snapshot = tracker.get_job(job.job_id)
        snapshot.warnings.append("tampered")
        assert tracker.get_job(job.job_id).warnings == []


class TestStagesAndProgress:
    def test_starting_a_stage_closes_the_previous_one(self, tracker):
        job = tracker.create_job()
        tracker.start_stage(job.job_id, "scene_resolution")
        tracker.start_stage(job.job_id, "caption_generation")

        snapshot = tracker.get_job(job.job_id)
        first = snapshot.get_stage("scene_resolution")
        assert first.status == "completed"
        assert first.end_time is not None
        assert snapshot.current_stage == "caption_generation"
        assert snapshot.progress == 50

    def test_stage_progress_is_weighted(self, tracker):
        job = tracker.create_job()
        tracker.start_stage(job.job_id, "scene_resolution")
        assert tracker.update_stage_progress(job.job_id, 0.5) == 25

        tracker.start_stage(job.job_id, "rendering")
        assert tracker.get_job(job.job_id).progress == 70
        assert tracker.update_stage_progress(job.job_id, 0.5) == 85

    def test_progress_never_decreases(self, tracker):
        job = tracker.create_job()
        tracker.start_stage(job.job_id, "scene_resolution")
        tracker.update_progress(job.job_id, 40)
        assert tracker.update_progress(job.job_id, 10) == 40
        assert tracker.update_stage_progress(job.job_id, 0.1) == 40

    def test_complete_stage_stores_result(self, tracker):
        job = tracker.create_job()
        tracker.start_stage(job.job_id, "caption_generation")
        stage = tracker.complete_stage(job.job_id, {"captions": 3})

        assert stage.status == "completed"
        assert stage.result == {"captions": 3}
        assert tracker.get_job(job.job_id).current_stage is None
        assert tracker.complete_stage(job.job_id) is None

    def test_concurrent_updates_do_not_corrupt_state(self, tracker):
        job = tracker.create_job()
        tracker.start_stage(job.job_id, "scene_resolution")

        def worker(n):
            for i in range(50):
                tracker.add_warning(job.job_id, f"w{n}-{i}")
                tracker.update_stage_progress(job.job_id, i / 50)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        snapshot = tracker.get_job(job.job_id)
        assert len(snapshot.warnings) == 400
        assert 0 <= snapshot.progress <= 50


class TestSubscriptions:
    def test_subscriber_receives_events_in_order(self, tracker):
        job = tracker.create_job()
        events = []
        tracker.subscribe(job.job_id, lambda event, payload: events.append(event))

        tracker.start_stage(job.job_id, "scene_resolution")
        tracker.update_stage_progress(job.job_id, 1.0)
        tracker.add_warning(job.job_id, "placeholder used")
        tracker.start_stage(job.job_id, "rendering")
        tracker.finish_job(job.job_id, artifact_path="out.mp4", artifact_kind="video")

        assert events == [
            JobEvent.STAGE_START,
            JobEvent.PROGRESS,
            JobEvent.WARNING,
            JobEvent.STAGE_COMPLETE,
            JobEvent.STAGE_START,
            JobEvent.STAGE_COMPLETE,
            JobEvent.COMPLETED,
        ]

    def test_event_filter(self, tracker):
        job = tracker.create_job()
        events = []
        tracker.subscribe(job.job_id, lambda e, p: events.append(e), events=[JobEvent.FAILED])

        tracker.start_stage(job.job_id, "scene_resolution")
        tracker.fail_job(job.job_id, "boom")

        assert events == [JobEvent.FAILED]

    def test_unsubscribe_stops_delivery(self, tracker):
        job = tracker.create_job()
        events = []
        subscription = tracker.subscribe(job.job_id, lambda e, p: events.append(e))

        subscription.unsubscribe()
        tracker.start_stage(job.job_id, "scene_resolution")

        assert events == []
        assert tracker.subscriber_count(job.job_id) == 0

    def test_subscriptions_released_when_job_finishes(self, tracker):
        job = tracker.create_job()
        tracker.subscribe(job.job_id, lambda e, p: None)
        tracker.fail_job(job.job_id, "boom")
        assert tracker.subscriber_count(job.job_id) == 0

    def test_failing_subscriber_does_not_break_job(self, tracker):
        job = tracker.create_job()

        def explode(event, payload):
            raise RuntimeError("subscriber bug")

        tracker.subscribe(job.job_id, explode)
        tracker.start_stage(job.job_id, "scene_resolution")
        tracker.update_stage_progress(job.job_id, 0.5)
        tracker.add_warning(job.job_id, "placeholder used")

        snapshot = tracker.get_job(job.job_id)
        assert snapshot.status == JobStatus.PROCESSING
        assert snapshot.progress == 25
        assert len(snapshot.warnings) == 1

    def test_subscriptions_are_per_job(self, tracker):
        first = tracker.create_job()
        second = tracker.create_job()
        seen = []
        tracker.subscribe(first.job_id, lambda e, p: seen.append(p["job_id"]))

        tracker.start_stage(second.job_id, "scene_resolution")
        tracker.start_stage(first.job_id, "scene_resolution")

        assert seen == [first.job_id]


class TestHousekeeping:
    def test_statistics(self, tracker):
        ok = tracker.create_job()
        tracker.finish_job(ok.job_id, artifact_path="a.mp4", artifact_kind="video")
        bad = tracker.create_job()
        tracker.fail_job(bad.job_id, "boom")
        tracker.create_job()

        stats = tracker.get_statistics()

        assert stats["active"] == 1
        assert stats["completed"] == 1
        assert stats["failed"] == 1
        assert stats["success_rate"] == 50.0
        assert stats["total_processed"] == 2
        assert len(tracker.active_jobs()) == 1

    def test_clean_old_jobs_drops_only_stale_finished_jobs(self, tracker):
        done = tracker.create_job()
        tracker.finish_job(done.job_id, artifact_path="a.mp4", artifact_kind="video")
        running = tracker.create_job()

        time.sleep(0.01)
        removed = tracker.clean_old_jobs(max_age_seconds=0)

        assert removed == 1
        assert tracker.get_job(done.job_id) is None
        assert tracker.get_job(running.job_id) is not None

    def test_history_is_bounded(self):
        tracker = JobTracker(history_limit=3)
        for _ in range(5):
            job = tracker.create_job()
            tracker.fail_job(job.job_id, "boom")
        assert len(tracker.history) == 3
        assert HISTORY_LIMIT == 1000
