# ==============================================================================
# Tests for the Scheduler Runner
# ==============================================================================
"""
Tests for SchedulerRunner job wiring and the job body. The scheduler is
built but never started.
"""

from unittest.mock import MagicMock

from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from webanalytics.scheduler_runner import DAILY_JOB_ID, STARTUP_JOB_ID, SchedulerRunner
from webanalytics.utils.config import SchedulerSettings


def _runner(settings, pipeline=None, **scheduler):
    settings.scheduler = SchedulerSettings(**scheduler)
    return SchedulerRunner(settings=settings, pipeline=pipeline or MagicMock())


class TestBuildScheduler:
    """Tests for SchedulerRunner.build_scheduler()."""

    def test_daily_and_startup_jobs(self, settings):
        scheduler = _runner(settings, cron_hour=3, cron_minute=30).build_scheduler()

        jobs = {job.id: job for job in scheduler.get_jobs()}
        assert set(jobs) == {DAILY_JOB_ID, STARTUP_JOB_ID}
        assert isinstance(jobs[DAILY_JOB_ID].trigger, CronTrigger)
        assert jobs[DAILY_JOB_ID].args == ("scheduled",)
        assert isinstance(jobs[STARTUP_JOB_ID].trigger, DateTrigger)
        assert jobs[STARTUP_JOB_ID].args == ("startup",)

    def test_cron_fields(self, settings):
        scheduler = _runner(settings, cron_hour=3, cron_minute=30).build_scheduler()

        trigger = scheduler.get_job(DAILY_JOB_ID).trigger
        fields = {field.name: str(field) for field in trigger.fields}
        assert fields["hour"] == "3"
        assert fields["minute"] == "30"

    def test_startup_job_disabled(self, settings):
        scheduler = _runner(settings, run_on_startup=False).build_scheduler()
        assert [job.id for job in scheduler.get_jobs()] == [DAILY_JOB_ID]


class TestTrigger:
    """Tests for the job body."""

    def test_runs_orchestrator_with_trigger(self, settings):
        pipeline = MagicMock()
        _runner(settings, pipeline).trigger("scheduled")
        pipeline.orchestrator.run.assert_called_once_with(trigger="scheduled")

    def test_skipped_run_is_quiet(self, settings):
        pipeline = MagicMock()
        pipeline.orchestrator.run.return_value = None

        _runner(settings, pipeline).trigger("startup")

    def test_records_run(self, settings, pipeline, tracker):
        _runner(settings, pipeline).trigger("startup")

        last = tracker.last_run()
        assert last["trigger"] == "startup"
        assert last["succeeded"] is True
