#!/usr/bin/env python3
"""
Scheduler runner - runs the daily aggregation + goal sweep on a cron schedule.

This module is started as a background process by 'webanalytics scheduler start'
(or in the foreground with --foreground). It logs to SCHEDULER_LOG_FILE.

Usage:
    python -m webanalytics.scheduler_runner
"""

import logging
import os
from datetime import timedelta

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from webanalytics.base.runner import LOG_FORMAT, BaseRunner
from webanalytics.core.models import utc_now
from webanalytics.pipeline.factory import Pipeline, build_pipeline
from webanalytics.utils.config import Settings, get_settings
from webanalytics.utils.paths import SCHEDULER_LOG_FILE

logger = logging.getLogger(__name__)

DAILY_JOB_ID = "daily_aggregation"
STARTUP_JOB_ID = "startup_aggregation"


class SchedulerRunner(BaseRunner):
    """
    Long-running process driving Orchestrator.run().

    Jobs:
    - daily_aggregation: cron at SCHEDULER_CRON_HOUR:SCHEDULER_CRON_MINUTE
    - startup_aggregation: once, SCHEDULER_STARTUP_DELAY_SECONDS after start

    Overlapping triggers are skipped by the orchestrator's run lock.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        pipeline: Pipeline | None = None,
        log_file: str | None = None,
    ):
        self._settings = settings or get_settings()
        super().__init__(log_level=self._settings.log_level)
        self._pipeline = pipeline
        self._log_file = log_file
        self._scheduler: BlockingScheduler | None = None

    def _setup_logging(self) -> None:
        if self._log_file is None:
            super()._setup_logging()
            return
        logging.basicConfig(
            level=getattr(logging, self._log_level.upper(), logging.INFO),
            format=LOG_FORMAT,
            handlers=[logging.FileHandler(self._log_file)],
        )
        # APScheduler logs every job execution at INFO
        logging.getLogger("apscheduler").setLevel(logging.WARNING)

    def build_scheduler(self) -> BlockingScheduler:
        """Create the scheduler with the daily and (optional) startup jobs."""
        config = self._settings.scheduler
        scheduler = BlockingScheduler(timezone=config.timezone)

        scheduler.add_job(
            self.trigger,
            trigger=CronTrigger(
                hour=config.cron_hour, minute=config.cron_minute, timezone=config.timezone
            ),
            args=["scheduled"],
            id=DAILY_JOB_ID,
            name="Daily aggregation and goal sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )

        if config.run_on_startup:
            scheduler.add_job(
                self.trigger,
                trigger=DateTrigger(
                    run_date=utc_now() + timedelta(seconds=config.startup_delay_seconds)
                ),
                args=["startup"],
                id=STARTUP_JOB_ID,
                name="Startup aggregation",
                replace_existing=True,
            )
        return scheduler

    def trigger(self, trigger: str) -> None:
        """Job body: one orchestrator run."""
        report = self._pipeline.orchestrator.run(trigger=trigger)
        if report is not None and not report.succeeded:
            logger.warning(
                "Run for %s completed with failures: %s",
                report.target_day,
                ", ".join(sorted(report.failures)) or "; ".join(report.errors),
            )

    def _run(self) -> None:
        if self._pipeline is None:
            self._pipeline = build_pipeline(self._settings)
        self._pipeline.connect()

        config = self._settings.scheduler
        self._scheduler = self.build_scheduler()
        logger.info(
            "Scheduler started: daily run at %02d:%02d %s, startup run %s",
            config.cron_hour,
            config.cron_minute,
            config.timezone,
            f"in {config.startup_delay_seconds}s" if config.run_on_startup else "disabled",
        )
        self._scheduler.start()

    def _on_shutdown_requested(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def _cleanup(self) -> None:
        if self._pipeline is not None:
            self._pipeline.close()
        logger.info("Scheduler shutdown complete")


def main() -> None:
    log_file = os.environ.get("WEBANALYTICS_SCHEDULER_LOG_FILE", str(SCHEDULER_LOG_FILE))
    SchedulerRunner(log_file=log_file).run()


if __name__ == "__main__":
    main()
