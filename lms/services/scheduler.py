"""Deadline reminder scan and its APScheduler job.

DeadlineScanner.check_deadlines() walks every active homework that has
a deadline.  When the deadline is 1 to 7 days away, every student
enrolled in the homework's course gets a `deadline_reminder`
notification with fingerprint `deadline:{homework_id}:{days_left}`, so
repeated scans on the same day are absorbed by the dedup cache.  A
failure on one homework or one student is logged and counted; the scan
carries on.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from lms.core.clock import Clock, utcnow
from lms.core.metrics import DEADLINE_REMINDERS, DEADLINE_SCAN_RUNS
from lms.models.homework import Homework
from lms.repos.enrollment_repo import EnrollmentRepo
from lms.repos.homework_repo import HomeworkRepo
from lms.services import templates
from lms.services.enrollments_service import REMINDER_WINDOW_DAYS, days_until
from lms.services.interfaces import CourseSummaryLookup, Notifier

logger = logging.getLogger(__name__)

DEADLINE_JOB_ID = "deadline_reminders"


@dataclass(slots=True)
class ScanSummary:
    homeworks_checked: int = 0
    reminders_requested: int = 0
    failures: int = 0

    def as_dict(self) -> dict:
        return {
            "homeworks_checked": self.homeworks_checked,
            "reminders_requested": self.reminders_requested,
            "failures": self.failures,
        }


class DeadlineScanner:
    def __init__(
        self,
        *,
        homeworks: HomeworkRepo,
        enrollments: EnrollmentRepo,
        courses: CourseSummaryLookup,
        notifier: Notifier,
        clock: Clock = utcnow,
    ) -> None:
        self._homeworks = homeworks
        self._enrollments = enrollments
        self._courses = courses
        self._notifier = notifier
        self._clock = clock

    async def check_deadlines(self) -> ScanSummary:
        summary = ScanSummary()
        now = self._clock()
        try:
            homeworks = await self._homeworks.list_active_with_deadline()
        except Exception:
            DEADLINE_SCAN_RUNS.labels(outcome="failed").inc()
            raise

        for homework in homeworks:
            summary.homeworks_checked += 1
            days_left = days_until(homework.deadline, now)
            if not 0 < days_left <= REMINDER_WINDOW_DAYS:
                continue
            try:
                await self._remind(homework, days_left, summary)
            except Exception:
                summary.failures += 1
                logger.exception("Deadline scan failed for homework=%s", homework.id)

        outcome = "partial" if summary.failures else "ok"
        DEADLINE_SCAN_RUNS.labels(outcome=outcome).inc()
        logger.info(
            "Deadline scan done: checked=%d reminders=%d failures=%d",
            summary.homeworks_checked,
            summary.reminders_requested,
            summary.failures,
        )
        return summary

    async def _remind(
        self, homework: Homework, days_left: int, summary: ScanSummary
    ) -> None:
        located = await self._courses.locate_lesson(homework.lesson_id)
        if located is None:
            logger.warning(
                "Homework %s points at missing lesson %s",
                homework.id,
                homework.lesson_id,
            )
            return
        _, module = located
        course = await self._courses.summary(module.course_id)
        course_title = course.title if course else "Unknown course"
        title = f"{course_title}: {homework.description}"

        for enrollment in await self._enrollments.list_by_course(module.course_id):
            try:
                await self._notifier.notify_event(
                    enrollment.student_id,
                    templates.DEADLINE_REMINDER,
                    {"title": title, "days_left": days_left},
                    fingerprint=f"deadline:{homework.id}:{days_left}",
                )
            except Exception:
                summary.failures += 1
                logger.exception(
                    "Deadline reminder failed homework=%s student=%s",
                    homework.id,
                    enrollment.student_id,
                )
            else:
                summary.reminders_requested += 1
                DEADLINE_REMINDERS.inc()




# ---------------------------------------------------------------------------
# APScheduler wiring
# ---------------------------------------------------------------------------


class DeadlineScheduler:
    """Runs DeadlineScanner.check_deadlines on an interval.

    Owns its AsyncIOScheduler; a fresh one is created on every start()
    so the component can be started again after shutdown().
    """

    def __init__(self, scanner: DeadlineScanner, *, interval_hours: int) -> None:
        self._scanner = scanner
        self._interval_hours = interval_hours
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def run_deadline_scan(self) -> None:
        try:
            await self._scanner.check_deadlines()
        except Exception:
            logger.error("Deadline scan aborted", exc_info=True)

    def start(self) -> None:
        if self.running:
            return
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self.run_deadline_scan,
            trigger=IntervalTrigger(hours=self._interval_hours),
            id=DEADLINE_JOB_ID,
            name="Homework deadline reminders",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Scheduler started, deadline scan every %d hour(s)", self._interval_hours
        )

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped")

    @asynccontextmanager
    async def lifespan(self, *, enabled: bool):
        """Startup/shutdown hook for the recurring jobs."""
        if not enabled:
            logger.info("Scheduler disabled")
            yield
            return
        self.start()
        try:
            yield
        finally:
            self.shutdown()
