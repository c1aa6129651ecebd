"""
Recurring BuyBox tracking cycle.

TrackingScheduler owns an APScheduler AsyncIOScheduler whose interval job
starts one full pass over every active subject. The job only launches the
cycle task; the task itself belongs to TrackingScheduler, so stop() never
cancels a cycle that is already running. A tick that arrives while a cycle
is still in flight is dropped.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, Optional, Tuple

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from buybox.core.config import Settings, get_settings
from buybox.core.enums import AlertLevel
from buybox.core.exceptions import StoreFailureError, SubjectNotFoundError
from buybox.schemas.tracking import CycleSummary, RunSummary, SchedulerStatus, SubjectRecord
from buybox.services.buybox_tracker import BuyBoxDiffEngine
from buybox.services.state_store import StateStore

logger = logging.getLogger(__name__)

JOB_ID = "buybox_tracking_cycle"

SubjectSource = Callable[[], Awaitable[Iterable[str]]]


def job_listener(event):
    """Listen to job events for logging"""
    if getattr(event, "exception", None):
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.warning(f"Job {event.job_id} missed its run time")


class TrackingScheduler:

    def __init__(
        self,
        engine: Optional[BuyBoxDiffEngine] = None,
        store: Optional[StateStore] = None,
        subject_source: Optional[SubjectSource] = None,
        settings: Optional[Settings] = None,
        inter_item_delay: Optional[float] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or StateStore()
        self.engine = engine or BuyBoxDiffEngine(store=self.store)
        self.subject_source = subject_source or self.store.list_active_subjects
        self.inter_item_delay = (
            self.settings.INTER_ITEM_DELAY_SECONDS if inter_item_delay is None else inter_item_delay
        )
        self.period_seconds: Optional[int] = None

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._cycle_running = False
        self._cycle_task: Optional[asyncio.Task] = None
        self._subject_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

        self.cycles_completed = 0
        self.cycles_skipped = 0
        self.last_cycle: Optional[CycleSummary] = None

    # ------------------------------------------------------------------
    # Administrative surface
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def start(self, period_seconds: Optional[int] = None) -> bool:
        """Begin the recurring cycle. Returns False if it was already running."""
        if self.running:
            logger.warning("BuyBox tracking is already running")
            return False

        period = period_seconds or self.settings.TRACKING_PERIOD_SECONDS
        if period <= 0:
            raise ValueError("period_seconds must be positive")

        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_listener(job_listener, EVENT_JOB_ERROR | EVENT_JOB_MISSED)
        scheduler.add_job(
            self._tick,
            IntervalTrigger(seconds=period, timezone="UTC"),
            id=JOB_ID,
            name="BuyBox tracking cycle",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        scheduler.start()

        self._scheduler = scheduler
        self.period_seconds = period
        logger.info(f"BuyBox tracking started, running every {period} seconds")
        return True

    async def stop(self) -> bool:
        """Cancel future cycles. A cycle already in flight runs to completion."""
        if not self.running:
            return False
        # A wakeup queued by start() may still run after shutdown; leave it nothing to fire
        self._scheduler.remove_all_jobs()
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("BuyBox tracking stopped")
        return True

    def status(self) -> SchedulerStatus:
        next_run_at = None
        if self.running:
            job = self._scheduler.get_job(JOB_ID)
            next_run_at = job.next_run_time if job else None

        return SchedulerStatus(
            running=self.running,
            cycle_in_progress=self._cycle_running,
            period_seconds=self.period_seconds if self.running else None,
            next_run_at=next_run_at,
            cycles_completed=self.cycles_completed,
            cycles_skipped=self.cycles_skipped,
            last_cycle=self.last_cycle,
        )

    async def trigger_once(self, subject_id: str) -> RunSummary:
        """
        Run one subject's items outside the cadence.

        Raises SubjectNotFoundError for an unknown subject. Item failures are
        only counted in the returned summary.
        """
        logger.info(f"Manually triggering tracking for subject {subject_id}")
        summary, subject = await self._run_subject(subject_id)
        logger.info(
            f"Manual tracking completed for subject {subject_id}: "
            f"{summary.processed} processed, {summary.skipped} skipped, {summary.failed} failed"
        )
        if summary.failed:
            await self.engine.notifier.send_system_alert(
                subject.webhook_url,
                "Manual tracking run finished with errors",
                f"{summary.failed} of {summary.total} items failed for {subject_id}",
                AlertLevel.WARNING,
            )
        return summary

    async def wait_for_idle(self) -> None:
        """Wait for a cycle in flight, if any"""
        if self._cycle_task is not None and not self._cycle_task.done():
            await asyncio.shield(self._cycle_task)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------
    async def _tick(self) -> None:
        if self._cycle_running or (self._cycle_task is not None and not self._cycle_task.done()):
            logger.warning("Previous tracking cycle still running; skipping this tick")
            self.cycles_skipped += 1
            return
        self._cycle_task = asyncio.create_task(self.run_cycle(), name=JOB_ID)

    async def run_cycle(self) -> Optional[CycleSummary]:
        """One full pass over every active subject. Returns None if a cycle is already running."""
        # Checked and set with no await in between
        if self._cycle_running:
            logger.warning("BuyBox tracking cycle already in progress")
            self.cycles_skipped += 1
            return None
        self._cycle_running = True

        summary = CycleSummary(started_at=datetime.now(timezone.utc))
        logger.info("Starting BuyBox tracking cycle...")
        try:
            subject_ids = list(await self.subject_source())
            for subject_id in subject_ids:
                try:
                    run, _ = await self._run_subject(subject_id)
                except (SubjectNotFoundError, StoreFailureError) as e:
                    logger.error(f"Error processing subject {subject_id}: {str(e)}")
                    summary.subjects_failed += 1
                    continue
                summary.merge(run)
        except StoreFailureError as e:
            logger.error(f"Error in BuyBox tracking cycle: {str(e)}")
            summary.error = str(e)
        except Exception as e:
            logger.exception(f"Unexpected error in BuyBox tracking cycle: {str(e)}")
            summary.error = str(e)
        finally:
            summary.finished_at = datetime.now(timezone.utc)
            self.last_cycle = summary
            self.cycles_completed += 1
            self._cycle_running = False

        logger.info(
            f"Completed BuyBox tracking cycle: {summary.subjects_processed} subjects, "
            f"{summary.processed} processed, {summary.skipped} skipped, {summary.failed} failed"
        )
        return summary

    async def _run_subject(self, subject_id: str) -> Tuple[RunSummary, SubjectRecord]:
        # Resolved before a lock exists, so unknown ids never add lock entries
        subject = await self.store.get_subject(subject_id)
        if subject is None:
            raise SubjectNotFoundError(f"Subject {subject_id} not found")

        # Serializes a manual trigger with a cycle touching the same subject
        async with self._subject_locks[subject_id]:
            items = await self.store.list_tracked_items(subject_id)
            summary = RunSummary(subject_id=subject_id)
            if not items:
                logger.info(f"No ASINs found for subject {subject_id}")
                return summary, subject

            logger.info(f"Processing {len(items)} ASINs for subject {subject_id}")
            for index, item in enumerate(items):
                outcome = await self.engine.process_item(subject_id, item, subject.webhook_url)
                summary.record(outcome)

                # Stay under the provider's request rate
                if index < len(items) - 1 and self.inter_item_delay > 0:
                    await asyncio.sleep(self.inter_item_delay)

            return summary, subject
