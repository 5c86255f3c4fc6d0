"""
Ingestion Scheduler

One cron schedule per source. Each run goes gate -> fetch -> normalize ->
save_batch. Sources run concurrently and never affect each other: every
run ends with a SourceRunResult, whatever happened inside the source.
"""

import asyncio
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from trendinghub.core.clock import CIVIL_TZ
from trendinghub.services.base import PersistenceError, SourceFetchError
from trendinghub.services.processing.normalizer import NewsNormalizer
from trendinghub.services.sources.interface import SourceJob

logger = logging.getLogger(__name__)


class SourceState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class RunStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"  # Fetch succeeded with nothing to store
    SKIPPED = "skipped"  # Declined by the gate
    FETCH_FAILED = "fetch_failed"
    PERSIST_FAILED = "persist_failed"
    ERROR = "error"  # Unexpected exception inside the run


@dataclass
class SourceRunResult:
    """Outcome of one source run."""

    source: str
    status: RunStatus
    fetched: int = 0
    saved: int = 0
    error: Optional[str] = None
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return self.status in (RunStatus.OK, RunStatus.EMPTY, RunStatus.SKIPPED)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["status"] = self.status.value
        d["finished_at"] = self.finished_at.isoformat()
        return d


class IngestionScheduler:
    """
    Runs every SourceJob on its own cron schedule.

    - run_source(job): one guarded run, always returns a SourceRunResult
    - run_all_once(): every source concurrently (startup warm-up, manual trigger)
    - start()/stop(): APScheduler lifecycle plus the delayed warm-up task
    """

    def __init__(
        self,
        jobs: Sequence[SourceJob],
        normalizer: NewsNormalizer,
        store,
        tz=CIVIL_TZ,
        misfire_grace_time: int = 60,
    ):
        self.jobs = list(jobs)
        self.normalizer = normalizer
        self.store = store
        self.timezone = tz
        self.misfire_grace_time = misfire_grace_time
        self.startup_task: Optional[asyncio.Task] = None
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._states: dict[str, SourceState] = {job.name: SourceState.IDLE for job in self.jobs}
        self._last_results: dict[str, SourceRunResult] = {}
        # One run per source at a time, whatever triggered it
        self._locks: dict[str, asyncio.Lock] = {job.name: asyncio.Lock() for job in self.jobs}

    # ============ Runs ============

    def _finish(self, result: SourceRunResult) -> SourceRunResult:
        self._last_results[result.source] = result
        return result

    async def run_source(self, job: SourceJob) -> SourceRunResult:
        """
        Run one source end to end. Never raises for failures inside the run.

        A run requested while the same source is still running (cron tick,
        warm-up and manual trigger can coincide) is skipped, so the gate's
        single backfill holds across triggers.
        """
        lock = self._locks.setdefault(job.name, asyncio.Lock())
        if lock.locked():
            logger.info(f"{job.name} already running, skipping")
            return SourceRunResult(job.name, RunStatus.SKIPPED, error="already running")

        async with lock:
            return await self._run_locked(job)

    async def _run_locked(self, job: SourceJob) -> SourceRunResult:
        name = job.name
        self._states[name] = SourceState.RUNNING
        fetched = 0

        try:
            if job.gate is not None:
                decision = await job.gate.evaluate()
                if not decision.allowed:
                    logger.debug(f"{name} skipped by gate: {decision.reason}")
                    return self._finish(SourceRunResult(name, RunStatus.SKIPPED, error=decision.reason))

            logger.info(f"Fetching from {name}...")
            try:
                raw_items = await job.source.fetch()
            except SourceFetchError as e:
                logger.warning(f"Fetch {name} failed: {e}")
                return self._finish(SourceRunResult(name, RunStatus.FETCH_FAILED, error=str(e)))

            fetched = len(raw_items)
            if not raw_items:
                logger.info(f"Fetch {name} got 0 items")
                return self._finish(SourceRunResult(name, RunStatus.EMPTY))

            records = self.normalizer.process(raw_items)
            logger.info(f"{name}: normalized {len(records)} of {fetched} items")
            if not records:
                return self._finish(SourceRunResult(name, RunStatus.EMPTY, fetched=fetched))

            try:
                saved = await self.store.save_batch(records)
            except PersistenceError as e:
                logger.error(f"Save {name} batch failed ({e.attempted} attempted): {e}")
                return self._finish(SourceRunResult(name, RunStatus.PERSIST_FAILED, fetched=fetched, error=str(e)))

            logger.info(f"{name} done, fetched={fetched} saved={saved}")
            return self._finish(SourceRunResult(name, RunStatus.OK, fetched=fetched, saved=saved))

        except Exception as e:
            logger.exception(f"Source {name} crashed: {e}")
            return self._finish(SourceRunResult(name, RunStatus.ERROR, fetched=fetched, error=repr(e)))

        finally:
            self._states[name] = SourceState.IDLE

    async def run_all_once(self) -> list[SourceRunResult]:
        """Run every source once, concurrently."""
        logger.info("Start collect job (all sources)...")
        results = await asyncio.gather(*(self.run_source(job) for job in self.jobs))
        failed = [r.source for r in results if not r.ok]
        logger.info(
            f"Collect job done: {sum(r.saved for r in results)} saved, "
            f"{len(failed)} failed{': ' + ', '.join(failed) if failed else ''}"
        )
        return list(results)

    async def _delayed_run(self, delay: float) -> list[SourceRunResult]:
        if delay > 0:
            await asyncio.sleep(delay)
        return await self.run_all_once()

    @staticmethod
    def _on_startup_done(task: asyncio.Task) -> None:
        if task.cancelled():
            logger.info("Startup collection cancelled")
        elif task.exception() is not None:
            logger.error(f"Startup collection failed: {task.exception()!r}")
        else:
            results = task.result()
            logger.info(f"Startup collection finished: {sum(1 for r in results if r.ok)}/{len(results)} sources ok")

    # ============ Lifecycle ============

    def start(self, startup_delay: Optional[float] = 15.0) -> None:
        """
        Register one cron job per source and start the scheduler.

        With a startup_delay, a run_all_once is scheduled as a tracked
        background task (startup_task). Must be called from a running loop.
        """
        if self._scheduler is not None:
            return

        scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults={
                "coalesce": True,  # Collapse missed runs into one
                "max_instances": 1,
                "misfire_grace_time": self.misfire_grace_time,
            },
        )

        for job in self.jobs:
            scheduler.add_job(
                self.run_source,
                trigger=CronTrigger.from_crontab(job.cron_spec, timezone=self.timezone),
                args=[job],
                id=f"collect_{job.name}",
                name=f"Collect {job.name} ({job.cron_spec})",
                replace_existing=True,
            )

        scheduler.start()
        self._scheduler = scheduler

        for scheduled in scheduler.get_jobs():
            logger.info(f"Scheduled job: {scheduled.id} - next run: {scheduled.next_run_time}")

        if startup_delay is not None:
            self.startup_task = asyncio.create_task(self._delayed_run(startup_delay), name="startup-collect")
            self.startup_task.add_done_callback(self._on_startup_done)

    async def stop(self) -> None:
        """Shut down the scheduler, cancel the warm-up run and close sources."""
        if self.startup_task is not None and not self.startup_task.done():
            self.startup_task.cancel()
            try:
                await self.startup_task
            except asyncio.CancelledError:
                pass

        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Scheduler shutdown complete")

        for job in self.jobs:
            try:
                await job.source.close()
            except Exception as e:
                logger.warning(f"Closing source {job.name} failed: {e}")

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def get_states(self) -> dict[str, str]:
        return {name: state.value for name, state in self._states.items()}

    def get_last_results(self) -> dict[str, dict]:
        return {name: result.to_dict() for name, result in self._last_results.items()}
