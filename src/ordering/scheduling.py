"""Periodic driver for the bank-feed poll and the expiration sweep.

The scheduler is an object owned by the worker process (``src/server.py``):
``start()`` launches one asyncio task per enabled job and ``stop()`` lets the
running job finish before returning. Jobs are synchronous domain code, so each
tick runs in a worker thread inside a fresh domain context. A failing tick is
logged and the loop carries on.
"""

import asyncio

import structlog

from ordering.expiry.sweeper import sweep_expired_orders
from ordering.reconciliation.poller import BankFeedPoller
from ordering.settings import get_settings

logger = structlog.get_logger(__name__)


class ReconciliationScheduler:
    def __init__(self, domain, settings=None, poller=None, sweep=None) -> None:
        self.domain = domain
        self.settings = settings or get_settings()
        self.poller = poller or BankFeedPoller(settings=self.settings)
        self.sweep = sweep or sweep_expired_orders
        self._tasks: list[asyncio.Task] = []
        self._stop_event: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def jobs(self):
        """Enabled jobs as ``(name, interval_seconds, callable)``."""
        jobs = []
        if self.settings.poll_enabled:
            jobs.append(("bank-feed-poll", self.settings.poll_interval_seconds, self.poller.poll_once))
        if self.settings.sweep_enabled:
            jobs.append(("expired-order-sweep", self.settings.sweep_interval_seconds, self.sweep))
        return jobs

    async def start(self) -> None:
        if self.running:
            return

        self._stop_event = asyncio.Event()
        for name, interval, job in self.jobs():
            self._tasks.append(asyncio.create_task(self._run_periodically(name, interval, job), name=name))
            logger.info("Scheduled job started", job=name, interval_seconds=interval)

    async def stop(self) -> None:
        if not self.running:
            return

        self._stop_event.set()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Scheduler stopped")

    def run_job(self, job):
        with self.domain.domain_context():
            return job()

    async def _run_periodically(self, name, interval, job) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.to_thread(self.run_job, job)
            except Exception as exc:
                logger.error("Scheduled job failed", job=name, error=str(exc))

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except TimeoutError:
                continue
