"""Reconciliation worker: runs the bank-feed poller and the expiration sweep.

Usage:
    python src/server.py                # poll + sweep on their configured intervals
    python src/server.py --no-poll      # sweep only (webhook-only deployments)
    python src/server.py --once         # run each enabled job once and exit (cron mode)
"""

import argparse
import asyncio
import signal

import structlog
from ordering.domain import ordering
from ordering.scheduling import ReconciliationScheduler
from ordering.settings import get_settings
from ordering.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


async def run(settings):
    scheduler = ReconciliationScheduler(ordering, settings)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await scheduler.start()
    try:
        await stop.wait()
    finally:
        await scheduler.stop()


def run_once(settings):
    scheduler = ReconciliationScheduler(ordering, settings)
    for name, _, job in scheduler.jobs():
        logger.info("Running job once", job=name)
        scheduler.run_job(job)


def main():
    parser = argparse.ArgumentParser(description="Storefront reconciliation worker")
    parser.add_argument("--no-poll", action="store_true", help="Disable the bank feed poller")
    parser.add_argument("--no-sweep", action="store_true", help="Disable the expired order sweep")
    parser.add_argument("--once", action="store_true", help="Run each enabled job once and exit")
    args = parser.parse_args()

    configure_logging()
    ordering.init()

    overrides = {}
    if args.no_poll:
        overrides["poll_enabled"] = False
    if args.no_sweep:
        overrides["sweep_enabled"] = False
    settings = get_settings().model_copy(update=overrides)

    if args.once:
        run_once(settings)
    else:
        asyncio.run(run(settings))


if __name__ == "__main__":
    main()
