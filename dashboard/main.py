"""
Headless dashboard entry point.

Runs one dashboard session (initial refresh, live push updates, periodic
polling) and logs a one-line summary whenever a store changes. Useful to
watch a backend from a terminal without the web UI.

To run:
    python -m dashboard.main

The main task waits for Ctrl+C (SIGINT) or SIGTERM, then tears the session
down: poller stopped, channel disconnected, HTTP client closed.
"""

import asyncio
import logging
import signal

from config.settings import Settings
from dashboard.context import dashboard_session

logger = logging.getLogger(__name__)


async def watch(settings: Settings) -> None:
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_event.set)
        except NotImplementedError:
            # Windows event loops don't support signal handlers; Ctrl+C still
            # raises KeyboardInterrupt out of asyncio.run()
            pass

    async with dashboard_session(settings) as ctx:
        last = None

        def log_summary(_store) -> None:
            nonlocal last
            summary = ctx.snapshot()
            if summary != last:
                last = summary
                logger.info(_format(summary))

        for store in (ctx.printers, ctx.jobs, ctx.system):
            store.subscribe(log_summary)

        logger.info("Watching dashboard. Press Ctrl+C to stop.")
        await shutdown_event.wait()
        logger.info("Shutdown signal received, stopping...")


def _format(summary: dict) -> str:
    return (
        f"printers {summary['printers_online']}/{summary['printers_total']} online | "
        f"jobs pending={summary['jobs_pending']} processing={summary['jobs_processing']} "
        f"completed={summary['jobs_completed']} failed={summary['jobs_failed']} | "
        f"live={'yes' if summary['live'] else 'no'} | "
        f"unread={summary['unread_notifications']}"
    )


def main() -> None:
    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    asyncio.run(watch(settings))
    logger.info("Dashboard watcher exited")


if __name__ == "__main__":
    main()
