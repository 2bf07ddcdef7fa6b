"""Run the rate scheduler on its own, without the HTTP API: ``python -m application.workers``."""
import asyncio
import logging
import signal

from application.service_factory import ServiceFactory
from config.logging_config import configure_logging
from config.settings import get_settings

logger = logging.getLogger(__name__)


async def main():
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_DIRECTORY)

    logger.info("=" * 60)
    logger.info("RATE REFRESH WORKER STARTING")
    logger.info(f"Monitored pairs: {settings.MONITORED_PAIRS}")
    logger.info(f"Refresh interval: {settings.REFRESH_INTERVAL_SECONDS}s")
    logger.info(f"Staleness audit interval: {settings.STALENESS_CHECK_INTERVAL_SECONDS}s")
    logger.info("=" * 60)

    factory = ServiceFactory(settings)
    await factory.startup()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    factory.worker.start()
    try:
        await stop_event.wait()
        logger.info("Received shutdown signal, shutting down gracefully...")
    finally:
        await factory.cleanup()


if __name__ == "__main__":
    asyncio.run(main())
