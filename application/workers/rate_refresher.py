import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta

from application.services.crypto_rate_service import CryptoRateService
from domain.exceptions.rate import CacheError
from infrastructure.cache.redis_cache import RedisCacheService

logger = logging.getLogger(__name__)

REFRESH_TICK = "rate-refresh"
STALENESS_TICK = "rate-staleness-audit"


class RateRefreshWorker:
    """
    Fires the two periodic ticks the crypto aggregator consumes.

    The refresh tick re-aggregates every monitored pair so reads are served
    from cache; the staleness tick raises alerts for pairs that have not
    refreshed recently. With ``use_distributed_lock`` a tick only runs on the
    instance that claims it in Redis for that interval.
    """

    def __init__(
        self,
        rate_service: CryptoRateService,
        cache: RedisCacheService,
        refresh_interval: int = 60,
        staleness_interval: int = 300,
        use_distributed_lock: bool = False,
    ):
        self.rate_service = rate_service
        self.cache = cache
        self.refresh_interval = refresh_interval
        self.staleness_interval = staleness_interval
        self.use_distributed_lock = use_distributed_lock
        self._tasks: list[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def run_refresh_tick(self) -> bool:
        if not await self._claim(REFRESH_TICK, self.refresh_interval):
            return False
        await self.rate_service.refresh_monitored_pairs()
        return True

    async def run_staleness_tick(self) -> bool:
        if not await self._claim(STALENESS_TICK, self.staleness_interval):
            return False
        self.rate_service.check_staleness()
        return True

    def start(self) -> None:
        if self.is_running:
            return

        logger.info(
            f"Rate refresh worker started (refresh every {self.refresh_interval}s, "
            f"staleness audit every {self.staleness_interval}s)"
        )
        self._tasks = [
            asyncio.create_task(self._loop(REFRESH_TICK, self.refresh_interval, self.run_refresh_tick)),
            asyncio.create_task(self._loop(STALENESS_TICK, self.staleness_interval, self.run_staleness_tick)),
        ]

    async def stop(self) -> None:
        logger.info("Stopping rate refresh worker...")
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Rate refresh worker stopped")

    async def _claim(self, tick: str, interval: int) -> bool:
        if not self.use_distributed_lock:
            return True

        try:
            acquired = await self.cache.acquire_lock(tick, timedelta(seconds=interval))
        except CacheError as e:
            logger.warning(f"Could not claim {tick}, running locally: {e}")
            return True

        if not acquired:
            logger.debug(f"Skipping {tick}: claimed by another instance")
        return acquired

    async def _loop(self, tick: str, interval: int, run_tick: Callable[[], Awaitable[bool]]) -> None:
        while True:
            try:
                await run_tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Tick {tick} failed: {e}", exc_info=True)

            await asyncio.sleep(interval)

