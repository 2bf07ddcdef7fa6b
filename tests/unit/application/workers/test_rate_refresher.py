# nosec B101


import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from application.services.crypto_rate_service import CryptoRateService
from application.workers.rate_refresher import REFRESH_TICK, STALENESS_TICK, RateRefreshWorker
from domain.exceptions.rate import CacheError
from infrastructure.cache.redis_cache import RedisCacheService


@pytest.fixture
def rate_service():
    service = AsyncMock(spec=CryptoRateService)
    service.check_staleness = MagicMock(return_value=[])
    return service


@pytest.fixture
def cache():
    return AsyncMock(spec=RedisCacheService)


@pytest.mark.asyncio
async def test_refresh_tick_without_lock_always_runs(rate_service, cache):
    worker = RateRefreshWorker(rate_service, cache)

    assert await worker.run_refresh_tick() is True

    rate_service.refresh_monitored_pairs.assert_awaited_once()
    cache.acquire_lock.assert_not_called()


@pytest.mark.asyncio
async def test_staleness_tick_runs_audit(rate_service, cache):
    worker = RateRefreshWorker(rate_service, cache)

    assert await worker.run_staleness_tick() is True

    rate_service.check_staleness.assert_called_once_with()


@pytest.mark.asyncio
async def test_tick_claimed_elsewhere_is_skipped(rate_service, cache):
    cache.acquire_lock.return_value = False
    worker = RateRefreshWorker(rate_service, cache, refresh_interval=30, use_distributed_lock=True)

    assert await worker.run_refresh_tick() is False

    cache.acquire_lock.assert_awaited_once_with(REFRESH_TICK, timedelta(seconds=30))
    rate_service.refresh_monitored_pairs.assert_not_called()


@pytest.mark.asyncio
async def test_tick_runs_when_lock_acquired(rate_service, cache):
    cache.acquire_lock.return_value = True
    worker = RateRefreshWorker(rate_service, cache, staleness_interval=300, use_distributed_lock=True)

    assert await worker.run_staleness_tick() is True

    cache.acquire_lock.assert_awaited_once_with(STALENESS_TICK, timedelta(seconds=300))


@pytest.mark.asyncio
async def test_lock_backend_failure_runs_tick_locally(rate_service, cache):
    cache.acquire_lock.side_effect = CacheError('redis down')
    worker = RateRefreshWorker(rate_service, cache, use_distributed_lock=True)

    assert await worker.run_refresh_tick() is True
    rate_service.refresh_monitored_pairs.assert_awaited_once()


@pytest.mark.asyncio
async def test_start_runs_both_ticks_and_stop_cancels(rate_service, cache):
    worker = RateRefreshWorker(rate_service, cache, refresh_interval=60, staleness_interval=60)

    worker.start()
    assert worker.is_running
    await asyncio.sleep(0.01)
    await worker.stop()

    assert not worker.is_running
    rate_service.refresh_monitored_pairs.assert_awaited_once()
    rate_service.check_staleness.assert_called_once()


@pytest.mark.asyncio
async def test_loop_survives_failing_tick(rate_service, cache):
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError('boom')
        return {}

    rate_service.refresh_monitored_pairs.side_effect = flaky
    worker = RateRefreshWorker(rate_service, cache, refresh_interval=0, staleness_interval=60)

    worker.start()
    await asyncio.sleep(0.05)
    await worker.stop()

    assert rate_service.refresh_monitored_pairs.await_count >= 2
