import logging

from redis.asyncio import Redis

from application.services import CryptoRateService, FiatRateService
from application.workers.rate_refresher import RateRefreshWorker
from config.settings import Settings
from infrastructure.cache.redis_cache import RedisCacheService
from infrastructure.persistence.database import Database
from infrastructure.persistence.repositories.rate_history import RateHistoryRepository
from infrastructure.providers import (
    BinanceProvider,
    CoinbaseProvider,
    CoinGeckoFiatProvider,
    CoinGeckoProvider,
    CryptoRateProvider,
    FiatRateProvider,
    OpenExchangeProvider,
)

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Builds and owns every long-lived engine object for one process."""

    def __init__(self, settings: Settings):
        self.settings = settings

        self.db = Database(settings.DATABASE_URL)
        self.redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
        self.cache = RedisCacheService(self.redis_client)
        self.history = RateHistoryRepository(self.db)

        timeout = settings.PROVIDER_TIMEOUT_SECONDS
        self.crypto_providers: list[CryptoRateProvider] = [
            CoinbaseProvider(timeout=timeout),
            BinanceProvider(timeout=timeout),
            CoinGeckoProvider(api_key=settings.COINGECKO_API_KEY, timeout=timeout),
        ]
        # Order is the fallback order.
        self.fiat_providers: list[FiatRateProvider] = [
            CoinGeckoFiatProvider(api_key=settings.COINGECKO_API_KEY, timeout=timeout),
            OpenExchangeProvider(app_id=settings.OPENEXCHANGE_APP_ID, timeout=timeout),
        ]

        self.fiat_service = FiatRateService(
            providers=self.fiat_providers,
            cache=self.cache,
            history=self.history,
            config=settings.fiat_resolver_config(),
        )
        self.crypto_service = CryptoRateService(
            providers=self.crypto_providers,
            cache=self.cache,
            history=self.history,
            config=settings.aggregator_config(),
            fiat_service=self.fiat_service,
        )
        self.worker = RateRefreshWorker(
            rate_service=self.crypto_service,
            cache=self.cache,
            refresh_interval=settings.REFRESH_INTERVAL_SECONDS,
            staleness_interval=settings.STALENESS_CHECK_INTERVAL_SECONDS,
            use_distributed_lock=settings.USE_DISTRIBUTED_LOCK,
        )
        logger.info(
            f"Services created with {len(self.crypto_providers)} crypto and "
            f"{len(self.fiat_providers)} fiat providers"
        )

    async def startup(self) -> None:
        await self.db.create_tables()
        logger.info("Database tables created")

    async def cleanup(self) -> None:
        await self.worker.stop()
        await self.fiat_service.wait_for_revalidations()

        for provider in [*self.crypto_providers, *self.fiat_providers]:
            await provider.close()
        await self.redis_client.aclose()
        await self.db.close()
        logger.info("Services cleaned up successfully")
