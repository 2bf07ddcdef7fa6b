import asyncio
import logging
from datetime import UTC, datetime
from decimal import Decimal

from domain.exceptions.rate import CacheError, NoRateAvailableError, UnsupportedCurrencyError
from domain.models.config import FiatResolverConfig
from domain.models.rate import FiatRateResult
from infrastructure.cache.redis_cache import RedisCacheService
from infrastructure.persistence.repositories.rate_history import RateHistoryRepository
from infrastructure.providers.base import FiatRateProvider

logger = logging.getLogger(__name__)


class FiatRateService:
    """
    Fiat-to-fiat rates with a stale-while-revalidate cache.

    Providers are tried one at a time in the configured order; the first
    success wins. Cached entries carry their own timestamp so freshness tiers
    are decided here rather than by the cache TTL:

    - younger than ``fresh_ttl``: served as fresh
    - younger than ``stale_threshold``: served as stale, refreshed in the background
    - anything older, or missing: fetched synchronously
    """

    def __init__(
        self,
        providers: list[FiatRateProvider],
        cache: RedisCacheService,
        history: RateHistoryRepository,
        config: FiatResolverConfig | None = None,
    ):
        self.providers = providers
        self.cache = cache
        self.history = history
        self.config = config or FiatResolverConfig()
        self._revalidations: dict[tuple[str, str], asyncio.Task] = {}

    async def get_rate(self, from_currency: str, to_currency: str) -> FiatRateResult:
        from_currency = self._validate_currency(from_currency)
        to_currency = self._validate_currency(to_currency)

        if from_currency == to_currency:
            return FiatRateResult(rate=Decimal(1), from_cache=False, is_stale=False)

        try:
            cached = await self.cache.get_fiat_rate(from_currency, to_currency)
        except CacheError as e:
            logger.warning(f"Cache read failed for {from_currency}/{to_currency}, treating as miss: {e}")
            cached = None

        if cached is not None:
            age = datetime.now(tz=UTC) - cached.timestamp

            if age < self.config.fresh_ttl:
                logger.debug(f"Cache HIT (fresh): {from_currency}/{to_currency} = {cached.rate}")
                return FiatRateResult(rate=cached.rate, from_cache=True, is_stale=False)

            if age < self.config.stale_threshold:
                logger.debug(f"Cache HIT (stale): {from_currency}/{to_currency} = {cached.rate}, revalidating...")
                self._schedule_revalidation(from_currency, to_currency)
                return FiatRateResult(rate=cached.rate, from_cache=True, is_stale=True)

        logger.debug(f"Cache MISS: {from_currency}/{to_currency}")
        return await self._fetch_fresh(from_currency, to_currency)

    async def invalidate_cache(self, from_currency: str, to_currency: str) -> None:
        from_currency = self._validate_currency(from_currency)
        to_currency = self._validate_currency(to_currency)

        await self.cache.delete_fiat_rate(from_currency, to_currency)
        logger.info(f"Cache invalidated for {from_currency}/{to_currency}")

    def get_supported_currencies(self) -> list[str]:
        return list(self.config.supported_currencies)

    async def wait_for_revalidations(self) -> None:
        """Block until every background revalidation in flight has finished."""
        pending = list(self._revalidations.values())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _schedule_revalidation(self, from_currency: str, to_currency: str) -> None:
        key = (from_currency, to_currency)
        if key in self._revalidations:
            logger.debug(f"Revalidation already in flight for {from_currency}/{to_currency}")
            return

        task = asyncio.create_task(self._revalidate(from_currency, to_currency))
        self._revalidations[key] = task
        task.add_done_callback(lambda _: self._revalidations.pop(key, None))

    async def _revalidate(self, from_currency: str, to_currency: str) -> None:
        try:
            fetched = await self._fetch_from_providers(from_currency, to_currency)
            if fetched is None:
                logger.error(f"All providers failed during revalidation for {from_currency}/{to_currency}")
                return

            rate, provider_name = fetched
            logger.info(f"Revalidated {from_currency}/{to_currency} = {rate} via {provider_name}")
            await self._store(from_currency, to_currency, rate, provider_name)
        except Exception as e:
            logger.error(f"Background revalidation failed for {from_currency}/{to_currency}: {e}")

    async def _fetch_fresh(self, from_currency: str, to_currency: str) -> FiatRateResult:
        fetched = await self._fetch_from_providers(from_currency, to_currency)
        if fetched is None:
            return await self._fallback_to_history(from_currency, to_currency)

        rate, provider_name = fetched
        await self._store(from_currency, to_currency, rate, provider_name)
        return FiatRateResult(rate=rate, from_cache=False, is_stale=False)

    async def _fetch_from_providers(self, from_currency: str, to_currency: str) -> tuple[Decimal, str] | None:
        for provider in self.providers:
            try:
                rate = await asyncio.wait_for(
                    provider.fetch_rate(from_currency, to_currency),
                    timeout=self.config.provider_timeout,
                )
            except TimeoutError:
                logger.warning(
                    f"{provider.name} timed out for {from_currency}/{to_currency} "
                    f"after {self.config.provider_timeout}s"
                )
                continue
            except Exception as e:
                logger.warning(f"{provider.name} failed for {from_currency}/{to_currency}: {e}")
                continue

            if rate <= 0:
                logger.warning(f"{provider.name} returned non-positive rate {rate} for {from_currency}/{to_currency}")
                continue

            logger.info(f"{provider.name}: {from_currency}/{to_currency} = {rate}")
            return rate, provider.name

        return None

    async def _fallback_to_history(self, from_currency: str, to_currency: str) -> FiatRateResult:
        logger.warning(
            f"All providers unavailable for {from_currency}/{to_currency}, attempting database fallback"
        )

        try:
            snapshot = await self.history.find_latest(f"{from_currency}-{to_currency}")
        except Exception as e:
            logger.error(f"History lookup failed for {from_currency}/{to_currency}: {e}")
            snapshot = None

        if snapshot is None:
            raise NoRateAvailableError(f"No rate available for {from_currency}/{to_currency} from any source")

        age = datetime.now(tz=UTC) - snapshot.timestamp
        logger.info(
            f"Database fallback: {from_currency}/{to_currency} = {snapshot.rate} "
            f"(age: {round(age.total_seconds())}s)"
        )
        await self._cache(from_currency, to_currency, snapshot.rate)
        return FiatRateResult(rate=snapshot.rate, from_cache=False, is_stale=True)

    async def _cache(self, from_currency: str, to_currency: str, rate: Decimal) -> None:
        # Entries must outlive fresh_ttl or the stale tier could never be served.
        try:
            await self.cache.set_fiat_rate(
                from_currency, to_currency, rate, datetime.now(tz=UTC), self.config.stale_threshold
            )
        except CacheError as e:
            logger.warning(f"Failed to cache rate for {from_currency}/{to_currency}: {e}")

    async def _store(self, from_currency: str, to_currency: str, rate: Decimal, provider_name: str) -> None:
        await self._cache(from_currency, to_currency, rate)

        now = datetime.now(tz=UTC)
        try:
            await self.history.save(
                f"{from_currency}-{to_currency}",
                rate,
                {
                    "provider": provider_name,
                    "type": "fiat",
                    "valid_until": (now + self.config.fresh_ttl).isoformat(),
                },
            )
        except Exception as e:
            logger.error(f"Failed to persist rate to database: {e}")

    def _validate_currency(self, currency: str) -> str:
        code = currency.upper()
        if code not in self.config.supported_currencies:
            supported = ", ".join(self.config.supported_currencies)
            raise UnsupportedCurrencyError(f"Unsupported currency: {currency}. Supported: {supported}")
        return code
