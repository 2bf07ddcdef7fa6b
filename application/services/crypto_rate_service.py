import asyncio
import logging
from datetime import UTC, datetime
from decimal import Decimal

from application.services.consensus import (
    calculate_confidence,
    calculate_spread,
    filter_outliers,
    weighted_average,
)
from application.services.fiat_rate_service import FiatRateService
from domain.exceptions.rate import AggregationFailure, CacheError
from domain.models.config import AggregatorConfig
from domain.models.rate import ConsensusResult, ProviderResult, RateSnapshot
from infrastructure.cache.redis_cache import RedisCacheService
from infrastructure.persistence.repositories.rate_history import RateHistoryRepository
from infrastructure.providers.base import CryptoRateProvider

logger = logging.getLogger(__name__)


class CryptoRateService:
    """Weighted, outlier-filtered consensus over independent crypto price sources."""

    def __init__(
        self,
        providers: list[CryptoRateProvider],
        cache: RedisCacheService,
        history: RateHistoryRepository,
        config: AggregatorConfig | None = None,
        fiat_service: FiatRateService | None = None,
    ):
        self.providers = providers
        self.cache = cache
        self.history = history
        self.config = config or AggregatorConfig()
        self.fiat_service = fiat_service
        self.last_success: dict[str, datetime] = {}

    async def get_rate(self, pair_or_base: str, quote: str | None = None) -> Decimal:
        pair = (f"{pair_or_base}-{quote}" if quote else pair_or_base).upper()

        try:
            cached = await self.cache.get_crypto_rate(pair)
        except CacheError as e:
            logger.warning(f"Cache read failed for {pair}, treating as miss: {e}")
            cached = None

        if cached is not None:
            logger.debug(f"Cache HIT: {pair} = {cached}")
            return cached

        return await self.fetch_and_aggregate(pair)

    async def convert_amount(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        rate = await self.get_rate(f"{from_currency}-{to_currency}")
        return amount * rate

    async def get_fiat_to_usd_rate(self, currency: str) -> Decimal:
        """Rate from ``currency`` to USD for payment creation.

        Deliberately permissive: any failure logs a warning and yields 1.
        """
        currency = currency.upper()
        if currency == "USD":
            return Decimal(1)

        try:
            if self.fiat_service and currency in self.fiat_service.get_supported_currencies():
                result = await self.fiat_service.get_rate(currency, "USD")
                return result.rate
            return await self.get_rate(currency, "USD")
        except Exception as e:
            logger.warning(f"Falling back to 1 for {currency}->USD: {e}")
            return Decimal(1)

    async def get_historical_rates(
        self, crypto: str, fiat: str, start: datetime, end: datetime
    ) -> list[RateSnapshot]:
        return await self.history.find_in_range(f"{crypto}-{fiat}".upper(), start, end)

    async def fetch_and_aggregate(self, pair: str) -> Decimal:
        logger.debug(f"Fetching rates for {pair}...")

        results = await asyncio.gather(*(self._fetch_from_provider(p, pair) for p in self.providers))
        successes = [r for r in results if r.is_successful]
        errors = [r.error for r in results if not r.is_successful]

        if not successes:
            logger.warning(f"All rate providers failed for {pair}. Attempting database fallback...")
            return await self._fallback_to_history(pair)

        valid, _ = filter_outliers(successes, self.config.outlier_threshold)
        consensus = weighted_average(valid, self.config.weight_for)
        if consensus is None or consensus <= 0:
            logger.error(f"No quotes for {pair} survived outlier filtering: {[str(r.rate) for r in successes]}")
            return await self._fallback_to_history(pair)

        spread = calculate_spread(valid)
        result = ConsensusResult(
            rate=consensus,
            raw=successes,
            valid=valid,
            errors=errors,
            spread=spread,
            confidence=calculate_confidence(len(valid), len(self.providers), spread),
        )
        logger.info(
            f"Aggregated rate for {pair}: {consensus} "
            f"(confidence: {result.confidence:.2f}, spread: {spread:.2f}%)"
        )

        await self._store(pair, result)
        return consensus

    async def refresh_monitored_pairs(self) -> dict[str, Decimal | None]:
        logger.info("Starting scheduled rate update...")
        refreshed: dict[str, Decimal | None] = {}

        for pair in self.config.monitored_pairs:
            try:
                refreshed[pair] = await self.fetch_and_aggregate(pair)
            except Exception as e:
                logger.error(f"Scheduled update failed for {pair}: {e}")
                refreshed[pair] = None

        logger.info("Scheduled rate update completed.")
        return refreshed

    def check_staleness(self, now: datetime | None = None) -> list[str]:
        """Alert on monitored pairs without a recent successful aggregation."""
        now = now or datetime.now(tz=UTC)
        stale = []

        for pair in self.config.monitored_pairs:
            last_update = self.last_success.get(pair)
            if last_update is None or now - last_update > self.config.staleness_threshold:
                seen = last_update.isoformat() if last_update else "never"
                logger.error(f"ALERT: Rate for {pair} is STALE! Last update was at {seen}")
                stale.append(pair)

        return stale

    async def _fetch_from_provider(self, provider: CryptoRateProvider, pair: str) -> ProviderResult:
        try:
            rate = await asyncio.wait_for(provider.fetch_rate(pair), timeout=self.config.provider_timeout)
        except TimeoutError:
            message = f"{provider.name} timed out after {self.config.provider_timeout}s"
        except Exception as e:
            message = f"{provider.name}: {e}"
        else:
            if rate > 0:
                return ProviderResult(provider=provider.name, rate=rate)
            message = f"{provider.name} returned non-positive rate {rate}"

        logger.warning(f"Provider failed for {pair}: {message}")
        return ProviderResult(provider=provider.name, error=message)

    async def _fallback_to_history(self, pair: str) -> Decimal:
        try:
            snapshot = await self.history.find_latest(pair)
        except Exception as e:
            logger.error(f"History lookup failed for {pair}: {e}")
            snapshot = None

        if snapshot is None:
            logger.error(f"Critical: all providers failed and no historical data found for {pair}")
            raise AggregationFailure(f"Failed to get rate for {pair} from all sources (including database)")

        logger.info(
            f"Fallback successful: using last known rate for {pair} "
            f"from {snapshot.timestamp.isoformat()}: {snapshot.rate}"
        )
        return snapshot.rate

    async def _store(self, pair: str, result: ConsensusResult) -> None:
        try:
            await self.cache.set_crypto_rate(pair, result.rate, self.config.cache_ttl)
        except CacheError as e:
            logger.warning(f"Failed to cache rate for {pair}: {e}")

        self.last_success[pair] = datetime.now(tz=UTC)

        try:
            await self.history.save(pair, result.rate, result.to_metadata())
        except Exception as e:
            logger.error(f"Failed to persist rate for {pair}: {e}")
