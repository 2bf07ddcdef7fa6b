import json
import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

from redis import asyncio as redis

from domain.exceptions.rate import CacheError
from domain.models.rate import CachedFiatRate

logger = logging.getLogger(__name__)


class RedisCacheService:
    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def _make_crypto_key(self, pair: str) -> str:
        return f"rate:{pair}"

    def _make_fiat_key(self, from_currency: str, to_currency: str) -> str:
        return f"fiat-rate:{from_currency}-{to_currency}"

    def _make_lock_key(self, name: str) -> str:
        return f"lock:{name}"

    async def _get(self, key: str) -> str | None:
        try:
            return await self.redis.get(key)
        except redis.RedisError as e:
            raise CacheError(f"Cache read failed for {key}: {e}") from e

    async def _set(self, key: str, value: str, ttl: timedelta) -> None:
        try:
            await self.redis.setex(key, ttl, value)
        except redis.RedisError as e:
            raise CacheError(f"Cache write failed for {key}: {e}") from e

    async def get_crypto_rate(self, pair: str) -> Decimal | None:
        key = self._make_crypto_key(pair)
        data = await self._get(key)
        if data is None:
            return None

        try:
            return Decimal(json.loads(data))
        except (json.JSONDecodeError, TypeError, InvalidOperation) as e:
            raise CacheError(f"Invalid json data under {key}") from e

    async def set_crypto_rate(self, pair: str, rate: Decimal, ttl: timedelta) -> None:
        await self._set(self._make_crypto_key(pair), json.dumps(str(rate)), ttl)

    async def get_fiat_rate(self, from_currency: str, to_currency: str) -> CachedFiatRate | None:
        key = self._make_fiat_key(from_currency, to_currency)
        data = await self._get(key)
        if data is None:
            return None

        try:
            entry = json.loads(data)
            return CachedFiatRate(
                rate=Decimal(entry["rate"]),
                timestamp=datetime.fromisoformat(entry["timestamp"]),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise CacheError(f"Invalid json data under {key}") from e

    async def set_fiat_rate(
        self, from_currency: str, to_currency: str, rate: Decimal, timestamp: datetime, ttl: timedelta
    ) -> None:
        entry = {"rate": str(rate), "timestamp": timestamp.isoformat()}
        await self._set(self._make_fiat_key(from_currency, to_currency), json.dumps(entry), ttl)

    async def delete_fiat_rate(self, from_currency: str, to_currency: str) -> None:
        key = self._make_fiat_key(from_currency, to_currency)
        try:
            await self.redis.delete(key)
        except redis.RedisError as e:
            raise CacheError(f"Cache delete failed for {key}: {e}") from e

    async def acquire_lock(self, name: str, ttl: timedelta) -> bool:
        """Claim ``name`` for ``ttl`` unless another instance already holds it.

        The lock is never released explicitly; expiry hands it to whoever asks next.
        """
        key = self._make_lock_key(name)
        try:
            acquired = await self.redis.set(key, "1", nx=True, ex=ttl)
        except redis.RedisError as e:
            raise CacheError(f"Lock acquisition failed for {key}: {e}") from e

        logger.debug(f"Lock {key} {'acquired' if acquired else 'held elsewhere'}")
        return bool(acquired)
