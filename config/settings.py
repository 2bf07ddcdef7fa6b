from datetime import timedelta
from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.models.config import AggregatorConfig, FiatResolverConfig


class Settings(BaseSettings):
	DATABASE_URL: str = 'sqlite+aiosqlite:///./rates.db'

	REDIS_URL: str = 'redis://localhost:6379'

	OPENEXCHANGE_APP_ID: str = ''
	COINGECKO_API_KEY: str = ''

	# Providers
	PROVIDER_TIMEOUT_SECONDS: float = 5.0
	PROVIDER_WEIGHTS: dict[str, Decimal] = {
		'coinbase': Decimal('0.4'),
		'binance': Decimal('0.4'),
		'coingecko': Decimal('0.2'),
	}
	DEFAULT_PROVIDER_WEIGHT: Decimal = Decimal('0.1')

	# Crypto aggregation
	OUTLIER_THRESHOLD: Decimal = Decimal('0.05')
	CRYPTO_RATE_TTL_SECONDS: int = 60
	MONITORED_PAIRS: list[str] = ['BTC-USD', 'ETH-USD']
	STALENESS_THRESHOLD_SECONDS: int = 120

	# Scheduler
	REFRESH_INTERVAL_SECONDS: int = 60
	STALENESS_CHECK_INTERVAL_SECONDS: int = 300
	USE_DISTRIBUTED_LOCK: bool = False

	# Fiat resolver
	SUPPORTED_FIAT_CURRENCIES: list[str] = ['USD', 'NGN', 'EUR', 'GBP', 'KES', 'GHS']
	FIAT_FRESH_TTL_SECONDS: int = 60
	FIAT_STALE_THRESHOLD_SECONDS: int = 300

	# Logging
	LOG_LEVEL: str = 'INFO'
	LOG_DIRECTORY: str | None = None

	# Application
	APP_NAME: str = 'Rate Engine API'
	HOST: str = '0.0.0.0'
	PORT: int = 8000
	DEBUG: bool = True

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')

	def aggregator_config(self) -> AggregatorConfig:
		return AggregatorConfig(
			provider_weights=self.PROVIDER_WEIGHTS,
			default_weight=self.DEFAULT_PROVIDER_WEIGHT,
			outlier_threshold=self.OUTLIER_THRESHOLD,
			cache_ttl=timedelta(seconds=self.CRYPTO_RATE_TTL_SECONDS),
			provider_timeout=self.PROVIDER_TIMEOUT_SECONDS,
			monitored_pairs=tuple(p.upper() for p in self.MONITORED_PAIRS),
			staleness_threshold=timedelta(seconds=self.STALENESS_THRESHOLD_SECONDS),
		)

	def fiat_resolver_config(self) -> FiatResolverConfig:
		return FiatResolverConfig(
			supported_currencies=tuple(self.SUPPORTED_FIAT_CURRENCIES),
			fresh_ttl=timedelta(seconds=self.FIAT_FRESH_TTL_SECONDS),
			stale_threshold=timedelta(seconds=self.FIAT_STALE_THRESHOLD_SECONDS),
			provider_timeout=self.PROVIDER_TIMEOUT_SECONDS,
		)


@lru_cache
def get_settings() -> Settings:
	return Settings()
