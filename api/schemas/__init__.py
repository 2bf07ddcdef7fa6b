from .responses import (
	CacheInvalidationResponse,
	ConversionResponse,
	CryptoRateResponse,
	FiatRateResponse,
	RateSnapshotResponse,
	SupportedCurrenciesResponse,
)

__all__ = [
	'CacheInvalidationResponse',
	'ConversionResponse',
	'CryptoRateResponse',
	'FiatRateResponse',
	'RateSnapshotResponse',
	'SupportedCurrenciesResponse',
]
