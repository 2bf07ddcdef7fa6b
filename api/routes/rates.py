from datetime import datetime
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_crypto_rate_service, get_fiat_rate_service
from api.schemas import (
	CacheInvalidationResponse,
	ConversionResponse,
	CryptoRateResponse,
	FiatRateResponse,
	RateSnapshotResponse,
	SupportedCurrenciesResponse,
)
from application.services import CryptoRateService, FiatRateService

router = APIRouter(prefix='/api/exchange-rates', tags=['exchange-rates'])

CurrencyCode = Annotated[str, Query(min_length=2, max_length=10)]


@router.get(
	'',
	response_model=CryptoRateResponse,
	status_code=status.HTTP_200_OK,
	summary='Get current consensus rate',
)
async def get_current_rate(
	crypto: CurrencyCode,
	fiat: CurrencyCode,
	service: Annotated[CryptoRateService, Depends(get_crypto_rate_service)],
) -> CryptoRateResponse:
	crypto = crypto.upper()
	fiat = fiat.upper()
	rate = await service.get_rate(crypto, fiat)
	return CryptoRateResponse(crypto=crypto, fiat=fiat, rate=rate)


@router.get(
	'/convert',
	response_model=ConversionResponse,
	status_code=status.HTTP_200_OK,
	summary='Convert an amount at the current consensus rate',
)
async def convert_amount(
	amount: Annotated[Decimal, Query(gt=0)],
	from_currency: CurrencyCode,
	to_currency: CurrencyCode,
	service: Annotated[CryptoRateService, Depends(get_crypto_rate_service)],
) -> ConversionResponse:
	from_currency = from_currency.upper()
	to_currency = to_currency.upper()
	converted = await service.convert_amount(amount, from_currency, to_currency)
	return ConversionResponse(
		from_currency=from_currency,
		to_currency=to_currency,
		original_amount=amount,
		converted_amount=converted,
	)


@router.get(
	'/history',
	response_model=list[RateSnapshotResponse],
	status_code=status.HTTP_200_OK,
	summary='Get stored rates for a pair within a time range',
)
async def get_history(
	crypto: CurrencyCode,
	fiat: CurrencyCode,
	start: datetime,
	end: datetime,
	service: Annotated[CryptoRateService, Depends(get_crypto_rate_service)],
) -> list[RateSnapshotResponse]:
	snapshots = await service.get_historical_rates(crypto.upper(), fiat.upper(), start, end)
	return [
		RateSnapshotResponse(pair=s.pair, rate=s.rate, timestamp=s.timestamp, metadata=s.metadata)
		for s in snapshots
	]


@router.get(
	'/fiat',
	response_model=FiatRateResponse,
	status_code=status.HTTP_200_OK,
	summary='Get a fiat-to-fiat rate',
)
async def get_fiat_rate(
	from_currency: CurrencyCode,
	to_currency: CurrencyCode,
	service: Annotated[FiatRateService, Depends(get_fiat_rate_service)],
) -> FiatRateResponse:
	from_currency = from_currency.upper()
	to_currency = to_currency.upper()
	result = await service.get_rate(from_currency, to_currency)
	return FiatRateResponse(
		from_currency=from_currency,
		to_currency=to_currency,
		rate=result.rate,
		from_cache=result.from_cache,
		is_stale=result.is_stale,
	)


@router.get(
	'/fiat/supported',
	response_model=SupportedCurrenciesResponse,
	status_code=status.HTTP_200_OK,
	summary='List supported fiat currencies',
)
async def get_supported_fiat_currencies(
	service: Annotated[FiatRateService, Depends(get_fiat_rate_service)],
) -> SupportedCurrenciesResponse:
	return SupportedCurrenciesResponse(currencies=service.get_supported_currencies())


@router.delete(
	'/fiat/cache',
	response_model=CacheInvalidationResponse,
	status_code=status.HTTP_200_OK,
	summary='Invalidate a cached fiat rate',
)
async def invalidate_fiat_cache(
	from_currency: CurrencyCode,
	to_currency: CurrencyCode,
	service: Annotated[FiatRateService, Depends(get_fiat_rate_service)],
) -> CacheInvalidationResponse:
	from_currency = from_currency.upper()
	to_currency = to_currency.upper()
	await service.invalidate_cache(from_currency, to_currency)
	return CacheInvalidationResponse(message=f'Cache invalidated for {from_currency}/{to_currency}')
