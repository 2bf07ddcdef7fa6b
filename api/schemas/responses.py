from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CryptoRateResponse(BaseModel):
	crypto: str = Field(..., description='Base currency code')
	fiat: str = Field(..., description='Quote currency code')
	rate: Decimal = Field(..., description='Weighted consensus rate')

	model_config = ConfigDict(
		json_schema_extra={'example': {'crypto': 'BTC', 'fiat': 'USD', 'rate': 50020.0}}
	)


class ConversionResponse(BaseModel):
	from_currency: str = Field(..., description='Source currency code')
	to_currency: str = Field(..., description='Target currency code')
	original_amount: Decimal = Field(..., description='Original amount requested')
	converted_amount: Decimal = Field(..., description='Converted amount')


class RateSnapshotResponse(BaseModel):
	pair: str = Field(..., description='Pair identifier, e.g. BTC-USD')
	rate: Decimal = Field(..., description='Resolved rate')
	timestamp: datetime = Field(..., description='When the rate was resolved')
	metadata: dict[str, Any] = Field(default_factory=dict, description='How the rate was computed')


class FiatRateResponse(BaseModel):
	from_currency: str = Field(..., description='Source currency code')
	to_currency: str = Field(..., description='Target currency code')
	rate: Decimal = Field(..., description='Exchange rate')
	from_cache: bool = Field(..., description='Served from cache')
	is_stale: bool = Field(..., description='Value may be outdated')

	model_config = ConfigDict(
		json_schema_extra={
			'example': {
				'from_currency': 'USD',
				'to_currency': 'NGN',
				'rate': 1550.25,
				'from_cache': True,
				'is_stale': False,
			}
		}
	)


class SupportedCurrenciesResponse(BaseModel):
	currencies: list[str] = Field(description='List of currency codes')

	model_config = ConfigDict(
		json_schema_extra={'examples': [{'currencies': ['USD', 'NGN', 'EUR', 'GBP', 'KES', 'GHS']}]}
	)


class CacheInvalidationResponse(BaseModel):
	message: str
