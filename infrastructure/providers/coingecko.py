from decimal import Decimal

import httpx

from domain.exceptions.rate import ProviderError
from infrastructure.providers.base import CryptoRateProvider, FiatRateProvider, split_pair

COIN_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "BNB": "binancecoin",
    "XRP": "ripple",
    "USDT": "tether",
    "USDC": "usd-coin",
}


def _headers(api_key: str) -> dict | None:
    return {"x-cg-demo-api-key": api_key} if api_key else None


class CoinGeckoProvider(CryptoRateProvider):
    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(self, api_key: str = "", client: httpx.AsyncClient | None = None, timeout: float = 5.0):
        super().__init__(client=client, timeout=timeout, headers=_headers(api_key))

    @property
    def name(self) -> str:
        return "coingecko"

    async def fetch_rate(self, pair: str) -> Decimal:
        base, quote = split_pair(pair)
        coin_id = COIN_IDS.get(base)
        if coin_id is None:
            raise ProviderError(f"coingecko: no coin mapping for {base}")

        vs_currency = quote.lower()
        data = await self._request("simple/price", {"ids": coin_id, "vs_currencies": vs_currency})
        return self._to_decimal((data.get(coin_id) or {}).get(vs_currency), pair)


class CoinGeckoFiatProvider(FiatRateProvider):
    """Fiat cross rates derived from CoinGecko's BTC-denominated rate table."""

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(self, api_key: str = "", client: httpx.AsyncClient | None = None, timeout: float = 5.0):
        super().__init__(client=client, timeout=timeout, headers=_headers(api_key))

    @property
    def name(self) -> str:
        return "coingecko"

    async def fetch_rate(self, from_currency: str, to_currency: str) -> Decimal:
        data = await self._request("exchange_rates")
        rates = data.get("rates")
        if not rates:
            raise ProviderError("coingecko: invalid exchange_rates response")

        from_value = (rates.get(from_currency.lower()) or {}).get("value")
        to_value = (rates.get(to_currency.lower()) or {}).get("value")
        if not from_value or not to_value:
            raise ProviderError(f"coingecko: rate not found for {from_currency}/{to_currency}")

        label = f"{from_currency}/{to_currency}"
        return self._to_decimal(to_value, label) / self._to_decimal(from_value, label)
