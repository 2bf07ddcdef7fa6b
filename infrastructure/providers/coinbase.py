from decimal import Decimal

from infrastructure.providers.base import CryptoRateProvider, split_pair


class CoinbaseProvider(CryptoRateProvider):
    BASE_URL = "https://api.coinbase.com/v2"

    @property
    def name(self) -> str:
        return "coinbase"

    async def fetch_rate(self, pair: str) -> Decimal:
        base, quote = split_pair(pair)
        data = await self._request("exchange-rates", {"currency": base})
        rates = (data.get("data") or {}).get("rates") or {}
        return self._to_decimal(rates.get(quote), pair)
