from decimal import Decimal

from infrastructure.providers.base import CryptoRateProvider, split_pair

# Binance quotes USD markets against tether.
QUOTE_ALIASES = {"USD": "USDT"}


class BinanceProvider(CryptoRateProvider):
    BASE_URL = "https://api.binance.com/api/v3"

    @property
    def name(self) -> str:
        return "binance"

    def _symbol(self, pair: str) -> str:
        base, quote = split_pair(pair)
        return f"{base}{QUOTE_ALIASES.get(quote, quote)}"

    async def fetch_rate(self, pair: str) -> Decimal:
        data = await self._request("ticker/price", {"symbol": self._symbol(pair)})
        return self._to_decimal(data.get("price"), pair)
