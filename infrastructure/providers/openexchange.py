from decimal import Decimal

import httpx

from domain.exceptions.rate import ProviderError
from infrastructure.providers.base import FiatRateProvider


class OpenExchangeProvider(FiatRateProvider):
    BASE_URL = "https://openexchangerates.org/api"

    def __init__(self, app_id: str, client: httpx.AsyncClient | None = None, timeout: float = 5.0):
        super().__init__(client=client, timeout=timeout)
        self.app_id = app_id

    @property
    def name(self) -> str:
        return "openexchangerates"

    async def fetch_rate(self, from_currency: str, to_currency: str) -> Decimal:
        if not self.app_id:
            raise ProviderError("openexchangerates: app id not configured")

        # Free tier only serves USD-based tables, so every pair is derived from USD.
        data = await self._request(
            "latest.json",
            {"app_id": self.app_id, "base": "USD", "symbols": f"{from_currency},{to_currency}"},
        )
        if "error" in data:
            message = data.get("description", data.get("message", "Unknown error"))
            raise ProviderError(f"openexchangerates API error: {message}")

        rates = data.get("rates")
        if not rates:
            raise ProviderError("openexchangerates: invalid response")

        label = f"{from_currency}/{to_currency}"
        if from_currency == "USD":
            return self._to_decimal(rates.get(to_currency), label)
        if to_currency == "USD":
            return Decimal(1) / self._to_decimal(rates.get(from_currency), label)

        from_rate = self._to_decimal(rates.get(from_currency), label)
        to_rate = self._to_decimal(rates.get(to_currency), label)
        return to_rate / from_rate
