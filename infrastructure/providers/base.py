from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation

import httpx

from domain.exceptions.rate import ProviderError


class BaseHTTPProvider(ABC):
    """Common HTTP handling for upstream rate sources.

    Every failure (transport, status, payload) surfaces as ``ProviderError`` so the
    engine only ever has to isolate one exception type per provider.
    """

    BASE_URL = ""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 5.0, headers: dict | None = None):
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout), headers=headers)

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    async def _request(self, endpoint: str, params: dict | None = None) -> dict:
        url = f"{self.BASE_URL}/{endpoint}"
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"{self.name} HTTP error {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(f"{self.name} request failed: {e.__class__.__name__}") from e
        except Exception as e:
            raise ProviderError(f"{self.name} response parsing error: {str(e)}") from e

    def _to_decimal(self, value, label: str) -> Decimal:
        if value is None:
            raise ProviderError(f"{self.name}: rate for {label} not found in response")
        try:
            return Decimal(str(value))
        except InvalidOperation as e:
            raise ProviderError(f"{self.name}: invalid rate {value!r} for {label}") from e

    async def close(self) -> None:
        await self._client.aclose()


class CryptoRateProvider(BaseHTTPProvider):
    @abstractmethod
    async def fetch_rate(self, pair: str) -> Decimal:
        """Return the price of ``pair`` (``BASE-QUOTE``), or raise ProviderError."""


class FiatRateProvider(BaseHTTPProvider):
    @abstractmethod
    async def fetch_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """Return how many ``to_currency`` one ``from_currency`` buys, or raise ProviderError."""


def split_pair(pair: str) -> tuple[str, str]:
    base, sep, quote = pair.partition("-")
    if not sep or not base or not quote:
        raise ProviderError(f"Malformed pair {pair!r}, expected BASE-QUOTE")
    return base.upper(), quote.upper()
