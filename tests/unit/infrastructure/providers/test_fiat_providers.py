# nosec B101


import pytest
from decimal import Decimal
from unittest.mock import Mock, AsyncMock
import httpx

from infrastructure.providers.coingecko import CoinGeckoFiatProvider
from infrastructure.providers.openexchange import OpenExchangeProvider
from domain.exceptions.rate import ProviderError


def mock_client_returning(payload):
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_response = Mock()
    mock_response.json.return_value = payload
    mock_response.raise_for_status = Mock()
    mock_client.get.return_value = mock_response
    return mock_client


EXCHANGE_RATES = {
    'rates': {
        'btc': {'name': 'Bitcoin', 'unit': 'BTC', 'value': 1.0, 'type': 'crypto'},
        'usd': {'name': 'US Dollar', 'unit': '$', 'value': 50000.0, 'type': 'fiat'},
        'ngn': {'name': 'Nigerian Naira', 'unit': '₦', 'value': 75000000.0, 'type': 'fiat'},
        'eur': {'name': 'Euro', 'unit': '€', 'value': 46000.0, 'type': 'fiat'},
    }
}


# ============================================================================
# CoinGecko (fiat)
# ============================================================================

@pytest.mark.asyncio
async def test_coingecko_fiat_cross_rate():
    mock_client = mock_client_returning(EXCHANGE_RATES)
    provider = CoinGeckoFiatProvider(client=mock_client)

    rate = await provider.fetch_rate('USD', 'NGN')

    assert rate == Decimal('1500')
    assert mock_client.get.call_args[0][0] == 'https://api.coingecko.com/api/v3/exchange_rates'


@pytest.mark.asyncio
async def test_coingecko_fiat_inverse_direction():
    provider = CoinGeckoFiatProvider(client=mock_client_returning(EXCHANGE_RATES))

    rate = await provider.fetch_rate('EUR', 'USD')

    assert rate == Decimal('50000') / Decimal('46000')


@pytest.mark.asyncio
async def test_coingecko_fiat_unknown_currency_raises():
    provider = CoinGeckoFiatProvider(client=mock_client_returning(EXCHANGE_RATES))

    with pytest.raises(ProviderError) as exc_info:
        await provider.fetch_rate('USD', 'KES')

    assert 'USD/KES' in str(exc_info.value)


@pytest.mark.asyncio
async def test_coingecko_fiat_empty_table_raises():
    provider = CoinGeckoFiatProvider(client=mock_client_returning({}))

    with pytest.raises(ProviderError):
        await provider.fetch_rate('USD', 'NGN')


# ============================================================================
# Open Exchange Rates
# ============================================================================

@pytest.mark.asyncio
async def test_openexchange_direct_rate_from_usd():
    mock_client = mock_client_returning({'base': 'USD', 'rates': {'USD': 1.0, 'NGN': 1520.5}})
    provider = OpenExchangeProvider(app_id='test_app_id', client=mock_client)

    rate = await provider.fetch_rate('USD', 'NGN')

    assert rate == Decimal('1520.5')
    call_args = mock_client.get.call_args
    assert call_args[0][0] == 'https://openexchangerates.org/api/latest.json'
    assert call_args[1]['params'] == {'app_id': 'test_app_id', 'base': 'USD', 'symbols': 'USD,NGN'}


@pytest.mark.asyncio
async def test_openexchange_inverse_rate_to_usd():
    provider = OpenExchangeProvider(
        app_id='test_app_id',
        client=mock_client_returning({'rates': {'GBP': 0.8, 'USD': 1.0}}),
    )

    rate = await provider.fetch_rate('GBP', 'USD')

    assert rate == Decimal('1.25')


@pytest.mark.asyncio
async def test_openexchange_cross_rate_via_usd():
    provider = OpenExchangeProvider(
        app_id='test_app_id',
        client=mock_client_returning({'rates': {'EUR': 0.5, 'KES': 130}}),
    )

    rate = await provider.fetch_rate('EUR', 'KES')

    assert rate == Decimal('260')


@pytest.mark.asyncio
async def test_openexchange_api_error_payload():
    provider = OpenExchangeProvider(
        app_id='bad',
        client=mock_client_returning({'error': True, 'status': 401, 'description': 'Invalid App ID provided'}),
    )

    with pytest.raises(ProviderError) as exc_info:
        await provider.fetch_rate('USD', 'EUR')

    assert 'Invalid App ID provided' in str(exc_info.value)


@pytest.mark.asyncio
async def test_openexchange_without_app_id_makes_no_request():
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    provider = OpenExchangeProvider(app_id='', client=mock_client)

    with pytest.raises(ProviderError):
        await provider.fetch_rate('USD', 'EUR')

    mock_client.get.assert_not_called()


@pytest.mark.asyncio
async def test_openexchange_timeout_raises_provider_error():
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get.side_effect = httpx.TimeoutException('Request timed out')
    provider = OpenExchangeProvider(app_id='test_app_id', client=mock_client)

    with pytest.raises(ProviderError) as exc_info:
        await provider.fetch_rate('USD', 'EUR')

    assert 'request failed' in str(exc_info.value)
