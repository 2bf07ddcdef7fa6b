from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_crypto_rate_service
from api.main import app
from domain.exceptions.rate import AggregationFailure
from domain.models.rate import RateSnapshot


@pytest.fixture
def mock_crypto_service():
    mock_service = MagicMock()
    mock_service.get_rate = AsyncMock(return_value=Decimal("50020"))
    mock_service.convert_amount = AsyncMock(return_value=Decimal("25010"))
    mock_service.get_historical_rates = AsyncMock(return_value=[])
    return mock_service


@pytest.fixture
def client(mock_crypto_service):
    app.dependency_overrides[get_crypto_rate_service] = lambda: mock_crypto_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def test_get_rate_success(client, mock_crypto_service):
    response = client.get("/api/exchange-rates", params={"crypto": "btc", "fiat": "usd"})

    assert response.status_code == 200
    data = response.json()

    assert data["crypto"] == "BTC"
    assert data["fiat"] == "USD"
    assert Decimal(data["rate"]) == Decimal("50020")

    mock_crypto_service.get_rate.assert_called_once_with("BTC", "USD")


def test_get_rate_missing_params(client):
    response = client.get("/api/exchange-rates", params={"crypto": "BTC"})
    assert response.status_code == 422


def test_get_rate_all_sources_failed_returns_503(client, mock_crypto_service):
    mock_crypto_service.get_rate = AsyncMock(side_effect=AggregationFailure("Failed to get rate for BTC-USD"))

    response = client.get("/api/exchange-rates", params={"crypto": "BTC", "fiat": "USD"})

    assert response.status_code == 503
    assert response.json()["detail"] == "Exchange rate service unavailable"


def test_convert_success(client, mock_crypto_service):
    response = client.get(
        "/api/exchange-rates/convert",
        params={"amount": "0.5", "from_currency": "btc", "to_currency": "usd"},
    )

    assert response.status_code == 200
    data = response.json()

    assert data["from_currency"] == "BTC"
    assert data["to_currency"] == "USD"
    assert Decimal(data["original_amount"]) == Decimal("0.5")
    assert Decimal(data["converted_amount"]) == Decimal("25010")

    mock_crypto_service.convert_amount.assert_called_once_with(Decimal("0.5"), "BTC", "USD")


def test_convert_zero_amount(client):
    response = client.get(
        "/api/exchange-rates/convert",
        params={"amount": 0, "from_currency": "BTC", "to_currency": "USD"},
    )
    assert response.status_code == 422


def test_convert_invalid_amount_type(client):
    response = client.get(
        "/api/exchange-rates/convert",
        params={"amount": "not_a_number", "from_currency": "BTC", "to_currency": "USD"},
    )
    assert response.status_code == 422


def test_history_returns_snapshots(client, mock_crypto_service):
    stamp = datetime(2025, 11, 5, 10, 0, tzinfo=UTC)
    mock_crypto_service.get_historical_rates = AsyncMock(return_value=[
        RateSnapshot(pair="BTC-USD", rate=Decimal("50000"), timestamp=stamp, metadata={"confidence": 1.0}),
    ])

    response = client.get(
        "/api/exchange-rates/history",
        params={
            "crypto": "btc",
            "fiat": "usd",
            "start": "2025-11-05T00:00:00Z",
            "end": "2025-11-06T00:00:00Z",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["pair"] == "BTC-USD"
    assert Decimal(data[0]["rate"]) == Decimal("50000")
    assert data[0]["metadata"] == {"confidence": 1.0}

    args = mock_crypto_service.get_historical_rates.call_args.args
    assert args[:2] == ("BTC", "USD")


def test_history_invalid_date(client):
    response = client.get(
        "/api/exchange-rates/history",
        params={"crypto": "BTC", "fiat": "USD", "start": "yesterday", "end": "today"},
    )
    assert response.status_code == 422
