# nosec B101


import pytest

from application.service_factory import ServiceFactory
from config.settings import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'rates.db'}",
        OPENEXCHANGE_APP_ID="test_app_id",
        REFRESH_INTERVAL_SECONDS=30,
        USE_DISTRIBUTED_LOCK=True,
    )


def test_factory_wires_providers_in_configured_order(settings):
    factory = ServiceFactory(settings)

    assert [p.name for p in factory.crypto_providers] == ["coinbase", "binance", "coingecko"]
    assert [p.name for p in factory.fiat_providers] == ["coingecko", "openexchangerates"]
    assert factory.crypto_service.fiat_service is factory.fiat_service
    assert factory.crypto_service.config.monitored_pairs == ("BTC-USD", "ETH-USD")
    assert factory.worker.refresh_interval == 30
    assert factory.worker.use_distributed_lock is True


@pytest.mark.asyncio
async def test_startup_creates_tables_and_cleanup_releases_resources(settings):
    factory = ServiceFactory(settings)

    await factory.startup()
    assert await factory.history.find_latest("BTC-USD") is None

    await factory.cleanup()
    assert not factory.worker.is_running
