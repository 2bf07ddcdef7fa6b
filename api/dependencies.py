import logging

from application.service_factory import ServiceFactory
from application.services import CryptoRateService, FiatRateService
from config.settings import get_settings

logger = logging.getLogger(__name__)


class AppDependencies:
	"""Container for application-wide singleton dependencies."""

	factory: ServiceFactory | None = None


deps = AppDependencies()


def init_dependencies() -> ServiceFactory:
	"""Initialize all singleton dependencies. Called at app startup."""
	logger.info('Initializing dependencies...')
	deps.factory = ServiceFactory(get_settings())
	logger.info('Dependencies initialized')
	return deps.factory


async def cleanup_dependencies() -> None:
	logger.info('Cleaning up dependencies...')

	if deps.factory:
		await deps.factory.cleanup()
		deps.factory = None

	logger.info('Cleanup complete')


def _get_factory() -> ServiceFactory:
	if deps.factory is None:
		raise RuntimeError('Dependencies not initialized. Call init_dependencies() first.')
	return deps.factory


def get_crypto_rate_service() -> CryptoRateService:
	return _get_factory().crypto_service


def get_fiat_rate_service() -> FiatRateService:
	return _get_factory().fiat_service
