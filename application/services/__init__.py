from .crypto_rate_service import CryptoRateService
from .fiat_rate_service import FiatRateService

__all__ = ['CryptoRateService', 'FiatRateService']
