from .base import CryptoRateProvider, FiatRateProvider
from .binance import BinanceProvider
from .coinbase import CoinbaseProvider
from .coingecko import CoinGeckoFiatProvider, CoinGeckoProvider
from .openexchange import OpenExchangeProvider

__all__ = [
    'CryptoRateProvider',
    'FiatRateProvider',
    'BinanceProvider',
    'CoinbaseProvider',
    'CoinGeckoFiatProvider',
    'CoinGeckoProvider',
    'OpenExchangeProvider',
]
