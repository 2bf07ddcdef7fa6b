from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from types import MappingProxyType


def _frozen_weights(weights: Mapping[str, Decimal]) -> Mapping[str, Decimal]:
    return MappingProxyType({name: Decimal(str(w)) for name, w in weights.items()})


@dataclass(frozen=True)
class AggregatorConfig:
    """Static settings for the crypto/fiat consensus aggregator.

    Weights are relative; consensus always re-normalises over the providers
    that survived a given round, so they need not sum to 1.
    """
    provider_weights: Mapping[str, Decimal] = field(
        default_factory=lambda: {'coinbase': Decimal('0.4'), 'binance': Decimal('0.4'), 'coingecko': Decimal('0.2')}
    )
    default_weight: Decimal = Decimal('0.1')
    outlier_threshold: Decimal = Decimal('0.05')
    cache_ttl: timedelta = timedelta(seconds=60)
    provider_timeout: float = 5.0
    monitored_pairs: tuple[str, ...] = ('BTC-USD', 'ETH-USD')
    staleness_threshold: timedelta = timedelta(minutes=2)

    def __post_init__(self):
        object.__setattr__(self, 'provider_weights', _frozen_weights(self.provider_weights))
        object.__setattr__(self, 'monitored_pairs', tuple(self.monitored_pairs))

    def weight_for(self, provider_name: str) -> Decimal:
        return self.provider_weights.get(provider_name, self.default_weight)


@dataclass(frozen=True)
class FiatResolverConfig:
    supported_currencies: tuple[str, ...] = ('USD', 'NGN', 'EUR', 'GBP', 'KES', 'GHS')
    fresh_ttl: timedelta = timedelta(seconds=60)
    stale_threshold: timedelta = timedelta(minutes=5)
    provider_timeout: float = 5.0

    def __post_init__(self):
        object.__setattr__(
            self, 'supported_currencies', tuple(c.upper() for c in self.supported_currencies)
        )
