from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class RateSnapshot:
    pair: str
    rate: Decimal
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of one provider call within a single aggregation."""
    provider: str
    rate: Decimal | None = None
    error: str | None = None

    @property
    def is_successful(self) -> bool:
        return self.rate is not None

    def to_dict(self) -> dict[str, str]:
        return {'provider': self.provider, 'rate': str(self.rate)}


@dataclass(frozen=True)
class ConsensusResult:
    rate: Decimal
    raw: list[ProviderResult]
    valid: list[ProviderResult]
    errors: list[str]
    spread: Decimal
    confidence: float

    def to_metadata(self) -> dict[str, Any]:
        return {
            'raw': [r.to_dict() for r in self.raw],
            'valid': [r.to_dict() for r in self.valid],
            'errors': list(self.errors),
            'spread': float(self.spread),
            'confidence': self.confidence,
        }


@dataclass(frozen=True)
class CachedFiatRate:
    rate: Decimal
    timestamp: datetime


@dataclass(frozen=True)
class FiatRateResult:
    rate: Decimal
    from_cache: bool
    is_stale: bool
