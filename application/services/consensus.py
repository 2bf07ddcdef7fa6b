"""Consensus math for multi-provider rate aggregation.

Pure functions over ``ProviderResult`` lists, so every rule (outlier threshold,
weighting, spread, confidence) can be checked without I/O:

    >>> quotes = [ProviderResult("coinbase", Decimal("100")),
    ...           ProviderResult("binance", Decimal("101")),
    ...           ProviderResult("coingecko", Decimal("150"))]
    >>> kept, dropped = filter_outliers(quotes)
    >>> [q.provider for q in dropped]
    ['coingecko']
"""

import logging
from collections.abc import Callable, Sequence
from decimal import Decimal
from statistics import median

from domain.models.rate import ProviderResult

logger = logging.getLogger(__name__)

DEFAULT_OUTLIER_THRESHOLD = Decimal("0.05")
MIN_POPULATION_FOR_OUTLIERS = 3


def median_rate(results: Sequence[ProviderResult]) -> Decimal:
    return median(r.rate for r in results)


def filter_outliers(
    results: Sequence[ProviderResult],
    threshold: Decimal = DEFAULT_OUTLIER_THRESHOLD,
) -> tuple[list[ProviderResult], list[ProviderResult]]:
    """Split quotes into (kept, dropped) by relative deviation from the median.

    With fewer than three quotes there is no population to judge an outlier
    against, so everything is kept.
    """
    if len(results) < MIN_POPULATION_FOR_OUTLIERS:
        return list(results), []

    mid = median_rate(results)
    kept: list[ProviderResult] = []
    dropped: list[ProviderResult] = []

    for result in results:
        deviation = abs(result.rate - mid) / mid
        if deviation > threshold:
            logger.warning(
                f"Outlier detected: {result.provider} rate {result.rate} deviates by "
                f"{deviation * 100:.2f}% from median {mid}"
            )
            dropped.append(result)
        else:
            kept.append(result)

    return kept, dropped


def weighted_average(
    results: Sequence[ProviderResult],
    weight_for: Callable[[str], Decimal],
) -> Decimal | None:
    """Weighted mean over ``results`` only; ``None`` when there is nothing to weigh."""
    total_weight = Decimal(0)
    weighted_sum = Decimal(0)

    for result in results:
        weight = weight_for(result.provider)
        weighted_sum += result.rate * weight
        total_weight += weight

    if total_weight <= 0:
        return None
    return weighted_sum / total_weight


def calculate_spread(results: Sequence[ProviderResult]) -> Decimal:
    """Percentage distance between the highest and lowest quote."""
    if len(results) < 2:
        return Decimal(0)

    rates = [r.rate for r in results]
    lowest, highest = min(rates), max(rates)
    if lowest == 0:
        return Decimal(0)
    return (highest - lowest) / lowest * 100


def calculate_confidence(success_count: int, total_providers: int, spread: Decimal | float) -> float:
    if total_providers == 0:
        return 0.0

    score = success_count / total_providers

    if spread > 5:
        score *= 0.5
    elif spread > 1:
        score *= 0.8

    return min(max(score, 0.0), 1.0)
