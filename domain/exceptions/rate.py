class RateEngineError(Exception):
    pass


class ProviderError(RateEngineError):
    pass


class AggregationFailure(RateEngineError):
    pass


class UnsupportedCurrencyError(RateEngineError):
    pass


class NoRateAvailableError(RateEngineError):
    pass


class CacheError(RateEngineError):
    pass
