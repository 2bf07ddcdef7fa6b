from .rate_refresher import RateRefreshWorker

__all__ = ['RateRefreshWorker']
