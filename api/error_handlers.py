import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from domain.exceptions.rate import AggregationFailure, NoRateAvailableError, UnsupportedCurrencyError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(UnsupportedCurrencyError)
	async def unsupported_currency_handler(request: Request, exc: UnsupportedCurrencyError):
		return JSONResponse(status_code=400, content={'detail': str(exc)})

	@app.exception_handler(AggregationFailure)
	async def aggregation_failure_handler(request: Request, exc: AggregationFailure):
		logger.error(f'Aggregation failure: {exc}')
		return JSONResponse(status_code=503, content={'detail': 'Exchange rate service unavailable'})

	@app.exception_handler(NoRateAvailableError)
	async def no_rate_handler(request: Request, exc: NoRateAvailableError):
		logger.error(f'No rate available: {exc}')
		return JSONResponse(status_code=503, content={'detail': 'Exchange rate service unavailable'})

	@app.exception_handler(Exception)
	async def global_exception_handler(request: Request, exc: Exception):
		logger.error(f'Unhandled exception: {exc}', exc_info=True)
		return JSONResponse(status_code=500, content={'detail': 'Internal server error'})
