"""JSON API endpoints for stored mid-price history."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from midwatch.data.query import PriceQueryService
from midwatch.exceptions import InvalidQueryError, StoreError
from midwatch.models import Observation

log = structlog.get_logger(__name__)

router = APIRouter()

_STORE_ERROR_MESSAGES = {
    "count": "failed to count prices",
    "fetch": "failed to fetch prices",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _observation_to_dict(observation: Observation) -> dict:
    return {
        "coin": observation.symbol,
        "price": float(observation.price),
        "created_at": observation.created_at.isoformat(),
    }


@router.get("/prices/")
async def get_prices_without_symbol() -> JSONResponse:
    """An empty path segment is a client error, not a 404."""
    return _error(400, "coin symbol is required")


@router.get("/prices/{symbol}")
async def get_prices(request: Request, symbol: str) -> JSONResponse:
    """Observations for ``symbol`` within the query window, newest first."""
    query_service: PriceQueryService = request.app.state.query_service

    try:
        window = await query_service.query(symbol)
    except InvalidQueryError as exc:
        return _error(400, str(exc))
    except StoreError as exc:
        log.error("price_query_failed", coin=symbol, stage=exc.stage, error=str(exc))
        return _error(500, _STORE_ERROR_MESSAGES.get(exc.stage, "failed to fetch prices"))

    return JSONResponse(content={
        "coin": window.symbol,
        "prices": [_observation_to_dict(o) for o in window.observations],
        "count": window.count,
    })
