"""FastAPI application entrypoint."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException

from .balance import BalanceCalculator
from .errors import (
    InvalidInputError,
    NoRouteFoundError,
    PricingConfigNotFoundError,
    QuoteError,
    QuoteNotFoundError,
)
from .providers import get_balance_calculator, get_quote_service, get_settings
from .quotes import QuoteService
from .schemas import BalanceResponse, QuoteRequest, QuoteResponse

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (InvalidInputError, 400),
    (QuoteNotFoundError, 404),
    (NoRouteFoundError, 502),
    (PricingConfigNotFoundError, 503),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Build settings, providers and credentials now so misconfiguration fails at boot.
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)
    get_quote_service()
    logger.info("quote service ready (routing=%s, cache=%s)", settings.routing_provider, settings.quote_cache_backend)
    yield


app = FastAPI(title="Ride Quote API", lifespan=lifespan)


def _http_error(exc: QuoteError) -> HTTPException:
    status = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break
    if status == 500:
        logger.exception("unhandled quote error")
    return HTTPException(status_code=status, detail={"code": exc.code, "message": exc.message})


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> int:
    if not x_user_id:
        raise HTTPException(status_code=401, detail={"code": "auth.unauthorized", "message": "Unauthorized"})
    try:
        return int(x_user_id)
    except ValueError as exc:
        raise HTTPException(
            status_code=401, detail={"code": "auth.unauthorized", "message": "Invalid user id"}
        ) from exc


@app.get("/health")
def health() -> Dict[str, bool]:
    return {"ok": True}


@app.post("/quotes", response_model=QuoteResponse)
def create_quote(
    req: QuoteRequest,
    user_id: int = Depends(current_user_id),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    try:
        quote = service.generate_quote(req, user_id)
    except QuoteError as exc:
        raise _http_error(exc) from exc
    return QuoteResponse.from_quote(quote)


@app.get("/quotes/{quote_id}", response_model=QuoteResponse)
def read_quote(quote_id: UUID, service: QuoteService = Depends(get_quote_service)) -> QuoteResponse:
    try:
        quote = service.get_quote(quote_id)
    except QuoteError as exc:
        raise _http_error(exc) from exc
    return QuoteResponse.from_quote(quote)


@app.get("/wallets/{wallet_id}/balance", response_model=BalanceResponse)
def wallet_balance(
    wallet_id: int, calculator: BalanceCalculator = Depends(get_balance_calculator)
) -> BalanceResponse:
    available = calculator.available(wallet_id)
    pending = calculator.pending(wallet_id)
    return BalanceResponse(
        walletId=wallet_id,
        availableBalance=available,
        pendingBalance=pending,
        totalBalance=available + pending,
    )
