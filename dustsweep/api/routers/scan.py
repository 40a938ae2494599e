"""Wallet scan endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from config.settings import settings
from dustsweep.api.dependencies import get_services
from dustsweep.api.limits import limiter
from dustsweep.api.registry import ServiceRegistry
from dustsweep.api.responses import ok
from dustsweep.core.errors import BusinessError, ErrorCode
from dustsweep.core.validation import normalize_address, validate_chain

router = APIRouter(prefix="/api/v1/scan", tags=["scan"])


@router.get("")
@limiter.limit(settings.rate_limit_scan)
async def scan_wallet(
    request: Request,
    address: str = Query(..., min_length=1, max_length=64),
    chain_id: int = Query(8453, alias="chainId"),
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    """Scan a wallet, then warm the risk cache for its dust in the background."""
    result = await services.scanner.scan(address, chain_id)
    await services.scan_sink.record(result)

    # Not awaited: the response goes out before risk assessment finishes
    cold = [(t.address, chain_id) for t in result.tokens if t.is_dust and t.risk_score is None]
    services.risk_scorer.assess_in_background(cold)
    return ok(result)


@router.get("/last")
async def last_scan(
    address: str = Query(..., min_length=1, max_length=64),
    chain_id: int = Query(8453, alias="chainId"),
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    """Most recent scan for a wallet, while it is still cached."""
    wallet = normalize_address(address)
    validate_chain(chain_id)
    data = await services.scan_sink.get_last(wallet, chain_id)
    if data is None:
        raise BusinessError(f"No recent scan for {wallet}", code=ErrorCode.SCAN_NOT_FOUND)
    return ok(data)
