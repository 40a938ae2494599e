"""Token risk endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import Field

from config.settings import settings
from dustsweep.api.dependencies import get_services
from dustsweep.api.limits import limiter
from dustsweep.api.registry import ServiceRegistry
from dustsweep.api.responses import ok
from dustsweep.core.errors import BusinessError, ErrorCode
from dustsweep.core.validation import validate_chain
from dustsweep.models.base import DomainModel

router = APIRouter(prefix="/api/v1/risk", tags=["risk"])


class RiskBatchRequest(DomainModel):
    chain_id: int
    tokens: list[str] = Field(min_length=1)


@router.get("/{token_address}")
@limiter.limit(settings.rate_limit_risk)
async def get_risk(
    request: Request,
    token_address: str,
    chain_id: int = Query(8453, alias="chainId"),
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    score = await services.risk_scorer.assess(token_address, chain_id)
    return ok(score)


@router.post("/batch")
@limiter.limit(settings.rate_limit_risk)
async def get_risk_batch(
    request: Request,
    body: RiskBatchRequest,
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    """One score per requested token; failed assessments come back as medium/0 confidence."""
    validate_chain(body.chain_id)
    if len(body.tokens) > settings.max_batch_size:
        raise BusinessError(
            f"At most {settings.max_batch_size} tokens per request",
            code=ErrorCode.MAX_BATCH_EXCEEDED,
        )
    scores = await services.risk_scorer.assess_many([(t, body.chain_id) for t in body.tokens])
    return ok(scores)
