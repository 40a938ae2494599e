"""Consolidation endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Request

from config.settings import settings
from dustsweep.api.dependencies import get_services
from dustsweep.api.limits import limiter
from dustsweep.api.registry import ServiceRegistry
from dustsweep.api.responses import ok
from dustsweep.models.base import DomainModel
from dustsweep.models.consolidation import ConsolidationRequest

router = APIRouter(prefix="/api/v1/consolidate", tags=["consolidate"])


class ResultRequest(DomainModel):
    tx_hash: str | None = None
    error: str | None = None


@router.post("")
@limiter.limit(settings.rate_limit_consolidate)
async def create_consolidation(
    request: Request,
    body: ConsolidationRequest,
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    """Build a consolidation quote and register it under a new identifier."""
    quote = await services.builder.build(body)
    consolidation_id = await services.tracker.register(quote)
    return ok({"consolidationId": consolidation_id, "quote": quote.to_json_dict()})


@router.get("/{consolidation_id}")
async def get_consolidation(
    consolidation_id: str,
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    quote = await services.tracker.get(consolidation_id)
    return ok({"consolidationId": consolidation_id, "quote": quote.to_json_dict()})


@router.post("/{consolidation_id}/result")
async def record_result(
    consolidation_id: str,
    body: ResultRequest,
    services: ServiceRegistry = Depends(get_services),
) -> dict[str, Any]:
    result = await services.tracker.record_result(
        consolidation_id, tx_hash=body.tx_hash, failure_reason=body.error
    )
    return ok(result)
