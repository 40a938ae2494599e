"""1inch Swap API v6 client: quotes and unsigned swap transactions.

Errors are raised, not swallowed: the swap path must be able to tell
"no route" (a domain outcome) from "provider down" (retryable).
"""

import asyncio
from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dustsweep.core.errors import BusinessError, ErrorCode, ExternalServiceError
from dustsweep.providers.oneinch.models import OneInchQuote, OneInchSwap
from dustsweep.providers.rate_limiter import RateLimiter

BASE_URL = "https://api.1inch.dev/swap/v6.0"
MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]
NO_ROUTE_MARKERS = ("insufficient liquidity", "cannot estimate", "no route", "not enough")

M = TypeVar("M", bound=BaseModel)


class OneInchClient:
    """Async client for the 1inch aggregation API (dev portal key required)."""

    def __init__(
        self,
        api_key: str,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 1.0,
        timeout: float = 10.0,
        referrer: str = "",
        fee_pct: float = 0.0,
    ) -> None:
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)
        self._referrer = referrer
        self._fee_pct = fee_pct
        self._client = httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}", "Accept": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """Rate-limited GET with retry for transient errors."""
        last_exc: Exception | None = None

        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.get(path, params=params)
            except httpx.TransportError as e:
                last_exc = e
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[ONEINCH] {type(e).__name__}, retry {attempt + 1} in {delay}s: {path}")
                    await asyncio.sleep(delay)
                    continue
                break

            if resp.status_code == 429 or resp.status_code >= 500:
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[ONEINCH] HTTP {resp.status_code}, retry {attempt + 1} in {delay}s: {path}")
                    await asyncio.sleep(delay)
                    continue
                raise ExternalServiceError(
                    f"1inch HTTP {resp.status_code}",
                    service="oneinch",
                    retryable=True,
                    status_code=resp.status_code,
                )

            if resp.status_code == 400:
                description = _error_description(resp)
                if any(marker in description.lower() for marker in NO_ROUTE_MARKERS):
                    raise BusinessError(
                        f"No swap route: {description}",
                        code=ErrorCode.NO_ROUTE_FOUND,
                        context={"path": path},
                    )
                raise ExternalServiceError(
                    f"1inch rejected request: {description}",
                    service="oneinch",
                    status_code=400,
                )

            if resp.status_code in (401, 403):
                raise ExternalServiceError(
                    f"1inch auth failed ({resp.status_code})",
                    service="oneinch",
                    status_code=resp.status_code,
                )

            if resp.status_code != 200:
                raise ExternalServiceError(
                    f"1inch HTTP {resp.status_code}",
                    service="oneinch",
                    status_code=resp.status_code,
                )

            try:
                data = resp.json()
            except ValueError as e:
                raise ExternalServiceError(
                    "1inch returned a non-JSON body", service="oneinch", retryable=True
                ) from e
            if not isinstance(data, dict):
                raise ExternalServiceError("1inch returned an unexpected body", service="oneinch")
            return data

        raise ExternalServiceError(
            f"1inch unreachable after {MAX_RETRIES + 1} attempts: {type(last_exc).__name__}",
            service="oneinch",
            retryable=True,
        ) from last_exc

    async def get_quote(self, chain_id: int, src: str, dst: str, amount: int) -> OneInchQuote:
        params = {
            "src": src,
            "dst": dst,
            "amount": str(amount),
            "includeTokensInfo": "true",
            "includeProtocols": "true",
            "includeGas": "true",
        }
        data = await self._request(f"/{chain_id}/quote", params)
        return _validate(OneInchQuote, data)

    async def get_swap(
        self,
        chain_id: int,
        src: str,
        dst: str,
        amount: int,
        from_address: str,
        slippage_bps: int,
    ) -> OneInchSwap:
        params: dict[str, Any] = {
            "src": src,
            "dst": dst,
            "amount": str(amount),
            "from": from_address,
            "origin": from_address,
            # 1inch takes slippage in percent
            "slippage": f"{slippage_bps / 100:g}",
            "disableEstimate": "true",
            "allowPartialFill": "false",
            "includeTokensInfo": "true",
            "includeProtocols": "true",
        }
        if self._referrer and self._fee_pct > 0:
            params["referrer"] = self._referrer
            params["fee"] = f"{self._fee_pct:g}"
        data = await self._request(f"/{chain_id}/swap", params)
        return _validate(OneInchSwap, data)


def _validate(model: type[M], data: dict[str, Any]) -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ExternalServiceError(
            f"1inch response did not match {model.__name__}", service="oneinch"
        ) from e


def _error_description(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("description") or body.get("error") or body)
    return str(body)
