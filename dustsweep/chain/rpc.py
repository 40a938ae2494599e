"""Chain JSON-RPC access with ordered provider fallback.

Each provider gets ``max_attempts`` tries with exponential backoff on
timeouts and retryable failures (5xx, 429, transport errors). A
non-retryable failure moves straight on to the next provider. Only when
every provider is exhausted does the caller see an ``RpcError``.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol, TypeVar

import httpx
from loguru import logger

from dustsweep.core.errors import ErrorCode, ExternalServiceError, RpcError

T = TypeVar("T")
P = TypeVar("P", bound="NamedProvider")

_PROVIDER_MARKERS = (
    ("quiknode", "quicknode"),
    ("quicknode", "quicknode"),
    ("alchemy", "alchemy"),
    ("infura", "infura"),
    ("ankr", "ankr"),
    ("llamarpc", "llamarpc"),
)


class NamedProvider(Protocol):
    name: str


def provider_name(url: str) -> str:
    """Short provider label derived from the endpoint URL."""
    lowered = url.lower()
    for marker, name in _PROVIDER_MARKERS:
        if marker in lowered:
            return name
    return "public"


async def call_with_fallback(
    providers: Sequence[P],
    operation: Callable[[P], Awaitable[T]],
    *,
    op_name: str,
    timeout: float,
    max_attempts: int = 3,
    backoff_base: float = 0.25,
) -> tuple[T, str]:
    """Run ``operation`` against providers in order, returning (result, provider name)."""
    if not providers:
        raise RpcError(f"No providers configured for {op_name}", retryable=False)

    last_error: Exception | None = None
    for provider in providers:
        for attempt in range(max_attempts):
            try:
                result = await asyncio.wait_for(operation(provider), timeout=timeout)
                if provider is not providers[0] or attempt:
                    logger.info(f"[RPC] {op_name} served by {provider.name} (attempt {attempt + 1})")
                return result, provider.name
            except asyncio.TimeoutError as e:
                last_error = e
                logger.debug(f"[RPC] {op_name} timed out on {provider.name} after {timeout}s")
            except httpx.TransportError as e:
                last_error = e
                logger.debug(f"[RPC] {op_name} transport error on {provider.name}: {type(e).__name__}")
            except ExternalServiceError as e:
                last_error = e
                if not e.retryable:
                    logger.debug(f"[RPC] {op_name} failed on {provider.name}: {e.message}, next provider")
                    break
                logger.debug(f"[RPC] {op_name} failed on {provider.name}: {e.message}")

            if attempt < max_attempts - 1:
                await asyncio.sleep(backoff_base * (2**attempt))

        logger.warning(f"[RPC] {op_name}: {provider.name} exhausted, falling back")

    timed_out = isinstance(last_error, (asyncio.TimeoutError, httpx.TimeoutException))
    code = ErrorCode.RPC_TIMEOUT if timed_out else ErrorCode.RPC_ERROR
    raise RpcError(
        f"All {len(providers)} providers failed for {op_name}",
        code=code,
        context={"providers": [p.name for p in providers]},
    ) from last_error


class JsonRpcEndpoint:
    """One JSON-RPC HTTP endpoint. Failures surface as ``RpcError``."""

    def __init__(self, url: str, timeout: float = 5.0, client: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self.name = provider_name(url)
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, payload: Any) -> Any:
        try:
            resp = await self._client.post(self.url, json=payload)
        except httpx.TransportError as e:
            raise RpcError(f"{type(e).__name__} from {self.name}", service=self.name) from e

        if resp.status_code == 429 or resp.status_code >= 500:
            raise RpcError(f"HTTP {resp.status_code} from {self.name}", service=self.name, status_code=resp.status_code)
        if resp.status_code != 200:
            raise RpcError(
                f"HTTP {resp.status_code} from {self.name}",
                service=self.name,
                retryable=False,
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise RpcError(f"Non-JSON response from {self.name}", service=self.name) from e

    async def request(self, method: str, params: list[Any]) -> Any:
        body = await self._post({"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params})
        return _unwrap(body, self.name, method)

    async def batch(self, calls: list[tuple[str, list[Any]]]) -> list[Any]:
        """JSON-RPC batch; results come back in call order (``None`` for per-call errors)."""
        if not calls:
            return []
        first_id = next(self._ids)
        payload = [
            {"jsonrpc": "2.0", "id": first_id + i, "method": method, "params": params}
            for i, (method, params) in enumerate(calls)
        ]
        self._ids = itertools.count(first_id + len(calls))
        body = await self._post(payload)
        if not isinstance(body, list):
            raise RpcError(f"Batch not supported by {self.name}", service=self.name, retryable=False)

        by_id = {item.get("id"): item for item in body if isinstance(item, dict)}
        results: list[Any] = []
        for i in range(len(calls)):
            item = by_id.get(first_id + i)
            results.append(item.get("result") if item and "error" not in item else None)
        return results


def _unwrap(body: Any, name: str, method: str) -> Any:
    if not isinstance(body, dict):
        raise RpcError(f"Malformed {method} response from {name}", service=name)
    error = body.get("error")
    if error:
        message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
        # -32005 = limit exceeded, -32603 = internal: worth retrying
        code = error.get("code") if isinstance(error, dict) else None
        raise RpcError(
            f"{method} error from {name}: {message}",
            service=name,
            retryable=code in (-32005, -32603, 429),
        )
    return body.get("result")


class RpcPool:
    """Ordered RPC endpoints for one chain."""

    def __init__(
        self,
        chain_id: int,
        urls: list[str],
        *,
        timeout: float = 5.0,
        max_attempts: int = 3,
        backoff_base: float = 0.25,
    ) -> None:
        self.chain_id = chain_id
        self.endpoints = [JsonRpcEndpoint(url, timeout=timeout) for url in urls]
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base

    async def call(self, method: str, params: list[Any]) -> tuple[Any, str]:
        return await call_with_fallback(
            self.endpoints,
            lambda endpoint: endpoint.request(method, params),
            op_name=method,
            timeout=self._timeout,
            max_attempts=self._max_attempts,
            backoff_base=self._backoff_base,
        )

    async def close(self) -> None:
        for endpoint in self.endpoints:
            await endpoint.close()
