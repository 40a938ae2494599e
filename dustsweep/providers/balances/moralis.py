"""Moralis Web3 Data API balances, with spam flags."""

import httpx
from loguru import logger

from dustsweep.core.chains import get_chain
from dustsweep.core.errors import ExternalServiceError
from dustsweep.providers.balances.models import RawBalance
from dustsweep.providers.rate_limiter import RateLimiter

BASE_URL = "https://deep-index.moralis.io/api/v2.2"


class MoralisBalanceProvider:
    """Single-shot requests: retries and fallback belong to ``call_with_fallback``."""

    name = "moralis"

    def __init__(self, api_key: str, max_rps: float = 5.0, timeout: float = 10.0) -> None:
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=timeout,
            headers={"X-API-Key": api_key, "Accept": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def get_balances(self, wallet: str, chain_id: int) -> list[RawBalance]:
        chain = get_chain(chain_id)
        if chain is None or chain.moralis_chain is None:
            raise ExternalServiceError(
                f"Moralis does not index chain {chain_id}", service=self.name, retryable=False
            )

        await self._rate_limiter.acquire()
        try:
            resp = await self._client.get(f"/{wallet}/erc20", params={"chain": chain.moralis_chain})
        except httpx.TransportError as e:
            raise ExternalServiceError(
                f"Moralis {type(e).__name__}", service=self.name, retryable=True
            ) from e

        if resp.status_code != 200:
            raise ExternalServiceError(
                f"Moralis HTTP {resp.status_code}",
                service=self.name,
                retryable=resp.status_code == 429 or resp.status_code >= 500,
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ExternalServiceError(
                "Moralis returned a non-JSON body", service=self.name, retryable=True
            ) from e
        items = data.get("result") if isinstance(data, dict) else data
        if items is not None and not isinstance(items, list):
            raise ExternalServiceError("Moralis returned an unexpected body", service=self.name, retryable=True)
        balances = [b for b in (_parse_item(item) for item in items or []) if b is not None]
        logger.debug(f"[MORALIS] {len(balances)} balances for {wallet[:10]} on {chain.name}")
        return balances


def _parse_item(item: dict) -> RawBalance | None:
    if not isinstance(item, dict):
        return None
    address = item.get("token_address")
    if not isinstance(address, str) or not address:
        return None
    try:
        balance = int(item.get("balance") or 0)
        decimals = int(item.get("decimals") or 18)
    except (ValueError, TypeError):
        return None
    return RawBalance(
        address=address.lower(),
        balance=balance,
        decimals=decimals,
        symbol=str(item.get("symbol") or ""),
        name=str(item.get("name") or ""),
        possible_spam=bool(item.get("possible_spam")),
    )
