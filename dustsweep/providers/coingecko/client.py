"""CoinGecko simple token price client: fallback price source."""

import asyncio
from decimal import Decimal, InvalidOperation

import httpx
from loguru import logger

from dustsweep.core.chains import get_chain
from dustsweep.providers.rate_limiter import RateLimiter

BASE_URL = "https://api.coingecko.com/api/v3"
MAX_RETRIES = 2
RETRY_DELAYS = [2.0, 5.0]
# Demo plan rejects longer contract_addresses lists
BATCH_LIMIT = 30


class CoinGeckoClient:
    """Async client for CoinGecko ``/simple/token_price`` (free demo tier: ~30 req/min)."""

    def __init__(self, api_key: str = "", max_rps: float = 0.5, timeout: float = 10.0) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["x-cg-demo-api-key"] = api_key
        self._client = httpx.AsyncClient(base_url=BASE_URL, timeout=timeout, headers=headers)
        self._rate_limiter = RateLimiter(max_rps)

    async def close(self) -> None:
        await self._client.aclose()

    async def get_token_prices(self, addresses: list[str], chain_id: int) -> dict[str, Decimal]:
        """USD prices keyed by lowercase address. Missing tokens are absent."""
        chain = get_chain(chain_id)
        if chain is None or not addresses:
            return {}

        prices: dict[str, Decimal] = {}
        for i in range(0, len(addresses), BATCH_LIMIT):
            batch = addresses[i : i + BATCH_LIMIT]
            data = await self._fetch(chain.coingecko_platform, batch)
            prices.update(_parse_prices(data))
        return prices

    async def _fetch(self, platform: str, addresses: list[str]) -> dict:
        params = {"contract_addresses": ",".join(addresses), "vs_currencies": "usd"}
        path = f"/simple/token_price/{platform}"

        for attempt in range(MAX_RETRIES + 1):
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.get(path, params=params)

                if resp.status_code == 429 or resp.status_code >= 500:
                    if attempt < MAX_RETRIES:
                        delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                        logger.debug(f"[COINGECKO] HTTP {resp.status_code}, retry in {delay}s")
                        await asyncio.sleep(delay)
                        continue
                    logger.warning(f"[COINGECKO] HTTP {resp.status_code} after retries")
                    return {}

                if resp.status_code != 200:
                    logger.debug(f"[COINGECKO] HTTP {resp.status_code} for {platform}")
                    return {}

                try:
                    data = resp.json()
                except ValueError:
                    logger.warning(f"[COINGECKO] Non-JSON body for {platform}")
                    return {}
                return data if isinstance(data, dict) else {}

            except httpx.TransportError as e:
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[COINGECKO] {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                else:
                    logger.warning(f"[COINGECKO] Failed after retries: {e}")
                    return {}

        return {}


def _parse_prices(data: dict) -> dict[str, Decimal]:
    prices: dict[str, Decimal] = {}
    for addr, entry in data.items():
        if not isinstance(entry, dict) or entry.get("usd") is None:
            continue
        try:
            price = Decimal(str(entry["usd"]))
        except InvalidOperation:
            continue
        if price > 0:
            prices[addr.lower()] = price
    return prices
