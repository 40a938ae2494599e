"""honeypot.is client: simulated buy + sell on a forked chain.

Only Ethereum, BNB Chain and Base are simulated; other chains return None
without a request.
"""

import asyncio

import httpx
from loguru import logger

from dustsweep.core.chains import get_chain
from dustsweep.providers.honeypot.models import HoneypotReport
from dustsweep.providers.rate_limiter import RateLimiter

BASE_URL = "https://api.honeypot.is/v2/IsHoneypot"
MAX_RETRIES = 1
RETRY_DELAYS = [1.0]


class HoneypotClient:
    def __init__(self, max_rps: float = 2.0, timeout: float = 10.0) -> None:
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def check(self, address: str, chain_id: int) -> HoneypotReport | None:
        chain = get_chain(chain_id)
        if chain is None or not chain.honeypot_supported:
            return None

        params = {"address": address, "chainID": str(chain_id)}
        for attempt in range(MAX_RETRIES + 1):
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.get(BASE_URL, params=params)

                if resp.status_code == 429 or resp.status_code >= 500:
                    if attempt < MAX_RETRIES:
                        delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                        logger.debug(f"[HONEYPOT] HTTP {resp.status_code}, retry in {delay}s")
                        await asyncio.sleep(delay)
                        continue
                    return None

                if resp.status_code != 200:
                    # 404 = token/pair not found on the simulator
                    logger.debug(f"[HONEYPOT] HTTP {resp.status_code} for {address[:12]}")
                    return None

                return HoneypotReport.model_validate(resp.json())

            except ValueError as e:  # non-JSON body or payload the model rejects
                logger.debug(f"[HONEYPOT] Unexpected payload for {address[:12]}: {e}")
                return None
            except httpx.TransportError as e:
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[HONEYPOT] {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                else:
                    logger.warning(f"[HONEYPOT] Failed after retries for {address[:12]}: {e}")
                    return None

        return None
