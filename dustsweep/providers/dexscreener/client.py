import asyncio
from decimal import Decimal, InvalidOperation

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from dustsweep.core.chains import get_chain
from dustsweep.core.errors import ExternalServiceError
from dustsweep.providers.dexscreener.models import DexScreenerPair, TokenMarket
from dustsweep.providers.rate_limiter import RateLimiter

BASE_URL = "https://api.dexscreener.com"
MAX_RETRIES = 3
RETRY_DELAYS = [1.0, 2.0, 4.0]
BATCH_LIMIT = 30


class DexScreenerClient:
    """Async REST client for DexScreener public API (no auth required)."""

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 4.0,
        timeout: float = 10.0,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)

    async def _request_with_retry(self, path: str) -> httpx.Response:
        """Execute GET with retry on 429/5xx/timeout."""
        for attempt in range(MAX_RETRIES):
            await self._rate_limiter.acquire()
            try:
                response = await self._client.get(path)
                if response.status_code == 429 or response.status_code >= 500:
                    if attempt == MAX_RETRIES - 1:
                        response.raise_for_status()
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    retry_after = response.headers.get("Retry-After")
                    if retry_after:
                        delay = max(float(retry_after), delay)
                    logger.debug(f"[DEXSCREENER] HTTP {response.status_code}, retrying in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                response.raise_for_status()
                return response
            except httpx.TransportError as e:
                if attempt < MAX_RETRIES - 1:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[DEXSCREENER] {type(e).__name__}, retrying in {delay}s")
                    await asyncio.sleep(delay)
                else:
                    raise
        raise httpx.HTTPError(f"DexScreener retries exhausted for {path}")

    async def get_pairs(self, addresses: list[str], chain_id: int) -> list[DexScreenerPair]:
        """All pairs on ``chain_id`` whose base token is one of ``addresses``.

        Requests are chunked to the API's 30-address limit.
        """
        chain = get_chain(chain_id)
        if chain is None or not addresses:
            return []

        pairs: list[DexScreenerPair] = []
        for i in range(0, len(addresses), BATCH_LIMIT):
            batch = addresses[i : i + BATCH_LIMIT]
            path = f"/latest/dex/tokens/{','.join(batch)}"
            try:
                response = await self._request_with_retry(path)
            except httpx.HTTPError as e:
                status = getattr(getattr(e, "response", None), "status_code", None)
                raise ExternalServiceError(
                    f"DexScreener request failed: {type(e).__name__}",
                    service="dexscreener",
                    retryable=True,
                    status_code=status,
                ) from e
            try:
                data = response.json()
            except ValueError as e:
                raise ExternalServiceError(
                    "DexScreener returned a non-JSON body", service="dexscreener", retryable=True
                ) from e
            raw_pairs = data.get("pairs") if isinstance(data, dict) else None
            for raw in raw_pairs or []:
                try:
                    pair = DexScreenerPair.model_validate(raw)
                except PydanticValidationError as e:
                    logger.debug(f"[DEXSCREENER] Skipping malformed pair: {e.error_count()} error(s)")
                    continue
                if pair.chainId == chain.dexscreener_slug:
                    pairs.append(pair)
        return pairs

    async def get_token_market(self, address: str, chain_id: int) -> TokenMarket | None:
        """Aggregated market data for one token, None when unavailable."""
        try:
            pairs = await self.get_pairs([address], chain_id)
        except ExternalServiceError as e:
            logger.warning(f"[DEXSCREENER] Market lookup failed for {address[:12]}: {e.message}")
            return None
        return aggregate_market(pairs, address)

    async def close(self) -> None:
        await self._client.aclose()


def _pair_liquidity(pair: DexScreenerPair) -> Decimal:
    if pair.liquidity and pair.liquidity.usd is not None:
        return pair.liquidity.usd
    return Decimal(0)


def best_prices(pairs: list[DexScreenerPair]) -> dict[str, Decimal]:
    """USD price per base token, taken from its deepest pair."""
    best: dict[str, tuple[Decimal, Decimal]] = {}
    for pair in pairs:
        if pair.baseToken is None or not pair.priceUsd:
            continue
        try:
            price = Decimal(pair.priceUsd)
        except InvalidOperation:
            continue
        if price <= 0:
            continue
        addr = pair.baseToken.address.lower()
        liq = _pair_liquidity(pair)
        if addr not in best or liq > best[addr][0]:
            best[addr] = (liq, price)
    return {addr: price for addr, (_, price) in best.items()}


def aggregate_market(pairs: list[DexScreenerPair], address: str) -> TokenMarket | None:
    """Sum liquidity/volume/txns over the token's pairs; price change from the deepest pair."""
    own = [p for p in pairs if p.baseToken and p.baseToken.address.lower() == address.lower()]
    if not own:
        return None

    liquidity = Decimal(0)
    volume_h24 = Decimal(0)
    volume_h6 = Decimal(0)
    txns = 0
    websites: set[str] = set()
    socials: set[str] = set()
    created: list[int] = []
    for pair in own:
        liquidity += _pair_liquidity(pair)
        if pair.volume:
            volume_h24 += pair.volume.h24 or 0
            volume_h6 += pair.volume.h6 or 0
        if pair.txns and pair.txns.h24:
            txns += (pair.txns.h24.buys or 0) + (pair.txns.h24.sells or 0)
        if pair.info:
            websites.update(w.url for w in pair.info.websites if w.url)
            socials.update(s.url for s in pair.info.socials if s.url)
        if pair.pairCreatedAt:
            created.append(pair.pairCreatedAt)

    deepest = max(own, key=_pair_liquidity)
    change = Decimal(0)
    if deepest.priceChange and deepest.priceChange.h24 is not None:
        change = deepest.priceChange.h24

    return TokenMarket(
        liquidity_usd=liquidity,
        volume_h24=volume_h24,
        volume_h6=volume_h6,
        price_change_h24=change,
        txns_h24=txns,
        pair_count=len(own),
        website_count=len(websites),
        social_count=len(socials),
        oldest_pair_created_at=min(created) if created else None,
    )
