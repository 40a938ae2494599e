"""USD unit prices with TTL caching and a two-source fallback.

Lookups are batched: one DexScreener call for every cache miss, then one
CoinGecko call for whatever DexScreener could not price. A token neither
source knows is priced at 0 and is not cached, so it is retried on the
next request. The native-token sentinel has no market of its own and is
priced as the chain's wrapped native token.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

from loguru import logger

from dustsweep.core.cache import TTLStore, cache_key
from dustsweep.core.chains import get_chain, is_native
from dustsweep.core.errors import ExternalServiceError
from dustsweep.providers.coingecko.client import CoinGeckoClient
from dustsweep.providers.dexscreener.client import DexScreenerClient, best_prices

ZERO = Decimal(0)


class TokenPriceOracle:
    def __init__(
        self,
        store: TTLStore,
        dexscreener: DexScreenerClient,
        coingecko: CoinGeckoClient | None = None,
        *,
        ttl: int = 60,
        timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._dexscreener = dexscreener
        self._coingecko = coingecko
        self._ttl = ttl
        self._timeout = timeout

    async def get_price(self, address: str, chain_id: int) -> Decimal:
        prices = await self.get_prices([address], chain_id)
        return prices.get(address.lower(), ZERO)

    async def get_prices(self, addresses: list[str], chain_id: int) -> dict[str, Decimal]:
        """Prices for every requested address (lowercase keys, 0 when unknown)."""
        wanted = list(dict.fromkeys(a.lower() for a in addresses))
        if not wanted:
            return {}

        chain = get_chain(chain_id)
        aliases = {a: chain.wrapped_native for a in wanted if chain is not None and is_native(a)}
        lookups = list(dict.fromkeys(aliases.get(a, a) for a in wanted))

        cached = await asyncio.gather(
            *(self._store.get(cache_key("price", chain_id, a)) for a in lookups)
        )
        prices: dict[str, Decimal] = {}
        for addr, value in zip(lookups, cached):
            if value is not None:
                prices[addr] = Decimal(value)

        missing = [a for a in lookups if a not in prices]
        if missing:
            fetched = await self._fetch_dexscreener(missing, chain_id)
            still_missing = [a for a in missing if a not in fetched]
            if still_missing:
                fetched.update(await self._fetch_coingecko(still_missing, chain_id))

            for addr, price in fetched.items():
                await self._store.set(cache_key("price", chain_id, addr), str(price), self._ttl)
            prices.update(fetched)

            unknown = [a for a in missing if a not in fetched]
            if unknown:
                logger.debug(f"[PRICE] No price for {len(unknown)} token(s) on chain {chain_id}")

        return {a: prices.get(aliases.get(a, a), ZERO) for a in wanted}

    async def _fetch_dexscreener(self, addresses: list[str], chain_id: int) -> dict[str, Decimal]:
        try:
            pairs = await asyncio.wait_for(
                self._dexscreener.get_pairs(addresses, chain_id), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"[PRICE] DexScreener timed out for {len(addresses)} token(s)")
            return {}
        except ExternalServiceError as e:
            logger.warning(f"[PRICE] DexScreener failed: {e.message}")
            return {}
        found = best_prices(pairs)
        return {a: found[a] for a in addresses if a in found}

    async def _fetch_coingecko(self, addresses: list[str], chain_id: int) -> dict[str, Decimal]:
        if self._coingecko is None:
            return {}
        try:
            found = await asyncio.wait_for(
                self._coingecko.get_token_prices(addresses, chain_id), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"[PRICE] CoinGecko timed out for {len(addresses)} token(s)")
            return {}
        except ExternalServiceError as e:
            logger.warning(f"[PRICE] CoinGecko failed: {e.message}")
            return {}
        return {a: found[a] for a in addresses if a in found}
