"""Multi-layer token risk assessment with caching and bounded batch concurrency."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from datetime import UTC, datetime
from typing import TypeVar

import httpx
from loguru import logger

from dustsweep.core.background import spawn_detached
from dustsweep.core.cache import TTLStore, cache_key
from dustsweep.core.chains import is_safe_token
from dustsweep.core.errors import ExternalServiceError
from dustsweep.core.risk_layers import (
    RiskSignals,
    aggregate,
    collect_flags,
    collect_indicators,
    compute_layers,
)
from dustsweep.core.validation import normalize_address, validate_chain
from dustsweep.models.risk import RiskLevel, RiskScore, risk_level
from dustsweep.providers.dexscreener.client import DexScreenerClient
from dustsweep.providers.goplus.client import GoPlusClient
from dustsweep.providers.honeypot.client import HoneypotClient

T = TypeVar("T")


class RiskScorer:
    def __init__(
        self,
        store: TTLStore,
        goplus: GoPlusClient,
        honeypot: HoneypotClient,
        dexscreener: DexScreenerClient,
        *,
        ttl: int = 180,
        concurrency: int = 5,
        timeout: float = 10.0,
        failed_score: float = 50.0,
        unknown_score: float = 70.0,
    ) -> None:
        self._store = store
        self._goplus = goplus
        self._honeypot = honeypot
        self._dexscreener = dexscreener
        self._ttl = ttl
        self._concurrency = concurrency
        self._timeout = timeout
        self._failed_score = failed_score
        self._unknown_score = unknown_score

    async def get_cached(self, token_address: str, chain_id: int) -> RiskScore | None:
        data = await self._store.get(cache_key("risk", chain_id, token_address))
        if data is None:
            return None
        return RiskScore.model_validate({**data, "cached": True})

    async def assess(self, token_address: str, chain_id: int) -> RiskScore:
        """Risk score for one token. Blue chips and cache hits skip every layer."""
        address = normalize_address(token_address)
        validate_chain(chain_id)
        if is_safe_token(address, chain_id):
            return self.safe_score(address, chain_id)

        cached = await self.get_cached(address, chain_id)
        if cached is not None:
            return cached

        goplus, honeypot, market = await asyncio.gather(
            self._guard(self._goplus.get_token_security(address, chain_id), "goplus", address),
            self._guard(self._honeypot.check(address, chain_id), "honeypot", address),
            self._guard(self._dexscreener.get_token_market(address, chain_id), "dexscreener", address),
        )
        signals = RiskSignals(chain_id=chain_id, goplus=goplus, honeypot=honeypot, market=market)
        layers = compute_layers(signals)
        overall, confidence = aggregate(layers, unknown_score=self._unknown_score)
        computed = sum(1 for layer in layers.values() if layer is not None)

        score = RiskScore(
            token_address=address,
            chain_id=chain_id,
            overall=overall,
            confidence=confidence,
            level=risk_level(overall),
            layers={name: layer for name, layer in layers.items() if layer is not None},
            indicators=collect_indicators(signals),
            flags=collect_flags(signals) if computed else ["no_data"],
            assessed_at=datetime.now(UTC),
        )
        await self._store.set(cache_key("risk", chain_id, address), score.to_json_dict(), self._ttl)

        logger.info(
            f"[RISK] {address[:12]} chain={chain_id}: {overall} ({score.level.value}) "
            f"conf={confidence} layers={computed}/{len(layers)}"
        )
        return score

    async def assess_many(self, tokens: list[tuple[str, int]]) -> list[RiskScore]:
        """One score per input token, in input order.

        A token whose assessment raises is reported with the conservative
        failure score (medium, confidence 0), never dropped.
        """
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _one(address: str, chain_id: int) -> RiskScore:
            async with semaphore:
                try:
                    return await self.assess(address, chain_id)
                except Exception as e:
                    logger.warning(f"[RISK] Assessment failed for {address[:12]}: {e}")
                    return self.failed_score(address, chain_id)

        return list(await asyncio.gather(*(_one(a, c) for a, c in tokens)))

    def assess_in_background(self, tokens: list[tuple[str, int]]) -> asyncio.Task | None:
        """Warm the cache without blocking the caller; failures are only logged."""
        if not tokens:
            return None
        return spawn_detached(self.assess_many(tokens), name=f"risk-warm:{len(tokens)}")

    def failed_score(self, token_address: str, chain_id: int) -> RiskScore:
        overall = self._failed_score
        return RiskScore(
            token_address=token_address.lower(),
            chain_id=chain_id,
            overall=overall,
            confidence=0.0,
            level=risk_level(overall),
            flags=["assessment_failed"],
            assessed_at=datetime.now(UTC),
        )

    def safe_score(self, token_address: str, chain_id: int) -> RiskScore:
        return RiskScore(
            token_address=token_address.lower(),
            chain_id=chain_id,
            overall=0.0,
            confidence=1.0,
            level=RiskLevel.SAFE,
            indicators={"blue_chip": True},
            assessed_at=datetime.now(UTC),
        )

    async def _guard(self, coro: Awaitable[T], source: str, address: str) -> T | None:
        """A signal source that times out or fails yields None (its layers drop out)."""
        try:
            return await asyncio.wait_for(coro, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[RISK] {source} timed out for {address[:12]}")
        except ExternalServiceError as e:
            logger.warning(f"[RISK] {source} failed for {address[:12]}: {e.message}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[RISK] {source} returned unusable data for {address[:12]}: {type(e).__name__}")
        return None
