"""Wallet scanning and dust classification."""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Protocol

from loguru import logger

from dustsweep.chain.rpc import call_with_fallback
from dustsweep.core.cache import TTLStore, cache_key
from dustsweep.core.price_oracle import TokenPriceOracle
from dustsweep.core.validation import normalize_address, validate_chain
from dustsweep.models.scan import ScanResult
from dustsweep.models.token import DustToken, format_units, usd_value
from dustsweep.providers.balances.models import BalanceProvider, RawBalance

if TYPE_CHECKING:
    from dustsweep.core.risk_scorer import RiskScorer

# Scam tokens airdropped to wallets typically advertise a URL or a "claim"
SPAM_PATTERN = re.compile(
    r"airdrop|claim|\bfree\b|bonus|reward|visit|https?://|t\.me/|www\.|\.(com|io|org|net|xyz)\b",
    re.IGNORECASE,
)


def is_spam(balance: RawBalance) -> bool:
    if balance.possible_spam:
        return True
    return bool(SPAM_PATTERN.search(balance.symbol) or SPAM_PATTERN.search(balance.name))


class ScanRecordSink(Protocol):
    async def record(self, result: ScanResult) -> None: ...


class CachedScanRecordSink:
    """Keeps the latest scan per wallet/chain in the TTL store."""

    def __init__(self, store: TTLStore, ttl: int = 300) -> None:
        self._store = store
        self._ttl = ttl

    async def record(self, result: ScanResult) -> None:
        key = cache_key("scan", result.chain_id, result.wallet_address)
        await self._store.set(key, result.to_json_dict(), self._ttl)

    async def get_last(self, address: str, chain_id: int) -> dict[str, Any] | None:
        return await self._store.get(cache_key("scan", chain_id, address.lower()))


class WalletScanner:
    def __init__(
        self,
        oracle: TokenPriceOracle,
        balance_providers: Callable[[int], list[BalanceProvider]],
        *,
        risk_scorer: RiskScorer | None = None,
        dust_threshold_usd: float = 10.0,
        min_consolidation_value_usd: float = 0.10,
        risk_exclude_threshold: float = 50.0,
        rpc_timeout: float = 5.0,
        rpc_max_attempts: int = 3,
        rpc_backoff_base: float = 0.25,
    ) -> None:
        self._oracle = oracle
        self._balance_providers = balance_providers
        self._risk_scorer = risk_scorer
        self._dust_threshold = Decimal(str(dust_threshold_usd))
        self._min_consolidation_value = Decimal(str(min_consolidation_value_usd))
        self._risk_exclude_threshold = risk_exclude_threshold
        self._rpc_timeout = rpc_timeout
        self._rpc_max_attempts = rpc_max_attempts
        self._rpc_backoff_base = rpc_backoff_base

    async def scan(self, address: str, chain_id: int) -> ScanResult:
        """Enumerate, price and classify a wallet's token balances.

        Raises ValidationError for a malformed address or unsupported chain,
        RpcError when every balances provider failed.
        """
        wallet = normalize_address(address)
        chain = validate_chain(chain_id)
        started = time.monotonic()

        raw, provider = await call_with_fallback(
            self._balance_providers(chain_id),
            lambda p: p.get_balances(wallet, chain_id),
            op_name=f"balances:{chain.name}",
            timeout=self._rpc_timeout,
            max_attempts=self._rpc_max_attempts,
            backoff_base=self._rpc_backoff_base,
        )

        held = [b for b in raw if b.balance > 0]
        spam = [b for b in held if is_spam(b)]
        balances = [b for b in held if not is_spam(b)]
        if spam:
            logger.debug(f"[SCAN] Dropped {len(spam)} spam token(s) for {wallet[:10]}")

        prices = await self._oracle.get_prices([b.address for b in balances], chain_id)

        tokens = [await self._classify(b, chain_id, prices.get(b.address, Decimal(0))) for b in balances]
        tokens.sort(key=lambda t: (not t.is_dust, -t.value_usd))

        dust = [t for t in tokens if t.is_dust]
        consolidatable = [t for t in tokens if t.consolidatable]
        result = ScanResult(
            wallet_address=wallet,
            chain_id=chain_id,
            tokens=tokens,
            total_tokens=len(tokens),
            dust_tokens=len(dust),
            excluded_count=sum(1 for t in tokens if t.excluded),
            consolidatable_count=len(consolidatable),
            total_value_usd=sum((t.value_usd for t in tokens), Decimal(0)),
            dust_value_usd=sum((t.value_usd for t in dust), Decimal(0)),
            consolidatable_value_usd=sum((t.value_usd for t in consolidatable), Decimal(0)),
            scan_duration_ms=int((time.monotonic() - started) * 1000),
            rpc_provider=provider,
            scanned_at=datetime.now(UTC),
        )
        logger.info(
            f"[SCAN] {wallet[:10]} on {chain.name}: {result.total_tokens} tokens, "
            f"{result.dust_tokens} dust (${result.dust_value_usd:.2f}) via {provider} "
            f"in {result.scan_duration_ms}ms"
        )
        return result

    async def get_dust_tokens_for_consolidation(self, address: str, chain_id: int) -> list[DustToken]:
        result = await self.scan(address, chain_id)
        return [t for t in result.tokens if t.consolidatable]

    async def _classify(self, balance: RawBalance, chain_id: int, price: Decimal) -> DustToken:
        value = usd_value(balance.balance, balance.decimals, price)
        risk = None
        if self._risk_scorer is not None:
            risk = await self._risk_scorer.get_cached(balance.address, chain_id)
        excluded = risk is not None and risk.overall > self._risk_exclude_threshold
        is_dust = value < self._dust_threshold
        return DustToken(
            address=balance.address,
            symbol=balance.symbol,
            name=balance.name,
            decimals=balance.decimals,
            chain_id=chain_id,
            balance=balance.balance,
            balance_formatted=format_units(balance.balance, balance.decimals),
            price_usd=price,
            value_usd=value,
            risk_score=risk,
            excluded=excluded,
            consolidatable=is_dust and not excluded and value >= self._min_consolidation_value,
            dust_threshold_usd=self._dust_threshold,
        )
