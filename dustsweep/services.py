"""Wires provider clients and core components from settings."""

from __future__ import annotations

from loguru import logger

from config.settings import Settings
from dustsweep.api.registry import ServiceRegistry
from dustsweep.chain.rpc import JsonRpcEndpoint, RpcPool
from dustsweep.core.cache import MemoryTTLStore, RedisTTLStore, TTLStore
from dustsweep.core.chains import CHAINS
from dustsweep.core.consolidation import ConsolidationBuilder
from dustsweep.core.price_oracle import TokenPriceOracle
from dustsweep.core.risk_scorer import RiskScorer
from dustsweep.core.scanner import CachedScanRecordSink, WalletScanner
from dustsweep.core.swap_aggregator import SwapAggregator
from dustsweep.core.tracker import ConsolidationTracker
from dustsweep.db.redis import close_redis, get_redis
from dustsweep.providers.balances.models import BalanceProvider
from dustsweep.providers.balances.moralis import MoralisBalanceProvider
from dustsweep.providers.balances.rpc import RpcBalanceProvider
from dustsweep.providers.coingecko.client import CoinGeckoClient
from dustsweep.providers.dexscreener.client import DexScreenerClient
from dustsweep.providers.goplus.client import GoPlusClient
from dustsweep.providers.honeypot.client import HoneypotClient
from dustsweep.providers.oneinch.client import OneInchClient
from dustsweep.providers.rate_limiter import SharedRateLimiter


async def build_store(settings: Settings) -> TTLStore:
    if settings.cache_backend == "redis":
        store = RedisTTLStore(await get_redis())
        if await store.ping():
            logger.info("[BOOT] Using Redis cache backend")
            return store
        logger.warning("[BOOT] Redis unreachable, falling back to in-memory cache")
        await close_redis()
        return MemoryTTLStore()
    logger.info("[BOOT] Using in-memory cache backend")
    return MemoryTTLStore()


async def build_services(settings: Settings) -> ServiceRegistry:
    store = await build_store(settings)
    timeout = settings.api_timeout_sec

    # Oracle and risk scorer both hit DexScreener: one shared quota
    dex_limiter = SharedRateLimiter.get_or_create("dexscreener", settings.dexscreener_max_rps)
    dexscreener = DexScreenerClient(rate_limiter=dex_limiter, timeout=timeout)
    coingecko = CoinGeckoClient(
        api_key=settings.coingecko_api_key, max_rps=settings.coingecko_max_rps, timeout=timeout
    )
    goplus = GoPlusClient(api_key=settings.goplus_api_key, max_rps=settings.goplus_max_rps, timeout=timeout)
    honeypot = HoneypotClient(max_rps=settings.honeypot_max_rps, timeout=timeout)
    oneinch = OneInchClient(
        api_key=settings.oneinch_api_key,
        max_rps=settings.oneinch_max_rps,
        timeout=timeout,
        referrer=settings.oneinch_referrer,
        fee_pct=settings.oneinch_fee_pct,
    )
    moralis = (
        MoralisBalanceProvider(settings.moralis_api_key, max_rps=settings.moralis_max_rps, timeout=timeout)
        if settings.moralis_api_key
        else None
    )

    pools: dict[int, RpcPool] = {}
    balance_providers: dict[int, list[BalanceProvider]] = {}
    for chain_id in CHAINS:
        urls = settings.rpc_urls_for(chain_id)
        providers: list[BalanceProvider] = [moralis] if moralis else []
        if urls:
            pools[chain_id] = RpcPool(
                chain_id,
                urls,
                timeout=settings.rpc_timeout_sec,
                max_attempts=settings.rpc_max_attempts,
                backoff_base=settings.rpc_backoff_base_sec,
            )
            providers += [RpcBalanceProvider(JsonRpcEndpoint(u, timeout=settings.rpc_timeout_sec)) for u in urls]
        balance_providers[chain_id] = providers

    oracle = TokenPriceOracle(
        store, dexscreener, coingecko, ttl=settings.price_cache_ttl_sec, timeout=timeout
    )
    risk_scorer = RiskScorer(
        store,
        goplus,
        honeypot,
        dexscreener,
        ttl=settings.risk_cache_ttl_sec,
        concurrency=settings.risk_concurrency,
        timeout=timeout,
        failed_score=settings.risk_failed_score,
        unknown_score=settings.risk_unknown_score,
    )
    scanner = WalletScanner(
        oracle,
        lambda chain_id: balance_providers.get(chain_id, []),
        risk_scorer=risk_scorer,
        dust_threshold_usd=settings.dust_threshold_usd,
        min_consolidation_value_usd=settings.min_consolidation_value_usd,
        risk_exclude_threshold=settings.risk_exclude_threshold,
        rpc_timeout=settings.rpc_timeout_sec,
        rpc_max_attempts=settings.rpc_max_attempts,
        rpc_backoff_base=settings.rpc_backoff_base_sec,
    )
    aggregator = SwapAggregator(
        oneinch,
        oracle,
        rpc_pools=pools.get,
        max_price_impact_pct=settings.max_price_impact_pct,
        max_slippage_bps=settings.max_slippage_bps,
        quote_ttl=settings.quote_ttl_sec,
        timeout=timeout,
    )
    builder = ConsolidationBuilder(
        aggregator,
        oracle,
        risk_scorer=risk_scorer,
        max_batch_size=settings.max_batch_size,
        protocol_fee_rate=settings.protocol_fee_rate,
        default_slippage_bps=settings.default_slippage_bps,
        max_slippage_bps=settings.max_slippage_bps,
        risk_exclude_threshold=settings.risk_exclude_threshold,
    )
    tracker = ConsolidationTracker(store, ttl=settings.consolidation_ttl_sec, rpc_pools=pools.get)

    registry = ServiceRegistry(
        store=store,
        oracle=oracle,
        scanner=scanner,
        risk_scorer=risk_scorer,
        aggregator=aggregator,
        builder=builder,
        tracker=tracker,
        scan_sink=CachedScanRecordSink(store, ttl=settings.scan_cache_ttl_sec),
    )
    registry.closers += [dexscreener.close, coingecko.close, goplus.close, honeypot.close, oneinch.close]
    if moralis:
        registry.closers.append(moralis.close)
    for providers in balance_providers.values():
        registry.closers += [p.close for p in providers if isinstance(p, RpcBalanceProvider)]
    registry.closers += [pool.close for pool in pools.values()]
    if isinstance(store, RedisTTLStore):
        registry.closers.append(close_redis)

    configured = [CHAINS[c].name for c, p in balance_providers.items() if p]
    logger.info(f"[BOOT] Services ready; balance providers for: {', '.join(configured) or 'none'}")
    return registry
