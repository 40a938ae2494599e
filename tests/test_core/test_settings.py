"""Tests for settings parsing and service wiring."""

from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from config.settings import Settings
from dustsweep.core.cache import MemoryTTLStore, RedisTTLStore
from dustsweep.services import build_services, build_store


class TestSettings:
    def test_rpc_urls_split_in_order(self) -> None:
        s = Settings(rpc_urls_base=" https://a.alchemy.com , https://mainnet.base.org ,", _env_file=None)
        assert s.rpc_urls_for(8453) == ["https://a.alchemy.com", "https://mainnet.base.org"]
        assert s.rpc_urls_for(1) == []
        assert s.rpc_urls_for(999) == []

    def test_defaults(self) -> None:
        s = Settings(_env_file=None)
        assert s.dust_threshold_usd == 10.0
        assert s.max_price_impact_pct == 5.0
        assert s.max_batch_size == 20
        assert s.default_slippage_bps == 50


class TestServices:
    @pytest.mark.asyncio
    async def test_memory_store(self) -> None:
        store = await build_store(Settings(cache_backend="memory", _env_file=None))
        assert isinstance(store, MemoryTTLStore)

    @pytest.mark.asyncio
    async def test_redis_store_when_reachable(self) -> None:
        redis = AsyncMock()
        redis.ping.return_value = True
        with (
            patch("dustsweep.services.get_redis", AsyncMock(return_value=redis)),
            patch("dustsweep.services.close_redis", AsyncMock()) as close,
        ):
            store = await build_store(Settings(cache_backend="redis", _env_file=None))
        assert isinstance(store, RedisTTLStore)
        close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_redis_unreachable_falls_back_to_memory(self) -> None:
        redis = AsyncMock()
        redis.ping.side_effect = RedisConnectionError("connection refused")
        with (
            patch("dustsweep.services.get_redis", AsyncMock(return_value=redis)),
            patch("dustsweep.services.close_redis", AsyncMock()) as close,
        ):
            store = await build_store(Settings(cache_backend="redis", _env_file=None))
        assert isinstance(store, MemoryTTLStore)
        close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redis_ping_false_falls_back_to_memory(self) -> None:
        redis = AsyncMock()
        redis.ping.return_value = False
        with (
            patch("dustsweep.services.get_redis", AsyncMock(return_value=redis)),
            patch("dustsweep.services.close_redis", AsyncMock()),
        ):
            store = await build_store(Settings(cache_backend="redis", _env_file=None))
        assert isinstance(store, MemoryTTLStore)

    @pytest.mark.asyncio
    async def test_build_and_close(self) -> None:
        registry = await build_services(Settings(cache_backend="memory", _env_file=None))
        try:
            assert registry.scanner is not None
            assert registry.closers
        finally:
            await registry.close()
        assert registry.closers == []
