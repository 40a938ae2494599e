"""Tests for RPC provider fallback and the JSON-RPC endpoint wrapper."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from conftest import FakeBalanceProvider

from dustsweep.chain.rpc import JsonRpcEndpoint, RpcPool, call_with_fallback, provider_name
from dustsweep.core.errors import ErrorCode, ExternalServiceError, RpcError


class _Provider:
    def __init__(self, name: str, outcomes: list) -> None:
        self.name = name
        self._outcomes = list(outcomes)
        self.calls = 0

    async def run(self) -> str:
        self.calls += 1
        outcome = self._outcomes.pop(0)
        if outcome == "hang":
            await asyncio.sleep(10)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _response(status: int, body=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    return resp


class TestProviderName:
    def test_known_providers(self) -> None:
        assert provider_name("https://base-mainnet.g.alchemy.com/v2/key") == "alchemy"
        assert provider_name("https://mainnet.infura.io/v3/key") == "infura"
        assert provider_name("https://x.base-mainnet.quiknode.pro/abc") == "quicknode"
        assert provider_name("https://mainnet.base.org") == "public"


class TestCallWithFallback:
    @pytest.mark.asyncio
    async def test_primary_succeeds(self) -> None:
        primary = _Provider("alchemy", ["ok"])
        result, name = await call_with_fallback(
            [primary], lambda p: p.run(), op_name="test", timeout=1.0
        )
        assert (result, name) == ("ok", "alchemy")

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self) -> None:
        primary = _Provider("alchemy", [RpcError("503"), "ok"])
        with patch("dustsweep.chain.rpc.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result, name = await call_with_fallback(
                [primary], lambda p: p.run(), op_name="test", timeout=1.0, backoff_base=0.25
            )
        assert result == "ok"
        assert primary.calls == 2
        sleep.assert_awaited_once_with(0.25)

    @pytest.mark.asyncio
    async def test_exponential_backoff(self) -> None:
        primary = _Provider("alchemy", [RpcError("a"), RpcError("b"), RpcError("c")])
        backup = _Provider("infura", ["ok"])
        with patch("dustsweep.chain.rpc.asyncio.sleep", new_callable=AsyncMock) as sleep:
            _, name = await call_with_fallback(
                [primary, backup], lambda p: p.run(), op_name="test", timeout=1.0, backoff_base=0.25
            )
        assert name == "infura"
        assert [c.args[0] for c in sleep.await_args_list] == [0.25, 0.5]

    @pytest.mark.asyncio
    async def test_non_retryable_skips_to_next_provider(self) -> None:
        primary = _Provider("alchemy", [ExternalServiceError("method not found", service="alchemy")])
        backup = _Provider("public", ["ok"])

        _, name = await call_with_fallback(
            [primary, backup], lambda p: p.run(), op_name="test", timeout=1.0, backoff_base=0.0
        )

        assert name == "public"
        assert primary.calls == 1

    @pytest.mark.asyncio
    async def test_timeouts_exhaust_to_rpc_timeout(self) -> None:
        slow = _Provider("alchemy", ["hang", "hang"])
        with pytest.raises(RpcError) as exc:
            await call_with_fallback(
                [slow], lambda p: p.run(), op_name="test", timeout=0.01, max_attempts=2, backoff_base=0.0
            )
        assert exc.value.code is ErrorCode.RPC_TIMEOUT
        assert slow.calls == 2

    @pytest.mark.asyncio
    async def test_transport_error_falls_back(self, wallet: str) -> None:
        primary = FakeBalanceProvider("moralis", error=httpx.ReadError("connection reset"))
        backup = FakeBalanceProvider("alchemy", balances=[])

        result, name = await call_with_fallback(
            [primary, backup],
            lambda p: p.get_balances(wallet, 8453),
            op_name="balances",
            timeout=1.0,
            max_attempts=2,
            backoff_base=0.0,
        )

        assert (result, name) == ([], "alchemy")
        assert primary.calls == 2

    @pytest.mark.asyncio
    async def test_transport_timeouts_exhaust_to_rpc_timeout(self) -> None:
        primary = _Provider("alchemy", [httpx.ReadTimeout("slow")])
        with pytest.raises(RpcError) as exc:
            await call_with_fallback(
                [primary], lambda p: p.run(), op_name="test", timeout=1.0, max_attempts=1
            )
        assert exc.value.code is ErrorCode.RPC_TIMEOUT

    @pytest.mark.asyncio
    async def test_no_providers(self) -> None:
        with pytest.raises(RpcError):
            await call_with_fallback([], lambda p: p.run(), op_name="test", timeout=1.0)


class TestJsonRpcEndpoint:
    @pytest.mark.asyncio
    async def test_request_result(self) -> None:
        client = AsyncMock()
        client.post = AsyncMock(return_value=_response(200, {"jsonrpc": "2.0", "id": 1, "result": "0x10"}))
        endpoint = JsonRpcEndpoint("https://eth.llamarpc.com", client=client)

        assert await endpoint.request("eth_blockNumber", []) == "0x10"
        assert endpoint.name == "llamarpc"
        assert client.post.await_args.kwargs["json"]["method"] == "eth_blockNumber"

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self) -> None:
        client = AsyncMock()
        client.post = AsyncMock(return_value=_response(503))
        endpoint = JsonRpcEndpoint("https://mainnet.base.org", client=client)

        with pytest.raises(RpcError) as exc:
            await endpoint.request("eth_call", [])
        assert exc.value.retryable is True

    @pytest.mark.asyncio
    async def test_method_not_found_not_retryable(self) -> None:
        client = AsyncMock()
        client.post = AsyncMock(
            return_value=_response(200, {"id": 1, "error": {"code": -32601, "message": "method not found"}})
        )
        endpoint = JsonRpcEndpoint("https://mainnet.base.org", client=client)

        with pytest.raises(RpcError) as exc:
            await endpoint.request("alchemy_getTokenBalances", [])
        assert exc.value.retryable is False

    @pytest.mark.asyncio
    async def test_connect_error(self) -> None:
        client = AsyncMock()
        client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        endpoint = JsonRpcEndpoint("https://mainnet.base.org", client=client)

        with pytest.raises(RpcError) as exc:
            await endpoint.request("eth_call", [])
        assert exc.value.retryable is True

    @pytest.mark.asyncio
    async def test_read_error_is_retryable(self) -> None:
        client = AsyncMock()
        client.post = AsyncMock(side_effect=httpx.ReadError("connection reset"))
        endpoint = JsonRpcEndpoint("https://mainnet.base.org", client=client)

        with pytest.raises(RpcError) as exc:
            await endpoint.request("eth_call", [])
        assert exc.value.retryable is True

    @pytest.mark.asyncio
    async def test_non_json_body_is_retryable(self) -> None:
        client = AsyncMock()
        resp = _response(200)
        resp.json.side_effect = ValueError("Expecting value")
        client.post = AsyncMock(return_value=resp)
        endpoint = JsonRpcEndpoint("https://mainnet.base.org", client=client)

        with pytest.raises(RpcError) as exc:
            await endpoint.request("eth_call", [])
        assert exc.value.retryable is True

    @pytest.mark.asyncio
    async def test_batch_keeps_call_order(self) -> None:
        client = AsyncMock()
        client.post = AsyncMock(
            return_value=_response(
                200,
                [
                    {"id": 2, "result": "b"},
                    {"id": 1, "result": "a"},
                    {"id": 3, "error": {"code": -32000, "message": "nope"}},
                ],
            )
        )
        endpoint = JsonRpcEndpoint("https://mainnet.base.org", client=client)

        results = await endpoint.batch([("m", []), ("m", []), ("m", [])])

        assert results == ["a", "b", None]


class TestRpcPool:
    @pytest.mark.asyncio
    async def test_falls_back_across_endpoints(self) -> None:
        pool = RpcPool(8453, ["https://a.alchemy.com", "https://mainnet.base.org"], max_attempts=1)
        pool.endpoints[0]._client = AsyncMock()
        pool.endpoints[0]._client.post = AsyncMock(return_value=_response(502))
        pool.endpoints[1]._client = AsyncMock()
        pool.endpoints[1]._client.post = AsyncMock(return_value=_response(200, {"id": 1, "result": "0x1"}))

        result, name = await pool.call("eth_chainId", [])

        assert (result, name) == ("0x1", "public")
