"""Tests for the balances providers (Moralis, Alchemy-style RPC)."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from dustsweep.chain.rpc import JsonRpcEndpoint
from dustsweep.core.errors import ExternalServiceError, RpcError
from dustsweep.providers.balances.moralis import MoralisBalanceProvider
from dustsweep.providers.balances.rpc import RpcBalanceProvider

WALLET = "0x" + "ab" * 20
TOKEN_A = "0x" + "a1" * 20
TOKEN_B = "0x" + "b2" * 20


def _resp(status: int, body=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    return resp


class TestMoralis:
    @pytest.mark.asyncio
    async def test_parses_balances(self) -> None:
        provider = MoralisBalanceProvider("key", max_rps=100.0)
        provider._client = AsyncMock()
        provider._client.get = AsyncMock(
            return_value=_resp(
                200,
                {
                    "result": [
                        {
                            "token_address": TOKEN_A.upper().replace("0X", "0x"),
                            "symbol": "AAA",
                            "name": "Token A",
                            "decimals": 6,
                            "balance": "2500000",
                            "possible_spam": False,
                        },
                        {"token_address": TOKEN_B, "symbol": "FREE", "balance": "1", "possible_spam": True},
                        {"symbol": "broken"},
                    ]
                },
            )
        )

        balances = await provider.get_balances(WALLET, 8453)

        assert [b.address for b in balances] == [TOKEN_A, TOKEN_B]
        assert balances[0].balance == 2_500_000
        assert balances[0].decimals == 6
        assert balances[1].possible_spam is True
        assert provider._client.get.await_args.kwargs["params"] == {"chain": "0x2105"}

    @pytest.mark.asyncio
    async def test_unindexed_chain_not_retryable(self) -> None:
        provider = MoralisBalanceProvider("key", max_rps=100.0)
        with pytest.raises(ExternalServiceError) as exc:
            await provider.get_balances(WALLET, 324)
        assert exc.value.retryable is False

    @pytest.mark.asyncio
    async def test_server_error_retryable(self) -> None:
        provider = MoralisBalanceProvider("key", max_rps=100.0)
        provider._client = AsyncMock()
        provider._client.get = AsyncMock(return_value=_resp(503))

        with pytest.raises(ExternalServiceError) as exc:
            await provider.get_balances(WALLET, 8453)
        assert exc.value.retryable is True

    @pytest.mark.asyncio
    async def test_timeout_retryable(self) -> None:
        provider = MoralisBalanceProvider("key", max_rps=100.0)
        provider._client = AsyncMock()
        provider._client.get = AsyncMock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(ExternalServiceError) as exc:
            await provider.get_balances(WALLET, 8453)
        assert exc.value.retryable is True


    @pytest.mark.asyncio
    async def test_connection_drop_retryable(self) -> None:
        provider = MoralisBalanceProvider("key", max_rps=100.0)
        provider._client = AsyncMock()
        provider._client.get = AsyncMock(side_effect=httpx.RemoteProtocolError("peer closed"))

        with pytest.raises(ExternalServiceError) as exc:
            await provider.get_balances(WALLET, 8453)
        assert exc.value.retryable is True

    @pytest.mark.asyncio
    async def test_non_json_body_retryable(self) -> None:
        provider = MoralisBalanceProvider("key", max_rps=100.0)
        provider._client = AsyncMock()
        resp = _resp(200)
        resp.json.side_effect = ValueError("Expecting value")
        provider._client.get = AsyncMock(return_value=resp)

        with pytest.raises(ExternalServiceError) as exc:
            await provider.get_balances(WALLET, 8453)
        assert exc.value.retryable is True

    @pytest.mark.asyncio
    async def test_unexpected_result_shape_retryable(self) -> None:
        provider = MoralisBalanceProvider("key", max_rps=100.0)
        provider._client = AsyncMock()
        provider._client.get = AsyncMock(return_value=_resp(200, {"result": "maintenance"}))

        with pytest.raises(ExternalServiceError) as exc:
            await provider.get_balances(WALLET, 8453)
        assert exc.value.retryable is True

class TestRpcBalances:
    @pytest.mark.asyncio
    async def test_balances_with_metadata(self) -> None:
        endpoint = JsonRpcEndpoint("https://base-mainnet.g.alchemy.com/v2/key", client=AsyncMock())
        endpoint.request = AsyncMock(
            return_value={
                "tokenBalances": [
                    {"contractAddress": TOKEN_A, "tokenBalance": hex(5 * 10**17)},
                    {"contractAddress": TOKEN_B, "tokenBalance": "0x0"},
                    {"contractAddress": "0x" + "c3" * 20, "tokenBalance": None, "error": "bad"},
                ]
            }
        )
        endpoint.batch = AsyncMock(return_value=[{"symbol": "AAA", "name": "Token A", "decimals": 18}])
        provider = RpcBalanceProvider(endpoint)

        balances = await provider.get_balances(WALLET, 8453)

        assert provider.name == "alchemy"
        assert len(balances) == 1
        assert balances[0].address == TOKEN_A
        assert balances[0].balance == 5 * 10**17
        assert balances[0].symbol == "AAA"
        endpoint.batch.assert_awaited_once_with([("alchemy_getTokenMetadata", [TOKEN_A])])

    @pytest.mark.asyncio
    async def test_follows_page_key(self) -> None:
        endpoint = JsonRpcEndpoint("https://base-mainnet.g.alchemy.com/v2/key", client=AsyncMock())
        endpoint.request = AsyncMock(
            side_effect=[
                {"tokenBalances": [{"contractAddress": TOKEN_A, "tokenBalance": "0x1"}], "pageKey": "next"},
                {"tokenBalances": [{"contractAddress": TOKEN_B, "tokenBalance": "0x2"}]},
            ]
        )
        endpoint.batch = AsyncMock(return_value=[None, None])
        provider = RpcBalanceProvider(endpoint)

        balances = await provider.get_balances(WALLET, 8453)

        assert {b.address for b in balances} == {TOKEN_A, TOKEN_B}
        assert all(b.decimals == 18 for b in balances)
        assert endpoint.request.await_args_list[1].args[1][-1] == {"pageKey": "next"}

    @pytest.mark.asyncio
    async def test_malformed_entries_skipped(self) -> None:
        endpoint = JsonRpcEndpoint("https://base-mainnet.g.alchemy.com/v2/key", client=AsyncMock())
        endpoint.request = AsyncMock(
            return_value={
                "tokenBalances": [
                    {"tokenBalance": "0x5"},
                    {"contractAddress": TOKEN_B, "tokenBalance": "0xzz"},
                    "garbage",
                    {"contractAddress": TOKEN_A, "tokenBalance": "0x7"},
                ]
            }
        )
        endpoint.batch = AsyncMock(return_value=["not-a-dict"])
        provider = RpcBalanceProvider(endpoint)

        balances = await provider.get_balances(WALLET, 8453)

        assert [(b.address, b.balance, b.decimals) for b in balances] == [(TOKEN_A, 7, 18)]

    @pytest.mark.asyncio
    async def test_non_dict_result_raises_rpc_error(self) -> None:
        endpoint = JsonRpcEndpoint("https://base-mainnet.g.alchemy.com/v2/key", client=AsyncMock())
        endpoint.request = AsyncMock(return_value=["unexpected"])
        provider = RpcBalanceProvider(endpoint)

        with pytest.raises(RpcError) as exc:
            await provider.get_balances(WALLET, 8453)
        assert exc.value.retryable is True
