"""Token balances straight from a chain RPC using Alchemy-style token APIs.

``alchemy_getTokenBalances`` lists holdings, then one JSON-RPC batch of
``alchemy_getTokenMetadata`` fills in symbol/decimals. Endpoints that do
not implement these methods answer "method not found", which is not
retryable, so the fallback chain moves on.
"""

from loguru import logger

from dustsweep.chain.rpc import JsonRpcEndpoint
from dustsweep.core.errors import RpcError
from dustsweep.providers.balances.models import RawBalance

MAX_PAGES = 5


class RpcBalanceProvider:
    def __init__(self, endpoint: JsonRpcEndpoint) -> None:
        self._endpoint = endpoint
        self.name = endpoint.name

    async def close(self) -> None:
        await self._endpoint.close()

    async def get_balances(self, wallet: str, chain_id: int) -> list[RawBalance]:
        holdings: dict[str, int] = {}
        page_key: str | None = None
        for _ in range(MAX_PAGES):
            params: list = [wallet, "erc20"]
            if page_key:
                params.append({"pageKey": page_key})
            result = await self._endpoint.request("alchemy_getTokenBalances", params) or {}
            if not isinstance(result, dict):
                raise RpcError(f"Malformed token balances from {self.name}", service=self.name)
            for entry in result.get("tokenBalances") or []:
                parsed = _parse_entry(entry)
                if parsed is not None:
                    address, balance = parsed
                    holdings[address] = balance
            page_key = result.get("pageKey")
            if not page_key:
                break

        addresses = [a for a, bal in holdings.items() if bal > 0]
        metadata = await self._endpoint.batch(
            [("alchemy_getTokenMetadata", [addr]) for addr in addresses]
        )

        balances: list[RawBalance] = []
        for addr, meta in zip(addresses, metadata):
            meta = meta if isinstance(meta, dict) else {}
            decimals = _parse_decimals(meta.get("decimals"))
            if decimals is None:
                logger.debug(f"[RPC] No metadata for {addr[:12]}, assuming 18 decimals")
            balances.append(
                RawBalance(
                    address=addr,
                    balance=holdings[addr],
                    decimals=decimals if decimals is not None else 18,
                    symbol=str(meta.get("symbol") or ""),
                    name=str(meta.get("name") or ""),
                )
            )
        return balances


def _parse_entry(entry: object) -> tuple[str, int] | None:
    """(address, raw balance) from one tokenBalances entry; None for errored or garbled ones."""
    if not isinstance(entry, dict) or entry.get("error"):
        return None
    address, raw = entry.get("contractAddress"), entry.get("tokenBalance")
    if not isinstance(address, str) or not isinstance(raw, str) or not raw:
        return None
    try:
        return address.lower(), int(raw, 16)
    except ValueError:
        logger.debug(f"[RPC] Unparseable balance {raw[:20]!r} for {address[:12]}")
        return None


def _parse_decimals(value: object) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None
