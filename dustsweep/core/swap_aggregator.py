"""Single-pair swap quotes and unsigned swap transactions.

Price impact is judged against USD prices from the oracle, never against
the quote itself. A quote over the impact ceiling is rejected before any
transaction is built.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Protocol, TypeVar

from loguru import logger

from dustsweep.chain.erc20 import encode_approve, read_allowance
from dustsweep.chain.rpc import RpcPool
from dustsweep.core.chains import is_native
from dustsweep.core.errors import BusinessError, ErrorCode, ExternalServiceError, RpcError, ValidationError
from dustsweep.core.price_oracle import TokenPriceOracle
from dustsweep.core.validation import normalize_address, validate_chain
from dustsweep.models.swap import SwapQuote, SwapToken, SwapTransaction, TxCall
from dustsweep.models.token import usd_value
from dustsweep.providers.oneinch.models import OneInchQuote, OneInchSwap, OneInchToken

BPS = 10_000
ZERO = Decimal(0)

T = TypeVar("T")


class SwapProvider(Protocol):
    async def get_quote(self, chain_id: int, src: str, dst: str, amount: int) -> OneInchQuote: ...

    async def get_swap(
        self,
        chain_id: int,
        src: str,
        dst: str,
        amount: int,
        from_address: str,
        slippage_bps: int,
    ) -> OneInchSwap: ...


def apply_slippage(to_amount: int, slippage_bps: int) -> int:
    """Minimum acceptable output, in integer arithmetic (rounds down)."""
    return to_amount * (BPS - slippage_bps) // BPS


def compute_price_impact(
    from_amount: int,
    from_decimals: int,
    from_price: Decimal,
    to_amount: int,
    to_decimals: int,
    to_price: Decimal,
) -> Decimal:
    """Percentage of input value lost in the swap, floored at 0.

    Returns 0 when either price is unknown: impact cannot be judged.
    """
    expected = usd_value(from_amount, from_decimals, from_price)
    actual = usd_value(to_amount, to_decimals, to_price)
    if expected <= 0 or to_price <= 0:
        return ZERO
    impact = (expected - actual) / expected * 100
    return max(impact, ZERO)


def _token(info: OneInchToken | None, address: str) -> SwapToken:
    if info is None:
        return SwapToken(address=address)
    return SwapToken(address=address, symbol=info.symbol, decimals=info.decimals)


class SwapAggregator:
    def __init__(
        self,
        provider: SwapProvider,
        oracle: TokenPriceOracle,
        *,
        rpc_pools: Callable[[int], RpcPool | None] | None = None,
        max_price_impact_pct: float = 5.0,
        max_slippage_bps: int = 5000,
        quote_ttl: int = 30,
        timeout: float = 10.0,
    ) -> None:
        self._provider = provider
        self._oracle = oracle
        self._rpc_pools = rpc_pools
        self._max_impact = Decimal(str(max_price_impact_pct))
        self._max_slippage_bps = max_slippage_bps
        self._quote_ttl = quote_ttl
        self._timeout = timeout

    async def quote(
        self,
        chain_id: int,
        from_token: str,
        to_token: str,
        amount: int,
        slippage_bps: int,
    ) -> SwapQuote:
        """Priced route for one pair.

        Raises BusinessError(PRICE_IMPACT_TOO_HIGH) above the ceiling and
        ExternalServiceError when the provider fails or times out.
        """
        src, dst = self._validate(chain_id, from_token, to_token, amount, slippage_bps)

        prices_task = asyncio.ensure_future(self._oracle.get_prices([src, dst], chain_id))
        try:
            raw = await self._bounded(self._provider.get_quote(chain_id, src, dst, amount), "quote")
        except BaseException:
            prices_task.cancel()
            raise
        prices = await prices_task
        return self._price_quote(
            chain_id,
            _token(raw.srcToken, src),
            _token(raw.dstToken, dst),
            amount,
            int(raw.dstAmount),
            slippage_bps,
            prices,
            gas=raw.gas,
            protocols=raw.protocol_names,
        )

    async def build(
        self,
        chain_id: int,
        from_token: str,
        to_token: str,
        amount: int,
        from_address: str,
        slippage_bps: int,
    ) -> SwapTransaction:
        """Fresh quote plus executable call data (and an approval when needed)."""
        sender = normalize_address(from_address)
        quote = await self.quote(chain_id, from_token, to_token, amount, slippage_bps)
        src, dst = quote.from_token.address, quote.to_token.address

        swap = await self._bounded(
            self._provider.get_swap(chain_id, src, dst, amount, sender, slippage_bps), "swap"
        )
        # The executable route may differ from the quote; hold it to the same ceiling
        prices = {src: quote.from_price_usd, dst: quote.to_price_usd}
        final = self._price_quote(
            chain_id,
            quote.from_token,
            quote.to_token,
            amount,
            int(swap.dstAmount),
            slippage_bps,
            prices,
            gas=swap.tx.gas or quote.estimated_gas,
            protocols=swap.protocol_names or quote.protocols,
        )

        tx = TxCall(
            from_address=sender,
            to=swap.tx.to.lower(),
            data=swap.tx.data,
            value=int(swap.tx.value or 0),
            gas=swap.tx.gas,
            gas_price=int(swap.tx.gasPrice or 0),
        )
        approval = await self._approval_if_needed(chain_id, src, sender, tx.to, amount)
        return SwapTransaction(quote=final, tx=tx, approval=approval)

    def _validate(
        self, chain_id: int, from_token: str, to_token: str, amount: int, slippage_bps: int
    ) -> tuple[str, str]:
        validate_chain(chain_id)
        src = normalize_address(from_token)
        dst = normalize_address(to_token)
        if src == dst:
            raise ValidationError("Cannot swap a token into itself", context={"token": src})
        if amount <= 0:
            raise ValidationError("Amount must be positive", code=ErrorCode.INVALID_AMOUNT)
        if not 0 <= slippage_bps <= self._max_slippage_bps:
            raise ValidationError(f"Slippage out of range: {slippage_bps} bps")
        return src, dst

    async def _bounded(self, coro: Awaitable[T], what: str) -> T:
        try:
            return await asyncio.wait_for(coro, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise ExternalServiceError(
                f"Swap {what} timed out after {self._timeout}s",
                service="swap",
                retryable=True,
            ) from e

    def _price_quote(
        self,
        chain_id: int,
        from_token: SwapToken,
        to_token: SwapToken,
        from_amount: int,
        to_amount: int,
        slippage_bps: int,
        prices: dict[str, Decimal],
        *,
        gas: int,
        protocols: list[str],
    ) -> SwapQuote:
        from_price = prices.get(from_token.address, ZERO)
        to_price = prices.get(to_token.address, ZERO)
        if from_price <= 0 or to_price <= 0:
            logger.warning(
                f"[SWAP] Missing USD price for {from_token.address[:12]}->{to_token.address[:12]}, "
                "impact not checked"
            )
        impact = compute_price_impact(
            from_amount, from_token.decimals, from_price, to_amount, to_token.decimals, to_price
        )
        if impact > self._max_impact:
            raise BusinessError(
                f"Price impact too high: {impact:.2f}% (max {self._max_impact}%)",
                code=ErrorCode.PRICE_IMPACT_TOO_HIGH,
                context={"price_impact": float(impact), "token": from_token.address},
            )

        now = datetime.now(UTC)
        return SwapQuote(
            chain_id=chain_id,
            from_token=from_token,
            to_token=to_token,
            from_amount=from_amount,
            to_amount=to_amount,
            to_amount_min=apply_slippage(to_amount, slippage_bps),
            slippage_bps=slippage_bps,
            price_impact=float(round(impact, 4)),
            estimated_gas=gas,
            protocols=protocols,
            from_price_usd=from_price,
            to_price_usd=to_price,
            quoted_at=now,
            expires_at=now + timedelta(seconds=self._quote_ttl),
        )

    async def _approval_if_needed(
        self, chain_id: int, token: str, owner: str, spender: str, amount: int
    ) -> TxCall | None:
        if is_native(token):
            return None

        pool = self._rpc_pools(chain_id) if self._rpc_pools else None
        if pool is not None:
            try:
                allowance = await read_allowance(pool, token, owner, spender)
            except RpcError as e:
                logger.debug(f"[SWAP] Allowance read failed for {token[:12]}: {e.message}")
            else:
                if allowance >= amount:
                    return None

        return TxCall(from_address=owner, to=token, data=encode_approve(spender, amount))
