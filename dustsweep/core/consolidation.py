"""Turns a set of dust balances into one batch of swaps into a single token."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from dustsweep.core.errors import BusinessError, DustSweepError, ErrorCode, ValidationError
from dustsweep.core.price_oracle import TokenPriceOracle
from dustsweep.core.swap_aggregator import SwapAggregator
from dustsweep.core.validation import normalize_address, parse_amount, validate_chain
from dustsweep.models.consolidation import (
    ConsolidationInput,
    ConsolidationOutput,
    ConsolidationQuote,
    ConsolidationRequest,
    FailedSwap,
)
from dustsweep.models.swap import SwapTransaction
from dustsweep.models.token import usd_value

if TYPE_CHECKING:
    from dustsweep.core.risk_scorer import RiskScorer

ZERO = Decimal(0)


class ConsolidationBuilder:
    def __init__(
        self,
        aggregator: SwapAggregator,
        oracle: TokenPriceOracle,
        *,
        risk_scorer: RiskScorer | None = None,
        max_batch_size: int = 20,
        protocol_fee_rate: float = 0.008,
        default_slippage_bps: int = 50,
        max_slippage_bps: int = 5000,
        risk_exclude_threshold: float = 50.0,
    ) -> None:
        self._aggregator = aggregator
        self._oracle = oracle
        self._risk_scorer = risk_scorer
        self._max_batch_size = max_batch_size
        self._fee_rate = Decimal(str(protocol_fee_rate))
        self._default_slippage_bps = default_slippage_bps
        self._max_slippage_bps = max_slippage_bps
        self._risk_exclude_threshold = risk_exclude_threshold

    async def build(self, request: ConsolidationRequest) -> ConsolidationQuote:
        """Quote and build one swap per input token, skipping the ones that fail.

        Raises BusinessError(MAX_BATCH_EXCEEDED) before any network call when
        the batch is too large, and BusinessError(INSUFFICIENT_BALANCE) when
        no swap at all could be built.
        """
        if len(request.tokens_in) > self._max_batch_size:
            raise BusinessError(
                f"Batch of {len(request.tokens_in)} tokens exceeds the maximum of {self._max_batch_size}",
                code=ErrorCode.MAX_BATCH_EXCEEDED,
                context={"requested": len(request.tokens_in), "max": self._max_batch_size},
            )
        chain_id, token_out, sender, inputs, slippage_bps = self._validate(request)

        prices = await self._oracle.get_prices([a for a, _ in inputs] + [token_out], chain_id)

        swaps: list[SwapTransaction] = []
        tokens_in: list[ConsolidationInput] = []
        failed: list[FailedSwap] = []
        total_out = 0
        total_out_min = 0
        total_gas = 0
        total_in_usd = ZERO

        # Sequential: each swap is priced against current oracle data and
        # provider rate limits stay bounded.
        for address, amount in inputs:
            try:
                await self._check_risk(address, chain_id)
                swap = await self._aggregator.build(
                    chain_id, address, token_out, amount, sender, slippage_bps
                )
            except (DustSweepError, PydanticValidationError) as e:
                code = e.code.value if isinstance(e, DustSweepError) else ErrorCode.API_ERROR.value
                reason = e.message if isinstance(e, DustSweepError) else "Malformed provider response"
                logger.warning(f"[CONSOLIDATE] Skipping {address[:12]}: {reason}")
                failed.append(FailedSwap(address=address, code=code, reason=reason))
                continue

            value = usd_value(amount, swap.quote.from_token.decimals, prices.get(address, ZERO))
            tokens_in.append(
                ConsolidationInput(
                    address=address,
                    symbol=swap.quote.from_token.symbol,
                    decimals=swap.quote.from_token.decimals,
                    amount=amount,
                    value_usd=value,
                )
            )
            swaps.append(swap)
            total_out += swap.quote.to_amount
            total_out_min += swap.quote.to_amount_min
            total_gas += swap.quote.estimated_gas
            total_in_usd += value

        if not swaps:
            raise BusinessError(
                f"None of the {len(inputs)} token swaps could be built",
                code=ErrorCode.INSUFFICIENT_BALANCE,
                context={"failed": [f.model_dump() for f in failed]},
            )

        out_token = swaps[0].quote.to_token
        out_price = prices.get(token_out, ZERO)
        total_out_usd = usd_value(total_out, out_token.decimals, out_price)
        impact = ZERO
        if total_in_usd > 0 and out_price > 0:
            impact = max((total_in_usd - total_out_usd) / total_in_usd * 100, ZERO)

        quote = ConsolidationQuote(
            chain_id=chain_id,
            from_address=sender,
            tokens_in=tokens_in,
            token_out=ConsolidationOutput(
                address=token_out,
                symbol=out_token.symbol,
                decimals=out_token.decimals,
                amount=total_out,
                amount_min=total_out_min,
                price_usd=out_price,
                value_usd=total_out_usd,
            ),
            total_input_value_usd=total_in_usd,
            total_output_value_usd=total_out_usd,
            price_impact=float(round(impact, 4)),
            estimated_gas_total=total_gas,
            protocol_fee_usd=total_out_usd * self._fee_rate,
            swaps=swaps,
            failed=failed,
            created_at=min(s.quote.quoted_at for s in swaps),
            expires_at=min(s.quote.expires_at for s in swaps),
        )
        logger.info(
            f"[CONSOLIDATE] {sender[:10]} chain={chain_id}: {len(swaps)}/{len(inputs)} swaps, "
            f"${total_in_usd:.2f} -> ${total_out_usd:.2f} {out_token.symbol or token_out[:10]} "
            f"(impact {quote.price_impact:.2f}%)"
        )
        return quote

    def _validate(
        self, request: ConsolidationRequest
    ) -> tuple[int, str, str, list[tuple[str, int]], int]:
        if not request.tokens_in:
            raise ValidationError("tokensIn must not be empty")
        validate_chain(request.chain_id)
        token_out = normalize_address(request.token_out)
        sender = normalize_address(request.from_address)

        inputs: list[tuple[str, int]] = []
        seen: set[str] = set()
        for item in request.tokens_in:
            address = normalize_address(item.address)
            if address in seen:
                raise ValidationError(f"Duplicate input token {address}", context={"token": address})
            if address == token_out:
                raise ValidationError("tokenOut cannot also be an input token", context={"token": address})
            seen.add(address)
            inputs.append((address, parse_amount(item.amount)))

        slippage_bps = self._default_slippage_bps
        if request.slippage is not None:
            slippage_bps = int((Decimal(str(request.slippage)) * 100).to_integral_value())
            if not 0 <= slippage_bps <= self._max_slippage_bps:
                raise ValidationError(
                    f"Slippage must be between 0 and {self._max_slippage_bps / 100}%",
                    context={"slippage": request.slippage},
                )
        return request.chain_id, token_out, sender, inputs, slippage_bps

    async def _check_risk(self, address: str, chain_id: int) -> None:
        if self._risk_scorer is None:
            return
        risk = await self._risk_scorer.get_cached(address, chain_id)
        if risk is not None and risk.overall > self._risk_exclude_threshold:
            raise BusinessError(
                f"Token risk {risk.overall} ({risk.level.value}) above threshold",
                code=ErrorCode.RISK_TOO_HIGH,
                context={"token": address, "overall": risk.overall},
            )
