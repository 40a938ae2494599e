from datetime import datetime
from enum import Enum

from pydantic import Field

from dustsweep.models.base import DomainModel, RawAmount, UsdValue
from dustsweep.models.swap import SwapTransaction


class TokenAmountIn(DomainModel):
    address: str
    amount: str


class ConsolidationRequest(DomainModel):
    chain_id: int
    tokens_in: list[TokenAmountIn]
    token_out: str
    from_address: str
    slippage: float | None = None  # percent, e.g. 0.5


class ConsolidationInput(DomainModel):
    address: str
    symbol: str = ""
    decimals: int = 18
    amount: RawAmount
    value_usd: UsdValue


class ConsolidationOutput(DomainModel):
    address: str
    symbol: str = ""
    decimals: int = 18
    amount: RawAmount
    amount_min: RawAmount
    price_usd: UsdValue
    value_usd: UsdValue


class FailedSwap(DomainModel):
    address: str
    code: str
    reason: str


class ConsolidationQuote(DomainModel):
    chain_id: int
    from_address: str
    tokens_in: list[ConsolidationInput]
    token_out: ConsolidationOutput
    total_input_value_usd: UsdValue
    total_output_value_usd: UsdValue
    price_impact: float = Field(ge=0)
    estimated_gas_total: int
    protocol_fee_usd: UsdValue
    swaps: list[SwapTransaction]
    failed: list[FailedSwap] = Field(default_factory=list)
    created_at: datetime
    expires_at: datetime


class ConsolidationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ConsolidationResult(DomainModel):
    consolidation_id: str
    chain_id: int
    tx_hash: str | None = None
    status: ConsolidationStatus
    failure_reason: str | None = None
    xp_awarded: int | None = None
    recorded_at: datetime
