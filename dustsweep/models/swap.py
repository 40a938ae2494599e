from datetime import UTC, datetime
from decimal import Decimal

from pydantic import Field

from dustsweep.models.base import DomainModel, RawAmount, UsdValue


class SwapToken(DomainModel):
    address: str
    symbol: str = ""
    decimals: int = 18


class SwapQuote(DomainModel):
    chain_id: int
    from_token: SwapToken
    to_token: SwapToken
    from_amount: RawAmount
    to_amount: RawAmount
    to_amount_min: RawAmount
    slippage_bps: int
    price_impact: float = Field(ge=0)
    estimated_gas: int = 0
    protocols: list[str] = Field(default_factory=list)
    from_price_usd: UsdValue = Decimal(0)
    to_price_usd: UsdValue = Decimal(0)
    quoted_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at


class TxCall(DomainModel):
    """Unsigned call data for an external signer."""

    from_address: str = Field(alias="from")
    to: str
    data: str
    value: RawAmount = 0
    gas: int = 0
    gas_price: RawAmount = 0


class SwapTransaction(DomainModel):
    quote: SwapQuote
    tx: TxCall
    approval: TxCall | None = None
