from decimal import Decimal

from pydantic import Field, computed_field

from config.settings import settings
from dustsweep.models.base import DomainModel, RawAmount, UsdValue
from dustsweep.models.risk import RiskScore


class Token(DomainModel):
    """Chain-scoped token reference. Address is canonical lowercase."""

    address: str
    symbol: str = ""
    name: str = ""
    decimals: int = 18
    chain_id: int


class TokenBalance(Token):
    balance: RawAmount
    balance_formatted: str = "0"
    price_usd: UsdValue = Decimal(0)
    value_usd: UsdValue = Decimal(0)


def _default_threshold() -> Decimal:
    return Decimal(str(settings.dust_threshold_usd))


class DustToken(TokenBalance):
    risk_score: RiskScore | None = None
    excluded: bool = False
    consolidatable: bool = False
    dust_threshold_usd: Decimal = Field(default_factory=_default_threshold, exclude=True)

    @computed_field(alias="isDust")  # type: ignore[prop-decorator]
    @property
    def is_dust(self) -> bool:
        # Strict: a value equal to the threshold is not dust
        return self.value_usd < self.dust_threshold_usd


def format_units(raw: int, decimals: int) -> str:
    """Human-readable amount, e.g. 1500000 with 6 decimals -> '1.5'."""
    value = Decimal(raw).scaleb(-decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def usd_value(raw: int, decimals: int, price_usd: Decimal) -> Decimal:
    """balance / 10^decimals * price."""
    return Decimal(raw).scaleb(-decimals) * price_usd
