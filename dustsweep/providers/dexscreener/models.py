from dataclasses import dataclass
from decimal import Decimal

from pydantic import BaseModel


class DexScreenerToken(BaseModel):
    address: str
    name: str | None = None
    symbol: str | None = None

    model_config = {"extra": "ignore"}


class DexScreenerVolume(BaseModel):
    m5: Decimal | None = None
    h1: Decimal | None = None
    h6: Decimal | None = None
    h24: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerPriceChange(BaseModel):
    m5: Decimal | None = None
    h1: Decimal | None = None
    h6: Decimal | None = None
    h24: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerLiquidity(BaseModel):
    usd: Decimal | None = None
    base: Decimal | None = None
    quote: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerTxns(BaseModel):
    buys: int | None = None
    sells: int | None = None

    model_config = {"extra": "ignore"}


class DexScreenerTxnsByPeriod(BaseModel):
    m5: DexScreenerTxns | None = None
    h1: DexScreenerTxns | None = None
    h6: DexScreenerTxns | None = None
    h24: DexScreenerTxns | None = None

    model_config = {"extra": "ignore"}


class DexScreenerLink(BaseModel):
    type: str | None = None
    label: str | None = None
    url: str | None = None

    model_config = {"extra": "ignore"}


class DexScreenerInfo(BaseModel):
    websites: list[DexScreenerLink] = []
    socials: list[DexScreenerLink] = []

    model_config = {"extra": "ignore"}


class DexScreenerPair(BaseModel):
    chainId: str = ""
    dexId: str = ""
    pairAddress: str = ""
    baseToken: DexScreenerToken | None = None
    quoteToken: DexScreenerToken | None = None
    priceUsd: str | None = None
    volume: DexScreenerVolume | None = None
    priceChange: DexScreenerPriceChange | None = None
    liquidity: DexScreenerLiquidity | None = None
    fdv: Decimal | None = None
    pairCreatedAt: int | None = None
    txns: DexScreenerTxnsByPeriod | None = None
    info: DexScreenerInfo | None = None

    model_config = {"extra": "ignore"}


@dataclass
class TokenMarket:
    """One token's market picture, aggregated over all its pairs on a chain."""

    liquidity_usd: Decimal
    volume_h24: Decimal
    volume_h6: Decimal
    price_change_h24: Decimal
    txns_h24: int
    pair_count: int
    website_count: int
    social_count: int
    oldest_pair_created_at: int | None = None  # ms epoch
