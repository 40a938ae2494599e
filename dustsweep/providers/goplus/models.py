"""Data models for GoPlus Security API responses (EVM token_security)."""

from dataclasses import dataclass, field


@dataclass
class GoPlusHolder:
    address: str
    percent: float  # 0-100
    is_locked: bool = False
    is_contract: bool = False


@dataclass
class GoPlusReport:
    """Token security report from GoPlus API."""

    # Contract
    is_open_source: bool | None = None
    is_proxy: bool | None = None
    is_mintable: bool | None = None
    can_take_back_ownership: bool | None = None
    owner_can_change_balance: bool | None = None
    hidden_owner: bool | None = None
    selfdestruct: bool | None = None
    external_call: bool | None = None
    transfer_pausable: bool | None = None
    trading_cooldown: bool | None = None
    slippage_modifiable: bool | None = None
    is_blacklisted: bool | None = None
    is_true_token: bool | None = None
    is_airdrop_scam: bool | None = None

    # Trading
    is_honeypot: bool | None = None
    cannot_buy: bool | None = None
    cannot_sell_all: bool | None = None
    buy_tax: float | None = None  # percentage (0-100)
    sell_tax: float | None = None  # percentage (0-100)

    # Distribution
    holder_count: int | None = None
    holders: list[GoPlusHolder] = field(default_factory=list)
    lp_holder_count: int | None = None
    lp_holders: list[GoPlusHolder] = field(default_factory=list)
    creator_percent: float | None = None  # 0-100
    owner_percent: float | None = None  # 0-100

    # Listings / reputation
    is_in_cex: bool | None = None
    cex_list: list[str] = field(default_factory=list)
    dex_count: int = 0
    trust_list: bool | None = None

    @property
    def top10_percent(self) -> float | None:
        if not self.holders:
            return None
        return sum(h.percent for h in self.holders[:10])

    @property
    def locked_lp_percent(self) -> float | None:
        if not self.lp_holders:
            return None
        return sum(h.percent for h in self.lp_holders if h.is_locked)
