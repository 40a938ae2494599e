"""The twelve risk layers and their weighted aggregation.

Every layer is a pure function of the fetched signals. A layer returns
``None`` when its inputs are missing: it then carries no weight instead of
failing the whole score. Scores are risk-oriented (0 = safe, 100 = risky).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from dustsweep.core.chains import get_chain
from dustsweep.models.risk import LayerResult
from dustsweep.providers.dexscreener.models import TokenMarket
from dustsweep.providers.goplus.models import GoPlusReport
from dustsweep.providers.honeypot.models import HoneypotReport

LAYER_WEIGHTS: dict[str, float] = {
    "contract_safety": 0.22,
    "honeypot_risk": 0.18,
    "holder_concentration": 0.18,
    "liquidity": 0.13,
    "community": 0.22,
    "audit_status": 0.09,
    "volatility": 0.05,
    "volume_trend": 0.05,
    "mev_exposure": 0.05,
    "exchange_listings": 0.03,
    "gas_efficiency": 0.02,
    "carbon_impact": 0.01,
}


@dataclass
class RiskSignals:
    chain_id: int
    goplus: GoPlusReport | None = None
    honeypot: HoneypotReport | None = None
    market: TokenMarket | None = None


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _layer(name: str, risk: float, confidence: float, **details: Any) -> LayerResult:
    return LayerResult(
        score=_clamp(risk),
        weight=LAYER_WEIGHTS[name],
        confidence=confidence,
        details=details,
    )


def contract_safety(s: RiskSignals) -> LayerResult | None:
    g = s.goplus
    if g is None:
        return None

    safety = 100.0
    flags: list[str] = []
    for flag, penalty in (
        ("is_honeypot", 50),
        ("selfdestruct", 30),
        ("hidden_owner", 30),
        ("is_mintable", 20),
        ("can_take_back_ownership", 20),
        ("owner_can_change_balance", 20),
        ("external_call", 15),
        ("is_proxy", 10),
        ("transfer_pausable", 10),
        ("trading_cooldown", 10),
    ):
        if getattr(g, flag):
            safety -= penalty
            flags.append(flag)
    if g.is_open_source:
        safety += 10
    if g.is_true_token:
        safety += 5

    confidence = 0.9 if g.is_open_source is not None else 0.6
    return _layer("contract_safety", 100 - _clamp(safety), confidence, flags=flags)


def honeypot_risk(s: RiskSignals) -> LayerResult | None:
    g, hp = s.goplus, s.honeypot
    if g is None and hp is None:
        return None

    safety = 100.0
    if g is not None:
        if g.is_honeypot:
            safety -= 80
        if g.cannot_sell_all:
            safety -= 60
        if g.cannot_buy:
            safety -= 40
        tax = max(g.buy_tax or 0.0, g.sell_tax or 0.0)
        if tax > 10:
            safety -= 30
        elif tax > 5:
            safety -= 15
        elif tax > 2:
            safety -= 5

    if hp is not None:
        if hp.is_honeypot:
            safety -= 50
        if not hp.simulationSuccess:
            safety -= 20
        sim = hp.simulationResult
        if sim and max(sim.buyTax or 0.0, sim.sellTax or 0.0) > 10:
            safety -= 20

    confidence = 1.0 if g is not None and hp is not None else 0.7
    return _layer(
        "honeypot_risk",
        100 - _clamp(safety),
        confidence,
        goplus_honeypot=g.is_honeypot if g else None,
        simulated_honeypot=hp.is_honeypot if hp else None,
    )


def holder_concentration(s: RiskSignals) -> LayerResult | None:
    g = s.goplus
    if g is None or (not g.holders and g.holder_count is None):
        return None

    safety = 100.0
    top10 = g.top10_percent
    if top10 is not None:
        if top10 > 80:
            safety -= 60
        elif top10 > 60:
            safety -= 40
        elif top10 > 40:
            safety -= 20
        elif top10 > 20:
            safety -= 10

    count = g.holder_count or 0
    if count < 10:
        safety -= 40
    elif count < 50:
        safety -= 20
    elif count < 100:
        safety -= 10
    elif count > 1000:
        safety += 10

    insider = max(g.creator_percent or 0.0, g.owner_percent or 0.0)
    if insider > 50:
        safety -= 30
    elif insider > 20:
        safety -= 15

    confidence = 0.9 if top10 is not None else 0.5
    return _layer(
        "holder_concentration",
        100 - _clamp(safety),
        confidence,
        top10_percent=top10,
        holder_count=g.holder_count,
    )


def liquidity(s: RiskSignals) -> LayerResult | None:
    m = s.market
    if m is None:
        return None

    safety = 50.0
    if m.liquidity_usd >= 100_000:
        safety += 30
    elif m.liquidity_usd >= 50_000:
        safety += 20
    elif m.liquidity_usd >= 15_000:
        safety += 10
    elif m.liquidity_usd < 5_000:
        safety -= 20

    if m.volume_h24 >= 100_000:
        safety += 15
    elif m.volume_h24 >= 10_000:
        safety += 10
    elif m.volume_h24 < 1_000:
        safety -= 10

    locked = s.goplus.locked_lp_percent if s.goplus else None
    if locked is not None and locked >= 50:
        safety += 10

    return _layer(
        "liquidity",
        100 - _clamp(safety),
        0.8,
        liquidity_usd=float(m.liquidity_usd),
        locked_lp_percent=locked,
    )


def community(s: RiskSignals) -> LayerResult | None:
    m = s.market
    if m is None:
        return None
    risk = 80.0 - 25 * min(m.website_count, 1) - 15 * min(m.social_count, 3)
    return _layer("community", risk, 0.5, websites=m.website_count, socials=m.social_count)


def audit_status(s: RiskSignals) -> LayerResult | None:
    g = s.goplus
    if g is None or (g.trust_list is None and g.is_open_source is None):
        return None
    if g.trust_list:
        risk = 5.0
    elif g.is_open_source:
        risk = 40.0
    else:
        risk = 80.0
    return _layer("audit_status", risk, 0.5, trusted=bool(g.trust_list), verified_source=g.is_open_source)


def volatility(s: RiskSignals) -> LayerResult | None:
    m = s.market
    if m is None:
        return None

    change = abs(m.price_change_h24)
    safety = 100.0
    if change > 50:
        safety -= 50
    elif change > 30:
        safety -= 30
    elif change > 20:
        safety -= 20
    elif change > 10:
        safety -= 10
    return _layer("volatility", 100 - _clamp(safety), 0.8, price_change_h24=float(m.price_change_h24))


def volume_trend(s: RiskSignals) -> LayerResult | None:
    m = s.market
    if m is None:
        return None

    if m.volume_h24 >= 100_000:
        risk = 10.0
    elif m.volume_h24 >= 10_000:
        risk = 30.0
    elif m.volume_h24 >= 1_000:
        risk = 50.0
    else:
        risk = 75.0

    # Last 6h extrapolated to a day vs the actual day: < 0.25 means activity is collapsing
    trend = None
    if m.volume_h24 > 0:
        trend = float(m.volume_h6 * 4 / m.volume_h24)
        if trend < 0.25:
            risk += 20
    return _layer("volume_trend", risk, 0.7, volume_h24=float(m.volume_h24), trend_ratio=trend)


def mev_exposure(s: RiskSignals) -> LayerResult | None:
    m = s.market
    if m is None:
        return None

    liq = m.liquidity_usd
    if liq < 10_000:
        risk = 70.0
    elif liq < 50_000:
        risk = 50.0
    elif liq < 250_000:
        risk = 30.0
    else:
        risk = 15.0

    turnover = float(m.volume_h24 / liq) if liq > 0 else None
    if turnover is not None and turnover > 5:
        risk += 10
    if s.goplus and s.goplus.slippage_modifiable:
        risk += 15
    return _layer("mev_exposure", risk, 0.4, turnover=turnover)


def exchange_listings(s: RiskSignals) -> LayerResult | None:
    g, m = s.goplus, s.market
    if g is None and m is None:
        return None

    cex = len(g.cex_list) if g else 0
    dex = max(g.dex_count if g else 0, m.pair_count if m else 0)
    if cex >= 3:
        risk = 5.0
    elif cex >= 1:
        risk = 20.0
    elif dex >= 3:
        risk = 50.0
    elif dex >= 1:
        risk = 65.0
    else:
        risk = 85.0
    return _layer("exchange_listings", risk, 0.6, cex_count=cex, dex_count=dex)


def gas_efficiency(s: RiskSignals) -> LayerResult | None:
    hp = s.honeypot
    if hp is None or hp.sell_gas is None:
        return None

    gas = hp.sell_gas
    if gas > 500_000:
        risk = 80.0
    elif gas > 300_000:
        risk = 55.0
    elif gas > 150_000:
        risk = 30.0
    else:
        risk = 10.0
    return _layer("gas_efficiency", risk, 0.6, sell_gas=gas)


def carbon_impact(s: RiskSignals) -> LayerResult | None:
    chain = get_chain(s.chain_id)
    # Chain footprint alone says nothing about the token itself
    if chain is None or (s.goplus is None and s.honeypot is None and s.market is None):
        return None
    return _layer("carbon_impact", chain.carbon_risk, 0.5, chain=chain.name)


LAYERS: dict[str, Callable[[RiskSignals], LayerResult | None]] = {
    "contract_safety": contract_safety,
    "honeypot_risk": honeypot_risk,
    "holder_concentration": holder_concentration,
    "liquidity": liquidity,
    "community": community,
    "audit_status": audit_status,
    "volatility": volatility,
    "volume_trend": volume_trend,
    "mev_exposure": mev_exposure,
    "exchange_listings": exchange_listings,
    "gas_efficiency": gas_efficiency,
    "carbon_impact": carbon_impact,
}


def compute_layers(signals: RiskSignals) -> dict[str, LayerResult | None]:
    return {name: fn(signals) for name, fn in LAYERS.items()}


def aggregate(layers: dict[str, LayerResult | None], *, unknown_score: float = 70.0) -> tuple[float, float]:
    """Weighted overall score and confidence.

    overall = sum(score * weight) / sum(weight) over layers with confidence > 0.
    With nothing computable the overall is ``unknown_score`` at confidence 0.
    """
    active = [layer for layer in layers.values() if layer is not None and layer.confidence > 0]
    total_weight = sum(layer.weight for layer in active)
    if not active or total_weight <= 0:
        return _clamp(unknown_score), 0.0

    overall = sum(layer.score * layer.weight for layer in active) / total_weight
    confidence = sum(layer.weight * layer.confidence for layer in active) / sum(LAYER_WEIGHTS.values())
    return round(_clamp(overall), 2), round(min(1.0, confidence), 3)


def collect_indicators(s: RiskSignals) -> dict[str, Any]:
    indicators: dict[str, Any] = {}
    if s.goplus is not None:
        g = s.goplus
        indicators.update(
            is_open_source=g.is_open_source,
            is_proxy=g.is_proxy,
            is_mintable=g.is_mintable,
            is_honeypot=g.is_honeypot,
            buy_tax=g.buy_tax,
            sell_tax=g.sell_tax,
            can_sell=not g.cannot_sell_all if g.cannot_sell_all is not None else None,
            holder_count=g.holder_count,
            top10_holders_percent=g.top10_percent,
        )
    if s.honeypot is not None:
        indicators["simulation_success"] = s.honeypot.simulationSuccess
    if s.market is not None:
        indicators.update(
            total_liquidity_usd=float(s.market.liquidity_usd),
            volume_24h=float(s.market.volume_h24),
            price_change_24h=float(s.market.price_change_h24),
        )
    return indicators


def collect_flags(s: RiskSignals) -> list[str]:
    """Named red flags across all sources, in a stable order."""
    flags: list[str] = []
    g, hp, m = s.goplus, s.honeypot, s.market
    if g is not None:
        for attr, flag in (
            ("hidden_owner", "hidden_owner"),
            ("selfdestruct", "selfdestruct"),
            ("can_take_back_ownership", "can_take_ownership"),
            ("owner_can_change_balance", "owner_can_change_balance"),
            ("is_proxy", "is_proxy"),
            ("is_mintable", "is_mintable"),
            ("is_airdrop_scam", "airdrop_scam"),
        ):
            if getattr(g, attr):
                flags.append(flag)
        if (g.creator_percent or 0.0) > 50:
            flags.append("high_creator_concentration")
        if g.holder_count is not None and g.holder_count < 50:
            flags.append("few_holders")

    if (g is not None and g.is_honeypot) or (hp is not None and hp.is_honeypot):
        flags.append("honeypot")
    elif hp is not None and not hp.simulationSuccess:
        flags.append("simulation_failed")

    taxes = [g.buy_tax, g.sell_tax] if g is not None else []
    if hp is not None and hp.simulationResult is not None:
        taxes += [hp.simulationResult.buyTax, hp.simulationResult.sellTax]
    if max((t for t in taxes if t is not None), default=0.0) > 10:
        flags.append("high_tax")

    if m is not None:
        if m.liquidity_usd < 1_000:
            flags.append("low_liquidity")
        if m.volume_h24 < 100:
            flags.append("low_volume")
    return flags
