"""Tests for the risk layers, aggregation and level breakpoints."""

from decimal import Decimal

import pytest

from dustsweep.core.risk_layers import (
    LAYER_WEIGHTS,
    LAYERS,
    RiskSignals,
    aggregate,
    carbon_impact,
    collect_flags,
    compute_layers,
    contract_safety,
    holder_concentration,
    honeypot_risk,
    liquidity,
    volume_trend,
)
from dustsweep.models.risk import LayerResult, RiskLevel, risk_level
from dustsweep.providers.dexscreener.models import TokenMarket
from dustsweep.providers.goplus.models import GoPlusHolder, GoPlusReport
from dustsweep.providers.honeypot.models import HoneypotReport

CHAIN = 8453


def _market(**overrides) -> TokenMarket:
    values = dict(
        liquidity_usd=Decimal(200_000),
        volume_h24=Decimal(150_000),
        volume_h6=Decimal(40_000),
        price_change_h24=Decimal(3),
        txns_h24=900,
        pair_count=4,
        website_count=1,
        social_count=2,
    )
    values.update(overrides)
    return TokenMarket(**values)


def _clean_goplus() -> GoPlusReport:
    return GoPlusReport(
        is_open_source=True,
        is_proxy=False,
        is_mintable=False,
        is_honeypot=False,
        cannot_sell_all=False,
        buy_tax=0.0,
        sell_tax=0.0,
        holder_count=5000,
        holders=[GoPlusHolder(address=f"0x{i}", percent=2.0) for i in range(10)],
        cex_list=["Binance", "Coinbase", "OKX"],
        trust_list=True,
    )


class TestRiskLevel:
    @pytest.mark.parametrize(
        ("overall", "level"),
        [
            (0.0, RiskLevel.SAFE),
            (15.0, RiskLevel.SAFE),
            (15.01, RiskLevel.LOW),
            (30.0, RiskLevel.LOW),
            (50.0, RiskLevel.MEDIUM),
            (50.01, RiskLevel.HIGH),
            (70.0, RiskLevel.HIGH),
            (70.01, RiskLevel.CRITICAL),
            (100.0, RiskLevel.CRITICAL),
        ],
    )
    def test_breakpoints(self, overall: float, level: RiskLevel) -> None:
        assert risk_level(overall) is level


class TestAggregate:
    def test_weighted_mean_over_active_layers(self) -> None:
        layers = {
            "a": LayerResult(score=20, weight=0.2, confidence=1.0),
            "b": LayerResult(score=80, weight=0.2, confidence=0.5),
            "c": None,
        }
        overall, confidence = aggregate(layers)
        assert overall == 50.0
        assert 0 < confidence < 1

    def test_zero_confidence_layer_carries_no_weight(self) -> None:
        layers = {
            "a": LayerResult(score=10, weight=0.5, confidence=1.0),
            "b": LayerResult(score=90, weight=0.5, confidence=0.0),
        }
        overall, _ = aggregate(layers)
        assert overall == 10.0

    def test_nothing_computable_is_high_risk(self) -> None:
        overall, confidence = aggregate({name: None for name in LAYERS})
        assert overall == 70.0
        assert confidence == 0.0
        assert risk_level(overall) is RiskLevel.HIGH

    def test_custom_unknown_score(self) -> None:
        overall, _ = aggregate({}, unknown_score=85.0)
        assert overall == 85.0


class TestLayers:
    def test_twelve_layers_with_weights(self) -> None:
        assert len(LAYERS) == 12
        assert set(LAYERS) == set(LAYER_WEIGHTS)

    def test_no_signals_means_no_layers(self) -> None:
        layers = compute_layers(RiskSignals(chain_id=CHAIN))
        assert all(layer is None for layer in layers.values())

    def test_carbon_needs_token_signals(self) -> None:
        assert carbon_impact(RiskSignals(chain_id=CHAIN)) is None
        layer = carbon_impact(RiskSignals(chain_id=CHAIN, market=_market()))
        assert layer is not None
        assert layer.details["chain"] == "Base"

    def test_clean_token_scores_safe(self) -> None:
        signals = RiskSignals(
            chain_id=CHAIN,
            goplus=_clean_goplus(),
            honeypot=HoneypotReport.model_validate(
                {
                    "simulationSuccess": True,
                    "simulationResult": {"buyTax": 0, "sellTax": 0, "sellGas": "120000"},
                    "honeypotResult": {"isHoneypot": False},
                }
            ),
            market=_market(),
        )
        layers = compute_layers(signals)
        overall, confidence = aggregate(layers)

        assert all(layer is not None for layer in layers.values())
        assert overall <= 30
        assert confidence > 0.5

    def test_honeypot_flags_raise_risk(self) -> None:
        report = GoPlusReport(is_honeypot=True, cannot_sell_all=True, sell_tax=99.0)
        layer = honeypot_risk(RiskSignals(chain_id=CHAIN, goplus=report))
        assert layer is not None
        assert layer.score == 100.0
        assert layer.confidence == 0.7

    def test_contract_flags(self) -> None:
        report = GoPlusReport(is_open_source=False, is_mintable=True, hidden_owner=True, is_proxy=True)
        layer = contract_safety(RiskSignals(chain_id=CHAIN, goplus=report))
        assert layer is not None
        assert layer.score == 60.0
        assert set(layer.details["flags"]) == {"is_mintable", "hidden_owner", "is_proxy"}

    def test_concentrated_holders(self) -> None:
        report = GoPlusReport(
            holder_count=30,
            holders=[GoPlusHolder(address="0x1", percent=85.0)],
        )
        layer = holder_concentration(RiskSignals(chain_id=CHAIN, goplus=report))
        assert layer is not None
        assert layer.score == 80.0
        assert layer.details["top10_percent"] == 85.0

    def test_thin_liquidity(self) -> None:
        layer = liquidity(RiskSignals(chain_id=CHAIN, market=_market(liquidity_usd=Decimal(1_000), volume_h24=Decimal(100))))
        assert layer is not None
        assert layer.score == 80.0

    def test_collapsing_volume(self) -> None:
        layer = volume_trend(
            RiskSignals(chain_id=CHAIN, market=_market(volume_h24=Decimal(20_000), volume_h6=Decimal(500)))
        )
        assert layer is not None
        assert layer.score == 50.0
        assert layer.details["trend_ratio"] == 0.1


# ── Flags ──────────────────────────────────────────────────────────────


class TestCollectFlags:
    def test_clean_token_has_no_flags(self) -> None:
        signals = RiskSignals(
            chain_id=CHAIN,
            goplus=GoPlusReport(is_honeypot=False, buy_tax=0.0, sell_tax=0.0, holder_count=2_000),
            market=_market(),
        )
        assert collect_flags(signals) == []

    def test_contract_and_market_flags(self) -> None:
        signals = RiskSignals(
            chain_id=CHAIN,
            goplus=GoPlusReport(
                is_mintable=True,
                hidden_owner=True,
                sell_tax=25.0,
                holder_count=12,
                creator_percent=80.0,
            ),
            market=_market(liquidity_usd=Decimal(400), volume_h24=Decimal(20)),
        )

        assert collect_flags(signals) == [
            "hidden_owner",
            "is_mintable",
            "high_creator_concentration",
            "few_holders",
            "high_tax",
            "low_liquidity",
            "low_volume",
        ]

    def test_simulated_honeypot(self) -> None:
        signals = RiskSignals(
            chain_id=CHAIN,
            honeypot=HoneypotReport.model_validate(
                {"simulationSuccess": True, "honeypotResult": {"isHoneypot": True}}
            ),
        )
        assert collect_flags(signals) == ["honeypot"]

    def test_failed_simulation(self) -> None:
        signals = RiskSignals(chain_id=CHAIN, honeypot=HoneypotReport(simulationSuccess=False))
        assert collect_flags(signals) == ["simulation_failed"]

    def test_simulated_tax_counts(self) -> None:
        signals = RiskSignals(
            chain_id=CHAIN,
            honeypot=HoneypotReport.model_validate(
                {"simulationSuccess": True, "simulationResult": {"buyTax": 1.0, "sellTax": 15.0}}
            ),
        )
        assert collect_flags(signals) == ["high_tax"]
