"""Tests for the HTTP API envelopes and status mapping."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from dustsweep.api.app import create_app
from dustsweep.api.limits import limiter
from dustsweep.api.registry import ServiceRegistry
from dustsweep.core.cache import MemoryTTLStore
from dustsweep.core.errors import BusinessError, ErrorCode, ValidationError
from dustsweep.models.consolidation import (
    ConsolidationInput,
    ConsolidationOutput,
    ConsolidationQuote,
    ConsolidationResult,
    ConsolidationStatus,
)
from dustsweep.models.risk import RiskLevel, RiskScore
from dustsweep.models.scan import ScanResult
from dustsweep.models.token import DustToken

WALLET = "0x" + "ab" * 20
TOKEN = "0x" + "a1" * 20
USDC = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"


# ── Fixtures ───────────────────────────────────────────────────────────


def _scan_result() -> ScanResult:
    token = DustToken(
        address=TOKEN,
        symbol="DUST",
        name="Dust",
        decimals=18,
        chain_id=8453,
        balance=2 * 10**18,
        balance_formatted="2",
        price_usd=Decimal("1.5"),
        value_usd=Decimal(3),
        consolidatable=True,
    )
    return ScanResult(
        wallet_address=WALLET,
        chain_id=8453,
        tokens=[token],
        total_tokens=1,
        dust_tokens=1,
        excluded_count=0,
        consolidatable_count=1,
        total_value_usd=Decimal(3),
        dust_value_usd=Decimal(3),
        consolidatable_value_usd=Decimal(3),
        scan_duration_ms=120,
        rpc_provider="alchemy",
        scanned_at=datetime.now(UTC),
    )


def _risk(address: str = TOKEN, overall: float = 22.5) -> RiskScore:
    return RiskScore(
        token_address=address,
        chain_id=8453,
        overall=overall,
        confidence=0.8,
        level=RiskLevel.LOW,
        assessed_at=datetime.now(UTC),
    )


def _quote() -> ConsolidationQuote:
    now = datetime.now(UTC)
    return ConsolidationQuote(
        chain_id=8453,
        from_address=WALLET,
        tokens_in=[ConsolidationInput(address=TOKEN, amount=10**18, value_usd=Decimal(2))],
        token_out=ConsolidationOutput(
            address=USDC,
            symbol="USDC",
            decimals=6,
            amount=1_980_000,
            amount_min=1_970_100,
            price_usd=Decimal(1),
            value_usd=Decimal("1.98"),
        ),
        total_input_value_usd=Decimal(2),
        total_output_value_usd=Decimal("1.98"),
        price_impact=1.0,
        estimated_gas_total=150_000,
        protocol_fee_usd=Decimal("0.01584"),
        swaps=[],
        created_at=now,
        expires_at=now + timedelta(seconds=30),
    )


@pytest.fixture
def services() -> ServiceRegistry:
    scanner = MagicMock()
    scanner.scan = AsyncMock(return_value=_scan_result())
    risk_scorer = MagicMock()
    risk_scorer.assess = AsyncMock(return_value=_risk())
    risk_scorer.assess_many = AsyncMock(return_value=[_risk(), _risk("0x" + "b2" * 20, 50.0)])
    risk_scorer.assess_in_background = MagicMock(return_value=None)
    builder = MagicMock()
    builder.build = AsyncMock(return_value=_quote())
    tracker = MagicMock()
    tracker.register = AsyncMock(return_value="c0ffee")
    tracker.get = AsyncMock(return_value=_quote())
    tracker.record_result = AsyncMock(
        return_value=ConsolidationResult(
            consolidation_id="c0ffee",
            chain_id=8453,
            tx_hash="0x" + "ab" * 32,
            status=ConsolidationStatus.CONFIRMED,
            recorded_at=datetime.now(UTC),
        )
    )
    scan_sink = MagicMock()
    scan_sink.record = AsyncMock()
    scan_sink.get_last = AsyncMock(return_value=None)
    return ServiceRegistry(
        store=MemoryTTLStore(),
        oracle=MagicMock(),
        scanner=scanner,
        risk_scorer=risk_scorer,
        aggregator=MagicMock(),
        builder=builder,
        tracker=tracker,
        scan_sink=scan_sink,
    )


@pytest.fixture
def client(services: ServiceRegistry) -> TestClient:
    limiter.reset()
    return TestClient(create_app(services), raise_server_exceptions=False)


# ── Health ─────────────────────────────────────────────────────────────


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["status"] == "ok"
        assert body["data"]["cache_ok"] is True
        assert resp.headers["X-Content-Type-Options"] == "nosniff"


# ── Scan ───────────────────────────────────────────────────────────────


class TestScan:
    def test_scan_envelope(self, client: TestClient, services: ServiceRegistry) -> None:
        resp = client.get("/api/v1/scan", params={"address": WALLET, "chainId": 8453})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        token = body["data"]["tokens"][0]
        assert token["isDust"] is True
        assert token["balance"] == str(2 * 10**18)
        assert token["valueUsd"] == 3.0
        assert body["data"]["rpcProvider"] == "alchemy"
        services.scanner.scan.assert_awaited_once_with(WALLET, 8453)
        services.scan_sink.record.assert_awaited_once()
        services.risk_scorer.assess_in_background.assert_called_once_with([(TOKEN, 8453)])

    def test_invalid_address(self, client: TestClient, services: ServiceRegistry) -> None:
        services.scanner.scan = AsyncMock(
            side_effect=ValidationError("Invalid address: '0x12'", code=ErrorCode.INVALID_ADDRESS)
        )

        resp = client.get("/api/v1/scan", params={"address": "0x12"})

        assert resp.status_code == 400
        assert resp.json() == {
            "success": False,
            "error": {"code": "E2002", "name": "INVALID_ADDRESS", "message": "Invalid address: '0x12'"},
        }

    def test_missing_address(self, client: TestClient) -> None:
        resp = client.get("/api/v1/scan")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "E2001"

    def test_unexpected_error_is_500(self, client: TestClient, services: ServiceRegistry) -> None:
        services.scanner.scan = AsyncMock(side_effect=RuntimeError("boom"))

        resp = client.get("/api/v1/scan", params={"address": WALLET})

        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "E9001"
        assert "boom" not in resp.text

    def test_last_scan_missing(self, client: TestClient) -> None:
        resp = client.get("/api/v1/scan/last", params={"address": WALLET})
        assert resp.status_code == 404
        assert resp.json()["error"]["name"] == "SCAN_NOT_FOUND"

    def test_last_scan(self, client: TestClient, services: ServiceRegistry) -> None:
        services.scan_sink.get_last = AsyncMock(return_value={"walletAddress": WALLET})
        resp = client.get("/api/v1/scan/last", params={"address": WALLET})
        assert resp.json() == {"success": True, "data": {"walletAddress": WALLET}}


# ── Risk ───────────────────────────────────────────────────────────────


class TestRisk:
    def test_single(self, client: TestClient, services: ServiceRegistry) -> None:
        resp = client.get(f"/api/v1/risk/{TOKEN}", params={"chainId": 1})

        assert resp.status_code == 200
        assert resp.json()["data"]["tokenAddress"] == TOKEN
        assert resp.json()["data"]["level"] == "low"
        services.risk_scorer.assess.assert_awaited_once_with(TOKEN, 1)

    def test_batch(self, client: TestClient, services: ServiceRegistry) -> None:
        tokens = [TOKEN, "0x" + "b2" * 20]
        resp = client.post("/api/v1/risk/batch", json={"chainId": 8453, "tokens": tokens})

        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 2
        services.risk_scorer.assess_many.assert_awaited_once_with([(t, 8453) for t in tokens])

    def test_batch_too_large(self, client: TestClient, services: ServiceRegistry) -> None:
        tokens = [f"0x{i:040x}" for i in range(21)]
        resp = client.post("/api/v1/risk/batch", json={"chainId": 8453, "tokens": tokens})

        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "E3004"
        services.risk_scorer.assess_many.assert_not_awaited()


# ── Consolidate ────────────────────────────────────────────────────────


def _consolidate_body() -> dict:
    return {
        "chainId": 8453,
        "tokensIn": [{"address": TOKEN, "amount": str(10**18)}],
        "tokenOut": USDC,
        "fromAddress": WALLET,
        "slippage": 0.5,
    }


class TestConsolidate:
    def test_create(self, client: TestClient, services: ServiceRegistry) -> None:
        resp = client.post("/api/v1/consolidate", json=_consolidate_body())

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["consolidationId"] == "c0ffee"
        assert data["quote"]["tokenOut"]["amount"] == "1980000"
        request = services.builder.build.await_args.args[0]
        assert request.slippage == 0.5
        assert request.tokens_in[0].address == TOKEN

    def test_business_error_is_422(self, client: TestClient, services: ServiceRegistry) -> None:
        services.builder.build = AsyncMock(
            side_effect=BusinessError("None of the 1 token swaps could be built")
        )

        resp = client.post("/api/v1/consolidate", json=_consolidate_body())

        assert resp.status_code == 422
        assert resp.json()["error"]["name"] == "INSUFFICIENT_BALANCE"

    def test_get_unknown(self, client: TestClient, services: ServiceRegistry) -> None:
        services.tracker.get = AsyncMock(
            side_effect=BusinessError("not found", code=ErrorCode.QUOTE_NOT_FOUND)
        )
        resp = client.get("/api/v1/consolidate/nope")
        assert resp.status_code == 404

    def test_record_result(self, client: TestClient, services: ServiceRegistry) -> None:
        tx_hash = "0x" + "ab" * 32
        resp = client.post("/api/v1/consolidate/c0ffee/result", json={"txHash": tx_hash})

        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "confirmed"
        services.tracker.record_result.assert_awaited_once_with("c0ffee", tx_hash=tx_hash, failure_reason=None)

    def test_rate_limited(self, client: TestClient) -> None:
        for _ in range(20):
            assert client.post("/api/v1/consolidate", json=_consolidate_body()).status_code == 200

        resp = client.post("/api/v1/consolidate", json=_consolidate_body())

        assert resp.status_code == 429
        assert resp.json()["error"]["code"] == "E5001"
        assert int(resp.headers["Retry-After"]) > 0
