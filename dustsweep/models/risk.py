from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from dustsweep.models.base import DomainModel

# Upper bounds (inclusive) of each level
RISK_THRESHOLDS = {
    "safe": 15.0,
    "low": 30.0,
    "medium": 50.0,
    "high": 70.0,
}


class RiskLevel(str, Enum):
    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def risk_level(overall: float) -> RiskLevel:
    if overall <= RISK_THRESHOLDS["safe"]:
        return RiskLevel.SAFE
    if overall <= RISK_THRESHOLDS["low"]:
        return RiskLevel.LOW
    if overall <= RISK_THRESHOLDS["medium"]:
        return RiskLevel.MEDIUM
    if overall <= RISK_THRESHOLDS["high"]:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


class LayerResult(DomainModel):
    """One computed risk dimension. ``score`` is risk-oriented: 0 safe, 100 risky."""

    score: float = Field(ge=0, le=100)
    weight: float = Field(ge=0)
    confidence: float = Field(ge=0, le=1)
    details: dict[str, Any] = Field(default_factory=dict)


class RiskScore(DomainModel):
    token_address: str
    chain_id: int
    overall: float = Field(ge=0, le=100)
    confidence: float = Field(ge=0, le=1)
    level: RiskLevel
    layers: dict[str, LayerResult] = Field(default_factory=dict)
    indicators: dict[str, Any] = Field(default_factory=dict)
    flags: list[str] = Field(default_factory=list)
    assessed_at: datetime
    cached: bool = False
