from dustsweep.models.consolidation import (
    ConsolidationInput,
    ConsolidationOutput,
    ConsolidationQuote,
    ConsolidationRequest,
    ConsolidationResult,
    ConsolidationStatus,
    FailedSwap,
    TokenAmountIn,
)
from dustsweep.models.risk import LayerResult, RiskLevel, RiskScore, risk_level
from dustsweep.models.scan import ScanResult
from dustsweep.models.swap import SwapQuote, SwapToken, SwapTransaction, TxCall
from dustsweep.models.token import DustToken, Token, TokenBalance

__all__ = [
    "Token",
    "TokenBalance",
    "DustToken",
    "RiskScore",
    "RiskLevel",
    "LayerResult",
    "risk_level",
    "ScanResult",
    "SwapToken",
    "SwapQuote",
    "SwapTransaction",
    "TxCall",
    "TokenAmountIn",
    "ConsolidationRequest",
    "ConsolidationInput",
    "ConsolidationOutput",
    "ConsolidationQuote",
    "ConsolidationResult",
    "ConsolidationStatus",
    "FailedSwap",
]
