"""Error taxonomy shared by every component and the HTTP surface.

Each error kind is its own exception class carrying a stable code and
structured context. ``HTTP_STATUS`` is the only place a code is mapped to
an externally visible status.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    UNAUTHORIZED = "E1001"

    VALIDATION_ERROR = "E2001"
    INVALID_ADDRESS = "E2002"
    INVALID_CHAIN = "E2003"
    INVALID_AMOUNT = "E2004"

    INSUFFICIENT_BALANCE = "E3001"
    PRICE_IMPACT_TOO_HIGH = "E3002"
    NO_ROUTE_FOUND = "E3003"
    MAX_BATCH_EXCEEDED = "E3004"
    QUOTE_NOT_FOUND = "E3005"
    SCAN_NOT_FOUND = "E3006"
    RISK_TOO_HIGH = "E3007"

    API_ERROR = "E4001"
    RPC_ERROR = "E4002"
    RPC_TIMEOUT = "E4003"

    RATE_LIMIT_EXCEEDED = "E5001"

    INTERNAL_ERROR = "E9001"


HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_ADDRESS: 400,
    ErrorCode.INVALID_CHAIN: 400,
    ErrorCode.INVALID_AMOUNT: 400,
    ErrorCode.INSUFFICIENT_BALANCE: 422,
    ErrorCode.PRICE_IMPACT_TOO_HIGH: 422,
    ErrorCode.NO_ROUTE_FOUND: 422,
    ErrorCode.MAX_BATCH_EXCEEDED: 422,
    ErrorCode.QUOTE_NOT_FOUND: 404,
    ErrorCode.SCAN_NOT_FOUND: 404,
    ErrorCode.RISK_TOO_HIGH: 422,
    ErrorCode.API_ERROR: 502,
    ErrorCode.RPC_ERROR: 502,
    ErrorCode.RPC_TIMEOUT: 504,
    ErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ErrorCode.INTERNAL_ERROR: 500,
}


class DustSweepError(Exception):
    """Base for every error the service surfaces to callers."""

    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context or {}

    def to_payload(self) -> dict[str, str]:
        return {"code": self.code.value, "name": self.code.name, "message": self.message}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.name}: {self.message})"


class ValidationError(DustSweepError):
    """Malformed address, chain or amount. Caller mistake, never retried."""

    default_code = ErrorCode.VALIDATION_ERROR


class AuthenticationError(DustSweepError):
    default_code = ErrorCode.UNAUTHORIZED


class BusinessError(DustSweepError):
    """Domain rule violated (impact too high, batch too large, nothing swappable)."""

    default_code = ErrorCode.INSUFFICIENT_BALANCE


class ExternalServiceError(DustSweepError):
    """Price, swap, risk or balance provider failed after local retries."""

    default_code = ErrorCode.API_ERROR

    def __init__(
        self,
        message: str,
        *,
        service: str,
        retryable: bool = False,
        status_code: int | None = None,
        code: ErrorCode | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, context=context)
        self.service = service
        self.retryable = retryable
        self.status_code = status_code


class RpcError(ExternalServiceError):
    default_code = ErrorCode.RPC_ERROR

    def __init__(
        self,
        message: str,
        *,
        service: str = "rpc",
        retryable: bool = True,
        status_code: int | None = None,
        code: ErrorCode | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            service=service,
            retryable=retryable,
            status_code=status_code,
            code=code,
            context=context,
        )


class RateLimitError(DustSweepError):
    """Caller exceeded its request rate. Surfaced immediately, never retried."""

    default_code = ErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(self, message: str = "Rate limit exceeded", *, retry_after: int = 60) -> None:
        super().__init__(message, context={"retry_after": retry_after})
        self.retry_after = retry_after


def http_status_for(error: Exception) -> int:
    """Status code an error is surfaced with. Unknown exceptions are 500."""
    if isinstance(error, DustSweepError):
        return HTTP_STATUS[error.code]
    return 500
