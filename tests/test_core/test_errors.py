"""Tests for the error taxonomy and validation helpers."""

import pytest

from dustsweep.core.errors import (
    HTTP_STATUS,
    BusinessError,
    DustSweepError,
    ErrorCode,
    ExternalServiceError,
    RateLimitError,
    RpcError,
    ValidationError,
    http_status_for,
)
from dustsweep.core.validation import normalize_address, parse_amount, validate_chain


class TestErrors:
    def test_every_code_has_a_status(self) -> None:
        assert set(HTTP_STATUS) == set(ErrorCode)

    def test_default_codes(self) -> None:
        assert ValidationError("x").code is ErrorCode.VALIDATION_ERROR
        assert BusinessError("x").code is ErrorCode.INSUFFICIENT_BALANCE
        assert ExternalServiceError("x", service="goplus").code is ErrorCode.API_ERROR
        assert RpcError("x").code is ErrorCode.RPC_ERROR
        assert RateLimitError().code is ErrorCode.RATE_LIMIT_EXCEEDED

    def test_statuses(self) -> None:
        assert http_status_for(ValidationError("x", code=ErrorCode.INVALID_ADDRESS)) == 400
        assert http_status_for(BusinessError("x", code=ErrorCode.PRICE_IMPACT_TOO_HIGH)) == 422
        assert http_status_for(RpcError("x", code=ErrorCode.RPC_TIMEOUT)) == 504
        assert http_status_for(RateLimitError(retry_after=30)) == 429
        assert http_status_for(KeyError("x")) == 500

    def test_payload(self) -> None:
        error = BusinessError("Too many tokens", code=ErrorCode.MAX_BATCH_EXCEEDED)
        assert error.to_payload() == {"code": "E3004", "name": "MAX_BATCH_EXCEEDED", "message": "Too many tokens"}

    def test_rpc_error_is_external(self) -> None:
        error = RpcError("down")
        assert isinstance(error, ExternalServiceError)
        assert isinstance(error, DustSweepError)
        assert error.retryable is True
        assert error.service == "rpc"


class TestValidation:
    def test_normalize_checksummed(self) -> None:
        assert (
            normalize_address("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913")
            == "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
        )

    @pytest.mark.parametrize("value", ["", "0x123", "833589fcd6edb6e08f4c7c32d4f71b54bda02913zz", "hello"])
    def test_invalid_addresses(self, value: str) -> None:
        with pytest.raises(ValidationError) as exc:
            normalize_address(value)
        assert exc.value.code is ErrorCode.INVALID_ADDRESS

    def test_chain(self) -> None:
        assert validate_chain(8453).name == "Base"
        with pytest.raises(ValidationError) as exc:
            validate_chain(5)
        assert exc.value.code is ErrorCode.INVALID_CHAIN

    def test_amounts(self) -> None:
        assert parse_amount("1000000000000000000000") == 10**21
        assert parse_amount(5) == 5
        for bad in ("0", "-1", "1.5", "abc", 0, True):
            with pytest.raises(ValidationError):
                parse_amount(bad)
