"""Input validation shared by the core components and the HTTP surface."""

from __future__ import annotations

from eth_utils import is_address

from dustsweep.core.chains import CHAINS, ChainInfo
from dustsweep.core.errors import ErrorCode, ValidationError


def normalize_address(value: str) -> str:
    """Return the canonical lowercase form of an EVM address.

    Accepts both checksummed and all-lowercase hex. A mixed-case address
    with a wrong checksum is rejected.
    """
    if not isinstance(value, str) or not is_address(value):
        raise ValidationError(
            f"Invalid address: {value!r}",
            code=ErrorCode.INVALID_ADDRESS,
            context={"address": value},
        )
    return value.lower()


def validate_chain(chain_id: int) -> ChainInfo:
    chain = CHAINS.get(chain_id)
    if chain is None:
        raise ValidationError(
            f"Unsupported chain: {chain_id}",
            code=ErrorCode.INVALID_CHAIN,
            context={"chain_id": chain_id},
        )
    return chain


def parse_amount(value: str | int) -> int:
    """Parse an on-chain amount given as a decimal-string integer."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}", code=ErrorCode.INVALID_AMOUNT)
    if isinstance(value, int):
        amount = value
    else:
        text = str(value).strip()
        if not text.isdigit():
            raise ValidationError(
                f"Invalid amount: {value!r}",
                code=ErrorCode.INVALID_AMOUNT,
                context={"amount": value},
            )
        amount = int(text)
    if amount <= 0:
        raise ValidationError(
            f"Amount must be positive: {value!r}",
            code=ErrorCode.INVALID_AMOUNT,
            context={"amount": value},
        )
    return amount
