"""ERC-20 call data for approvals and allowance reads."""

from __future__ import annotations

from typing import TYPE_CHECKING

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

if TYPE_CHECKING:
    from dustsweep.chain.rpc import RpcPool

APPROVE_SELECTOR = function_signature_to_4byte_selector("approve(address,uint256)")
ALLOWANCE_SELECTOR = function_signature_to_4byte_selector("allowance(address,address)")


def encode_approve(spender: str, amount: int) -> str:
    args = encode(["address", "uint256"], [to_checksum_address(spender), amount])
    return "0x" + (APPROVE_SELECTOR + args).hex()


def encode_allowance(owner: str, spender: str) -> str:
    args = encode(["address", "address"], [to_checksum_address(owner), to_checksum_address(spender)])
    return "0x" + (ALLOWANCE_SELECTOR + args).hex()


def decode_uint256(result: str | None) -> int:
    if not result or result == "0x":
        return 0
    (value,) = decode(["uint256"], bytes.fromhex(result.removeprefix("0x")))
    return value


async def read_allowance(pool: RpcPool, token: str, owner: str, spender: str) -> int:
    """Current allowance via ``eth_call`` at the latest block."""
    result, _ = await pool.call(
        "eth_call",
        [{"to": token, "data": encode_allowance(owner, spender)}, "latest"],
    )
    return decode_uint256(result)
