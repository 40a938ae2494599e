from dataclasses import dataclass
from typing import Protocol


@dataclass
class RawBalance:
    """A wallet's holding of one token as reported by a balances provider."""

    address: str  # lowercase
    balance: int  # smallest unit
    decimals: int = 18
    symbol: str = ""
    name: str = ""
    possible_spam: bool = False


class BalanceProvider(Protocol):
    name: str

    async def get_balances(self, wallet: str, chain_id: int) -> list[RawBalance]: ...
