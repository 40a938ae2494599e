"""Shared test fixtures."""

from decimal import Decimal

import pytest

from dustsweep.core.cache import MemoryTTLStore
from dustsweep.providers.balances.models import RawBalance


class FakeOracle:
    """Price oracle with fixed prices; unknown tokens are priced at 0."""

    def __init__(self, prices: dict[str, Decimal] | None = None) -> None:
        self.prices = {k.lower(): v for k, v in (prices or {}).items()}
        self.calls: list[list[str]] = []

    async def get_prices(self, addresses: list[str], chain_id: int) -> dict[str, Decimal]:
        self.calls.append(list(addresses))
        return {a.lower(): self.prices.get(a.lower(), Decimal(0)) for a in addresses}

    async def get_price(self, address: str, chain_id: int) -> Decimal:
        return self.prices.get(address.lower(), Decimal(0))


class FakeBalanceProvider:
    """Balances provider returning a fixed list, or raising ``error``."""

    def __init__(self, name: str, balances: list[RawBalance] | None = None, error: Exception | None = None) -> None:
        self.name = name
        self.balances = balances or []
        self.error = error
        self.calls = 0

    async def get_balances(self, wallet: str, chain_id: int) -> list[RawBalance]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.balances


def make_address(n: int) -> str:
    return "0x" + f"{n:040x}"


@pytest.fixture
def store() -> MemoryTTLStore:
    return MemoryTTLStore()


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def wallet() -> str:
    return "0x" + "ab" * 20
