"""Shared fixtures for ledger tests: a pool stub with settable indices and time."""

import pytest

from reservecore.math.wad_ray import RAY
from reservecore.tokens.base import LendingPoolView

POOL_ADDRESS = "0x7d2768dE32b0b80b7a3454c06BdAc94A69DDc7A9"
T0 = 1_700_000_000


class StubPool(LendingPoolView):
    def __init__(self) -> None:
        self.address = POOL_ADDRESS
        self.now = T0
        self.liquidity_index = RAY
        self.variable_borrow_index = RAY
        self.transfers: list[tuple] = []

    def get_reserve_normalized_income(self, asset: str) -> int:
        return self.liquidity_index

    def get_reserve_normalized_variable_debt(self, asset: str) -> int:
        return self.variable_borrow_index

    def current_timestamp(self) -> int:
        return self.now

    def finalize_transfer(
        self,
        asset: str,
        sender: str,
        recipient: str,
        amount: int,
        balance_from_before: int,
        balance_to_before: int,
    ) -> None:
        self.transfers.append(
            (asset, sender, recipient, amount, balance_from_before, balance_to_before)
        )


@pytest.fixture
def pool() -> StubPool:
    return StubPool()
