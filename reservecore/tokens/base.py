"""Shared plumbing for ledgers bound to a single lending pool."""

import copy
from abc import ABC, abstractmethod

from reservecore.errors import Unauthorized


class LendingPoolView(ABC):
    """What a ledger needs from the pool that owns it.

    ``address`` doubles as the write capability: mutating ledger calls must
    present it as ``caller``.
    """

    address: str

    @abstractmethod
    def get_reserve_normalized_income(self, asset: str) -> int:
        """Live liquidity index for ``asset`` (ray)."""

    @abstractmethod
    def get_reserve_normalized_variable_debt(self, asset: str) -> int:
        """Live variable borrow index for ``asset`` (ray)."""

    @abstractmethod
    def current_timestamp(self) -> int:
        """Current time in seconds."""

    @abstractmethod
    def finalize_transfer(
        self,
        asset: str,
        sender: str,
        recipient: str,
        amount: int,
        balance_from_before: int,
        balance_to_before: int,
    ) -> None:
        """Hook run after a supply-position transfer."""


class PoolBoundToken:
    """Token whose mutating operations are reserved to one pool."""

    def __init__(
        self,
        pool: LendingPoolView,
        underlying_asset: str,
        name: str,
        symbol: str,
        address: str | None = None,
        decimals: int = 18,
    ) -> None:
        self._pool = pool
        self.underlying_asset = underlying_asset
        self.name = name
        self.symbol = symbol
        self.address = address or symbol
        self.decimals = decimals

    @property
    def pool(self) -> LendingPoolView:
        return self._pool

    def checkpoint(self) -> dict:
        """Copy of the ledger's own state, for ``rollback``."""
        return {
            key: copy.copy(value) for key, value in vars(self).items() if key != "_pool"
        }

    def rollback(self, state: dict) -> None:
        vars(self).update(state)

    def _only_pool(self, caller: str) -> None:
        if caller != self._pool.address:
            raise Unauthorized(f"{self.symbol}: caller {caller!r} is not the lending pool")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol!r}, underlying={self.underlying_asset!r})"
