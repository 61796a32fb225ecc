"""Abstract data provider interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ReserveParams:
    """Interest rate strategy parameters for a reserve.

    Curve values are ray integers; ``reserve_factor`` is in basis points.
    """

    optimal_utilization: int
    base_variable_borrow_rate: int
    variable_rate_slope1: int
    variable_rate_slope2: int
    stable_rate_slope1: int
    stable_rate_slope2: int
    reserve_factor: int


@dataclass(frozen=True)
class ReserveSnapshot:
    """Point-in-time reserve state (amounts in wad, rates/indices in ray)."""

    available_liquidity: int
    total_stable_debt: int
    total_variable_debt: int
    liquidity_rate: int
    variable_borrow_rate: int
    stable_borrow_rate: int
    average_stable_borrow_rate: int
    liquidity_index: int
    variable_borrow_index: int
    last_update_timestamp: int

    @property
    def total_debt(self) -> int:
        return self.total_stable_debt + self.total_variable_debt


class LendingRateOracle(ABC):
    """Source of the market borrow rate that anchors the stable curve."""

    @abstractmethod
    def get_market_borrow_rate(self, asset: str) -> int:
        """Annual market borrow rate for ``asset`` in ray."""


class ReserveDataProvider(LendingRateOracle):
    """Abstract interface for reserve configuration and state."""

    @abstractmethod
    def get_reserve_params(self, asset: str) -> ReserveParams:
        """Get interest rate parameters for a reserve."""

    @abstractmethod
    def get_reserve_snapshot(self, asset: str) -> ReserveSnapshot:
        """Get current state for a reserve."""

    @abstractmethod
    def list_assets(self) -> list[str]:
        """Asset symbols this provider knows about."""
