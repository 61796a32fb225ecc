"""Double-slope interest rate model.

Replicates Aave V2 DefaultReserveInterestRateStrategy in ray fixed point.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from reservecore.data.interfaces import LendingRateOracle, ReserveParams
from reservecore.math.wad_ray import (
    PERCENTAGE_FACTOR,
    RAY,
    percent_mul,
    ray_div,
    ray_mul,
    ray_to_float,
    wad_to_ray,
)


@dataclass(frozen=True)
class InterestRateParams:
    """Parameters for the kinked rate curves (all ray)."""

    optimal_utilization: int
    base_variable_borrow_rate: int
    variable_rate_slope1: int
    variable_rate_slope2: int
    stable_rate_slope1: int
    stable_rate_slope2: int

    @property
    def excess_utilization(self) -> int:
        return RAY - self.optimal_utilization


@dataclass(frozen=True)
class InterestRates:
    """Rate triple produced by one model evaluation (annualized, ray)."""

    liquidity_rate: int
    stable_borrow_rate: int
    variable_borrow_rate: int


def utilization_rate(available_liquidity: int, total_debt: int) -> int:
    """``total_debt / (available_liquidity + total_debt)`` in ray; zero without debt."""
    if total_debt == 0:
        return 0
    return ray_div(total_debt, available_liquidity + total_debt)


def _below_kink_rate(utilization: int, optimal: int, base: int, slope1: int) -> int:
    return base + ray_mul(ray_div(utilization, optimal), slope1)


def _above_kink_rate(
    utilization: int, optimal: int, base: int, slope1: int, slope2: int
) -> int:
    excess = RAY - optimal
    excess_ratio = ray_div(utilization - optimal, excess) if excess else 0
    return base + slope1 + ray_mul(excess_ratio, slope2)


def _curve_rate(
    utilization: int, optimal: int, base: int, slope1: int, slope2: int
) -> int:
    if utilization <= optimal:
        return _below_kink_rate(utilization, optimal, base, slope1)
    return _above_kink_rate(utilization, optimal, base, slope1, slope2)


def overall_borrow_rate(
    total_stable_debt: int,
    total_variable_debt: int,
    variable_borrow_rate: int,
    average_stable_borrow_rate: int,
) -> int:
    """Debt-weighted mean of the variable rate and the average stable rate."""
    total_debt = total_stable_debt + total_variable_debt
    if total_debt == 0:
        return 0
    weighted_variable = ray_mul(wad_to_ray(total_variable_debt), variable_borrow_rate)
    weighted_stable = ray_mul(wad_to_ray(total_stable_debt), average_stable_borrow_rate)
    return ray_div(weighted_variable + weighted_stable, wad_to_ray(total_debt))


class InterestRateModel:
    """Aave V2 interest rate strategy (kinked curves for variable and stable debt)."""

    def __init__(
        self,
        params: InterestRateParams | ReserveParams,
        rate_oracle: LendingRateOracle,
    ) -> None:
        if not 0 < params.optimal_utilization <= RAY:
            raise ValueError(
                f"optimal_utilization must be in (0, RAY], got {params.optimal_utilization}"
            )
        self.params = params
        self.rate_oracle = rate_oracle

    def variable_borrow_rate(self, utilization: int) -> int:
        """Variable borrow rate (ray) at a ray utilization."""
        p = self.params
        utilization = max(0, min(RAY, utilization))
        return _curve_rate(
            utilization,
            p.optimal_utilization,
            p.base_variable_borrow_rate,
            p.variable_rate_slope1,
            p.variable_rate_slope2,
        )

    def stable_borrow_rate(self, utilization: int, market_borrow_rate: int) -> int:
        """Stable borrow rate (ray), anchored at the market borrow rate."""
        p = self.params
        utilization = max(0, min(RAY, utilization))
        return _curve_rate(
            utilization,
            p.optimal_utilization,
            market_borrow_rate,
            p.stable_rate_slope1,
            p.stable_rate_slope2,
        )

    def calculate_interest_rates(
        self,
        asset: str,
        available_liquidity: int,
        total_stable_debt: int,
        total_variable_debt: int,
        average_stable_borrow_rate: int,
        reserve_factor: int,
    ) -> InterestRates:
        """Compute the rate triple from current reserve totals.

        Args:
            asset: Reserve asset, used to query the market borrow rate.
            available_liquidity: Underlying held by the reserve (wad).
            total_stable_debt: Outstanding stable debt (wad).
            total_variable_debt: Outstanding variable debt (wad).
            average_stable_borrow_rate: Pool average stable rate (ray).
            reserve_factor: Protocol share of interest (basis points).

        Returns:
            InterestRates with liquidity, stable and variable rates in ray.
        """
        total_debt = total_stable_debt + total_variable_debt
        utilization = utilization_rate(available_liquidity, total_debt)
        market_rate = self.rate_oracle.get_market_borrow_rate(asset)

        variable_rate = self.variable_borrow_rate(utilization)
        stable_rate = self.stable_borrow_rate(utilization, market_rate)

        overall = overall_borrow_rate(
            total_stable_debt,
            total_variable_debt,
            variable_rate,
            average_stable_borrow_rate,
        )
        liquidity_rate = percent_mul(
            ray_mul(overall, utilization), PERCENTAGE_FACTOR - reserve_factor
        )

        return InterestRates(
            liquidity_rate=liquidity_rate,
            stable_borrow_rate=stable_rate,
            variable_borrow_rate=variable_rate,
        )

    def rate_curve(
        self,
        asset: str,
        reserve_factor: int,
        n_points: int = 200,
    ) -> pd.DataFrame:
        """Generate the full rate curve for plotting.

        The liquidity rate assumes all debt is variable.

        Returns:
            DataFrame with columns: utilization, variable_borrow_rate,
            stable_borrow_rate, liquidity_rate (floats).
        """
        market_rate = self.rate_oracle.get_market_borrow_rate(asset)
        utilizations = np.linspace(0, 1, n_points)
        variable_rates = []
        stable_rates = []
        liquidity_rates = []
        for u in utilizations:
            u_ray = int(round(u * 10**6)) * 10**21
            variable = self.variable_borrow_rate(u_ray)
            variable_rates.append(ray_to_float(variable))
            stable_rates.append(ray_to_float(self.stable_borrow_rate(u_ray, market_rate)))
            liquidity_rates.append(
                ray_to_float(
                    percent_mul(ray_mul(variable, u_ray), PERCENTAGE_FACTOR - reserve_factor)
                )
            )

        return pd.DataFrame(
            {
                "utilization": utilizations,
                "variable_borrow_rate": variable_rates,
                "stable_borrow_rate": stable_rates,
                "liquidity_rate": liquidity_rates,
            }
        )
