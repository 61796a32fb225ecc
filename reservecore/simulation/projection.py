"""Forward projection of reserve indices at constant rates.

The reserve is assumed to be touched once per step, so the liquidity index
compounds step by step while each step's growth is linear. Rates are held
at their current values; nothing on the live reserve is written.
"""

from __future__ import annotations

from decimal import Decimal, localcontext

import numpy as np
import pandas as pd

from reservecore.data.interfaces import ReserveSnapshot
from reservecore.math.interest import SECONDS_PER_YEAR, calculate_compounded_interest
from reservecore.math.wad_ray import RAY
from reservecore.protocol.reserve import ReserveData, accrue_indices

SECONDS_PER_DAY = 24 * 3600


def project_indices(
    liquidity_index: int,
    variable_borrow_index: int,
    liquidity_rate: int,
    variable_borrow_rate: int,
    horizon_days: int = 365,
    step_days: int = 1,
    has_variable_debt: bool = True,
) -> pd.DataFrame:
    """Project both indices over ``horizon_days``.

    Args:
        liquidity_index: Starting liquidity index (ray).
        variable_borrow_index: Starting variable borrow index (ray).
        liquidity_rate: Annual liquidity rate held constant (ray).
        variable_borrow_rate: Annual variable borrow rate held constant (ray).
        horizon_days: Length of the projection.
        step_days: Days between reserve touches.
        has_variable_debt: Whether the variable index accrues at all.

    Returns:
        DataFrame with columns day, liquidity_index, variable_borrow_index
        (ints, ray), supply_growth and debt_growth (floats, relative to day 0).
    """
    if step_days <= 0:
        raise ValueError(f"step_days must be positive, got {step_days}")
    if horizon_days < 0:
        raise ValueError(f"horizon_days must be non-negative, got {horizon_days}")

    days = np.arange(0, horizon_days + 1, step_days)
    if days[-1] != horizon_days:
        days = np.append(days, horizon_days)

    liquidity_indices = [liquidity_index]
    variable_indices = [variable_borrow_index]
    liq, var = liquidity_index, variable_borrow_index
    for previous, current in zip(days[:-1], days[1:]):
        liq, var = accrue_indices(
            liq,
            var,
            liquidity_rate,
            variable_borrow_rate,
            int(previous) * SECONDS_PER_DAY,
            int(current) * SECONDS_PER_DAY,
            has_variable_debt,
        )
        liquidity_indices.append(liq)
        variable_indices.append(var)

    df = pd.DataFrame(
        {
            "day": days.astype(int),
            "liquidity_index": pd.Series(liquidity_indices, dtype=object),
            "variable_borrow_index": pd.Series(variable_indices, dtype=object),
        }
    )
    df["supply_growth"] = [idx / liquidity_index for idx in liquidity_indices]
    df["debt_growth"] = [idx / variable_borrow_index for idx in variable_indices]
    return df


def project_reserve(
    reserve: ReserveData,
    horizon_days: int = 365,
    step_days: int = 1,
) -> pd.DataFrame:
    """Project a live reserve's indices from its current state."""
    return project_indices(
        reserve.liquidity_index,
        reserve.variable_borrow_index,
        reserve.current_liquidity_rate,
        reserve.current_variable_borrow_rate,
        horizon_days,
        step_days,
        has_variable_debt=reserve.variable_debt_token.scaled_total_supply() != 0,
    )


def project_snapshot(
    snapshot: ReserveSnapshot,
    horizon_days: int = 365,
    step_days: int = 1,
) -> pd.DataFrame:
    """Project indices from a provider snapshot."""
    return project_indices(
        snapshot.liquidity_index,
        snapshot.variable_borrow_index,
        snapshot.liquidity_rate,
        snapshot.variable_borrow_rate,
        horizon_days,
        step_days,
        has_variable_debt=snapshot.total_variable_debt != 0,
    )


def exact_compounded_interest(rate: int, seconds: int) -> Decimal:
    """``(1 + rate / SECONDS_PER_YEAR) ** seconds`` as a ray-scaled Decimal."""
    with localcontext() as ctx:
        ctx.prec = 60
        per_second = Decimal(rate) / Decimal(RAY) / SECONDS_PER_YEAR
        return (1 + per_second) ** seconds * RAY


def compounding_error_table(rate: int, horizons: list[int]) -> pd.DataFrame:
    """Compare the binomial approximation against exact per-second compounding.

    Args:
        rate: Annual rate (ray).
        horizons: Interval lengths in seconds.

    Returns:
        DataFrame with columns seconds, approximate (int, ray), exact
        (Decimal, ray) and relative_error (float, exact minus approximate
        over exact).
    """
    rows = []
    for seconds in horizons:
        approximate = calculate_compounded_interest(rate, 0, seconds)
        exact = exact_compounded_interest(rate, seconds)
        rows.append(
            {
                "seconds": seconds,
                "approximate": approximate,
                "exact": exact,
                "relative_error": float((exact - approximate) / exact),
            }
        )
    return pd.DataFrame(rows, columns=["seconds", "approximate", "exact", "relative_error"])
