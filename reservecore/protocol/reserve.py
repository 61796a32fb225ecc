"""Per-reserve state and index accrual.

Every state-changing operation on a reserve runs ``update_state`` first,
which carries both indices forward over the time elapsed since the last
touch using the rates recorded then. Only after the balance change is
applied does ``update_interest_rates`` store the rates for the next period.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from reservecore.math.interest import (
    calculate_compounded_interest,
    calculate_linear_interest,
)
from reservecore.math.wad_ray import (
    RAY,
    ensure_uint128,
    percent_mul,
    ray_mul,
)
from reservecore.protocol.interest_rate import InterestRateModel, InterestRates
from reservecore.tokens.a_token import AToken
from reservecore.tokens.stable_debt import StableDebtToken
from reservecore.tokens.variable_debt import VariableDebtToken

logger = logging.getLogger(__name__)


@dataclass
class ReserveData:
    """Mutable state of one reserve.

    Rates and indices are ray; ``available_liquidity`` is wad;
    ``reserve_factor`` is basis points.
    """

    asset: str
    a_token: AToken
    stable_debt_token: StableDebtToken
    variable_debt_token: VariableDebtToken
    interest_rate_model: InterestRateModel
    reserve_factor: int = 0
    liquidity_index: int = RAY
    variable_borrow_index: int = RAY
    current_liquidity_rate: int = 0
    current_variable_borrow_rate: int = 0
    current_stable_borrow_rate: int = 0
    last_update_timestamp: int = 0
    available_liquidity: int = 0
    id: int = 0

    @property
    def total_variable_debt(self) -> int:
        return ray_mul(
            self.variable_debt_token.scaled_total_supply(), self.variable_borrow_index
        )


def accrue_indices(
    liquidity_index: int,
    variable_borrow_index: int,
    liquidity_rate: int,
    variable_borrow_rate: int,
    last_update_timestamp: int,
    current_timestamp: int,
    has_variable_debt: bool = True,
) -> tuple[int, int]:
    """Carry both indices from ``last_update_timestamp`` to ``current_timestamp``.

    The liquidity index grows with linear interest, the variable borrow index
    with compounded interest. An index only moves when its rate can have
    produced interest, so neither ever decreases.

    Raises:
        ArithmeticOverflow: when a new index does not fit 128 bits.
    """
    if current_timestamp < last_update_timestamp:
        raise ValueError(
            f"timestamp {current_timestamp} precedes last update {last_update_timestamp}"
        )

    new_liquidity_index = liquidity_index
    new_variable_index = variable_borrow_index

    if liquidity_rate > 0:
        cumulated_liquidity = calculate_linear_interest(
            liquidity_rate, last_update_timestamp, current_timestamp
        )
        new_liquidity_index = ensure_uint128(
            ray_mul(cumulated_liquidity, liquidity_index), "liquidity index"
        )

    # Variable debt only accrues while it exists.
    if has_variable_debt and variable_borrow_rate > 0:
        cumulated_variable = calculate_compounded_interest(
            variable_borrow_rate, last_update_timestamp, current_timestamp
        )
        new_variable_index = ensure_uint128(
            ray_mul(cumulated_variable, variable_borrow_index), "variable borrow index"
        )

    return new_liquidity_index, new_variable_index


def get_normalized_income(reserve: ReserveData, current_timestamp: int) -> int:
    """Live liquidity index, without writing to the reserve."""
    if current_timestamp == reserve.last_update_timestamp:
        return reserve.liquidity_index
    cumulated = calculate_linear_interest(
        reserve.current_liquidity_rate, reserve.last_update_timestamp, current_timestamp
    )
    return ray_mul(cumulated, reserve.liquidity_index)


def get_normalized_debt(reserve: ReserveData, current_timestamp: int) -> int:
    """Live variable borrow index, without writing to the reserve.

    Mirrors ``update_state``: the index stays put while no variable debt
    exists.
    """
    if (
        current_timestamp == reserve.last_update_timestamp
        or reserve.current_variable_borrow_rate == 0
        or reserve.variable_debt_token.scaled_total_supply() == 0
    ):
        return reserve.variable_borrow_index
    cumulated = calculate_compounded_interest(
        reserve.current_variable_borrow_rate,
        reserve.last_update_timestamp,
        current_timestamp,
    )
    return ray_mul(cumulated, reserve.variable_borrow_index)


def _treasury_accrual(
    reserve: ReserveData,
    new_variable_index: int,
    current_timestamp: int,
) -> int:
    """Reserve-factor share of the debt interest accrued since the last update."""
    if reserve.reserve_factor == 0:
        return 0

    scaled_variable_debt = reserve.variable_debt_token.scaled_total_supply()
    previous_variable_debt = ray_mul(scaled_variable_debt, reserve.variable_borrow_index)
    current_variable_debt = ray_mul(scaled_variable_debt, new_variable_index)

    principal_stable, _, avg_stable_rate, stable_timestamp = (
        reserve.stable_debt_token.get_supply_data()
    )
    previous_stable_debt = ray_mul(
        principal_stable,
        calculate_compounded_interest(
            avg_stable_rate, stable_timestamp, reserve.last_update_timestamp
        ),
    )
    current_stable_debt = ray_mul(
        principal_stable,
        calculate_compounded_interest(avg_stable_rate, stable_timestamp, current_timestamp),
    )

    total_debt_accrued = (
        current_variable_debt
        + current_stable_debt
        - previous_variable_debt
        - previous_stable_debt
    )
    if total_debt_accrued <= 0:
        return 0
    return percent_mul(total_debt_accrued, reserve.reserve_factor)


def update_state(
    reserve: ReserveData, current_timestamp: int, pool_address: str
) -> tuple[int, int]:
    """Bring the reserve's indices up to ``current_timestamp``.

    Idempotent for a repeated timestamp. The treasury is credited its share
    of debt interest for the elapsed period at the new liquidity index.

    Args:
        reserve: Reserve to update in place.
        current_timestamp: Time to accrue up to (seconds).
        pool_address: Write capability forwarded to the supply ledger.

    Returns:
        (liquidity_index, variable_borrow_index) after the update.
    """
    if current_timestamp == reserve.last_update_timestamp:
        return reserve.liquidity_index, reserve.variable_borrow_index

    has_variable_debt = reserve.variable_debt_token.scaled_total_supply() != 0
    new_liquidity_index, new_variable_index = accrue_indices(
        reserve.liquidity_index,
        reserve.variable_borrow_index,
        reserve.current_liquidity_rate,
        reserve.current_variable_borrow_rate,
        reserve.last_update_timestamp,
        current_timestamp,
        has_variable_debt,
    )
    to_treasury = _treasury_accrual(reserve, new_variable_index, current_timestamp)

    reserve.a_token.mint_to_treasury(pool_address, to_treasury, new_liquidity_index)
    reserve.liquidity_index = new_liquidity_index
    reserve.variable_borrow_index = new_variable_index
    reserve.last_update_timestamp = current_timestamp

    logger.debug(
        "%s indices updated: liquidity=%d variable=%d treasury=%d",
        reserve.asset, new_liquidity_index, new_variable_index, to_treasury,
    )
    return new_liquidity_index, new_variable_index


def update_interest_rates(
    reserve: ReserveData,
    liquidity_added: int = 0,
    liquidity_taken: int = 0,
) -> InterestRates:
    """Recompute and store the rate triple from post-operation totals.

    ``liquidity_added``/``liquidity_taken`` cover underlying that the caller
    is about to move in or out of the reserve.
    """
    total_stable_debt, avg_stable_rate = (
        reserve.stable_debt_token.get_total_supply_and_avg_rate()
    )
    rates = reserve.interest_rate_model.calculate_interest_rates(
        reserve.asset,
        reserve.available_liquidity + liquidity_added - liquidity_taken,
        total_stable_debt,
        reserve.total_variable_debt,
        avg_stable_rate,
        reserve.reserve_factor,
    )
    ensure_uint128(rates.liquidity_rate, "liquidity rate")
    ensure_uint128(rates.stable_borrow_rate, "stable borrow rate")
    ensure_uint128(rates.variable_borrow_rate, "variable borrow rate")

    reserve.current_liquidity_rate = rates.liquidity_rate
    reserve.current_stable_borrow_rate = rates.stable_borrow_rate
    reserve.current_variable_borrow_rate = rates.variable_borrow_rate

    logger.debug(
        "%s rates updated: liquidity=%d stable=%d variable=%d",
        reserve.asset,
        rates.liquidity_rate,
        rates.stable_borrow_rate,
        rates.variable_borrow_rate,
    )
    return rates
