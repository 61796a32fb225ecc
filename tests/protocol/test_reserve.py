"""Tests for index accrual and per-reserve state updates."""

import pytest

from reservecore.data.static_params import FixedRateOracle
from reservecore.errors import ArithmeticOverflow
from reservecore.math.interest import SECONDS_PER_YEAR, calculate_compounded_interest
from reservecore.math.wad_ray import MAX_UINT128, RAY, WAD, ray_mul, to_ray
from reservecore.protocol.interest_rate import InterestRateParams
from reservecore.protocol.pool import InterestRateMode, ManualClock, ReserveManager
from reservecore.protocol.reserve import (
    accrue_indices,
    get_normalized_debt,
    get_normalized_income,
    update_state,
)

T0 = 1_700_000_000

DAI_PARAMS = InterestRateParams(
    optimal_utilization=to_ray("0.80"),
    base_variable_borrow_rate=0,
    variable_rate_slope1=to_ray("0.04"),
    variable_rate_slope2=to_ray("0.75"),
    stable_rate_slope1=to_ray("0.02"),
    stable_rate_slope2=to_ray("0.75"),
)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


@pytest.fixture
def manager(clock: ManualClock) -> ReserveManager:
    oracle = FixedRateOracle({"DAI": to_ray("0.035")})
    manager = ReserveManager(oracle, clock=clock)
    manager.init_reserve("DAI", DAI_PARAMS, reserve_factor=1_000)
    manager.deposit("DAI", 1_000 * WAD, "alice")
    manager.borrow("DAI", 200 * WAD, InterestRateMode.VARIABLE, "bob")
    return manager


class TestAccrueIndices:
    def test_zero_rates_leave_indices(self) -> None:
        assert accrue_indices(RAY, RAY, 0, 0, T0, T0 + SECONDS_PER_YEAR) == (RAY, RAY)

    def test_linear_liquidity_index(self) -> None:
        liq, _ = accrue_indices(RAY, RAY, to_ray("0.05"), 0, T0, T0 + SECONDS_PER_YEAR)
        assert liq == RAY + to_ray("0.05")

    def test_compounded_variable_index(self) -> None:
        rate = to_ray("0.05")
        _, var = accrue_indices(RAY, RAY, 0, rate, T0, T0 + SECONDS_PER_YEAR)
        assert var == calculate_compounded_interest(rate, T0, T0 + SECONDS_PER_YEAR)

    def test_variable_index_frozen_without_debt(self) -> None:
        _, var = accrue_indices(
            RAY, RAY, 0, to_ray("0.05"), T0, T0 + SECONDS_PER_YEAR, has_variable_debt=False
        )
        assert var == RAY

    def test_rejects_time_travel(self) -> None:
        with pytest.raises(ValueError):
            accrue_indices(RAY, RAY, 0, 0, T0, T0 - 1)

    def test_index_overflow(self) -> None:
        with pytest.raises(ArithmeticOverflow):
            accrue_indices(MAX_UINT128, RAY, RAY, 0, T0, T0 + SECONDS_PER_YEAR)

    def test_indices_never_decrease(self) -> None:
        liq, var = RAY, RAY
        for step in range(1, 50):
            new_liq, new_var = accrue_indices(
                liq, var, to_ray("0.03"), to_ray("0.07"), T0 + step - 1, T0 + step
            )
            assert new_liq >= liq
            assert new_var >= var
            liq, var = new_liq, new_var


class TestNormalizedValues:
    def test_same_timestamp_returns_stored(self, manager: ReserveManager) -> None:
        reserve = manager.get_reserve_data("DAI")
        assert get_normalized_income(reserve, T0) == reserve.liquidity_index
        assert get_normalized_debt(reserve, T0) == reserve.variable_borrow_index

    def test_views_do_not_write(self, manager: ReserveManager) -> None:
        reserve = manager.get_reserve_data("DAI")
        income = get_normalized_income(reserve, T0 + SECONDS_PER_YEAR)
        debt = get_normalized_debt(reserve, T0 + SECONDS_PER_YEAR)
        assert income == RAY + to_ray("0.0018")
        assert debt > RAY + to_ray("0.01")
        assert reserve.liquidity_index == RAY
        assert reserve.variable_borrow_index == RAY

    def test_debt_view_frozen_without_variable_debt(self, clock: ManualClock) -> None:
        params = InterestRateParams(
            optimal_utilization=to_ray("0.80"),
            base_variable_borrow_rate=to_ray("0.02"),
            variable_rate_slope1=to_ray("0.04"),
            variable_rate_slope2=to_ray("0.75"),
            stable_rate_slope1=to_ray("0.02"),
            stable_rate_slope2=to_ray("0.75"),
        )
        manager = ReserveManager(FixedRateOracle({"DAI": to_ray("0.035")}), clock=clock)
        manager.init_reserve("DAI", params)
        manager.deposit("DAI", 1_000 * WAD, "alice")
        assert manager.get_reserve_data("DAI").current_variable_borrow_rate == to_ray("0.02")

        clock.advance(SECONDS_PER_YEAR)
        before_touch = manager.get_reserve_normalized_variable_debt("DAI")
        _, stored = manager.update_indices("DAI")
        after_touch = manager.get_reserve_normalized_variable_debt("DAI")

        assert before_touch == RAY
        assert stored == RAY
        assert after_touch == RAY


class TestUpdateState:
    def test_idempotent_at_same_timestamp(
        self, manager: ReserveManager, clock: ManualClock
    ) -> None:
        clock.advance(SECONDS_PER_YEAR)
        reserve = manager.get_reserve_data("DAI")
        first = update_state(reserve, clock(), manager.address)
        treasury_balance = reserve.a_token.scaled_balance_of(manager.treasury)
        second = update_state(reserve, clock(), manager.address)
        assert first == second
        assert reserve.a_token.scaled_balance_of(manager.treasury) == treasury_balance

    def test_uses_previously_recorded_rates(
        self, manager: ReserveManager, clock: ManualClock
    ) -> None:
        reserve = manager.get_reserve_data("DAI")
        clock.advance(SECONDS_PER_YEAR)
        liq, var = update_state(reserve, clock(), manager.address)
        assert liq == RAY + to_ray("0.0018")
        assert var == calculate_compounded_interest(to_ray("0.01"), T0, clock())
        assert reserve.last_update_timestamp == clock()

    def test_treasury_receives_reserve_factor_share(
        self, manager: ReserveManager, clock: ManualClock
    ) -> None:
        reserve = manager.get_reserve_data("DAI")
        clock.advance(SECONDS_PER_YEAR)
        _, var = update_state(reserve, clock(), manager.address)
        debt_interest = ray_mul(200 * WAD, var) - 200 * WAD
        treasury = reserve.a_token.balance_of(manager.treasury)
        assert treasury == pytest.approx(debt_interest // 10, rel=1e-9)

    def test_no_treasury_accrual_without_reserve_factor(self, clock: ManualClock) -> None:
        manager = ReserveManager(FixedRateOracle(), clock=clock)
        manager.init_reserve("DAI", DAI_PARAMS, reserve_factor=0)
        manager.deposit("DAI", 1_000 * WAD, "alice")
        manager.borrow("DAI", 200 * WAD, InterestRateMode.VARIABLE, "bob")
        clock.advance(SECONDS_PER_YEAR)
        manager.update_indices("DAI")
        reserve = manager.get_reserve_data("DAI")
        assert reserve.a_token.balance_of(manager.treasury) == 0

    def test_supply_stays_backed(self, manager: ReserveManager, clock: ManualClock) -> None:
        clock.advance(SECONDS_PER_YEAR)
        manager.update_indices("DAI")
        reserve = manager.get_reserve_data("DAI")
        claims = reserve.a_token.total_supply()
        assets = reserve.available_liquidity + reserve.variable_debt_token.total_supply()
        assert claims <= assets
        assert claims == pytest.approx(assets, rel=1e-4)
