"""Static data provider with hardcoded Aave V2 parameters."""

from reservecore.data.constants import DAI, USDC, WETH
from reservecore.data.interfaces import (
    LendingRateOracle,
    ReserveDataProvider,
    ReserveParams,
    ReserveSnapshot,
)
from reservecore.math.wad_ray import RAY, WAD, to_ray

# --- Hardcoded strategy parameters sourced from Aave V2 governance ---

_RESERVE_PARAMS: dict[str, ReserveParams] = {
    WETH: ReserveParams(
        optimal_utilization=to_ray("0.65"),
        base_variable_borrow_rate=0,
        variable_rate_slope1=to_ray("0.08"),
        variable_rate_slope2=to_ray("1.0"),
        stable_rate_slope1=to_ray("0.10"),
        stable_rate_slope2=to_ray("1.0"),
        reserve_factor=1_000,
    ),
    USDC: ReserveParams(
        optimal_utilization=to_ray("0.90"),
        base_variable_borrow_rate=0,
        variable_rate_slope1=to_ray("0.04"),
        variable_rate_slope2=to_ray("0.60"),
        stable_rate_slope1=to_ray("0.02"),
        stable_rate_slope2=to_ray("0.60"),
        reserve_factor=1_000,
    ),
    DAI: ReserveParams(
        optimal_utilization=to_ray("0.80"),
        base_variable_borrow_rate=0,
        variable_rate_slope1=to_ray("0.04"),
        variable_rate_slope2=to_ray("0.75"),
        stable_rate_slope1=to_ray("0.02"),
        stable_rate_slope2=to_ray("0.75"),
        reserve_factor=1_000,
    ),
}

_MARKET_BORROW_RATES: dict[str, int] = {
    WETH: to_ray("0.03"),
    USDC: to_ray("0.035"),
    DAI: to_ray("0.035"),
}

# Representative snapshot; amounts are normalized to 18 decimals
_RESERVE_SNAPSHOTS: dict[str, ReserveSnapshot] = {
    WETH: ReserveSnapshot(
        available_liquidity=1_400_000 * WAD,
        total_stable_debt=5_000 * WAD,
        total_variable_debt=95_000 * WAD,
        liquidity_rate=to_ray("0.0007"),
        variable_borrow_rate=to_ray("0.0082"),
        stable_borrow_rate=to_ray("0.0410"),
        average_stable_borrow_rate=to_ray("0.0400"),
        liquidity_index=RAY,
        variable_borrow_index=RAY,
        last_update_timestamp=1_700_000_000,
    ),
    USDC: ReserveSnapshot(
        available_liquidity=150_000_000 * WAD,
        total_stable_debt=2_000_000 * WAD,
        total_variable_debt=400_000_000 * WAD,
        liquidity_rate=to_ray("0.0287"),
        variable_borrow_rate=to_ray("0.0352"),
        stable_borrow_rate=to_ray("0.0526"),
        average_stable_borrow_rate=to_ray("0.0700"),
        liquidity_index=RAY,
        variable_borrow_index=RAY,
        last_update_timestamp=1_700_000_000,
    ),
    DAI: ReserveSnapshot(
        available_liquidity=80_000_000 * WAD,
        total_stable_debt=1_000_000 * WAD,
        total_variable_debt=120_000_000 * WAD,
        liquidity_rate=to_ray("0.0201"),
        variable_borrow_rate=to_ray("0.0300"),
        stable_borrow_rate=to_ray("0.0500"),
        average_stable_borrow_rate=to_ray("0.0650"),
        liquidity_index=RAY,
        variable_borrow_index=RAY,
        last_update_timestamp=1_700_000_000,
    ),
}


class StaticDataProvider(ReserveDataProvider):
    """Data provider using hardcoded Aave V2 mainnet parameters."""

    def get_reserve_params(self, asset: str) -> ReserveParams:
        return _RESERVE_PARAMS[asset]

    def get_reserve_snapshot(self, asset: str) -> ReserveSnapshot:
        return _RESERVE_SNAPSHOTS[asset]

    def get_market_borrow_rate(self, asset: str) -> int:
        return _MARKET_BORROW_RATES[asset]

    def list_assets(self) -> list[str]:
        return list(_RESERVE_PARAMS)


class FixedRateOracle(LendingRateOracle):
    """Market rate source returning configured rates (``default`` otherwise)."""

    def __init__(self, rates: dict[str, int] | None = None, default: int = 0) -> None:
        self._rates = dict(rates or {})
        self._default = default

    def set_market_borrow_rate(self, asset: str, rate: int) -> None:
        self._rates[asset] = rate

    def get_market_borrow_rate(self, asset: str) -> int:
        return self._rates.get(asset, self._default)
