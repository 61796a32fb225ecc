"""Reserve manager: the single writer for every reserve it owns.

The manager holds the write capability (its ``address``) that all ledgers
check, and drives each state-changing operation in a fixed order:

1. ``update_state`` with the rates recorded by the previous operation,
2. the ledger mutation at the refreshed index,
3. ``update_interest_rates`` from post-mutation totals.

If any step raises, the reserve and its ledgers are rolled back to their
state before the call.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import fields
from enum import IntEnum
from typing import Callable, Iterator

from web3 import Web3

from reservecore.data.constants import ASSET_DECIMALS, MAINNET_CHAIN_ID
from reservecore.data.contracts import AAVE_V2_LENDING_POOL
from reservecore.data.interfaces import LendingRateOracle, ReserveDataProvider, ReserveParams
from reservecore.data.provider_factory import check_assets
from reservecore.errors import (
    InsufficientBalance,
    ReserveAlreadyInitialized,
    ReserveNotFound,
)
from reservecore.protocol.interest_rate import (
    InterestRateModel,
    InterestRateParams,
    InterestRates,
    utilization_rate,
)
from reservecore.protocol.reserve import (
    ReserveData,
    get_normalized_debt,
    get_normalized_income,
    update_interest_rates,
    update_state,
)
from reservecore.tokens.a_token import AToken
from reservecore.tokens.base import LendingPoolView
from reservecore.tokens.stable_debt import StableDebtToken
from reservecore.tokens.variable_debt import VariableDebtToken

logger = logging.getLogger(__name__)

TransferValidator = Callable[[str, str, str, int, int, int], None]

# Reserve fields that change over the reserve's lifetime.
_MUTABLE_RESERVE_FIELDS = tuple(
    f.name
    for f in fields(ReserveData)
    if f.name
    not in {"asset", "a_token", "stable_debt_token", "variable_debt_token", "interest_rate_model"}
)


class InterestRateMode(IntEnum):
    NONE = 0
    STABLE = 1
    VARIABLE = 2


class ManualClock:
    """Settable clock for simulations and tests."""

    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


def _system_clock() -> int:
    return int(time.time())


def _derive_address(*parts: str) -> str:
    return Web3.to_checksum_address(Web3.keccak(text=":".join(parts))[-20:])


class ReserveManager(LendingPoolView):
    """Owner of reserves and their ledgers.

    Parameters
    ----------
    rate_oracle : LendingRateOracle
        Market borrow rate source for the stable curves.
    treasury : str
        Account receiving the reserve-factor share of interest.
    address : str
        Write capability presented to the ledgers.
    clock : Callable[[], int] | None
        Time source in seconds; defaults to wall-clock time.
    chain_id : int
        Chain id for supply-token permit domains.
    """

    def __init__(
        self,
        rate_oracle: LendingRateOracle,
        treasury: str = "treasury",
        address: str = AAVE_V2_LENDING_POOL,
        clock: Callable[[], int] | None = None,
        chain_id: int = MAINNET_CHAIN_ID,
    ) -> None:
        self.rate_oracle = rate_oracle
        self.treasury = treasury
        self.address = address
        self.chain_id = chain_id
        self._clock = clock or _system_clock
        self._reserves: dict[str, ReserveData] = {}
        self._transfer_validators: list[TransferValidator] = []

    @classmethod
    def from_provider(
        cls,
        provider: ReserveDataProvider,
        assets: list[str] | None = None,
        **kwargs,
    ) -> "ReserveManager":
        """Build a manager with one reserve per asset, configured from ``provider``."""
        assets = provider.list_assets() if assets is None else check_assets(provider, assets)
        manager = cls(rate_oracle=provider, **kwargs)
        for asset in assets:
            manager.init_reserve(
                asset,
                provider.get_reserve_params(asset),
                decimals=ASSET_DECIMALS.get(asset, 18),
            )
        return manager

    # ------------------------------------------------------------------
    # LendingPoolView
    # ------------------------------------------------------------------

    def current_timestamp(self) -> int:
        return self._clock()

    def get_reserve_normalized_income(self, asset: str) -> int:
        return get_normalized_income(self.get_reserve_data(asset), self.current_timestamp())

    def get_reserve_normalized_variable_debt(self, asset: str) -> int:
        return get_normalized_debt(self.get_reserve_data(asset), self.current_timestamp())

    def finalize_transfer(
        self,
        asset: str,
        sender: str,
        recipient: str,
        amount: int,
        balance_from_before: int,
        balance_to_before: int,
    ) -> None:
        """Run registered validators; any of them may veto by raising."""
        for validator in self._transfer_validators:
            validator(asset, sender, recipient, amount, balance_from_before, balance_to_before)

    def add_transfer_validator(self, validator: TransferValidator) -> None:
        self._transfer_validators.append(validator)

    # ------------------------------------------------------------------
    # Reserve registry
    # ------------------------------------------------------------------

    @property
    def reserves(self) -> dict[str, ReserveData]:
        return dict(self._reserves)

    def get_reserve_data(self, asset: str) -> ReserveData:
        try:
            return self._reserves[asset]
        except KeyError:
            raise ReserveNotFound(asset) from None

    def init_reserve(
        self,
        asset: str,
        params: InterestRateParams | ReserveParams,
        reserve_factor: int | None = None,
        decimals: int = 18,
    ) -> ReserveData:
        """Create a reserve with fresh ledgers and indices at ``RAY``."""
        if asset in self._reserves:
            raise ReserveAlreadyInitialized(asset)
        if reserve_factor is None:
            reserve_factor = getattr(params, "reserve_factor", 0)

        a_token = AToken(
            self,
            asset,
            treasury=self.treasury,
            name=f"Interest bearing {asset}",
            symbol=f"a{asset}",
            address=_derive_address(self.address, "aToken", asset),
            decimals=decimals,
            chain_id=self.chain_id,
        )
        stable_debt = StableDebtToken(
            self,
            asset,
            f"Stable debt bearing {asset}",
            f"stableDebt{asset}",
            _derive_address(self.address, "stableDebt", asset),
            decimals,
        )
        variable_debt = VariableDebtToken(
            self,
            asset,
            f"Variable debt bearing {asset}",
            f"variableDebt{asset}",
            _derive_address(self.address, "variableDebt", asset),
            decimals,
        )
        reserve = ReserveData(
            asset=asset,
            a_token=a_token,
            stable_debt_token=stable_debt,
            variable_debt_token=variable_debt,
            interest_rate_model=InterestRateModel(params, self.rate_oracle),
            reserve_factor=reserve_factor,
            last_update_timestamp=self.current_timestamp(),
            id=len(self._reserves),
        )
        self._reserves[asset] = reserve
        update_interest_rates(reserve)
        logger.info("Initialized reserve %s (id=%d)", asset, reserve.id)
        return reserve

    @contextmanager
    def _atomic(self, reserve: ReserveData) -> Iterator[ReserveData]:
        saved = {name: getattr(reserve, name) for name in _MUTABLE_RESERVE_FIELDS}
        ledgers = (reserve.a_token, reserve.stable_debt_token, reserve.variable_debt_token)
        checkpoints = [ledger.checkpoint() for ledger in ledgers]
        try:
            yield reserve
        except Exception:
            for name, value in saved.items():
                setattr(reserve, name, value)
            for ledger, state in zip(ledgers, checkpoints):
                ledger.rollback(state)
            raise

    # ------------------------------------------------------------------
    # Accrual and rates
    # ------------------------------------------------------------------

    def update_indices(self, asset: str) -> tuple[int, int]:
        """Accrue interest on ``asset`` up to now; returns the new index pair."""
        reserve = self.get_reserve_data(asset)
        with self._atomic(reserve):
            return update_state(reserve, self.current_timestamp(), self.address)

    def calculate_interest_rates(self, asset: str) -> InterestRates:
        """Rates implied by the reserve's current totals, without storing them."""
        reserve = self.get_reserve_data(asset)
        total_stable_debt, avg_stable_rate = (
            reserve.stable_debt_token.get_total_supply_and_avg_rate()
        )
        return reserve.interest_rate_model.calculate_interest_rates(
            asset,
            reserve.available_liquidity,
            total_stable_debt,
            reserve.variable_debt_token.total_supply(),
            avg_stable_rate,
            reserve.reserve_factor,
        )

    def utilization(self, asset: str) -> int:
        reserve = self.get_reserve_data(asset)
        total_debt = (
            reserve.stable_debt_token.total_supply()
            + reserve.variable_debt_token.total_supply()
        )
        return utilization_rate(reserve.available_liquidity, total_debt)

    # ------------------------------------------------------------------
    # Accounting operations
    # ------------------------------------------------------------------

    def deposit(self, asset: str, amount: int, on_behalf_of: str) -> bool:
        """Supply ``amount`` of underlying; returns True on a first supply position."""
        reserve = self.get_reserve_data(asset)
        with self._atomic(reserve):
            update_state(reserve, self.current_timestamp(), self.address)
            is_first = reserve.a_token.mint(
                self.address, on_behalf_of, amount, reserve.liquidity_index
            )
            reserve.available_liquidity += amount
            update_interest_rates(reserve)
        logger.info("deposit %s amount=%d on_behalf_of=%s", asset, amount, on_behalf_of)
        return is_first

    def withdraw(self, asset: str, amount: int | None, user: str) -> int:
        """Redeem supply; ``amount=None`` withdraws the whole live balance."""
        reserve = self.get_reserve_data(asset)
        with self._atomic(reserve):
            update_state(reserve, self.current_timestamp(), self.address)
            user_balance = reserve.a_token.balance_of(user)
            amount_to_withdraw = user_balance if amount is None else amount
            if amount_to_withdraw > user_balance:
                raise InsufficientBalance(
                    f"withdraw of {amount_to_withdraw} exceeds balance {user_balance} of {user}"
                )
            if amount_to_withdraw > reserve.available_liquidity:
                raise InsufficientBalance(
                    f"withdraw of {amount_to_withdraw} exceeds available liquidity "
                    f"{reserve.available_liquidity} in {asset}"
                )
            reserve.a_token.burn(self.address, user, amount_to_withdraw, reserve.liquidity_index)
            reserve.available_liquidity -= amount_to_withdraw
            update_interest_rates(reserve)
        logger.info("withdraw %s amount=%d user=%s", asset, amount_to_withdraw, user)
        return amount_to_withdraw

    def borrow(
        self,
        asset: str,
        amount: int,
        rate_mode: InterestRateMode,
        user: str,
        on_behalf_of: str | None = None,
    ) -> bool:
        """Open debt in ``rate_mode``; returns True on a first debt position of that mode.

        No collateral check is made here; callers that need one run it first.
        """
        on_behalf_of = on_behalf_of or user
        reserve = self.get_reserve_data(asset)
        with self._atomic(reserve):
            update_state(reserve, self.current_timestamp(), self.address)
            if amount > reserve.available_liquidity:
                raise InsufficientBalance(
                    f"borrow of {amount} exceeds available liquidity "
                    f"{reserve.available_liquidity} in {asset}"
                )
            if rate_mode == InterestRateMode.STABLE:
                is_first = reserve.stable_debt_token.mint(
                    self.address,
                    user,
                    on_behalf_of,
                    amount,
                    reserve.current_stable_borrow_rate,
                )
            elif rate_mode == InterestRateMode.VARIABLE:
                is_first = reserve.variable_debt_token.mint(
                    self.address, user, on_behalf_of, amount, reserve.variable_borrow_index
                )
            else:
                raise ValueError(f"invalid interest rate mode: {rate_mode!r}")
            reserve.available_liquidity -= amount
            update_interest_rates(reserve)
        logger.info(
            "borrow %s amount=%d mode=%s user=%s on_behalf_of=%s",
            asset, amount, InterestRateMode(rate_mode).name, user, on_behalf_of,
        )
        return is_first

    def repay(
        self,
        asset: str,
        amount: int | None,
        rate_mode: InterestRateMode,
        on_behalf_of: str,
    ) -> int:
        """Repay debt of ``rate_mode``; ``amount=None`` repays all of it.

        Returns:
            The amount actually repaid (capped at the outstanding debt).
        """
        reserve = self.get_reserve_data(asset)
        with self._atomic(reserve):
            update_state(reserve, self.current_timestamp(), self.address)
            if rate_mode == InterestRateMode.STABLE:
                debt = reserve.stable_debt_token.balance_of(on_behalf_of)
            elif rate_mode == InterestRateMode.VARIABLE:
                debt = reserve.variable_debt_token.balance_of(on_behalf_of)
            else:
                raise ValueError(f"invalid interest rate mode: {rate_mode!r}")
            if debt == 0:
                raise InsufficientBalance(
                    f"{on_behalf_of} has no {InterestRateMode(rate_mode).name.lower()} "
                    f"debt in {asset}"
                )

            payback = debt if amount is None else min(amount, debt)
            if rate_mode == InterestRateMode.STABLE:
                reserve.stable_debt_token.burn(self.address, on_behalf_of, payback)
            else:
                reserve.variable_debt_token.burn(
                    self.address, on_behalf_of, payback, reserve.variable_borrow_index
                )
            reserve.available_liquidity += payback
            update_interest_rates(reserve)
        logger.info(
            "repay %s amount=%d mode=%s on_behalf_of=%s",
            asset, payback, InterestRateMode(rate_mode).name, on_behalf_of,
        )
        return payback
