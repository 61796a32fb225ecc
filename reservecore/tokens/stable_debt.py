"""Stable-rate debt ledger.

Each borrower keeps the rate fixed at origination (re-weighted when they
borrow more). Balances compound individually from the borrower's last
touch; there is no shared index. The pool tracks a principal-weighted
average rate, updated incrementally on every mint and burn, which feeds the
overall borrow rate of the interest rate model.
"""

from __future__ import annotations

import logging

from reservecore.errors import InsufficientBalance, InvalidMintAmount
from reservecore.math.interest import calculate_compounded_interest
from reservecore.math.wad_ray import ensure_uint128, ray_div, ray_mul, wad_to_ray
from reservecore.tokens.debt_base import DebtTokenBase

logger = logging.getLogger(__name__)


class StableDebtToken(DebtTokenBase):
    """Stable debt positions with per-account rates and a pool average rate."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._balances: dict[str, int] = {}
        self._user_stable_rates: dict[str, int] = {}
        self._timestamps: dict[str, int] = {}
        self._total_principal = 0
        self._avg_stable_rate = 0
        self._total_supply_timestamp = 0

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_average_stable_rate(self) -> int:
        return self._avg_stable_rate

    def get_user_stable_rate(self, user: str) -> int:
        return self._user_stable_rates.get(user, 0)

    def get_user_last_updated(self, user: str) -> int:
        return self._timestamps.get(user, 0)

    def get_total_supply_last_updated(self) -> int:
        return self._total_supply_timestamp

    def principal_balance_of(self, user: str) -> int:
        return self._balances.get(user, 0)

    def principal_total_supply(self) -> int:
        return self._total_principal

    def balance_of(self, user: str) -> int:
        principal = self._balances.get(user, 0)
        if principal == 0:
            return 0
        cumulated = calculate_compounded_interest(
            self._user_stable_rates.get(user, 0),
            self._timestamps.get(user, 0),
            self._pool.current_timestamp(),
        )
        return ray_mul(principal, cumulated)

    def total_supply(self) -> int:
        return self._calc_total_supply(self._avg_stable_rate)

    def get_supply_data(self) -> tuple[int, int, int, int]:
        """(principal, total supply, average rate, supply timestamp)."""
        avg_rate = self._avg_stable_rate
        return (
            self._total_principal,
            self._calc_total_supply(avg_rate),
            avg_rate,
            self._total_supply_timestamp,
        )

    def get_total_supply_and_avg_rate(self) -> tuple[int, int]:
        avg_rate = self._avg_stable_rate
        return self._calc_total_supply(avg_rate), avg_rate

    def _calc_total_supply(self, avg_rate: int) -> int:
        principal = self._total_principal
        if principal == 0:
            return 0
        cumulated = calculate_compounded_interest(
            avg_rate, self._total_supply_timestamp, self._pool.current_timestamp()
        )
        return ray_mul(principal, cumulated)

    def _calculate_balance_increase(self, user: str) -> tuple[int, int, int]:
        """(previous principal, compounded balance, interest accrued since last touch)."""
        previous_principal = self._balances.get(user, 0)
        if previous_principal == 0:
            return 0, 0, 0
        current_balance = self.balance_of(user)
        return previous_principal, current_balance, current_balance - previous_principal

    # ------------------------------------------------------------------
    # Pool-only mutations
    # ------------------------------------------------------------------

    def mint(
        self, caller: str, user: str, on_behalf_of: str, amount: int, rate: int
    ) -> bool:
        """Open or increase a stable position at ``rate``.

        Accrued interest is folded into principal, then the account rate and
        the pool average rate are re-weighted by principal.

        Returns:
            True when ``on_behalf_of`` had no stable debt before.
        """
        self._only_pool(caller)
        remaining = None
        if user != on_behalf_of:
            remaining = self._check_borrow_allowance(on_behalf_of, user, amount)

        _, current_balance, balance_increase = self._calculate_balance_increase(on_behalf_of)
        if current_balance + amount == 0:
            raise InvalidMintAmount(f"{self.symbol}: cannot mint zero stable debt")

        previous_supply = self.total_supply()
        next_supply = previous_supply + amount
        amount_in_ray = wad_to_ray(amount)

        new_user_rate = ray_div(
            ray_mul(self.get_user_stable_rate(on_behalf_of), wad_to_ray(current_balance))
            + ray_mul(amount_in_ray, rate),
            wad_to_ray(current_balance + amount),
        )
        ensure_uint128(new_user_rate, "stable rate")
        new_avg_rate = ray_div(
            ray_mul(self._avg_stable_rate, wad_to_ray(previous_supply))
            + ray_mul(rate, amount_in_ray),
            wad_to_ray(next_supply),
        )

        now = self._pool.current_timestamp()
        if remaining is not None:
            self._borrow_allowances[(on_behalf_of, user)] = remaining
        self._user_stable_rates[on_behalf_of] = new_user_rate
        self._timestamps[on_behalf_of] = now
        self._total_supply_timestamp = now
        self._avg_stable_rate = new_avg_rate
        self._total_principal = next_supply
        self._balances[on_behalf_of] = (
            self._balances.get(on_behalf_of, 0) + amount + balance_increase
        )

        logger.debug(
            "%s mint user=%s amount=%d rate=%d user_rate=%d avg_rate=%d",
            self.symbol, on_behalf_of, amount, rate, new_user_rate, new_avg_rate,
        )
        return current_balance == 0

    def burn(self, caller: str, user: str, amount: int) -> None:
        """Repay ``amount`` of stable debt.

        Interest accrued since the last touch is settled first: when the
        repayment is smaller than that interest the principal still grows
        by the difference.
        """
        self._only_pool(caller)
        _, current_balance, balance_increase = self._calculate_balance_increase(user)
        if amount > current_balance:
            raise InsufficientBalance(
                f"{self.symbol}: repay of {amount} exceeds debt {current_balance} of {user}"
            )

        previous_supply = self.total_supply()
        user_rate = self.get_user_stable_rate(user)

        if previous_supply <= amount:
            next_avg_rate = 0
            next_supply = 0
        else:
            next_supply = previous_supply - amount
            first_term = ray_mul(self._avg_stable_rate, wad_to_ray(previous_supply))
            second_term = ray_mul(user_rate, wad_to_ray(amount))
            # Rounding drift can leave the closing position's share above the pool's.
            if second_term >= first_term:
                next_avg_rate = 0
                next_supply = 0
            else:
                next_avg_rate = ray_div(first_term - second_term, wad_to_ray(next_supply))

        now = self._pool.current_timestamp()
        self._avg_stable_rate = next_avg_rate
        self._total_principal = next_supply
        if amount == current_balance:
            self._user_stable_rates[user] = 0
            self._timestamps[user] = 0
        else:
            self._timestamps[user] = now
        self._total_supply_timestamp = now

        principal = self._balances.get(user, 0)
        if balance_increase > amount:
            self._balances[user] = principal + (balance_increase - amount)
        else:
            self._balances[user] = principal - (amount - balance_increase)

        logger.debug(
            "%s burn user=%s amount=%d interest=%d avg_rate=%d",
            self.symbol, user, amount, balance_increase, next_avg_rate,
        )
