"""Scaled-balance ledger shared by the supply and variable-debt tokens.

Each holder stores ``scaled = amount / index`` at the time of the write. The
real balance is recovered on read as ``scaled * index`` using the live
index, so interest reaches every holder without iterating accounts.
"""

import logging

from reservecore.errors import InsufficientBalance, InvalidAmount, InvalidBurnAmount
from reservecore.math.wad_ray import ray_div, ray_mul
from reservecore.tokens.base import PoolBoundToken

logger = logging.getLogger(__name__)


class ScaledBalanceToken(PoolBoundToken):
    """Ledger of scaled units against a single growth index."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._scaled_balances: dict[str, int] = {}
        self._scaled_total_supply = 0

    def _current_index(self) -> int:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def scaled_balance_of(self, user: str) -> int:
        return self._scaled_balances.get(user, 0)

    def scaled_total_supply(self) -> int:
        return self._scaled_total_supply

    def get_scaled_user_balance_and_supply(self, user: str) -> tuple[int, int]:
        return self.scaled_balance_of(user), self._scaled_total_supply

    def balance_of(self, user: str) -> int:
        scaled = self.scaled_balance_of(user)
        if scaled == 0:
            return 0
        return ray_mul(scaled, self._current_index())

    def total_supply(self) -> int:
        if self._scaled_total_supply == 0:
            return 0
        return ray_mul(self._scaled_total_supply, self._current_index())

    def holders(self) -> list[str]:
        return [user for user, scaled in self._scaled_balances.items() if scaled > 0]

    # ------------------------------------------------------------------
    # Scaled mutations
    # ------------------------------------------------------------------

    def _mint_scaled(
        self,
        user: str,
        amount: int,
        index: int,
        error: type[InvalidAmount] | None,
    ) -> bool:
        """Credit ``amount / index`` scaled units; returns True on a first position.

        With ``error`` set, a zero scaled amount raises it instead of being
        silently dropped.
        """
        amount_scaled = ray_div(amount, index)
        if amount_scaled == 0 and error is not None:
            raise error(f"{self.symbol}: {amount} scales to zero at index {index}")

        previous = self._scaled_balances.get(user, 0)
        self._scaled_balances[user] = previous + amount_scaled
        self._scaled_total_supply += amount_scaled
        logger.debug(
            "%s mint user=%s amount=%d scaled=%d index=%d",
            self.symbol, user, amount, amount_scaled, index,
        )
        return previous == 0

    def _burn_scaled(self, user: str, amount: int, index: int) -> int:
        amount_scaled = ray_div(amount, index)
        if amount_scaled == 0:
            raise InvalidBurnAmount(f"{self.symbol}: {amount} scales to zero at index {index}")

        balance = self._scaled_balances.get(user, 0)
        # Burning the full live balance clears the position instead of leaving dust.
        if amount == ray_mul(balance, index):
            amount_scaled = balance
        if amount_scaled > balance:
            raise InsufficientBalance(
                f"{self.symbol}: burn of {amount} exceeds balance of {user}"
            )

        self._scaled_balances[user] = balance - amount_scaled
        self._scaled_total_supply -= amount_scaled
        logger.debug(
            "%s burn user=%s amount=%d scaled=%d index=%d",
            self.symbol, user, amount, amount_scaled, index,
        )
        return amount_scaled
