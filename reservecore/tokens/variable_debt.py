"""Variable-rate debt ledger scaled by the reserve's variable borrow index."""

from reservecore.errors import InvalidMintAmount
from reservecore.math.wad_ray import ray_div
from reservecore.tokens.debt_base import DebtTokenBase
from reservecore.tokens.scaled_balance import ScaledBalanceToken


class VariableDebtToken(DebtTokenBase, ScaledBalanceToken):
    """Variable debt positions; balances grow with the variable borrow index."""

    def _current_index(self) -> int:
        return self._pool.get_reserve_normalized_variable_debt(self.underlying_asset)

    def mint(
        self, caller: str, user: str, on_behalf_of: str, amount: int, index: int
    ) -> bool:
        """Record new debt for ``on_behalf_of``.

        Returns True when ``on_behalf_of`` had no variable debt before.
        """
        self._only_pool(caller)
        remaining = None
        if user != on_behalf_of:
            remaining = self._check_borrow_allowance(on_behalf_of, user, amount)
        if ray_div(amount, index) == 0:
            raise InvalidMintAmount(f"{self.symbol}: {amount} scales to zero at index {index}")

        if remaining is not None:
            self._borrow_allowances[(on_behalf_of, user)] = remaining
        return self._mint_scaled(on_behalf_of, amount, index, InvalidMintAmount)

    def burn(self, caller: str, user: str, amount: int, index: int) -> None:
        self._only_pool(caller)
        self._burn_scaled(user, amount, index)
