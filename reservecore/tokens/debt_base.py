"""Behaviour shared by the two debt ledgers.

Debt stays with the borrower who incurred it: every ERC20 movement is
rejected. Borrowing on behalf of another account requires that account to
have delegated credit to the borrower first.
"""

from reservecore.errors import InsufficientAllowance, OperationNotSupported
from reservecore.tokens.base import PoolBoundToken


class DebtTokenBase(PoolBoundToken):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._borrow_allowances: dict[tuple[str, str], int] = {}

    def approve_delegation(self, delegator: str, delegatee: str, amount: int) -> None:
        """Let ``delegatee`` open up to ``amount`` of debt owed by ``delegator``."""
        self._borrow_allowances[(delegator, delegatee)] = amount

    def borrow_allowance(self, delegator: str, delegatee: str) -> int:
        return self._borrow_allowances.get((delegator, delegatee), 0)

    def _check_borrow_allowance(self, delegator: str, delegatee: str, amount: int) -> int:
        """Remaining allowance after spending ``amount``; raises if too small."""
        allowed = self.borrow_allowance(delegator, delegatee)
        if amount > allowed:
            raise InsufficientAllowance(
                f"{self.symbol}: {delegatee} may borrow {allowed} for {delegator}, "
                f"requested {amount}"
            )
        return allowed - amount

    # ------------------------------------------------------------------
    # Unsupported ERC20 surface
    # ------------------------------------------------------------------

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        raise OperationNotSupported(f"{self.symbol}: debt positions cannot be transferred")

    def transfer_from(self, spender: str, sender: str, recipient: str, amount: int) -> bool:
        raise OperationNotSupported(f"{self.symbol}: debt positions cannot be transferred")

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        raise OperationNotSupported(f"{self.symbol}: debt positions cannot be approved")

    def allowance(self, owner: str, spender: str) -> int:
        raise OperationNotSupported(f"{self.symbol}: debt positions have no allowance")
