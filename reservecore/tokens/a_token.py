"""Supply-side ledger (interest-bearing aToken)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from reservecore.data.constants import MAINNET_CHAIN_ID
from reservecore.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidMintAmount,
    PermitError,
)
from reservecore.math.wad_ray import ray_div, ray_mul
from reservecore.tokens.base import LendingPoolView
from reservecore.tokens.permit import build_permit_typed_data, recover_permit_signer
from reservecore.tokens.scaled_balance import ScaledBalanceToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a supply-position transfer."""

    amount: int
    amount_scaled: int
    index: int
    balance_from_before: int
    balance_to_before: int


class AToken(ScaledBalanceToken):
    """Supply positions scaled by the reserve's liquidity index.

    The ERC20 surface takes the acting account as its first argument
    (``sender`` for ``transfer``, ``owner`` for ``approve``, ``spender`` for
    ``transfer_from``), the way ``caller`` is passed to the pool-only
    mutations. Callers must pass the account that actually acts. ``permit``
    is the one path where a third party sets an allowance, and it
    authenticates the owner by signature.

    Parameters
    ----------
    pool : LendingPoolView
        Owning pool; its ``address`` is the only accepted ``caller``.
    underlying_asset : str
        Reserve asset symbol.
    treasury : str
        Account credited by ``mint_to_treasury``.
    chain_id : int
        Chain id used in the permit domain.
    """

    def __init__(
        self,
        pool: LendingPoolView,
        underlying_asset: str,
        treasury: str,
        name: str,
        symbol: str,
        address: str | None = None,
        decimals: int = 18,
        chain_id: int = MAINNET_CHAIN_ID,
    ) -> None:
        super().__init__(pool, underlying_asset, name, symbol, address, decimals)
        self.treasury = treasury
        self.chain_id = chain_id
        self._allowances: dict[tuple[str, str], int] = {}
        self._nonces: dict[str, int] = {}

    def _current_index(self) -> int:
        return self._pool.get_reserve_normalized_income(self.underlying_asset)

    # ------------------------------------------------------------------
    # Pool-only mutations
    # ------------------------------------------------------------------

    def mint(self, caller: str, user: str, amount: int, index: int) -> bool:
        """Credit a deposit. Returns True when ``user`` had no prior balance."""
        self._only_pool(caller)
        return self._mint_scaled(user, amount, index, InvalidMintAmount)

    def burn(self, caller: str, user: str, amount: int, index: int) -> None:
        self._only_pool(caller)
        self._burn_scaled(user, amount, index)

    def mint_to_treasury(self, caller: str, amount: int, index: int) -> None:
        """Credit the treasury's share of accrued interest.

        Amounts below one scaled unit are dropped rather than rejected.
        """
        self._only_pool(caller)
        if amount == 0:
            return
        self._mint_scaled(self.treasury, amount, index, None)

    # ------------------------------------------------------------------
    # ERC20 surface
    # ------------------------------------------------------------------

    def transfer(self, sender: str, recipient: str, amount: int) -> TransferResult:
        """Move ``amount`` of live balance from ``sender`` to ``recipient``.

        The pool's ``finalize_transfer`` hook receives the real balances
        from before the move so that downstream checks can run.
        """
        index = self._current_index()
        amount_scaled = ray_div(amount, index)
        from_scaled = self.scaled_balance_of(sender)
        if amount_scaled > from_scaled:
            raise InsufficientBalance(
                f"{self.symbol}: transfer of {amount} exceeds balance of {sender}"
            )

        result = TransferResult(
            amount=amount,
            amount_scaled=amount_scaled,
            index=index,
            balance_from_before=ray_mul(from_scaled, index),
            balance_to_before=ray_mul(self.scaled_balance_of(recipient), index),
        )
        self._pool.finalize_transfer(
            self.underlying_asset,
            sender,
            recipient,
            amount,
            result.balance_from_before,
            result.balance_to_before,
        )

        self._scaled_balances[sender] = from_scaled - amount_scaled
        self._scaled_balances[recipient] = self.scaled_balance_of(recipient) + amount_scaled
        logger.debug(
            "%s transfer %s -> %s amount=%d scaled=%d",
            self.symbol, sender, recipient, amount, amount_scaled,
        )
        return result

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        self._allowances[(owner, spender)] = amount
        return True

    def transfer_from(
        self, spender: str, sender: str, recipient: str, amount: int
    ) -> TransferResult:
        allowed = self.allowance(sender, spender)
        if amount > allowed:
            raise InsufficientAllowance(
                f"{self.symbol}: {spender} may spend {allowed} of {sender}, requested {amount}"
            )
        result = self.transfer(sender, recipient, amount)
        self._allowances[(sender, spender)] = allowed - amount
        return result

    # ------------------------------------------------------------------
    # Permit
    # ------------------------------------------------------------------

    def nonces(self, owner: str) -> int:
        return self._nonces.get(owner.lower(), 0)

    def permit_typed_data(
        self, owner: str, spender: str, value: int, deadline: int
    ) -> dict:
        """Typed data an owner must sign for the next permit."""
        return build_permit_typed_data(
            self.name,
            self.chain_id,
            self.address,
            owner,
            spender,
            value,
            self.nonces(owner),
            deadline,
        )

    def permit(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        signature: bytes,
    ) -> None:
        """Approve ``spender`` from a signed message, consuming one nonce."""
        if not owner:
            raise PermitError("permit owner must be set")
        if self._pool.current_timestamp() > deadline:
            raise PermitError(f"permit expired at {deadline}")
        if len(signature) != 65:
            raise PermitError(f"permit signature must be 65 bytes, got {len(signature)}")

        typed_data = self.permit_typed_data(owner, spender, value, deadline)
        try:
            signer = recover_permit_signer(typed_data, signature)
        except ValueError as exc:
            raise PermitError(f"malformed permit signature: {exc}") from exc
        if signer.lower() != owner.lower():
            raise PermitError(f"permit signed by {signer}, expected {owner}")

        self._nonces[owner.lower()] = self.nonces(owner) + 1
        self.approve(owner, spender, value)
