"""Error taxonomy for the reserve core.

Every failing operation raises before it mutates anything, so a caught
exception always leaves indices, rates and balances as they were.
"""


class ReserveCoreError(Exception):
    """Base class for all reserve core errors."""


class InvalidAmount(ReserveCoreError, ValueError):
    """An amount scales to zero units after fixed-point division."""


class InvalidMintAmount(InvalidAmount):
    pass


class InvalidBurnAmount(InvalidAmount):
    pass


class Unauthorized(ReserveCoreError, PermissionError):
    """Caller does not hold the pool's write capability."""


class ArithmeticOverflow(ReserveCoreError, OverflowError):
    """A value does not fit the fixed-point field width."""


class InsufficientBalance(ReserveCoreError, ValueError):
    """Burn or transfer exceeds the account's live balance."""


class InsufficientAllowance(InsufficientBalance):
    """Spend exceeds an approved or delegated allowance."""


class OperationNotSupported(ReserveCoreError, NotImplementedError):
    """Operation is not available on this ledger (e.g. debt transfers)."""


class PermitError(Unauthorized):
    """Permit signature is expired or was not signed by the owner."""


class ReserveNotFound(ReserveCoreError, KeyError):
    pass


class ReserveAlreadyInitialized(ReserveCoreError, ValueError):
    pass
