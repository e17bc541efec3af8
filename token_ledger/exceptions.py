"""
Ledger Error Taxonomy

Every failure raised by the ledger derives from LedgerError. Precondition
failures are also ValueErrors so callers that only care about "bad input"
can catch them uniformly.
"""


class LedgerError(Exception):
    """Base class for all ledger failures"""


class InvalidConfiguration(LedgerError, ValueError):
    """Ledger cannot be constructed or restored from the given configuration"""


class InvalidSender(LedgerError, ValueError):
    """Caller or transfer source is the null account"""


class InvalidRecipient(LedgerError, ValueError):
    """Transfer destination is the null account"""


class InvalidSpender(LedgerError, ValueError):
    """Approval target is the null account"""


class InvalidAmount(LedgerError, ValueError):
    """Amount is not an unsigned 256-bit integer"""


class InsufficientBalance(LedgerError, ValueError):
    """Source balance is below the requested amount"""

    def __init__(self, account: str, balance: int, requested: int):
        self.account = account
        self.balance = balance
        self.requested = requested
        super().__init__(
            f"Insufficient balance for {account}: balance={balance}, requested={requested}"
        )


class InsufficientAllowance(LedgerError, ValueError):
    """Spender's remaining allowance is below the requested amount"""

    def __init__(self, owner: str, spender: str, allowance: int, requested: int):
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.requested = requested
        super().__init__(
            f"Insufficient allowance for {spender} on {owner}: "
            f"allowance={allowance}, requested={requested}"
        )


class ReentrantCall(LedgerError, RuntimeError):
    """Mutating operation invoked while another one is still in progress"""


class ArithmeticUnderflow(LedgerError, ArithmeticError):
    """Checked subtraction would go below zero"""


class ArithmeticOverflow(LedgerError, ArithmeticError):
    """Checked addition would exceed the uint256 range"""


class InvariantViolation(LedgerError, AssertionError):
    """Ledger state no longer satisfies conservation or non-negativity"""


class NotOwner(LedgerError, PermissionError):
    """Ownership operation attempted by an account that does not hold the role"""
