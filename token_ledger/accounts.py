"""
Account Identifiers

Accounts are opaque string keys (typically 0x-prefixed hex addresses).
The null account is the reserved "no account" sentinel: it only ever
appears as the sender of the genesis Transfer.
"""

from typing import Optional


NULL_ACCOUNT = "0x" + "0" * 40


def is_null_account(account: Optional[str]) -> bool:
    """
    Check whether an identifier denotes the null account

    None, the empty string and any all-zero hex address are all treated as
    the null account.
    """
    if account is None:
        return True
    if not isinstance(account, str):
        raise TypeError(f"Account identifier must be a string, got {type(account).__name__}")

    stripped = account.strip()
    if not stripped:
        return True
    if stripped[:2].lower() == "0x":
        digits = stripped[2:]
        return len(digits) > 0 and set(digits) == {"0"}
    return False


def require_account(account: Optional[str]) -> str:
    """
    Validate an identifier used as a caller, owner or source

    None maps to NULL_ACCOUNT so the caller-side null check rejects it.
    """
    if account is None:
        return NULL_ACCOUNT
    if not isinstance(account, str):
        raise TypeError(f"Account identifier must be a string, got {account!r}")
    return account


def short_account(account: str) -> str:
    """Abbreviate long addresses for log lines"""
    if len(account) <= 14:
        return account
    return f"{account[:8]}...{account[-4:]}"
