"""
Token Amount Arithmetic

Unsigned 256-bit amounts in the smallest denomination unit. Every addition
and subtraction on balances and allowances goes through the checked helpers
here. NEVER wraps around.
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from .exceptions import ArithmeticOverflow, ArithmeticUnderflow, InvalidAmount


UINT256_MAX = 2 ** 256 - 1
UINT8_MAX = 2 ** 8 - 1
DEFAULT_DECIMALS = 18


def is_uint256(value) -> bool:
    """Check that value is a plain int inside [0, 2**256 - 1]"""
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value <= UINT256_MAX


def require_amount(value) -> int:
    """
    Validate an amount argument

    Raises:
        InvalidAmount: If value is not an unsigned 256-bit integer
    """
    if not is_uint256(value):
        raise InvalidAmount(f"Amount must be an integer in [0, 2**256 - 1], got {value!r}")
    return value


def checked_add(a: int, b: int) -> int:
    """Add two amounts, refusing to exceed the uint256 range"""
    result = a + b
    if result > UINT256_MAX:
        raise ArithmeticOverflow(f"uint256 overflow: {a} + {b}")
    return result


def checked_sub(a: int, b: int) -> int:
    """Subtract two amounts, refusing to go below zero"""
    if b > a:
        raise ArithmeticUnderflow(f"uint256 underflow: {a} - {b}")
    return a - b


def parse_amount(text: Union[str, int]) -> int:
    """
    Parse an amount given as a base-10 string (as sent over the API)

    Args:
        text: Decimal digits, optionally surrounded by whitespace

    Returns:
        Validated amount

    Raises:
        InvalidAmount: If the text is not a non-negative integer in range
    """
    if isinstance(text, int) and not isinstance(text, bool):
        return require_amount(text)
    if not isinstance(text, str):
        raise InvalidAmount(f"Amount must be a string of digits, got {text!r}")

    stripped = text.strip()
    if not (stripped.isascii() and stripped.isdigit()):
        raise InvalidAmount(f"Amount must be a string of digits, got {text!r}")
    return require_amount(int(stripped))


def to_base_units(whole: Union[int, str, Decimal], decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Convert a human-scale token quantity to smallest denomination units

    Example: to_base_units(1_000_000_000) == 10**27 with 18 decimals

    Raises:
        InvalidAmount: If the quantity has more fractional digits than decimals
            allows or falls outside uint256
    """
    with localcontext() as ctx:
        # uint256 needs 78 significant digits
        ctx.prec = 100
        try:
            quantity = Decimal(str(whole))
        except InvalidOperation:
            raise InvalidAmount(f"Not a number: {whole!r}")
        if not quantity.is_finite():
            raise InvalidAmount(f"Not a finite number: {whole!r}")

        scaled = quantity.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidAmount(f"{whole} has more than {decimals} fractional digits")
    return require_amount(int(scaled))


def format_amount(amount: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Format base units as a human-scale decimal string"""
    if decimals == 0:
        return str(amount)
    whole, fraction = divmod(amount, 10 ** decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0")
    if not fraction_text:
        return str(whole)
    return f"{whole}.{fraction_text}"
