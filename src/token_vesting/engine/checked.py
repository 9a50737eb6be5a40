"""Checked 64-bit integer arithmetic.

Python integers never wrap, so range is enforced explicitly: any result
outside the unsigned (amounts) or signed (timestamps) 64-bit range raises
MathOverflow instead of being silently accepted.
"""

from __future__ import annotations

from token_vesting.errors import MathOverflow

U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1


def is_u64(value: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= U64_MAX


def is_i64(value: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and I64_MIN <= value <= I64_MAX


def _u64(value: int, op: str) -> int:
    if not 0 <= value <= U64_MAX:
        raise MathOverflow(f"Math overflow in {op}.")
    return value


def checked_add(a: int, b: int) -> int:
    return _u64(a + b, "addition")


def checked_sub(a: int, b: int) -> int:
    return _u64(a - b, "subtraction")


def checked_mul(a: int, b: int) -> int:
    return _u64(a * b, "multiplication")


def checked_div(a: int, b: int) -> int:
    """Floor division; a zero divisor is an overflow, not a ZeroDivisionError."""
    if b == 0:
        raise MathOverflow("Math overflow in division by zero.")
    return _u64(a // b, "division")
