"""Vesting accounting engine."""

from token_vesting.engine.calculator import claimable_amount, cliff_amount, vested_amount
from token_vesting.engine.checked import (
    I64_MAX,
    I64_MIN,
    U64_MAX,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    is_i64,
    is_u64,
)

__all__ = [
    "claimable_amount", "cliff_amount", "vested_amount",
    "I64_MAX", "I64_MIN", "U64_MAX",
    "checked_add", "checked_div", "checked_mul", "checked_sub",
    "is_i64", "is_u64",
]
