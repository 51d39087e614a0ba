"""
SPLIT CALCULATOR
================

Pure functions turning an expense amount into per-member shares.

CRITICAL RULE: shares always sum to the expense amount EXACTLY.
All arithmetic is done in integer minor units (paise / cents); the
remainder of an equal split goes one minor unit at a time to the first
members in the order given.
"""

from collections import namedtuple
from decimal import Decimal, InvalidOperation

from splitbook.services.errors import (
    InvalidAmountError, InvalidInputError, SplitMismatchError
)


MINOR_UNIT = Decimal('0.01')
MINOR_UNITS_PER_MAJOR = 100

# Largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal('9999999999.99')

SplitShare = namedtuple('SplitShare', ['user_id', 'amount'])


# ============================================================
# MONEY HELPERS
# ============================================================

def to_money(value, field='amount'):
    """
    Coerce a number or numeric string to a 2-place Decimal.

    Floats go through str() so 100.01 stays 100.01.
    Anything finer than the minor unit is rejected, never rounded.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(f"{field} must be a number")

    if isinstance(value, float):
        value = str(value)

    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"{field} must be a number")

    if not amount.is_finite():
        raise InvalidAmountError(f"{field} must be a finite number")

    if abs(amount) > MAX_AMOUNT:
        raise InvalidAmountError(f"{field} cannot exceed {MAX_AMOUNT}")

    quantized = amount.quantize(MINOR_UNIT)

    if quantized != amount:
        raise InvalidAmountError(f"{field} cannot have more than 2 decimal places")

    return quantized


def to_minor_units(amount):
    return int(amount * MINOR_UNITS_PER_MAJOR)


def from_minor_units(units):
    return (Decimal(units) / MINOR_UNITS_PER_MAJOR).quantize(MINOR_UNIT)


def _require_positive(amount, field='amount'):
    amount = to_money(amount, field)
    if amount <= 0:
        raise InvalidAmountError(f"{field} must be greater than 0")
    return amount


# ============================================================
# EQUAL SPLIT
# ============================================================

def compute_equal_split(amount, member_ids):
    """
    Divide `amount` evenly across `member_ids`.

    Returns a list of SplitShare in the order of `member_ids`.
    The first (cents % n) members carry one extra minor unit.
    """
    member_ids = list(member_ids)
    if not member_ids:
        raise InvalidInputError("Cannot split an expense across zero members")

    if len(set(member_ids)) != len(member_ids):
        raise InvalidInputError("Member list contains duplicates")

    amount = _require_positive(amount)

    base, remainder = divmod(to_minor_units(amount), len(member_ids))

    return [
        SplitShare(user_id, from_minor_units(base + (1 if index < remainder else 0)))
        for index, user_id in enumerate(member_ids)
    ]


# ============================================================
# CUSTOM SPLIT
# ============================================================

def normalize_custom_splits(splits):
    """Accept SplitShares, (user_id, amount) pairs or dicts."""
    if splits is None:
        return []
    if not isinstance(splits, (list, tuple)):
        raise InvalidInputError("Splits must be a list")

    normalized = []
    for split in splits:
        if isinstance(split, dict):
            try:
                user_id, amount = split['user_id'], split['amount']
            except KeyError as e:
                raise InvalidInputError(f"Split is missing '{e.args[0]}'")
        else:
            try:
                user_id, amount = split
            except (TypeError, ValueError):
                raise InvalidInputError("Each split must be a (user_id, amount) pair")

        if isinstance(user_id, bool) or not isinstance(user_id, (int, str)):
            raise InvalidInputError(f"Invalid user_id in splits: {user_id!r}")

        normalized.append(SplitShare(user_id, to_money(amount, 'split amount')))
    return normalized


def validate_custom_split(amount, splits):
    """
    Check a caller-specified split.

    - every split amount strictly positive
    - every user at most once
    - sum equal to the expense amount, to the last minor unit

    Returns the normalized list of SplitShare.
    """
    amount = _require_positive(amount)
    shares = normalize_custom_splits(splits)

    if not shares:
        raise InvalidInputError("Custom split requires at least one split")

    seen = set()
    for share in shares:
        if share.amount <= 0:
            raise InvalidAmountError(
                f"Split amount for user {share.user_id} must be greater than 0"
            )
        if share.user_id in seen:
            raise InvalidInputError(f"User {share.user_id} appears more than once in splits")
        seen.add(share.user_id)

    total = sum((s.amount for s in shares), Decimal('0.00'))
    if total != amount:
        raise SplitMismatchError(expected=amount, actual=total)

    return shares
