"""
LEDGER ERRORS
=============

Every failure the services raise carries an ErrorKind.
The request layer switches on `kind`, never on the message text.
"""

from enum import Enum


class ErrorKind(Enum):
    ACCESS_DENIED = 'access_denied'
    NOT_FOUND = 'not_found'
    INVALID_AMOUNT = 'invalid_amount'
    INVALID_INPUT = 'invalid_input'
    SPLIT_MISMATCH = 'split_mismatch'
    NOT_A_MEMBER = 'not_a_member'
    INVALID_SETTLEMENT = 'invalid_settlement'
    CONFLICT = 'conflict'
    STORAGE_FAILURE = 'storage_failure'


class LedgerError(Exception):
    """Base exception for ledger operations"""
    kind = None

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        data = {'error': self.kind.value, 'message': self.message}
        data.update({k: _jsonable(v) for k, v in self.details.items()})
        return data


def _jsonable(value):
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


class AccessDeniedError(LedgerError):
    """Caller is not a member of the group"""
    kind = ErrorKind.ACCESS_DENIED


class NotFoundError(LedgerError):
    """Group, user or record does not exist"""
    kind = ErrorKind.NOT_FOUND


class InvalidAmountError(LedgerError):
    """Amount is zero, negative, or finer than the minor unit"""
    kind = ErrorKind.INVALID_AMOUNT


class InvalidInputError(LedgerError):
    """Malformed request: empty lists, duplicates, unknown policy"""
    kind = ErrorKind.INVALID_INPUT


class SplitMismatchError(LedgerError):
    """Custom splits do not add up to the expense amount"""
    kind = ErrorKind.SPLIT_MISMATCH

    def __init__(self, expected, actual):
        self.expected = expected
        self.actual = actual
        self.delta = expected - actual
        super().__init__(
            f"Split amounts must equal the expense amount: "
            f"expected {expected}, got {actual} (delta {self.delta})",
            expected=expected, actual=actual, delta=self.delta,
        )


class NotAMemberError(LedgerError):
    """A referenced user is not in the group"""
    kind = ErrorKind.NOT_A_MEMBER

    def __init__(self, side, user_id):
        self.side = side
        self.user_id = user_id
        super().__init__(
            f"{side}_user_id {user_id} is not a member of this group",
            side=side, user_id=user_id,
        )


class InvalidSettlementError(LedgerError):
    """A settlement that can never be valid, e.g. paying yourself"""
    kind = ErrorKind.INVALID_SETTLEMENT


class ConflictError(LedgerError):
    """Record already exists"""
    kind = ErrorKind.CONFLICT


class StorageFailureError(LedgerError):
    """Underlying database error. Safe for the caller to retry."""
    kind = ErrorKind.STORAGE_FAILURE


class LedgerInvariantError(AssertionError):
    """Balances of a group no longer sum to zero"""
    pass
