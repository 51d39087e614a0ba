"""
Services Package
================

Business logic layer for the group ledger.

All ledger and authorization operations are handled here.
Routes should call these services, not manipulate models directly.
"""

from splitbook.services.errors import (
    ErrorKind,
    LedgerError,
    AccessDeniedError,
    NotFoundError,
    InvalidAmountError,
    InvalidInputError,
    SplitMismatchError,
    NotAMemberError,
    InvalidSettlementError,
    ConflictError,
    StorageFailureError,
    LedgerInvariantError
)

from splitbook.services.ledger_store import (
    LedgerStore,
    SqlAlchemyLedgerStore,
    get_ledger_store
)

from splitbook.services.split_calculator import (
    SplitShare,
    compute_equal_split,
    validate_custom_split,
    to_money
)

from splitbook.services.balance_engine import (
    fold_balances,
    compute_balances,
    assert_zero_sum
)

from splitbook.services.authorization_service import (
    is_group_member,
    require_member
)

from splitbook.services.settlement_service import (
    SettlementInstruction,
    settle
)

from splitbook.services.group_service import (
    create_group,
    get_group_details,
    add_expense,
    settle_balances,
    get_user_groups
)

from splitbook.services.friend_service import (
    send_friend_request,
    respond_to_friend_request,
    list_friends,
    get_friend,
    remove_friend,
    are_friends
)
