"""
GROUP SERVICE
=============

Handles:
- Group creation (creator always the first member)
- Group details with live balances
- Adding expenses (equal / custom split)
- Settling balances
- Per-user group dashboard

Expense creation flow:
  guard(member?) -> no  -> AccessDenied
                 -> yes -> equal  -> compute_equal_split  -> persist
                        -> custom -> validate_custom_split -> SplitMismatch | persist
"""

from splitbook.clock import system_clock
from splitbook.log import get_logger
from splitbook.models import (
    Group, GroupExpense, ExpenseSplit, ExpenseKind, SplitPolicy
)
from splitbook.services.authorization_service import (
    require_member, require_participant
)
from splitbook.services.balance_engine import (
    fold_balances, get_total_expenses, get_user_share
)
from splitbook.services.errors import InvalidInputError, NotFoundError
from splitbook.services.settlement_service import settle
from splitbook.services.split_calculator import (
    compute_equal_split, validate_custom_split
)


logger = get_logger(__name__)


# ============================================================
# CREATE GROUP
# ============================================================

def create_group(store, creator_id, name, description, member_ids, clock=None):
    """
    Create a group with the creator plus `member_ids`.

    Every member id must be an existing user. Duplicates (including the
    creator listed again) are collapsed; the creator always joins first.
    """
    clock = clock or system_clock

    name = (name or '').strip()
    if not name:
        raise InvalidInputError("Group name is required")

    member_ids = list(member_ids or [])
    if not member_ids:
        raise InvalidInputError("At least one member is required")

    ordered_ids = []
    for user_id in [creator_id] + member_ids:
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise InvalidInputError(f"Invalid member id: {user_id!r}")
        if user_id not in ordered_ids:
            ordered_ids.append(user_id)

    users = store.get_users(ordered_ids)
    for user_id in ordered_ids:
        if user_id not in users:
            raise NotFoundError(f"Member with ID {user_id} not found", user_id=user_id)

    now = clock.now()
    group = Group(
        name=name,
        description=(description or '').strip(),
        created_by=creator_id,
        created_at=now,
    )

    with store.transaction():
        store.add_group(group, ordered_ids)

    logger.info("group_created", group_id=group.id, created_by=creator_id,
                member_count=len(ordered_ids))
    return group


# ============================================================
# GROUP DETAILS
# ============================================================

def get_group_details(store, caller_id, group_id):
    """
    Group, members, expenses (newest first), total spend and balances.

    Returns a dict; balances map user_id -> Decimal.
    """
    require_member(store, group_id, caller_id)

    group = store.get_group(group_id)
    if not group:
        raise NotFoundError(f"Group {group_id} not found")

    members = store.list_members(group_id)
    member_ids = [m.user_id for m in members]
    expenses = store.list_expenses(group_id)
    balances = fold_balances(expenses, member_ids)

    return {
        'group': group,
        'members': [
            {
                'id': m.user_id,
                'name': m.user.name if m.user else None,
                'photo_url': m.user.photo_url if m.user else None,
                'joined_at': m.joined_at,
                'balance': balances[m.user_id],
            }
            for m in members
        ],
        'expenses': expenses,
        'total_expenses': get_total_expenses(expenses),
        'balances': balances,
    }


# ============================================================
# ADD EXPENSE (ATOMIC)
# ============================================================

def _parse_policy(split_policy):
    if isinstance(split_policy, SplitPolicy):
        return split_policy
    try:
        return SplitPolicy(split_policy)
    except ValueError:
        raise InvalidInputError(
            f"Unknown split policy '{split_policy}'. Use 'equal' or 'custom'"
        )


def add_expense(store, caller_id, group_id, amount, description, date=None,
                split_policy=SplitPolicy.EQUAL, custom_splits=None, clock=None):
    """
    Record an expense paid by the caller and its splits as one unit.

    Returns the persisted GroupExpense.
    """
    clock = clock or system_clock

    require_member(store, group_id, caller_id)

    policy = _parse_policy(split_policy)
    description = (description or '').strip()
    if not description:
        raise InvalidInputError("Description is required")

    member_ids = store.list_member_ids(group_id)

    if policy is SplitPolicy.EQUAL:
        shares = compute_equal_split(amount, member_ids)
    else:
        shares = validate_custom_split(amount, custom_splits)
        members = set(member_ids)
        for share in shares:
            require_participant(members, share.user_id, 'split')

    total = sum(s.amount for s in shares)
    now = clock.now()

    expense = GroupExpense(
        group_id=group_id,
        paid_by=caller_id,
        amount=total,
        description=description,
        expense_date=date or now,
        kind=ExpenseKind.EXPENSE.value,
        created_at=now,
    )
    splits = [
        ExpenseSplit(user_id=s.user_id, amount=s.amount, created_at=now)
        for s in shares
    ]

    with store.transaction():
        store.add_expense(expense, splits)

    logger.info("expense_added", group_id=group_id, expense_id=expense.id,
                paid_by=caller_id, amount=str(expense.amount), policy=policy.value)
    return expense


# ============================================================
# SETTLE BALANCES
# ============================================================

def settle_balances(store, caller_id, group_id, settlements, clock=None):
    """Record a batch of settlements. See settlement_service.settle."""
    return settle(store, group_id, caller_id, settlements, clock=clock)


# ============================================================
# USER DASHBOARD
# ============================================================

def get_user_groups(store, user_id):
    """Every group the user is in, with spend, their share and their balance."""
    summaries = []

    for group_id in store.list_user_group_ids(user_id):
        group = store.get_group(group_id)
        member_ids = store.list_member_ids(group_id)
        expenses = store.list_expenses(group_id)
        balances = fold_balances(expenses, member_ids)

        summaries.append({
            'id': group.id,
            'name': group.name,
            'description': group.description or '',
            'member_count': len(member_ids),
            'total_expenses': get_total_expenses(expenses),
            'your_share': get_user_share(expenses, user_id),
            'your_balance': balances.get(user_id),
        })

    return summaries
