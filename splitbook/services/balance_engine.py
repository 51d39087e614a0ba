"""
BALANCE ENGINE
==============

Net position of every member in a group, folded from the expense ledger.

Sign convention: positive = the group owes them, negative = they owe the group.

Fold rule:
- ordinary expense: payer += expense amount
- every split (ordinary or settlement): owner -= split amount

A settlement carries splits (from: -X, to: +X) and no payer credit, so it
raises the payer's balance by X and lowers the receiver's by X.

Balances are NEVER stored. They are recomputed from the ledger on each read.
"""

from decimal import Decimal

from splitbook.models import ExpenseKind
from splitbook.services.errors import LedgerInvariantError


ZERO = Decimal('0.00')


def _kind(expense):
    kind = getattr(expense, 'kind', ExpenseKind.EXPENSE.value)
    return kind.value if isinstance(kind, ExpenseKind) else kind


def fold_balances(expenses, member_ids=()):
    """Fold expenses (each with `.splits`) into {user_id: Decimal}."""
    balances = {user_id: ZERO for user_id in member_ids}

    for expense in expenses:
        if _kind(expense) == ExpenseKind.EXPENSE.value:
            balances[expense.paid_by] = balances.get(expense.paid_by, ZERO) + Decimal(expense.amount)

        for split in expense.splits:
            balances[split.user_id] = balances.get(split.user_id, ZERO) - Decimal(split.amount)

    return balances


def compute_balances(store, group_id):
    """Current balances for every member of a group."""
    return fold_balances(
        store.list_expenses(group_id),
        store.list_member_ids(group_id),
    )


def assert_zero_sum(balances):
    """The balances of one group always cancel out."""
    total = sum(balances.values(), ZERO)
    if total != ZERO:
        raise LedgerInvariantError(f"Group balances sum to {total}, expected 0")
    return True


def get_user_share(expenses, user_id):
    """What `user_id` consumed across ordinary expenses."""
    return sum(
        (Decimal(s.amount)
         for e in expenses if _kind(e) == ExpenseKind.EXPENSE.value
         for s in e.splits if s.user_id == user_id),
        ZERO,
    )


def get_total_expenses(expenses):
    """Total group spend. Settlements move money, they are not spend."""
    return sum(
        (Decimal(e.amount) for e in expenses if _kind(e) == ExpenseKind.EXPENSE.value),
        ZERO,
    )
