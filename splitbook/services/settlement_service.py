"""
SETTLEMENT SERVICE - ATOMIC SETTLE-UP
=====================================

CRITICAL BUSINESS RULES:
1. A settlement is a ledger EVENT, never an edit of existing splits
2. Each settlement = one expense (kind='settlement', payer=from)
   with exactly two splits: from -> -amount, to -> +amount
3. The whole batch is validated BEFORE any write
4. The whole batch is written in ONE transaction (all or nothing)
5. Settlements are applied in the order given
6. Not idempotent: settling twice records the transfer twice
"""

from collections import namedtuple

from splitbook.clock import system_clock
from splitbook.log import get_logger
from splitbook.models import GroupExpense, ExpenseSplit, ExpenseKind
from splitbook.services.authorization_service import (
    require_member, require_participant
)
from splitbook.services.errors import (
    InvalidAmountError, InvalidInputError, InvalidSettlementError
)
from splitbook.services.split_calculator import to_money


logger = get_logger(__name__)

DEFAULT_SETTLEMENT_DESCRIPTION = "Settlement payment"


class SettlementInstruction(namedtuple(
        'SettlementInstruction',
        ['from_user_id', 'to_user_id', 'amount', 'description', 'expense_date'])):
    """One peer-to-peer payment inside a settle-up batch."""
    __slots__ = ()

    def __new__(cls, from_user_id, to_user_id, amount, description=None, expense_date=None):
        return super().__new__(cls, from_user_id, to_user_id, amount, description, expense_date)

    @classmethod
    def from_dict(cls, data):
        try:
            return cls(
                from_user_id=data['from_user_id'],
                to_user_id=data['to_user_id'],
                amount=data['amount'],
                description=data.get('description'),
                expense_date=data.get('expense_date'),
            )
        except KeyError as e:
            raise InvalidInputError(f"Settlement is missing '{e.args[0]}'")


# ============================================================
# VALIDATION (no writes)
# ============================================================

def validate_settlement(instruction, member_ids):
    """
    Check one settlement against the group's members.

    Returns the settlement amount as a 2-place Decimal.
    """
    if instruction.from_user_id == instruction.to_user_id:
        raise InvalidSettlementError("Cannot settle with yourself: from and to are the same user")

    amount = to_money(instruction.amount)
    if amount <= 0:
        raise InvalidAmountError("Settlement amount must be greater than 0")

    require_participant(member_ids, instruction.from_user_id, 'from')
    require_participant(member_ids, instruction.to_user_id, 'to')

    return amount


# ============================================================
# SETTLE (ATOMIC)
# ============================================================

def build_settlement_expense(group_id, instruction, amount, now):
    expense = GroupExpense(
        group_id=group_id,
        paid_by=instruction.from_user_id,
        amount=amount,
        description=instruction.description or DEFAULT_SETTLEMENT_DESCRIPTION,
        expense_date=instruction.expense_date or now,
        kind=ExpenseKind.SETTLEMENT.value,
        created_at=now,
    )
    splits = [
        ExpenseSplit(user_id=instruction.from_user_id, amount=-amount, created_at=now),
        ExpenseSplit(user_id=instruction.to_user_id, amount=amount, created_at=now),
    ]
    return expense, splits


def settle(store, group_id, caller_id, settlements, clock=None):
    """
    Record a batch of settlements for a group.

    Raises before writing anything if the caller is not a member or any
    instruction is invalid. Returns the created settlement expenses.
    """
    clock = clock or system_clock

    require_member(store, group_id, caller_id)

    instructions = [
        s if isinstance(s, SettlementInstruction) else SettlementInstruction.from_dict(s)
        for s in (settlements or [])
    ]
    if not instructions:
        raise InvalidInputError("At least one settlement is required")

    member_ids = set(store.list_member_ids(group_id))
    amounts = [validate_settlement(i, member_ids) for i in instructions]

    now = clock.now()
    created = []

    with store.transaction():
        for instruction, amount in zip(instructions, amounts):
            expense, splits = build_settlement_expense(group_id, instruction, amount, now)
            store.add_expense(expense, splits)
            created.append(expense)

    for expense in created:
        logger.info(
            "settlement_recorded",
            group_id=group_id,
            expense_id=expense.id,
            from_user_id=expense.paid_by,
            amount=str(expense.amount),
            recorded_by=caller_id,
        )

    return created
