"""
GROUP ROUTES
============
Thin JSON layer over the group service.
"""

from flask import Blueprint, request
from flask_login import login_required, current_user

from splitbook.routes import (
    json_body, money, parse_datetime, register_error_handlers, success_response
)
from splitbook.services.errors import InvalidInputError
from splitbook.services.group_service import (
    create_group, get_group_details, add_expense, settle_balances, get_user_groups
)
from splitbook.services.ledger_store import get_ledger_store

groups_bp = Blueprint('groups', __name__, url_prefix='/api/groups')
register_error_handlers(groups_bp)


def _summary_to_dict(summary):
    return dict(
        summary,
        total_expenses=money(summary['total_expenses']),
        your_share=money(summary['your_share']),
        your_balance=money(summary['your_balance']),
    )


# ============== LIST ALL MY GROUPS ==============
@groups_bp.route('', methods=['GET'])
@login_required
def list_groups():
    groups = get_user_groups(get_ledger_store(), current_user.id)
    return success_response('Groups retrieved successfully',
                            [_summary_to_dict(g) for g in groups])


# ============== CREATE NEW GROUP ==============
@groups_bp.route('', methods=['POST'])
@login_required
def create_group_route():
    data = json_body(request)
    member_ids = data.get('member_ids')
    if member_ids is not None and not isinstance(member_ids, list):
        raise InvalidInputError("member_ids must be a list")

    group = create_group(
        get_ledger_store(),
        current_user.id,
        data.get('name'),
        data.get('description'),
        member_ids,
    )
    return success_response('Group created successfully', group.to_dict(), 201)


# ============== VIEW SINGLE GROUP ==============
@groups_bp.route('/<int:group_id>', methods=['GET'])
@login_required
def view_group(group_id):
    details = get_group_details(get_ledger_store(), current_user.id, group_id)

    data = details['group'].to_dict()
    data.update({
        'members': [
            dict(m, balance=money(m['balance']),
                 joined_at=m['joined_at'].isoformat() if m['joined_at'] else None)
            for m in details['members']
        ],
        'expenses': [e.to_dict() for e in details['expenses']],
        'total_expenses': money(details['total_expenses']),
        'balances': {str(k): money(v) for k, v in details['balances'].items()},
    })
    return success_response('Group details retrieved successfully', data)


# ============== ADD EXPENSE ==============
@groups_bp.route('/<int:group_id>/expenses', methods=['POST'])
@login_required
def add_expense_route(group_id):
    data = json_body(request)
    splits = data.get('splits')
    if splits is not None and not isinstance(splits, list):
        raise InvalidInputError("splits must be a list")

    expense = add_expense(
        get_ledger_store(),
        current_user.id,
        group_id,
        data.get('amount'),
        data.get('description'),
        date=parse_datetime(data.get('expense_date'), 'expense_date'),
        split_policy=data.get('split_type', 'equal'),
        custom_splits=splits,
    )
    return success_response('Expense added successfully', expense.to_dict(), 201)


# ============== SETTLE UP ==============
@groups_bp.route('/<int:group_id>/settle', methods=['POST'])
@login_required
def settle_route(group_id):
    data = json_body(request)
    settlements = data.get('settlements')
    if not isinstance(settlements, list):
        raise InvalidInputError("settlements must be a list")

    for item in settlements:
        if not isinstance(item, dict):
            raise InvalidInputError("Each settlement must be an object")
        item['expense_date'] = parse_datetime(item.get('expense_date'), 'expense_date')

    created = settle_balances(get_ledger_store(), current_user.id, group_id, settlements)
    return success_response('Balances settled successfully',
                            [e.to_dict() for e in created])
