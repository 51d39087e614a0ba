"""
CENTRALIZED AUTHORIZATION SERVICE
==================================

All group membership checks live here.
Every group-scoped operation calls require_member FIRST, before any
other read or write.

NEVER bypass these checks!
"""

from splitbook.log import get_logger
from splitbook.services.errors import (
    AccessDeniedError, InvalidInputError, NotAMemberError
)


logger = get_logger(__name__)


# ============================================================
# GROUP MEMBERSHIP CHECKS
# ============================================================

def is_group_member(store, group_id, user_id):
    """Check if user is a member of group"""
    if group_id is None or user_id is None:
        return False
    return store.is_member(group_id, user_id)


def require_member(store, group_id, user_id):
    """
    Raise AccessDeniedError unless user is a member of group.

    A missing group looks the same as a group you are not in.
    """
    if not is_group_member(store, group_id, user_id):
        logger.warning("access_denied", group_id=group_id, user_id=user_id)
        raise AccessDeniedError("Access denied: you are not a member of this group")
    return True


# ============================================================
# PARTICIPANT CHECKS
# ============================================================

def require_participant(member_ids, user_id, side):
    """
    Check that a user referenced by a request (payer, payee, split owner)
    is in the group. `member_ids` is the already-loaded member set.
    """
    if isinstance(user_id, bool) or not isinstance(user_id, (int, str)):
        raise InvalidInputError(f"{side}_user_id must be a user id")

    if user_id not in member_ids:
        raise NotAMemberError(side, user_id)
    return True
