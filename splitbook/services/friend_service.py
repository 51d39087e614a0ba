"""
FRIEND SERVICE
==============

Handles:
- Sending friend requests (by phone or email)
- Accepting / rejecting requests
- Listing friends and pending requests
- Removing friends

One row per unordered user pair, so every lookup goes through
Friendship.pair() and never queries both orientations.

Every write commits or rolls back here; database errors surface as
StorageFailureError like the rest of the ledger.
"""

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from splitbook.clock import utcnow
from splitbook.extensions import db
from splitbook.log import get_logger
from splitbook.models import User, Friendship, FriendshipStatus
from splitbook.services.errors import (
    ConflictError, InvalidInputError, NotFoundError, LedgerError,
    StorageFailureError
)


logger = get_logger(__name__)


def _storage_failure(e):
    db.session.rollback()
    logger.error("storage_failure", error=str(e), exc_info=True)
    return StorageFailureError("Storage operation failed")


def _get_edge(user_a, user_b):
    low, high = Friendship.pair(user_a, user_b)
    return Friendship.query.filter_by(user_low_id=low, user_high_id=high).first()


def are_friends(user_a, user_b):
    """Check if two users have an accepted friendship"""
    edge = _get_edge(user_a, user_b)
    return edge is not None and edge.status == FriendshipStatus.ACCEPTED.value


# ============================================================
# SEND REQUEST
# ============================================================

def send_friend_request(user_id, phone=None, email=None):
    """Send a friend request to the user with this phone or email."""
    try:
        if phone:
            target = User.query.filter_by(phone=phone).first()
        elif email:
            target = User.query.filter_by(email=email.strip().lower()).first()
        else:
            raise InvalidInputError("Phone or email is required")

        if not target:
            raise NotFoundError("User not found")

        if target.id == user_id:
            raise InvalidInputError("Cannot send friend request to yourself")

        existing = _get_edge(user_id, target.id)
        if existing:
            if existing.status == FriendshipStatus.ACCEPTED.value:
                raise ConflictError("Already friends with this user")
            raise ConflictError("Friend request already sent or received")

        low, high = Friendship.pair(user_id, target.id)
        friendship = Friendship(
            user_low_id=low,
            user_high_id=high,
            requested_by=user_id,
            status=FriendshipStatus.PENDING.value,
        )
        db.session.add(friendship)
        db.session.commit()

        logger.info("friend_request_sent", from_user_id=user_id, to_user_id=target.id)
        return friendship

    except LedgerError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        raise _storage_failure(e) from e


# ============================================================
# RESPOND TO REQUEST
# ============================================================

def respond_to_friend_request(user_id, friendship_id, action):
    """
    Accept or reject a pending request.
    Only the user who did NOT send it may respond.
    """
    try:
        if action not in ('accept', 'reject'):
            raise InvalidInputError("Invalid action: must be 'accept' or 'reject'")

        friendship = db.session.get(Friendship, friendship_id)
        if (not friendship
                or friendship.status != FriendshipStatus.PENDING.value
                or friendship.requested_by == user_id
                or user_id not in (friendship.user_low_id, friendship.user_high_id)):
            raise NotFoundError("Friend request not found")

        if action == 'accept':
            friendship.status = FriendshipStatus.ACCEPTED.value
            friendship.accepted_at = utcnow()
        else:
            db.session.delete(friendship)

        db.session.commit()

        logger.info("friend_request_" + ("accepted" if action == 'accept' else "rejected"),
                    user_id=user_id, friendship_id=friendship_id)
        return friendship if action == 'accept' else None

    except LedgerError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        raise _storage_failure(e) from e


# ============================================================
# LIST / GET
# ============================================================

def list_friends(user_id):
    """Accepted friends plus requests waiting on this user."""
    try:
        edges = Friendship.query.options(
            joinedload(Friendship.user_low),
            joinedload(Friendship.user_high),
        ).filter(
            or_(Friendship.user_low_id == user_id, Friendship.user_high_id == user_id)
        ).order_by(Friendship.id).all()
    except SQLAlchemyError as e:
        raise _storage_failure(e) from e

    friends = []
    pending_requests = []

    for edge in edges:
        other = edge.other_user(user_id)
        if edge.status == FriendshipStatus.ACCEPTED.value:
            friends.append(other.to_dict())
        elif edge.requested_by != user_id:
            pending_requests.append({
                'id': edge.id,
                'name': other.name,
                'phone': other.phone,
                'requested_by': edge.requested_by,
                'created_at': edge.created_at.isoformat() if edge.created_at else None,
            })

    return {'friends': friends, 'pending_requests': pending_requests}


def get_friend(user_id, friend_id):
    try:
        if not are_friends(user_id, friend_id):
            raise NotFoundError("Friend not found")
        return db.session.get(User, friend_id)
    except SQLAlchemyError as e:
        raise _storage_failure(e) from e


# ============================================================
# REMOVE
# ============================================================

def remove_friend(user_id, friend_id):
    """Delete the edge between two users, whatever its status."""
    try:
        edge = _get_edge(user_id, friend_id)
        if not edge:
            raise NotFoundError("Friend relationship not found")

        db.session.delete(edge)
        db.session.commit()

        logger.info("friend_removed", user_id=user_id, friend_id=friend_id)
        return True

    except SQLAlchemyError as e:
        raise _storage_failure(e) from e
