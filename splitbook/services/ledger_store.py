"""
LEDGER STORE
============

Persistence seam for the group ledger.

The services only talk to a LedgerStore, never to the session directly, so
every multi-record append happens inside one `transaction()` scope:
commit on success, rollback on ANY error, on every exit path.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from splitbook.log import get_logger
from splitbook.models import (
    User, Group, GroupMember, GroupExpense
)
from splitbook.services.errors import LedgerError, StorageFailureError


logger = get_logger(__name__)


class LedgerStore(ABC):
    """
    Abstract interface for ledger storage.

    Writes only flush; durability comes from the enclosing transaction().
    """

    @abstractmethod
    def transaction(self):
        """Context manager wrapping one atomic unit of work."""
        pass

    @abstractmethod
    def get_users(self, user_ids):
        """Return {user_id: User} for the ids that exist."""
        pass

    @abstractmethod
    def add_group(self, group, member_ids):
        """Persist a group and its members, in the given order."""
        pass

    @abstractmethod
    def get_group(self, group_id):
        pass

    @abstractmethod
    def is_member(self, group_id, user_id):
        pass

    @abstractmethod
    def list_member_ids(self, group_id):
        """Member user ids in join order."""
        pass

    @abstractmethod
    def list_members(self, group_id):
        """GroupMember rows in join order."""
        pass

    @abstractmethod
    def list_user_group_ids(self, user_id):
        pass

    @abstractmethod
    def add_expense(self, expense, splits):
        """Persist an expense with its splits as one unit."""
        pass

    @abstractmethod
    def list_expenses(self, group_id):
        """All expenses of a group with splits loaded, newest first."""
        pass


class SqlAlchemyLedgerStore(LedgerStore):
    """LedgerStore backed by a SQLAlchemy session."""

    def __init__(self, session):
        self.session = session
        self._depth = 0

    @contextmanager
    def transaction(self):
        # Nested scopes join the outer one; only the outermost commits.
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            self.session.commit()
        except LedgerError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("storage_failure", error=str(e), exc_info=True)
            raise StorageFailureError("Storage operation failed") from e
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._depth = 0

    # ============================================================
    # USERS
    # ============================================================

    def get_users(self, user_ids):
        ids = list(user_ids)
        if not ids:
            return {}
        users = self.session.query(User).filter(User.id.in_(ids)).all()
        return {u.id: u for u in users}

    # ============================================================
    # GROUPS & MEMBERS
    # ============================================================

    def add_group(self, group, member_ids):
        self.session.add(group)
        self.session.flush()

        for user_id in member_ids:
            self.session.add(GroupMember(
                group_id=group.id,
                user_id=user_id,
                joined_at=group.created_at,
            ))
        self.session.flush()
        return group

    def get_group(self, group_id):
        return self.session.get(Group, group_id)

    def is_member(self, group_id, user_id):
        membership = self.session.query(GroupMember).filter_by(
            group_id=group_id,
            user_id=user_id
        ).first()
        return membership is not None

    def list_member_ids(self, group_id):
        return [m.user_id for m in self.list_members(group_id)]

    def list_members(self, group_id):
        return self.session.query(GroupMember).filter_by(
            group_id=group_id
        ).order_by(GroupMember.id).all()

    def list_user_group_ids(self, user_id):
        rows = self.session.query(GroupMember.group_id).filter_by(
            user_id=user_id
        ).order_by(GroupMember.id).all()
        return [row[0] for row in rows]

    # ============================================================
    # EXPENSES & SPLITS
    # ============================================================

    def add_expense(self, expense, splits):
        self.session.add(expense)
        self.session.flush()

        for split in splits:
            expense.splits.append(split)
        self.session.flush()
        return expense

    def list_expenses(self, group_id):
        return self.session.query(GroupExpense).filter_by(
            group_id=group_id
        ).order_by(
            GroupExpense.expense_date.desc(),
            GroupExpense.id.desc()
        ).all()


def get_ledger_store():
    """Store bound to the Flask-SQLAlchemy session of the current app."""
    from splitbook.extensions import db
    return SqlAlchemyLedgerStore(db.session)
