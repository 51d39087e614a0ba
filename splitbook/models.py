from decimal import Decimal
from enum import Enum

from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin

from splitbook.clock import utcnow
from splitbook.extensions import db


# ============================================================
# ENUMS
# ============================================================
class ExpenseKind(Enum):
    EXPENSE = 'expense'
    SETTLEMENT = 'settlement'


class SplitPolicy(Enum):
    EQUAL = 'equal'
    CUSTOM = 'custom'


class FriendshipStatus(Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'


def _money(value):
    """Render a Decimal for JSON without losing the minor unit."""
    if value is None:
        return None
    return str(Decimal(value).quantize(Decimal('0.01')))


def _iso(value):
    return value.isoformat() if value else None


# ============================================================
# USER MODEL
# ============================================================
class User(UserMixin, db.Model):
    """
    Represents a registered user in the system.
    Users create groups, pay expenses, settle up and befriend each other.
    """
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(20), unique=True, nullable=True)
    photo_url = db.Column(db.String(255), nullable=True)
    password_hash = db.Column(db.String(256), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationships
    groups_created = db.relationship('Group', backref='creator', lazy='dynamic')
    memberships = db.relationship('GroupMember', backref='user', lazy='dynamic')

    def set_password(self, password):
        """Hash and set the user's password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Verify password against stored hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'photo_url': self.photo_url,
        }

    def __repr__(self):
        return f'<User {self.name}>'


# ============================================================
# GROUP MODEL
# ============================================================
class Group(db.Model):
    """
    A named set of users who share expenses.
    The creator is always the first member.
    """
    __tablename__ = 'groups'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.String(1000), default='')
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationships
    members = db.relationship('GroupMember', backref='group', lazy='dynamic',
                              cascade='all, delete-orphan',
                              order_by='GroupMember.id')
    expenses = db.relationship('GroupExpense', backref='group', lazy='dynamic',
                               cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description or '',
            'created_by': self.created_by,
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Group {self.name}>'


# ============================================================
# GROUP MEMBER MODEL
# ============================================================
class GroupMember(db.Model):
    """
    Membership of a user in a group.
    Insertion order (id) is the stable order used for split remainders.
    """
    __tablename__ = 'group_members'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    joined_at = db.Column(db.DateTime, default=utcnow)

    # Prevent duplicate memberships
    __table_args__ = (
        db.UniqueConstraint('group_id', 'user_id', name='unique_group_member'),
    )

    def __repr__(self):
        return f'<GroupMember user={self.user_id} group={self.group_id}>'


# ============================================================
# GROUP EXPENSE MODEL
# ============================================================
class GroupExpense(db.Model):
    """
    Money one member fronted for the group, or a settlement between two members.

    CRITICAL: never persisted without its full set of splits.
    - kind='expense': splits sum to amount
    - kind='settlement': exactly two splits, from=-amount and to=+amount
    """
    __tablename__ = 'group_expenses'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id'), nullable=False)
    paid_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    expense_date = db.Column(db.DateTime, nullable=False)
    kind = db.Column(db.String(20), nullable=False, default=ExpenseKind.EXPENSE.value)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationships
    payer = db.relationship('User', foreign_keys=[paid_by])
    splits = db.relationship('ExpenseSplit', backref='expense', lazy='selectin',
                             cascade='all, delete-orphan',
                             order_by='ExpenseSplit.id')

    def to_dict(self, include_splits=True):
        data = {
            'id': self.id,
            'group_id': self.group_id,
            'amount': _money(self.amount),
            'description': self.description,
            'paid_by': self.paid_by,
            'payer_name': self.payer.name if self.payer else None,
            'kind': self.kind,
            'expense_date': _iso(self.expense_date),
            'created_at': _iso(self.created_at),
        }
        if include_splits:
            data['splits'] = [s.to_dict() for s in self.splits]
        return data

    def __repr__(self):
        return f'<GroupExpense {self.kind} amount={self.amount} by user={self.paid_by}>'


# ============================================================
# EXPENSE SPLIT MODEL
# ============================================================
class ExpenseSplit(db.Model):
    """
    One member's signed share of one expense.
    Positive = they consumed / received, negative = they paid down debt.
    """
    __tablename__ = 'expense_splits'

    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(db.Integer, db.ForeignKey('group_expenses.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (
        db.UniqueConstraint('expense_id', 'user_id', name='unique_expense_split'),
    )

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'amount': _money(self.amount),
        }

    def __repr__(self):
        return f'<ExpenseSplit user={self.user_id} amount={self.amount}>'


# ============================================================
# FRIENDSHIP MODEL
# ============================================================
class Friendship(db.Model):
    """
    One undirected edge per unordered user pair.

    user_low_id < user_high_id always; requested_by says who asked.
    """
    __tablename__ = 'friendships'

    id = db.Column(db.Integer, primary_key=True)
    user_low_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    user_high_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    requested_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=FriendshipStatus.PENDING.value)
    created_at = db.Column(db.DateTime, default=utcnow)
    accepted_at = db.Column(db.DateTime, nullable=True)

    # Relationships
    user_low = db.relationship('User', foreign_keys=[user_low_id])
    user_high = db.relationship('User', foreign_keys=[user_high_id])

    __table_args__ = (
        db.UniqueConstraint('user_low_id', 'user_high_id', name='unique_friend_pair'),
        db.CheckConstraint('user_low_id < user_high_id', name='ordered_friend_pair'),
    )

    @staticmethod
    def pair(a, b):
        """Canonical (low, high) key for two user ids."""
        return (a, b) if a < b else (b, a)

    def other_user(self, user_id):
        return self.user_high if user_id == self.user_low_id else self.user_low

    def __repr__(self):
        return f'<Friendship {self.user_low_id}-{self.user_high_id} {self.status}>'
