"""
Shared fixtures.

Every test gets a fresh app bound to an in-memory SQLite database,
a ledger store over its session and a clock frozen in time.
"""

import itertools
from datetime import datetime

import pytest
from flask import g
from flask_login import FlaskLoginClient

from config import TestingConfig
from splitbook import create_app
from splitbook.clock import FixedClock
from splitbook.extensions import db
from splitbook.models import User
from splitbook.services.group_service import create_group
from splitbook.services.ledger_store import SqlAlchemyLedgerStore


class LedgerTestClient(FlaskLoginClient):
    """
    Test requests reuse the fixture's app context, and with it `g`.
    Flask-Login caches the current user there, so drop it before each
    request or the first client's user sticks for the whole test.
    """

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    app.test_client_class = LedgerTestClient

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def store(app):
    return SqlAlchemyLedgerStore(db.session)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 15, 12, 0, 0))


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(name=None, phone=None, password='secret123'):
        n = next(counter)
        name = name or f'user{n}'
        user = User(name=name, email=f'{name.lower()}@example.com', phone=phone)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def alice(make_user):
    return make_user('Alice', phone='+911111111111')


@pytest.fixture
def bob(make_user):
    return make_user('Bob', phone='+912222222222')


@pytest.fixture
def carol(make_user):
    return make_user('Carol', phone='+913333333333')


@pytest.fixture
def dave(make_user):
    return make_user('Dave', phone='+914444444444')


@pytest.fixture
def trio(store, clock, alice, bob, carol):
    """Group created by Alice with Bob and Carol, in that join order."""
    return create_group(store, alice.id, 'Goa Trip', 'Beach weekend',
                        [bob.id, carol.id], clock=clock)


@pytest.fixture
def pair(store, clock, alice, bob):
    """Group created by Alice with Bob."""
    return create_group(store, alice.id, 'Flat', 'Rent and groceries',
                        [bob.id], clock=clock)
