"""
Tests for the JSON routes.

Mostly about the error-kind to HTTP status mapping; the ledger math is
covered by the service tests.
"""

from decimal import Decimal

import pytest

from splitbook.models import GroupExpense
from splitbook.routes import ERROR_STATUS
from splitbook.services.errors import ErrorKind


@pytest.fixture
def client_for(app):
    def _client(user):
        return app.test_client(user=user)
    return _client


class TestErrorMapping:

    def test_every_kind_has_a_status(self):
        assert set(ERROR_STATUS) == set(ErrorKind)

    def test_unauthenticated(self, app):
        response = app.test_client().get('/api/groups')
        assert response.status_code == 401
        assert response.get_json()['error'] == 'unauthenticated'


class TestGroupRoutes:

    def test_create_and_view(self, client_for, alice, bob):
        client = client_for(alice)
        response = client.post('/api/groups', json={
            'name': 'Trip', 'description': 'Hills', 'member_ids': [bob.id],
        })
        assert response.status_code == 201
        group_id = response.get_json()['data']['id']

        response = client.post(f'/api/groups/{group_id}/expenses', json={
            'amount': 100.01, 'description': 'Cab', 'split_type': 'equal',
        })
        assert response.status_code == 201
        assert response.get_json()['data']['amount'] == '100.01'

        data = client.get(f'/api/groups/{group_id}').get_json()['data']
        assert data['total_expenses'] == '100.01'
        assert data['balances'] == {str(alice.id): '50.00', str(bob.id): '-50.00'}

    def test_create_with_unknown_member(self, client_for, alice):
        response = client_for(alice).post('/api/groups', json={
            'name': 'Trip', 'member_ids': [404],
        })
        assert response.status_code == 404
        assert response.get_json()['error'] == 'not_found'

    def test_non_member_gets_403_and_nothing_written(self, client_for, pair, dave):
        response = client_for(dave).post(f'/api/groups/{pair.id}/expenses', json={
            'amount': '10', 'description': 'Nope',
        })
        assert response.status_code == 403
        assert response.get_json()['error'] == 'access_denied'
        assert GroupExpense.query.count() == 0

    def test_split_mismatch_reports_delta(self, client_for, trio, alice, bob, carol):
        response = client_for(alice).post(f'/api/groups/{trio.id}/expenses', json={
            'amount': '100', 'description': 'Hotel', 'split_type': 'custom',
            'splits': [
                {'user_id': alice.id, 'amount': '40'},
                {'user_id': bob.id, 'amount': '40'},
                {'user_id': carol.id, 'amount': '19'},
            ],
        })
        body = response.get_json()
        assert response.status_code == 400
        assert body['error'] == 'split_mismatch'
        assert Decimal(body['delta']) == Decimal('1')

    @pytest.mark.parametrize('splits', [[5, 5], [[1, '5', 'x']], 'abc', {'user_id': 1}])
    def test_malformed_custom_splits_are_400(self, client_for, trio, alice, splits):
        response = client_for(alice).post(f'/api/groups/{trio.id}/expenses', json={
            'amount': '10', 'description': 'Tea', 'split_type': 'custom', 'splits': splits,
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_input'
        assert GroupExpense.query.count() == 0

    def test_unhashable_split_user_is_400(self, client_for, trio, alice):
        response = client_for(alice).post(f'/api/groups/{trio.id}/expenses', json={
            'amount': '10', 'description': 'Tea', 'split_type': 'custom',
            'splits': [{'user_id': [alice.id], 'amount': '10'}],
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_input'

    def test_unhashable_settlement_user_is_400(self, client_for, trio, alice):
        response = client_for(alice).post(f'/api/groups/{trio.id}/settle', json={
            'settlements': [{'from_user_id': {'id': 1}, 'to_user_id': alice.id, 'amount': '5'}],
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_input'

    def test_amount_past_column_limit_is_400(self, client_for, trio, alice):
        response = client_for(alice).post(f'/api/groups/{trio.id}/expenses', json={
            'amount': '12345678901234567.89', 'description': 'Yacht',
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_amount'
        assert GroupExpense.query.count() == 0

    def test_settle(self, client_for, store, trio, alice, bob):
        client = client_for(bob)
        client.post(f'/api/groups/{trio.id}/expenses', json={
            'amount': '90', 'description': 'Dinner',
        })
        response = client.post(f'/api/groups/{trio.id}/settle', json={
            'settlements': [{
                'from_user_id': alice.id, 'to_user_id': bob.id, 'amount': '30',
                'expense_date': '2024-02-01T10:00:00',
            }],
        })
        assert response.status_code == 200
        [settlement] = response.get_json()['data']
        assert settlement['kind'] == 'settlement'
        assert settlement['expense_date'] == '2024-02-01T10:00:00'

        data = client.get(f'/api/groups/{trio.id}').get_json()['data']
        assert data['balances'][str(alice.id)] == '0.00'
        assert data['balances'][str(bob.id)] == '30.00'

    def test_self_settlement_is_400(self, client_for, trio, alice):
        response = client_for(alice).post(f'/api/groups/{trio.id}/settle', json={
            'settlements': [{'from_user_id': alice.id, 'to_user_id': alice.id, 'amount': '5'}],
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_settlement'

    def test_settle_outsider_names_side(self, client_for, trio, alice, dave):
        response = client_for(alice).post(f'/api/groups/{trio.id}/settle', json={
            'settlements': [{'from_user_id': alice.id, 'to_user_id': dave.id, 'amount': '5'}],
        })
        body = response.get_json()
        assert response.status_code == 400
        assert body['error'] == 'not_a_member'
        assert body['side'] == 'to'

    def test_bad_date(self, client_for, trio, alice):
        response = client_for(alice).post(f'/api/groups/{trio.id}/expenses', json={
            'amount': '5', 'description': 'Tea', 'expense_date': 'yesterday',
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_input'

    def test_list_groups(self, client_for, trio, pair, bob):
        data = client_for(bob).get('/api/groups').get_json()['data']
        assert {g['id'] for g in data} == {trio.id, pair.id}
        assert all(g['your_balance'] == '0.00' for g in data)


class TestAuthAndFriendRoutes:

    def test_register_login_me(self, app):
        client = app.test_client()
        response = client.post('/api/auth/register', json={
            'name': 'Erin', 'email': 'erin@example.com', 'password': 'hunter22',
        })
        assert response.status_code == 201

        assert client.post('/api/auth/login', json={
            'email': 'erin@example.com', 'password': 'wrong-one',
        }).status_code == 403

        assert client.post('/api/auth/login', json={
            'email': 'erin@example.com', 'password': 'hunter22',
        }).status_code == 200
        assert client.get('/api/auth/me').get_json()['data']['name'] == 'Erin'

    def test_duplicate_registration(self, app, alice):
        response = app.test_client().post('/api/auth/register', json={
            'name': 'Alice', 'email': alice.email, 'password': 'secret123',
        })
        assert response.status_code == 409

    def test_each_client_acts_as_its_own_user(self, client_for, alice, bob):
        alice_client = client_for(alice)
        bob_client = client_for(bob)

        assert alice_client.get('/api/auth/me').get_json()['data']['id'] == alice.id
        assert bob_client.get('/api/auth/me').get_json()['data']['id'] == bob.id
        assert alice_client.get('/api/auth/me').get_json()['data']['id'] == alice.id

    def test_friend_flow(self, client_for, alice, bob):
        response = client_for(alice).post('/api/friends/requests', json={'phone': bob.phone})
        assert response.status_code == 201
        request_id = response.get_json()['data']['id']

        bob_client = client_for(bob)
        assert bob_client.post(f'/api/friends/requests/{request_id}',
                               json={'action': 'accept'}).status_code == 200

        friends = bob_client.get('/api/friends').get_json()['data']['friends']
        assert [f['id'] for f in friends] == [alice.id]

        assert bob_client.delete(f'/api/friends/{alice.id}').status_code == 200
        assert bob_client.get(f'/api/friends/{alice.id}').status_code == 404
