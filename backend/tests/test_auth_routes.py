# Overview: Pytest coverage for login and session routes.

from posail.extensions import db
from posail.models import User

from conftest import PASSWORD, auth_headers


def _login(client, email, password, ip="10.1.1.1"):
    return client.post(
        '/api/auth/login',
        json={'email': email, 'password': password},
        environ_base={'REMOTE_ADDR': ip},
    )


class TestLogin:
    def test_success_returns_token_and_user(self, client, cajero_a, local_a):
        response = _login(client, 'cajero_a@posail.test', PASSWORD)

        assert response.status_code == 200
        body = response.get_json()
        assert body['token']
        assert body['usuario']['email'] == 'cajero_a@posail.test'
        assert 'password_hash' not in body['usuario']

        session = client.get('/api/auth/session', headers={'Authorization': f"Bearer {body['token']}"})
        assert session.status_code == 200
        assert session.get_json() == {'rol': 'cajero', 'local_id': local_a.id, 'user_id': cajero_a.id}

    def test_email_is_normalised(self, client, cajero_a):
        response = _login(client, '  CAJERO_A@posail.test ', PASSWORD)
        assert response.status_code == 200

    def test_login_records_last_login(self, client, cajero_a):
        _login(client, 'cajero_a@posail.test', PASSWORD)
        user = db.session.get(User, cajero_a.id)
        assert user.last_login_at is not None

    def test_wrong_password_and_unknown_email_look_the_same(self, client, cajero_a):
        wrong = _login(client, 'cajero_a@posail.test', 'WrongPass1')
        unknown = _login(client, 'nobody@posail.test', PASSWORD)

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json()
        assert wrong.get_json()['reason'] == 'invalid_credentials'

    def test_inactive_user_cannot_login(self, client, cajero_a):
        cajero_a.is_active = False
        db.session.commit()
        assert _login(client, 'cajero_a@posail.test', PASSWORD).status_code == 401

    def test_missing_fields(self, client):
        response = client.post('/api/auth/login', json={'email': 'x@y.z'})
        assert response.status_code == 400

    def test_lockout_after_five_failures_even_with_correct_password(self, client, cajero_a):
        for _ in range(5):
            assert _login(client, 'cajero_a@posail.test', 'WrongPass1').status_code == 401

        response = _login(client, 'cajero_a@posail.test', PASSWORD)
        assert response.status_code == 429
        body = response.get_json()
        assert body['reason'] == 'locked'
        assert 0 < body['retry_after_seconds'] <= 15 * 60

    def test_lockout_is_per_ip(self, client, cajero_a):
        for _ in range(5):
            _login(client, 'cajero_a@posail.test', 'WrongPass1', ip='10.9.9.9')

        assert _login(client, 'cajero_a@posail.test', PASSWORD, ip='10.1.1.1').status_code == 200

    def test_success_clears_failures(self, client, cajero_a):
        for _ in range(4):
            _login(client, 'cajero_a@posail.test', 'WrongPass1')
        assert _login(client, 'cajero_a@posail.test', PASSWORD).status_code == 200

        for _ in range(4):
            _login(client, 'cajero_a@posail.test', 'WrongPass1')
        assert _login(client, 'cajero_a@posail.test', PASSWORD).status_code == 200


class TestSession:
    def test_requires_credential(self, client):
        response = client.get('/api/auth/session')
        assert response.status_code == 401
        assert response.get_json()['reason'] == 'unauthenticated'

    def test_invalid_token_is_treated_as_missing(self, client):
        response = client.get('/api/auth/session', headers={'Authorization': 'Bearer not-a-token'})
        assert response.status_code == 401

    def test_superadmin_selects_local(self, client, superadmin, local_b):
        response = client.get('/api/auth/session', headers=auth_headers(superadmin, local_b.id))
        assert response.get_json()['local_id'] == local_b.id

    def test_contradicting_local_is_forbidden(self, client, cajero_a, local_b):
        response = client.get('/api/auth/session', headers=auth_headers(cajero_a, local_b.id))
        assert response.status_code == 403
        assert response.get_json()['reason'] == 'forbidden'
