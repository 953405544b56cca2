# Overview: Pytest coverage for the waiter path restriction.

import pytest

from posail.permissions import Role, is_path_allowed_for_role

from conftest import auth_headers


class TestPolicy:
    @pytest.mark.parametrize("path", [
        "/api/restaurante",
        "/api/restaurante/mesas",
        "/api/restaurante/pedidos/5",
        "/api/auth/login",
        "/health",
        "/",
    ])
    def test_waiter_allowed_paths(self, path):
        assert is_path_allowed_for_role(Role.MESERO, path)

    @pytest.mark.parametrize("path", [
        "/api/insumos",
        "/api/auth/session",
        "/api/productos",
        "/healthz",
        "/api/locales",
    ])
    def test_waiter_blocked_paths(self, path):
        assert not is_path_allowed_for_role(Role.MESERO, path)

    @pytest.mark.parametrize("role", [Role.SUPERADMIN, Role.ADMIN, Role.CAJERO, Role.REPARTIDOR, None])
    def test_other_roles_are_unrestricted(self, role):
        assert is_path_allowed_for_role(role, "/api/anything/at/all")


class TestHook:
    def test_waiter_token_blocked_from_inventory(self, client, mesero_a):
        response = client.get('/api/insumos', headers=auth_headers(mesero_a))
        assert response.status_code == 403
        assert response.get_json()['reason'] == 'restricted_role'

    def test_waiter_blocked_before_routing(self, client, mesero_a):
        response = client.get('/api/no-such-route', headers=auth_headers(mesero_a))
        assert response.status_code == 403

    def test_waiter_may_reach_health(self, client, mesero_a):
        assert client.get('/health', headers=auth_headers(mesero_a)).status_code == 200

    def test_waiter_header_without_token_is_restricted(self, client):
        response = client.get('/api/insumos', headers={'x-user-role': 'Mesero'})
        assert response.status_code == 403
        assert response.get_json()['reason'] == 'restricted_role'

    def test_token_role_wins_over_header(self, client, cajero_a):
        headers = auth_headers(cajero_a)
        headers['x-user-role'] = 'mesero'
        assert client.get('/api/insumos', headers=headers).status_code == 200

    def test_cajero_and_admin_reach_same_path(self, client, cajero_a, admin_a):
        assert client.get('/api/insumos', headers=auth_headers(cajero_a)).status_code == 200
        assert client.get('/api/insumos', headers=auth_headers(admin_a)).status_code == 200
