# Overview: Pytest coverage for configuration and application start-up.

import logging
from datetime import timedelta

import pytest

from posail import create_app
from posail.config import env_flag, env_int
from posail.errors import ConfigurationError
from posail.services.token_service import DEV_DEFAULT_SECRET


def test_env_flag(monkeypatch):
    for raw, expected in [("1", True), ("TRUE", True), (" yes ", True), ("on", True),
                          ("0", False), ("false", False), ("nope", False)]:
        monkeypatch.setenv("POSAIL_TEST_FLAG", raw)
        assert env_flag("POSAIL_TEST_FLAG") is expected

    monkeypatch.delenv("POSAIL_TEST_FLAG")
    assert env_flag("POSAIL_TEST_FLAG", default=True) is True


def test_env_int(monkeypatch):
    monkeypatch.setenv("POSAIL_TEST_INT", " 7 ")
    assert env_int("POSAIL_TEST_INT", 3) == 7
    monkeypatch.setenv("POSAIL_TEST_INT", "")
    assert env_int("POSAIL_TEST_INT", 3) == 3


def test_production_without_secret_refuses_to_start():
    with pytest.raises(ConfigurationError):
        create_app({
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'ENV_NAME': 'production',
            'JWT_SECRET': None,
        })


def test_development_falls_back_to_dev_secret(caplog):
    with caplog.at_level(logging.WARNING):
        app = create_app({
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'ENV_NAME': 'development',
            'JWT_SECRET': '',
        })
    assert app.config['JWT_SECRET'] == DEV_DEFAULT_SECRET
    assert any('JWT_SECRET' in record.getMessage() for record in caplog.records)


def test_expiry_is_parsed_at_startup():
    app = create_app({
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'JWT_SECRET': 'x',
        'JWT_EXPIRES_IN': '30m',
        'LOGIN_MAX_FAILURES': 3,
    })
    assert app.config['JWT_EXPIRES_DELTA'] == timedelta(minutes=30)
    assert app.extensions['login_throttle'].max_failures == 3


def test_invalid_expiry_refuses_to_start():
    with pytest.raises(ConfigurationError):
        create_app({'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:', 'JWT_SECRET': 'x', 'JWT_EXPIRES_IN': 'forever'})


class TestSystemRoutes:
    def test_root(self, client):
        response = client.get('/')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'ok'

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json()['checks']['database']['status'] == 'healthy'

    def test_unknown_route_is_plain_404(self, client):
        assert client.get('/api/nothing-here').status_code == 404

    def test_cors_for_known_origin(self, client):
        response = client.get('/health', headers={'Origin': 'http://localhost:5173'})
        assert response.headers['Access-Control-Allow-Origin'] == 'http://localhost:5173'
        assert 'x-local-id' in response.headers['Access-Control-Allow-Headers']
