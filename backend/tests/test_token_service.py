# Overview: Pytest coverage for the identity token codec.

import logging
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest

from posail.errors import ConfigurationError
from posail.services.token_service import (
    ALGORITHM,
    DEV_DEFAULT_SECRET,
    extract_bearer_token,
    parse_expires_in,
    resolve_jwt_secret,
    sign_user_token,
    verify_token,
)


SECRET = "unit-test-secret"


def _user(id=7, rol="cajero", local_id=3):
    return SimpleNamespace(id=id, rol=rol, local_id=local_id, local=None)


class TestSignAndVerify:
    def test_round_trip_carries_string_ids(self):
        token = sign_user_token(_user(), secret=SECRET)
        payload = verify_token(token, secret=SECRET)

        assert payload["id"] == "7"
        assert payload["rol"] == "cajero"
        assert payload["localId"] == "3"
        assert payload["exp"] > payload["iat"]

    def test_user_without_local_signs_null_local(self):
        token = sign_user_token(_user(rol="superadmin", local_id=None), secret=SECRET)
        assert verify_token(token, secret=SECRET)["localId"] is None

    def test_populated_local_relationship_wins(self):
        user = SimpleNamespace(id=1, rol="admin", local_id=None, local=SimpleNamespace(id=9))
        token = sign_user_token(user, secret=SECRET)
        assert verify_token(token, secret=SECRET)["localId"] == "9"

    def test_default_expiry_is_twelve_hours(self):
        token = sign_user_token(_user(), secret=SECRET)
        payload = verify_token(token, secret=SECRET)
        assert payload["exp"] - payload["iat"] == 12 * 3600

    def test_wrong_secret_returns_none(self):
        token = sign_user_token(_user(), secret=SECRET)
        assert verify_token(token, secret="another-secret") is None

    def test_expired_token_returns_none(self):
        token = sign_user_token(_user(), secret=SECRET, expires_in=timedelta(seconds=-5))
        assert verify_token(token, secret=SECRET) is None

    def test_token_without_exp_is_rejected(self):
        token = jwt.encode({"id": "1", "rol": "admin", "localId": None}, SECRET, algorithm=ALGORITHM)
        assert verify_token(token, secret=SECRET) is None

    def test_alg_none_is_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"id": "1", "rol": "superadmin", "localId": None, "exp": now + timedelta(hours=1)},
            None,
            algorithm="none",
        )
        assert verify_token(token, secret=SECRET) is None

    @pytest.mark.parametrize("garbage", [None, "", "abc", "a.b.c", 12345])
    def test_garbage_never_raises(self, garbage):
        assert verify_token(garbage, secret=SECRET) is None


class TestBearerExtraction:
    def test_extracts_token(self):
        assert extract_bearer_token("Bearer abc.def") == "abc.def"

    @pytest.mark.parametrize("header", [None, "", "Bearer ", "Basic abc", "bearer abc", 42])
    def test_missing_or_other_schemes(self, header):
        assert extract_bearer_token(header) is None


class TestExpiresIn:
    @pytest.mark.parametrize("raw,expected", [
        ("12h", timedelta(hours=12)),
        ("30m", timedelta(minutes=30)),
        ("45s", timedelta(seconds=45)),
        ("7d", timedelta(days=7)),
        ("3600", timedelta(seconds=3600)),
        (" 2H ", timedelta(hours=2)),
        (None, timedelta(hours=12)),
        ("", timedelta(hours=12)),
    ])
    def test_valid_values(self, raw, expected):
        assert parse_expires_in(raw) == expected

    @pytest.mark.parametrize("raw", ["0", "-5m", "12w", "soon", "1.5h"])
    def test_invalid_values_are_fatal(self, raw):
        with pytest.raises(ConfigurationError):
            parse_expires_in(raw)


class TestSecretResolution:
    def test_configured_secret_is_trimmed(self):
        logger = logging.getLogger("test.secret")
        assert resolve_jwt_secret("  s3cret  ", production=True, logger=logger) == "s3cret"

    def test_missing_secret_in_production_is_fatal(self):
        with pytest.raises(ConfigurationError):
            resolve_jwt_secret(None, production=True, logger=logging.getLogger("test.secret"))

    def test_blank_secret_in_production_is_fatal(self):
        with pytest.raises(ConfigurationError):
            resolve_jwt_secret("   ", production=True, logger=logging.getLogger("test.secret"))

    def test_missing_secret_in_development_falls_back_with_warning(self, caplog):
        logger = logging.getLogger("test.secret")
        with caplog.at_level(logging.WARNING, logger="test.secret"):
            secret = resolve_jwt_secret(None, production=False, logger=logger)

        assert secret == DEV_DEFAULT_SECRET
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
