"""
Pytest fixtures for posail backend tests.

Provides an in-memory database, two tenants (locales) with one user per
role, an insumo to post movements against, and token helpers.
"""

import pytest
from posail import create_app
from posail.extensions import db
from posail.models import Insumo, Local, User
from posail.services.auth_service import hash_password
from posail.services.token_service import sign_user_token


TEST_JWT_SECRET = "test-secret-not-for-production"
PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET': TEST_JWT_SECRET,
        'BCRYPT_ROUNDS': 4,
        'ALLOW_LEGACY_HEADERS': False,
        'ALLOW_PUBLIC_CATALOG': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh database and login throttle for each test."""
    db.session.remove()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    app.extensions["login_throttle"].reset()

    yield db.session

    db.session.rollback()
    db.session.remove()


@pytest.fixture(scope='function')
def local_a(db_session):
    local = Local(nombre="Local A - Centro")
    db_session.add(local)
    db_session.commit()
    return local


@pytest.fixture(scope='function')
def local_b(db_session):
    local = Local(nombre="Local B - Norte")
    db_session.add(local)
    db_session.commit()
    return local


def make_user(email: str, rol: str, local_id: int | None = None) -> User:
    user = User(
        nombre=email.split("@")[0],
        email=email,
        password_hash=hash_password(PASSWORD),
        rol=rol,
        local_id=local_id,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def superadmin(db_session):
    return make_user("root@posail.test", "superadmin")


@pytest.fixture(scope='function')
def admin_a(db_session, local_a):
    return make_user("admin_a@posail.test", "admin", local_a.id)


@pytest.fixture(scope='function')
def admin_unbound(db_session):
    """Admin without a bound local; picks one per request by header."""
    return make_user("admin_free@posail.test", "admin")


@pytest.fixture(scope='function')
def cajero_a(db_session, local_a):
    return make_user("cajero_a@posail.test", "cajero", local_a.id)


@pytest.fixture(scope='function')
def mesero_a(db_session, local_a):
    return make_user("mesero_a@posail.test", "mesero", local_a.id)


@pytest.fixture(scope='function')
def cajero_b(db_session, local_b):
    return make_user("cajero_b@posail.test", "cajero", local_b.id)


@pytest.fixture(scope='function')
def harina(db_session, local_a):
    """Insumo "Harina" (kg) in Local A with no stock."""
    insumo = Insumo(local_id=local_a.id, nombre="Harina", unidad="kg", stock_total=0, orden=1)
    db_session.add(insumo)
    db_session.commit()
    return insumo


def token_for(user: User) -> str:
    return sign_user_token(user, secret=TEST_JWT_SECRET)


def auth_headers(user: User, local_id: int | None = None) -> dict:
    """Bearer headers for a user, optionally with an x-local-id header."""
    headers = {'Authorization': f'Bearer {token_for(user)}'}
    if local_id is not None:
        headers['x-local-id'] = str(local_id)
    return headers
