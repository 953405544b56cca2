# Overview: Pytest coverage for bootstrap CLI commands.

from posail.extensions import db
from posail.models import Local, User


def test_create_local_and_superadmin(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['locales', 'create', '--nombre', 'Centro'])
    assert result.exit_code == 0, result.output
    local = db.session.query(Local).filter_by(nombre='Centro').one()

    result = runner.invoke(args=[
        'users', 'create',
        '--email', 'root@posail.test',
        '--rol', 'superadmin',
        '--nombre', 'Root',
        '--password', 'Password123',
    ])
    assert result.exit_code == 0, result.output
    user = db.session.query(User).filter_by(email='root@posail.test').one()
    assert user.rol == 'superadmin'
    assert user.local_id is None

    result = runner.invoke(args=[
        'users', 'create',
        '--email', 'caja@posail.test',
        '--rol', 'cajero',
        '--local-id', str(local.id),
        '--nombre', 'Caja',
        '--password', 'Password123',
    ])
    assert result.exit_code == 0, result.output


def test_cajero_without_local_is_refused(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        'users', 'create',
        '--email', 'caja@posail.test',
        '--rol', 'cajero',
        '--nombre', 'Caja',
        '--password', 'Password123',
    ])
    assert result.exit_code != 0
    assert db.session.query(User).count() == 0


def test_weak_password_is_refused(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        'users', 'create',
        '--email', 'root@posail.test',
        '--rol', 'superadmin',
        '--nombre', 'Root',
        '--password', 'short',
    ])
    assert result.exit_code != 0
    assert 'Password' in result.output


def test_duplicate_local_is_refused(app):
    runner = app.test_cli_runner()
    runner.invoke(args=['locales', 'create', '--nombre', 'Centro'])
    result = runner.invoke(args=['locales', 'create', '--nombre', 'Centro'])
    assert result.exit_code != 0
