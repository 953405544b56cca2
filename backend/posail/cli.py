# Overview: Flask CLI command groups for bootstrap and maintenance.

# backend/posail/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent). Prefer `flask db upgrade` for real deployments.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Locales (tenants):
# - python -m flask locales list
# - python -m flask locales create --nombre "Centro" [--direccion "..."] [--telefono "..."] [--correo "..."]
#
# Users:
# - python -m flask users list [--local-id 1]
# - python -m flask users create --email admin@posail.local --rol superadmin
#   Create a staff account (prompts for name/password if omitted).
#   Every role except superadmin/admin needs --local-id.

import click
from flask.cli import with_appcontext

from .errors import ApiError
from .extensions import db
from .models import Local, User
from .permissions import Role
from .services.auth_service import create_user
from .services.local_service import LOCAL_POLICY
from .validation import validate_payload


STAFF_ROLE_CHOICES = [role.value for role in Role if role is not Role.PUBLIC]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create every table that does not exist yet."""
    db.create_all()
    click.echo("PASS Tables created (existing tables left untouched).")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the stock ledger!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Create a local with 'python -m flask locales create'.")


@click.group('locales')
def locales_group():
    """Tenant (local) management."""


@locales_group.command('list')
@with_appcontext
def list_locales_cli():
    locales = db.session.query(Local).order_by(Local.id.asc()).all()
    if not locales:
        click.echo("No locales found.")
        return
    for local in locales:
        click.echo(f"{local.id:>4}  {local.nombre}")


@locales_group.command('create')
@click.option('--nombre', required=True, help='Local name (unique)')
@click.option('--direccion', default=None, help='Street address')
@click.option('--telefono', default=None, help='Phone number')
@click.option('--correo', default=None, help='Contact e-mail')
@with_appcontext
def create_local_cli(nombre, direccion, telefono, correo):
    try:
        patch = validate_payload(
            model=Local,
            payload={"nombre": nombre, "direccion": direccion, "telefono": telefono, "correo": correo},
            policy=LOCAL_POLICY,
            partial=False,
        )
    except ApiError as e:
        raise click.ClickException(str(e))

    if db.session.query(Local).filter_by(nombre=patch["nombre"]).first() is not None:
        raise click.ClickException(f"Local '{patch['nombre']}' already exists")

    local = Local(**patch)
    db.session.add(local)
    db.session.commit()
    click.echo(f"PASS Created local: {local.nombre} (ID: {local.id})")


@click.group('users')
def users_group():
    """Staff account management."""


@users_group.command('list')
@click.option('--local-id', type=int, default=None, help='Only users bound to this local')
@with_appcontext
def list_users_cli(local_id):
    q = db.session.query(User)
    if local_id is not None:
        q = q.filter_by(local_id=local_id)
    users = q.order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.email:<32} {user.rol:<11} local={user.local_id} {status}")


@users_group.command('create')
@click.option('--email', required=True, help='Login e-mail')
@click.option('--rol', type=click.Choice(STAFF_ROLE_CHOICES), required=True, help='Role')
@click.option('--local-id', type=int, default=None, help='Local the user is bound to')
@click.option('--nombre', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(email, rol, local_id, nombre, password):
    """
    Create a staff account.

    Password must be 8+ chars with upper case, lower case and a digit.
    """
    try:
        user = create_user(nombre=nombre, email=email, password=password, rol=rol, local_id=local_id)
    except ApiError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.email} with role '{user.rol}' (ID: {user.id})")
    if user.local_id is not None:
        click.echo(f"     Local ID: {user.local_id}")
    click.echo("SECURITY Password securely hashed with bcrypt")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(locales_group)
    app.cli.add_command(users_group)
