# Overview: Service-layer operations for locales (tenants).

from __future__ import annotations

from ..extensions import db
from ..models import Local
from posail.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from posail.permissions import can_manage_locales, can_select_any_local, can_view_all_locales
from posail.validation import ModelValidationPolicy, is_valid_email, validate_payload
from .concurrency import lock_for_update, run_with_retry
from .scope_service import RequestScope


LOCAL_POLICY = ModelValidationPolicy(
    writable_fields={"nombre", "direccion", "telefono", "correo"},
    required_on_create={"nombre"},
)


def _validate(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Local, payload=payload, policy=LOCAL_POLICY, partial=partial)
    correo = patch.get("correo")
    if correo and not is_valid_email(correo):
        raise InvalidInputError("correo is invalid")
    return patch


def _ensure_unique_name(nombre: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Local.id).filter(Local.nombre == nombre)
    if exclude_id is not None:
        q = q.filter(Local.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Local '{nombre}' already exists", reason="duplicate")


def _ensure_visible(scope: RequestScope, local_id: int) -> None:
    # Other tenants' locales are reported as missing, never as forbidden
    if not can_select_any_local(scope.role) and scope.local_id != local_id:
        raise NotFoundError("Local not found")


def list_locales(scope: RequestScope) -> list[Local]:
    q = db.session.query(Local)
    if not can_view_all_locales(scope.role):
        if scope.local_id is None:
            return []
        q = q.filter(Local.id == scope.local_id)
    return q.order_by(Local.nombre.asc()).all()


def get_local(scope: RequestScope, local_id: int) -> Local:
    _ensure_visible(scope, local_id)
    local = db.session.query(Local).filter_by(id=local_id).first()
    if local is None:
        raise NotFoundError("Local not found")
    return local


def create_local(scope: RequestScope, payload: dict) -> Local:
    if not can_manage_locales(scope.role):
        raise ForbiddenError("Only admins can create locales")
    patch = _validate(payload, partial=False)

    def _op():
        _ensure_unique_name(patch["nombre"])
        local = Local(**patch)
        db.session.add(local)
        db.session.commit()
        return local

    return run_with_retry(_op)


def update_local(scope: RequestScope, local_id: int, payload: dict) -> Local:
    if not can_manage_locales(scope.role):
        raise ForbiddenError("Only admins can update locales")
    _ensure_visible(scope, local_id)
    patch = _validate(payload, partial=True)

    def _op():
        local = lock_for_update(db.session.query(Local).filter_by(id=local_id)).first()
        if local is None:
            raise NotFoundError("Local not found")
        if "nombre" in patch:
            _ensure_unique_name(patch["nombre"], exclude_id=local.id)

        for key, value in patch.items():
            setattr(local, key, value)
        db.session.commit()
        return local

    return run_with_retry(_op)
