# Overview: Service-layer operations for the insumo catalog; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Insumo, InsumoCategoria, InsumoLote, Local
from posail.errors import ConflictError, InvalidInputError, NotFoundError
from posail.validation import (
    ModelValidationPolicy,
    enforce_rules_insumo,
    parse_identifier_list,
    validate_payload,
)
from .concurrency import lock_for_update, run_with_retry


# stock_total is owned by the ledger and is never client-writable
INSUMO_POLICY = ModelValidationPolicy(
    writable_fields={
        "nombre",
        "descripcion",
        "unidad",
        "categoria_id",
        "stock_minimo",
        "alerta_vencimiento_dias",
        "orden",
    },
    required_on_create={"nombre", "unidad"},
)


def ensure_insumo_in_local(insumo_id: int, local_id: int, *, lock: bool = False) -> Insumo:
    """Fetch an insumo only if it belongs to the local; otherwise 404."""
    query = db.session.query(Insumo).filter_by(id=insumo_id, local_id=local_id)
    if lock:
        query = lock_for_update(query)
    insumo = query.first()
    if insumo is None:
        raise NotFoundError("Insumo not found")
    return insumo


def _ensure_categoria_in_local(categoria_id: int | None, local_id: int) -> None:
    if categoria_id is None:
        return
    exists = db.session.query(InsumoCategoria.id).filter_by(id=categoria_id, local_id=local_id).first()
    if exists is None:
        raise NotFoundError("Categoria not found")


def _ensure_unique_name(nombre: str, local_id: int, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Insumo.id).filter(Insumo.local_id == local_id, Insumo.nombre == nombre)
    if exclude_id is not None:
        q = q.filter(Insumo.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Insumo '{nombre}' already exists", reason="duplicate")


def _commit_or_conflict(nombre: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Insumo '{nombre}' already exists", reason="duplicate")


def list_insumos(*, local_id: int, include_hidden: bool = False, categoria_id: int | None = None) -> list[Insumo]:
    q = db.session.query(Insumo).filter_by(local_id=local_id)
    if not include_hidden:
        q = q.filter(Insumo.activo.is_(True))
    if categoria_id is not None:
        q = q.filter(Insumo.categoria_id == categoria_id)
    return q.order_by(Insumo.orden.asc(), Insumo.nombre.asc()).all()


def create_insumo(*, local_id: int, payload: dict) -> Insumo:
    patch = validate_payload(model=Insumo, payload=payload, policy=INSUMO_POLICY, partial=False)
    enforce_rules_insumo(patch)

    def _op():
        _ensure_categoria_in_local(patch.get("categoria_id"), local_id)
        _ensure_unique_name(patch["nombre"], local_id)

        insumo = Insumo(local_id=local_id, stock_total=0, activo=True)
        for key, value in patch.items():
            setattr(insumo, key, value)
        if insumo.orden is None:
            insumo.orden = _next_orden(local_id)

        db.session.add(insumo)
        _commit_or_conflict(insumo.nombre)
        return insumo

    return run_with_retry(_op)


def _next_orden(local_id: int) -> int:
    current = db.session.query(db.func.max(Insumo.orden)).filter(Insumo.local_id == local_id).scalar()
    return (current or 0) + 1


def update_insumo(*, insumo_id: int, local_id: int, payload: dict) -> Insumo:
    patch = validate_payload(model=Insumo, payload=payload, policy=INSUMO_POLICY, partial=True)
    enforce_rules_insumo(patch)

    def _op():
        insumo = ensure_insumo_in_local(insumo_id, local_id, lock=True)
        if "categoria_id" in patch:
            _ensure_categoria_in_local(patch["categoria_id"], local_id)
        if "nombre" in patch:
            _ensure_unique_name(patch["nombre"], local_id, exclude_id=insumo.id)

        for key, value in patch.items():
            setattr(insumo, key, value)

        _commit_or_conflict(insumo.nombre)
        return insumo

    return run_with_retry(_op)


def set_insumo_active(*, insumo_id: int, local_id: int, activo) -> Insumo:
    if not isinstance(activo, bool):
        raise InvalidInputError("activo must be a boolean")

    def _op():
        insumo = ensure_insumo_in_local(insumo_id, local_id, lock=True)
        insumo.activo = activo
        db.session.commit()
        return insumo

    return run_with_retry(_op)


def reorder_insumos(*, local_id: int, ordered_ids) -> list[Insumo]:
    """Persist a drag-and-drop order: the 1-based position in the list becomes `orden`."""
    ids = parse_identifier_list(ordered_ids, "ids")

    def _op():
        rows = db.session.query(Insumo).filter(Insumo.local_id == local_id, Insumo.id.in_(ids)).all()
        by_id = {row.id: row for row in rows}
        missing = [i for i in ids if i not in by_id]
        if missing:
            raise NotFoundError("Insumo not found")

        for position, insumo_id in enumerate(ids, start=1):
            by_id[insumo_id].orden = position
        db.session.commit()
        return [by_id[i] for i in ids]

    return run_with_retry(_op)


def delete_insumo(*, insumo_id: int, local_id: int) -> None:
    """
    Delete an insumo that has never held stock.

    Lots are permanent audit trail, so any lot (even an empty or hidden
    one) blocks deletion.
    """
    def _op():
        insumo = ensure_insumo_in_local(insumo_id, local_id, lock=True)
        has_lots = db.session.query(InsumoLote.id).filter_by(insumo_id=insumo.id).first() is not None
        if has_lots:
            raise InvalidInputError("Insumo has lots and cannot be deleted", reason="insumo_has_lots")

        db.session.delete(insumo)
        db.session.commit()

    run_with_retry(_op)


def clone_insumos(*, source_local_id: int, target_local_id: int, insumo_ids=None) -> dict:
    """
    Copy insumo definitions from one local to another.

    Only the catalog entry is copied: clones start with zero stock and no
    lots. Names already present in the target are skipped. Categories are
    matched by name in the target and created there when missing.
    """
    if source_local_id == target_local_id:
        raise InvalidInputError("Source and target local must differ")
    ids = parse_identifier_list(insumo_ids, "insumo_ids") if insumo_ids is not None else None

    def _op():
        for local_id in (source_local_id, target_local_id):
            if db.session.query(Local.id).filter_by(id=local_id).first() is None:
                raise NotFoundError("Local not found")

        q = db.session.query(Insumo).filter_by(local_id=source_local_id)
        if ids is not None:
            q = q.filter(Insumo.id.in_(ids))
        sources = q.order_by(Insumo.orden.asc(), Insumo.nombre.asc()).all()

        existing = {
            nombre for (nombre,) in db.session.query(Insumo.nombre).filter_by(local_id=target_local_id)
        }
        categorias = {
            c.nombre: c for c in db.session.query(InsumoCategoria).filter_by(local_id=target_local_id)
        }
        next_orden = _next_orden(target_local_id)

        created: list[Insumo] = []
        skipped: list[str] = []
        for source in sources:
            if source.nombre in existing:
                skipped.append(source.nombre)
                continue

            categoria_id = None
            if source.categoria is not None:
                categoria = categorias.get(source.categoria.nombre)
                if categoria is None:
                    categoria = InsumoCategoria(
                        local_id=target_local_id,
                        nombre=source.categoria.nombre,
                        orden=source.categoria.orden,
                    )
                    db.session.add(categoria)
                    db.session.flush()
                    categorias[categoria.nombre] = categoria
                categoria_id = categoria.id

            clone = Insumo(
                local_id=target_local_id,
                categoria_id=categoria_id,
                nombre=source.nombre,
                descripcion=source.descripcion,
                unidad=source.unidad,
                stock_total=0,
                stock_minimo=source.stock_minimo,
                alerta_vencimiento_dias=source.alerta_vencimiento_dias,
                orden=next_orden,
                activo=source.activo,
            )
            next_orden += 1
            db.session.add(clone)
            existing.add(source.nombre)
            created.append(clone)

        db.session.commit()
        return {
            "creados": [insumo.to_dict() for insumo in created],
            "omitidos": skipped,
        }

    return run_with_retry(_op)
