from __future__ import annotations

from ..extensions import db
from ..models import Insumo, InsumoCategoria
from posail.errors import ConflictError, InvalidInputError, NotFoundError
from posail.validation import parse_identifier_list, sanitize_text
from .concurrency import lock_for_update, run_with_retry


def _clean_nombre(nombre) -> str:
    value = sanitize_text(nombre, max_length=80)
    if not value:
        raise InvalidInputError("nombre is required")
    return value


def _ensure_unique(nombre: str, local_id: int, *, exclude_id: int | None = None) -> None:
    q = db.session.query(InsumoCategoria.id).filter(
        InsumoCategoria.local_id == local_id,
        InsumoCategoria.nombre == nombre,
    )
    if exclude_id is not None:
        q = q.filter(InsumoCategoria.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Categoria '{nombre}' already exists", reason="duplicate")


def _get_in_local(categoria_id: int, local_id: int) -> InsumoCategoria:
    categoria = lock_for_update(
        db.session.query(InsumoCategoria).filter_by(id=categoria_id, local_id=local_id)
    ).first()
    if categoria is None:
        raise NotFoundError("Categoria not found")
    return categoria


def list_categorias(*, local_id: int) -> list[InsumoCategoria]:
    return (
        db.session.query(InsumoCategoria)
        .filter_by(local_id=local_id)
        .order_by(InsumoCategoria.orden.asc(), InsumoCategoria.nombre.asc())
        .all()
    )


def create_categoria(*, local_id: int, nombre) -> InsumoCategoria:
    nombre = _clean_nombre(nombre)

    def _op():
        _ensure_unique(nombre, local_id)
        current = (
            db.session.query(db.func.max(InsumoCategoria.orden))
            .filter(InsumoCategoria.local_id == local_id)
            .scalar()
        )
        categoria = InsumoCategoria(local_id=local_id, nombre=nombre, orden=(current or 0) + 1)
        db.session.add(categoria)
        db.session.commit()
        return categoria

    return run_with_retry(_op)


def rename_categoria(*, categoria_id: int, local_id: int, nombre) -> InsumoCategoria:
    nombre = _clean_nombre(nombre)

    def _op():
        categoria = _get_in_local(categoria_id, local_id)
        _ensure_unique(nombre, local_id, exclude_id=categoria.id)
        categoria.nombre = nombre
        db.session.commit()
        return categoria

    return run_with_retry(_op)


def reorder_categorias(*, local_id: int, ordered_ids) -> list[InsumoCategoria]:
    ids = parse_identifier_list(ordered_ids, "ids")

    def _op():
        rows = (
            db.session.query(InsumoCategoria)
            .filter(InsumoCategoria.local_id == local_id, InsumoCategoria.id.in_(ids))
            .all()
        )
        by_id = {row.id: row for row in rows}
        if any(i not in by_id for i in ids):
            raise NotFoundError("Categoria not found")

        for position, categoria_id in enumerate(ids, start=1):
            by_id[categoria_id].orden = position
        db.session.commit()
        return [by_id[i] for i in ids]

    return run_with_retry(_op)


def delete_categoria(*, categoria_id: int, local_id: int) -> None:
    """Delete a category; its insumos stay, uncategorised."""
    def _op():
        categoria = _get_in_local(categoria_id, local_id)
        db.session.query(Insumo).filter_by(categoria_id=categoria.id, local_id=local_id).update(
            {Insumo.categoria_id: None},
            synchronize_session=False,
        )
        db.session.delete(categoria)
        db.session.commit()

    run_with_retry(_op)
