# Overview: Service-layer operations for the insumo stock ledger; encapsulates business logic and database work.

"""
Insumo Ledger Invariants (authoritative)

Stock model:
- Each insumo has lots (InsumoLote) holding the physical quantity.
- Insumo.stock_total is a cached aggregate and always equals the sum of
  cantidad over the insumo's ACTIVE lots.
- Lot quantities never go negative.

Movements:
- "entrada" adds to an explicit lot, or opens a new lot.
- "salida" takes from an explicit lot, or from the oldest active lot with
  stock (FIFO by fecha_ingreso). A salida never spans lots: if the chosen lot
  cannot cover the whole quantity the posting fails.
- Every posting writes lot, insumo and movement rows in ONE transaction.
  Any failure rolls all three back.
- Movements are append-only. Nothing here updates or deletes them.

Concurrency:
- The insumo row is read FOR UPDATE (honoured outside SQLite).
- Lot decrements are conditional (cantidad >= q) so two racing salidas can
  not both draw the same stock; the loser fails with
  insufficient_lot_quantity.
- Stock arithmetic is done SQL-side, never read-modify-write in Python, and
  every result is rounded to the column scale so SQLite's REAL storage of
  NUMERIC never drifts between postings.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import and_, case, func, or_, update

from ..extensions import db
from ..models import Insumo, InsumoLote, InsumoMovimiento
from posail.errors import ConflictError, InvalidInputError, NotFoundError
from posail.time_utils import coerce_datetime, utcnow
from posail.validation import QUANTITY_SCALE, optional_identifier, parse_positive_quantity, sanitize_text
from .concurrency import lock_for_update, run_with_retry
from .insumo_service import ensure_insumo_in_local


ENTRADA = "entrada"
SALIDA = "salida"
MOVEMENT_TYPES = (ENTRADA, SALIDA)


def _rounded(expr):
    return func.round(expr, QUANTITY_SCALE)


def _parse_tipo(tipo) -> str:
    value = sanitize_text(tipo, max_length=10)
    value = value.lower() if value else None
    if value not in MOVEMENT_TYPES:
        raise InvalidInputError("tipo must be 'entrada' or 'salida'", reason="invalid_type")
    return value


def _parse_expiry(value):
    try:
        return coerce_datetime(value)
    except ValueError:
        raise InvalidInputError("fecha_vencimiento must be an ISO-8601 date")


def _get_target_lot(*, lote_id: int, insumo_id: int, local_id: int, lock: bool = True) -> InsumoLote:
    query = db.session.query(InsumoLote).filter_by(id=lote_id, insumo_id=insumo_id, local_id=local_id)
    if lock:
        query = lock_for_update(query)
    lote = query.first()
    if lote is None:
        raise NotFoundError("Lot not found")
    return lote


def _oldest_available_lot(*, insumo_id: int, local_id: int) -> InsumoLote | None:
    query = db.session.query(InsumoLote).filter(
        InsumoLote.insumo_id == insumo_id,
        InsumoLote.local_id == local_id,
        InsumoLote.activo.is_(True),
        InsumoLote.cantidad > 0,
    ).order_by(
        InsumoLote.fecha_ingreso.asc(),
        InsumoLote.id.asc(),
    )
    return lock_for_update(query).first()


def _increment_lot(lote: InsumoLote, cantidad: Decimal) -> None:
    db.session.execute(
        update(InsumoLote)
        .where(InsumoLote.id == lote.id)
        .values(cantidad=_rounded(InsumoLote.cantidad + cantidad))
        .execution_options(synchronize_session=False)
    )
    db.session.refresh(lote)


def _decrement_lot(lote: InsumoLote, cantidad: Decimal) -> None:
    result = db.session.execute(
        update(InsumoLote)
        .where(InsumoLote.id == lote.id, InsumoLote.cantidad >= cantidad)
        .values(cantidad=_rounded(InsumoLote.cantidad - cantidad))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError("Quantity exceeds the lot's stock", reason="insufficient_lot_quantity")
    db.session.refresh(lote)


def _add_to_stock(insumo: Insumo, cantidad: Decimal) -> None:
    db.session.execute(
        update(Insumo)
        .where(Insumo.id == insumo.id)
        .values(stock_total=_rounded(Insumo.stock_total + cantidad))
        .execution_options(synchronize_session=False)
    )
    db.session.refresh(insumo)


def _subtract_from_stock(insumo: Insumo, cantidad: Decimal) -> None:
    # Floored at zero
    db.session.execute(
        update(Insumo)
        .where(Insumo.id == insumo.id)
        .values(
            stock_total=case(
                (Insumo.stock_total > cantidad, _rounded(Insumo.stock_total - cantidad)),
                else_=Decimal("0"),
            )
        )
        .execution_options(synchronize_session=False)
    )
    db.session.refresh(insumo)


def post_movement(
    *,
    insumo_id: int,
    local_id: int,
    tipo: str,
    cantidad,
    lote_id=None,
    lote_label: str | None = None,
    fecha_vencimiento=None,
    motivo: str | None = None,
    nota: str | None = None,
    usuario_id: int | None = None,
) -> tuple[InsumoMovimiento, InsumoLote]:
    """
    Post an entrada/salida and return (movement, lot).

    Input is validated before the transaction starts; nothing is written for
    a malformed request.
    """
    tipo = _parse_tipo(tipo)
    cantidad = parse_positive_quantity(cantidad)
    lote_id = optional_identifier(lote_id, "lote_id", reason="invalid_lot")
    lote_label = sanitize_text(lote_label, max_length=80)
    fecha_vencimiento = _parse_expiry(fecha_vencimiento)
    motivo = sanitize_text(motivo, max_length=200)
    nota = sanitize_text(nota, max_length=300)

    def _op():
        insumo = ensure_insumo_in_local(insumo_id, local_id, lock=True)
        if not insumo.activo:
            raise InvalidInputError("Insumo is hidden", reason="hidden")

        if tipo == ENTRADA:
            if lote_id is not None:
                lote = _get_target_lot(lote_id=lote_id, insumo_id=insumo.id, local_id=local_id)
                if not lote.activo:
                    raise InvalidInputError("Lot is hidden", reason="hidden")
                _increment_lot(lote, cantidad)
            else:
                lote = InsumoLote(
                    insumo_id=insumo.id,
                    local_id=local_id,
                    lote=lote_label,
                    fecha_vencimiento=fecha_vencimiento,
                    cantidad=cantidad,
                    fecha_ingreso=utcnow(),
                    activo=True,
                )
                db.session.add(lote)
                db.session.flush()
            _add_to_stock(insumo, cantidad)
        else:
            if lote_id is not None:
                lote = _get_target_lot(lote_id=lote_id, insumo_id=insumo.id, local_id=local_id)
                if not lote.activo:
                    raise InvalidInputError("Lot is hidden", reason="hidden")
            else:
                lote = _oldest_available_lot(insumo_id=insumo.id, local_id=local_id)
                if lote is None:
                    raise ConflictError("No lot available for salida", reason="no_lot_available")
            _decrement_lot(lote, cantidad)
            _subtract_from_stock(insumo, cantidad)

        movimiento = InsumoMovimiento(
            insumo_id=insumo.id,
            local_id=local_id,
            lote_id=lote.id,
            tipo=tipo,
            cantidad=cantidad,
            motivo=motivo,
            nota=nota,
            usuario_id=usuario_id,
            fecha=utcnow(),
        )
        db.session.add(movimiento)
        db.session.commit()
        return movimiento, lote

    return run_with_retry(_op)


def set_lot_active(*, insumo_id: int, lote_id: int, local_id: int, activo: bool) -> InsumoLote:
    """
    Show or hide a lot.

    A hidden lot no longer counts towards stock_total, so its quantity is
    moved out of (or back into) the insumo aggregate in the same transaction.
    """
    if not isinstance(activo, bool):
        raise InvalidInputError("activo must be a boolean")

    def _op():
        insumo = ensure_insumo_in_local(insumo_id, local_id, lock=True)
        lote = _get_target_lot(lote_id=lote_id, insumo_id=insumo.id, local_id=local_id)
        if lote.activo == activo:
            return lote

        if activo:
            _add_to_stock(insumo, lote.cantidad)
        else:
            _subtract_from_stock(insumo, lote.cantidad)
        lote.activo = activo
        db.session.commit()
        return lote

    return run_with_retry(_op)


def list_lots(
    *,
    insumo_id: int,
    local_id: int,
    include_hidden: bool = False,
    include_unlabeled: bool = False,
) -> list[InsumoLote]:
    """
    Lots of an insumo, oldest first.

    Lots with neither a label nor an expiry date carry no information for
    the operator and are left out unless include_unlabeled is set.
    """
    ensure_insumo_in_local(insumo_id, local_id)

    q = db.session.query(InsumoLote).filter_by(insumo_id=insumo_id, local_id=local_id)
    if not include_hidden:
        q = q.filter(InsumoLote.activo.is_(True))
    if not include_unlabeled:
        q = q.filter(or_(
            and_(InsumoLote.lote.isnot(None), InsumoLote.lote != ""),
            InsumoLote.fecha_vencimiento.isnot(None),
        ))

    return q.order_by(InsumoLote.fecha_ingreso.asc(), InsumoLote.id.asc()).all()


def list_movements(*, local_id: int, insumo_id: int | None = None, limit: int = 500) -> list[InsumoMovimiento]:
    q = db.session.query(InsumoMovimiento).filter_by(local_id=local_id)
    if insumo_id is not None:
        ensure_insumo_in_local(insumo_id, local_id)
        q = q.filter_by(insumo_id=insumo_id)

    return q.order_by(
        InsumoMovimiento.fecha.desc(),
        InsumoMovimiento.id.desc(),
    ).limit(limit).all()
