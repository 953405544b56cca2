# Overview: Low-stock and lot-expiry alerts for a local's insumos, and the staff who receive them.

"""
Insumo Alerts

- stock_bajo: active insumos whose stock_total is at or below stock_minimo.
- Expiry is judged per lot (active, cantidad > 0, with fecha_vencimiento),
  against the insumo's alerta_vencimiento_dias (7 when unset).
  Days left = ceil((fecha_vencimiento - now) / 1 day):
    negative                    -> vencido
    0 .. alerta_vencimiento_dias -> por_vencer
  A lot stays at day 0 until a full day has passed since its expiry.
- Recipients are active staff bound to the local, or superadmins.
- Delivery of the digest is external; this module only assembles it.
"""

from __future__ import annotations

import math
from datetime import datetime

from sqlalchemy import or_

from ..extensions import db
from ..models import Insumo, InsumoAlertaDestinatario, InsumoLote, User
from posail.errors import InvalidInputError
from posail.permissions import Role
from posail.time_utils import coerce_datetime, utcnow
from posail.validation import parse_identifier_list
from .concurrency import run_with_retry


DEFAULT_ALERT_DAYS = 7
SECONDS_PER_DAY = 24 * 60 * 60


def days_until(fecha: datetime, now: datetime) -> int:
    fecha = coerce_datetime(fecha)
    return math.ceil((fecha - now).total_seconds() / SECONDS_PER_DAY)


def classify_expiry(lotes, alerta_dias: int, now: datetime) -> tuple[list, list]:
    """Split lots into (por_vencer, vencidos), each a list of (lote, dias_restantes)."""
    por_vencer = []
    vencidos = []
    for lote in lotes:
        if lote.fecha_vencimiento is None:
            continue
        dias = days_until(lote.fecha_vencimiento, now)
        if dias < 0:
            vencidos.append((lote, dias))
        elif dias <= alerta_dias:
            por_vencer.append((lote, dias))
    return por_vencer, vencidos


def _lot_alert(insumo: Insumo, lote: InsumoLote, dias: int) -> dict:
    data = lote.to_dict()
    data["insumo_nombre"] = insumo.nombre
    data["dias_restantes"] = dias
    return data


def summarize_alerts(*, local_id: int, now: datetime | None = None) -> dict:
    now = now or utcnow()

    insumos = (
        db.session.query(Insumo)
        .filter(Insumo.local_id == local_id, Insumo.activo.is_(True))
        .order_by(Insumo.orden.asc(), Insumo.nombre.asc())
        .all()
    )
    lotes = (
        db.session.query(InsumoLote)
        .filter(
            InsumoLote.local_id == local_id,
            InsumoLote.activo.is_(True),
            InsumoLote.cantidad > 0,
            InsumoLote.fecha_vencimiento.isnot(None),
        )
        .order_by(InsumoLote.fecha_vencimiento.asc(), InsumoLote.id.asc())
        .all()
    )
    lotes_por_insumo: dict[int, list[InsumoLote]] = {}
    for lote in lotes:
        lotes_por_insumo.setdefault(lote.insumo_id, []).append(lote)

    stock_bajo = []
    por_vencer = []
    vencidos = []
    for insumo in insumos:
        if (insumo.stock_total or 0) <= (insumo.stock_minimo or 0):
            stock_bajo.append(insumo.to_dict())

        alerta_dias = insumo.alerta_vencimiento_dias
        if alerta_dias is None:
            alerta_dias = DEFAULT_ALERT_DAYS
        proximos, caducados = classify_expiry(lotes_por_insumo.get(insumo.id, []), alerta_dias, now)
        por_vencer.extend(_lot_alert(insumo, lote, dias) for lote, dias in proximos)
        vencidos.extend(_lot_alert(insumo, lote, dias) for lote, dias in caducados)

    return {"stock_bajo": stock_bajo, "por_vencer": por_vencer, "vencidos": vencidos}


def list_recipients(local_id: int) -> list[User]:
    return (
        db.session.query(User)
        .join(InsumoAlertaDestinatario, InsumoAlertaDestinatario.usuario_id == User.id)
        .filter(InsumoAlertaDestinatario.local_id == local_id)
        .order_by(User.id.asc())
        .all()
    )


def set_recipients(*, local_id: int, usuario_ids) -> list[User]:
    """
    Replace the local's recipient list.

    Ids of users that are neither bound to the local nor superadmins, or that
    are inactive, are dropped silently.
    """
    ids = parse_identifier_list(usuario_ids, "usuarios")

    def _op():
        validos = []
        if ids:
            validos = (
                db.session.query(User.id)
                .filter(
                    User.id.in_(ids),
                    User.is_active.is_(True),
                    or_(User.local_id == local_id, User.rol == Role.SUPERADMIN.value),
                )
                .all()
            )
        db.session.query(InsumoAlertaDestinatario).filter_by(local_id=local_id).delete(synchronize_session=False)
        for (usuario_id,) in validos:
            db.session.add(InsumoAlertaDestinatario(local_id=local_id, usuario_id=usuario_id))
        db.session.commit()
        return list_recipients(local_id)

    return run_with_retry(_op)


def build_digest(*, local_id: int, now: datetime | None = None) -> dict:
    """The daily digest for the local's recipients; fails when none are configured."""
    emails = [user.email for user in list_recipients(local_id) if user.email]
    if not emails:
        raise InvalidInputError("No alert recipients configured", reason="no_recipients")

    summary = summarize_alerts(local_id=local_id, now=now)
    return {
        "destinatarios": emails,
        "hay_alertas": any(summary.values()),
        **summary,
    }
