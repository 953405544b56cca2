# backend/posail/routes/insumos.py
"""
Insumo catalog and stock ledger routes.

SECURITY: Every route resolves the request scope and is confined to its local.
- Viewing and posting movements: any staff role
- Catalog writes: admin roles
- Cloning between locales: superadmin
- Alert recipients and the alert digest: superadmin

Stock (stock_total, lot cantidad) is only changed through movements and lot
show/hide; catalog updates never touch it.
"""
from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_capability, require_local_scope
from ..errors import InvalidInputError
from ..permissions import (
    can_clone_insumos,
    can_configure_alerts,
    can_delete_catalog,
    can_manage_catalog,
    can_post_movements,
    can_view_inventory,
)
from ..services import alert_service, insumo_service, ledger_service
from ..validation import optional_identifier, require_identifier


insumos_bp = Blueprint("insumos", __name__, url_prefix="/api/insumos")

DEFAULT_MOVEMENT_LIMIT = 200
MAX_MOVEMENT_LIMIT = 1000


def _query_flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes", "on")


def _query_limit() -> int:
    raw = request.args.get("limit")
    if raw is None or raw.strip() == "":
        return DEFAULT_MOVEMENT_LIMIT
    if not raw.strip().isdigit() or int(raw) <= 0:
        raise InvalidInputError("limit must be a positive integer")
    return min(int(raw), MAX_MOVEMENT_LIMIT)


@insumos_bp.get("")
@require_local_scope
@require_capability(can_view_inventory)
def list_insumos(scope):
    categoria_id = optional_identifier(request.args.get("categoria_id"), "categoria_id")
    insumos = insumo_service.list_insumos(
        local_id=scope.local_id,
        include_hidden=_query_flag("include_hidden"),
        categoria_id=categoria_id,
    )
    return jsonify([insumo.to_dict() for insumo in insumos]), 200


@insumos_bp.post("")
@require_local_scope
@require_capability(can_manage_catalog)
def create_insumo(scope):
    insumo = insumo_service.create_insumo(local_id=scope.local_id, payload=request.get_json(silent=True))
    return jsonify(insumo.to_dict()), 201


@insumos_bp.put("/orden")
@require_local_scope
@require_capability(can_manage_catalog)
def reorder_insumos(scope):
    data = request.get_json(silent=True) or {}
    insumos = insumo_service.reorder_insumos(local_id=scope.local_id, ordered_ids=data.get("ids"))
    return jsonify([insumo.to_dict() for insumo in insumos]), 200


@insumos_bp.post("/clonar")
@require_local_scope
@require_capability(can_clone_insumos)
def clone_insumos(scope):
    """
    Copy insumo definitions into another local.

    Body: {"destino_local_id": ..., "origen_local_id"?: ..., "insumo_ids"?: [...]}.
    The source defaults to the local of the request scope.
    """
    data = request.get_json(silent=True) or {}
    source_local_id = optional_identifier(data.get("origen_local_id"), "origen_local_id", reason="invalid_local")
    target_local_id = require_identifier(data.get("destino_local_id"), "destino_local_id", reason="invalid_local")

    result = insumo_service.clone_insumos(
        source_local_id=source_local_id or scope.local_id,
        target_local_id=target_local_id,
        insumo_ids=data.get("insumo_ids"),
    )
    return jsonify(result), 201


@insumos_bp.get("/movimientos")
@require_local_scope
@require_capability(can_view_inventory)
def list_local_movements(scope):
    movimientos = ledger_service.list_movements(local_id=scope.local_id, limit=_query_limit())
    return jsonify([m.to_dict() for m in movimientos]), 200


@insumos_bp.get("/alertas")
@require_local_scope
@require_capability(can_view_inventory)
def get_alertas(scope):
    """Low-stock insumos and expired or soon-to-expire lots: {stock_bajo, por_vencer, vencidos}."""
    return jsonify(alert_service.summarize_alerts(local_id=scope.local_id)), 200


@insumos_bp.get("/alertas/config")
@require_local_scope
@require_capability(can_view_inventory)
def get_alertas_config(scope):
    usuarios = alert_service.list_recipients(scope.local_id)
    return jsonify({"usuarios": [u.id for u in usuarios]}), 200


@insumos_bp.put("/alertas/config")
@require_local_scope
@require_capability(can_configure_alerts)
def set_alertas_config(scope):
    data = request.get_json(silent=True) or {}
    usuarios = alert_service.set_recipients(local_id=scope.local_id, usuario_ids=data.get("usuarios", []))
    return jsonify({"usuarios": [u.id for u in usuarios]}), 200


@insumos_bp.post("/alertas/resumen")
@require_local_scope
@require_capability(can_configure_alerts)
def build_alertas_resumen(scope):
    """
    Assemble the alert digest for the local's recipients.

    Delivery is left to the caller; 400 no_recipients when none are configured.
    """
    digest = alert_service.build_digest(local_id=scope.local_id)
    current_app.logger.info(
        "Insumo alert digest: local=%s recipients=%d stock_bajo=%d por_vencer=%d vencidos=%d",
        scope.local_id,
        len(digest["destinatarios"]),
        len(digest["stock_bajo"]),
        len(digest["por_vencer"]),
        len(digest["vencidos"]),
    )
    return jsonify(digest), 200


@insumos_bp.put("/<int:insumo_id>")
@require_local_scope
@require_capability(can_manage_catalog)
def update_insumo(insumo_id: int, scope):
    insumo = insumo_service.update_insumo(
        insumo_id=insumo_id,
        local_id=scope.local_id,
        payload=request.get_json(silent=True),
    )
    return jsonify(insumo.to_dict()), 200


@insumos_bp.delete("/<int:insumo_id>")
@require_local_scope
@require_capability(can_delete_catalog)
def delete_insumo(insumo_id: int, scope):
    insumo_service.delete_insumo(insumo_id=insumo_id, local_id=scope.local_id)
    return jsonify({"ok": True}), 200


@insumos_bp.put("/<int:insumo_id>/estado")
@require_local_scope
@require_capability(can_manage_catalog)
def set_insumo_estado(insumo_id: int, scope):
    data = request.get_json(silent=True) or {}
    insumo = insumo_service.set_insumo_active(
        insumo_id=insumo_id,
        local_id=scope.local_id,
        activo=data.get("activo"),
    )
    return jsonify(insumo.to_dict()), 200


@insumos_bp.get("/<int:insumo_id>/lotes")
@require_local_scope
@require_capability(can_view_inventory)
def list_lotes(insumo_id: int, scope):
    lotes = ledger_service.list_lots(
        insumo_id=insumo_id,
        local_id=scope.local_id,
        include_hidden=_query_flag("include_hidden"),
        include_unlabeled=_query_flag("include_unlabeled"),
    )
    return jsonify([lote.to_dict() for lote in lotes]), 200


@insumos_bp.put("/<int:insumo_id>/lotes/<int:lote_id>/estado")
@require_local_scope
@require_capability(can_manage_catalog)
def set_lote_estado(insumo_id: int, lote_id: int, scope):
    data = request.get_json(silent=True) or {}
    lote = ledger_service.set_lot_active(
        insumo_id=insumo_id,
        lote_id=lote_id,
        local_id=scope.local_id,
        activo=data.get("activo"),
    )
    return jsonify(lote.to_dict()), 200


@insumos_bp.get("/<int:insumo_id>/movimientos")
@require_local_scope
@require_capability(can_view_inventory)
def list_insumo_movements(insumo_id: int, scope):
    movimientos = ledger_service.list_movements(
        local_id=scope.local_id,
        insumo_id=insumo_id,
        limit=_query_limit(),
    )
    return jsonify([m.to_dict() for m in movimientos]), 200


@insumos_bp.post("/<int:insumo_id>/movimientos")
@require_local_scope
@require_capability(can_post_movements)
def post_movement(insumo_id: int, scope):
    """
    Post an entrada or salida.

    Body: {"tipo", "cantidad", "lote_id"?, "lote"?, "fecha_vencimiento"?,
    "motivo"?, "nota"?}. Returns the movement, the touched lot and the
    insumo with its new stock_total.
    """
    data = request.get_json(silent=True) or {}
    movimiento, lote = ledger_service.post_movement(
        insumo_id=insumo_id,
        local_id=scope.local_id,
        tipo=data.get("tipo"),
        cantidad=data.get("cantidad"),
        lote_id=data.get("lote_id"),
        lote_label=data.get("lote"),
        fecha_vencimiento=data.get("fecha_vencimiento"),
        motivo=data.get("motivo"),
        nota=data.get("nota"),
        usuario_id=scope.user_id,
    )
    insumo = insumo_service.ensure_insumo_in_local(insumo_id, scope.local_id)
    return jsonify({
        "movimiento": movimiento.to_dict(),
        "lote": lote.to_dict(),
        "insumo": insumo.to_dict(),
    }), 201
