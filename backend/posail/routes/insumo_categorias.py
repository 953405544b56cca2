# Overview: Flask API routes for insumo categories; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_capability, require_local_scope
from ..permissions import can_delete_catalog, can_manage_catalog, can_view_inventory
from ..services import category_service


insumo_categorias_bp = Blueprint("insumo_categorias", __name__, url_prefix="/api/insumo-categorias")


@insumo_categorias_bp.get("")
@require_local_scope
@require_capability(can_view_inventory)
def list_categorias(scope):
    categorias = category_service.list_categorias(local_id=scope.local_id)
    return jsonify([c.to_dict() for c in categorias]), 200


@insumo_categorias_bp.post("")
@require_local_scope
@require_capability(can_manage_catalog)
def create_categoria(scope):
    data = request.get_json(silent=True) or {}
    categoria = category_service.create_categoria(local_id=scope.local_id, nombre=data.get("nombre"))
    return jsonify(categoria.to_dict()), 201


@insumo_categorias_bp.put("/orden")
@require_local_scope
@require_capability(can_manage_catalog)
def reorder_categorias(scope):
    data = request.get_json(silent=True) or {}
    categorias = category_service.reorder_categorias(local_id=scope.local_id, ordered_ids=data.get("ids"))
    return jsonify([c.to_dict() for c in categorias]), 200


@insumo_categorias_bp.put("/<int:categoria_id>")
@require_local_scope
@require_capability(can_manage_catalog)
def rename_categoria(categoria_id: int, scope):
    data = request.get_json(silent=True) or {}
    categoria = category_service.rename_categoria(
        categoria_id=categoria_id,
        local_id=scope.local_id,
        nombre=data.get("nombre"),
    )
    return jsonify(categoria.to_dict()), 200


@insumo_categorias_bp.delete("/<int:categoria_id>")
@require_local_scope
@require_capability(can_delete_catalog)
def delete_categoria(categoria_id: int, scope):
    category_service.delete_categoria(categoria_id=categoria_id, local_id=scope.local_id)
    return jsonify({"ok": True}), 200
