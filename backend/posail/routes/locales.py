# Overview: Flask API routes for locales operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_scope
from ..services import local_service


locales_bp = Blueprint("locales", __name__, url_prefix="/api/locales")


@locales_bp.get("")
@require_scope
def list_locales(scope):
    locales = local_service.list_locales(scope)
    return jsonify([local.to_dict() for local in locales]), 200


@locales_bp.post("")
@require_scope
def create_local(scope):
    local = local_service.create_local(scope, request.get_json(silent=True) or {})
    return jsonify(local.to_dict()), 201


@locales_bp.get("/<int:local_id>")
@require_scope
def get_local(local_id: int, scope):
    local = local_service.get_local(scope, local_id)
    return jsonify(local.to_dict()), 200


@locales_bp.put("/<int:local_id>")
@require_scope
def update_local(local_id: int, scope):
    local = local_service.update_local(scope, local_id, request.get_json(silent=True) or {})
    return jsonify(local.to_dict()), 200
