# Overview: Flask API routes for store team membership; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_store_access
from ..services import team_service


team_bp = Blueprint("team", __name__, url_prefix="/api/stores")


@team_bp.get("/<int:storeId>/users")
@require_auth
@require_store_access("team.view")
def list_members(storeId: int):
    return jsonify(team_service.list_members(g.store_id)), 200


@team_bp.post("/<int:storeId>/users")
@require_auth
@require_store_access("team.invite")
def invite_member(storeId: int):
    data = request.get_json(silent=True) or {}
    member = team_service.invite_member(
        store_id=g.store_id,
        email=data.get("email"),
        role=data.get("role"),
        invited_by=g.current_user.id,
    )
    return jsonify(member), 201


@team_bp.put("/<int:storeId>/users/<int:user_id>/role")
@require_auth
@require_store_access("team.change_role")
def change_role(storeId: int, user_id: int):
    data = request.get_json(silent=True) or {}
    membership = team_service.change_role(
        store_id=g.store_id,
        user_id=user_id,
        role=data.get("role"),
        changed_by=g.current_user.id,
    )
    return jsonify({"message": "Role updated successfully", "membership": membership}), 200


@team_bp.delete("/<int:storeId>/users/<int:user_id>")
@require_auth
@require_store_access("team.remove")
def remove_member(storeId: int, user_id: int):
    team_service.remove_member(
        store_id=g.store_id,
        user_id=user_id,
        removed_by=g.current_user.id,
        remover_role=g.role,
    )
    return jsonify({"message": "User removed from store successfully"}), 200
