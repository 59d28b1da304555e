# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/stockroom/routes/auth.py
"""
Authentication API routes

- POST /signup      founder account + first store (caller becomes owner/admin)
- POST /signin      email + password -> token and stores with roles
- POST /join-store  co-admin/staff joins a store with its admin PIN
- GET  /me          current identity and stores
- POST /signout     stateless; the client discards its token
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import auth_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@auth_bp.post("/signup")
def signup_route():
    data = _json_body()
    result = auth_service.signup(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        store_name=data.get("store_name") or data.get("storeName"),
        store_type=data.get("store_type") or data.get("storeType"),
        admin_pin=data.get("admin_pin") or data.get("adminPin") or data.get("admin_code"),
        team_capacity=data.get("team_capacity", data.get("teamCapacity")),
    )
    return jsonify(result), 201


@auth_bp.post("/signin")
@auth_bp.post("/login")
def signin_route():
    data = _json_body()
    result = auth_service.signin(email=data.get("email"), password=data.get("password"))
    return jsonify(result), 200


@auth_bp.post("/join-store")
def join_store_route():
    data = _json_body()
    result = auth_service.join_store(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        role=data.get("role"),
        admin_code=data.get("admin_code") or data.get("adminCode"),
    )
    return jsonify(result), 201


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(auth_service.get_profile(g.current_user)), 200


@auth_bp.post("/signout")
@require_auth
def signout_route():
    # Tokens are stateless; nothing to revoke server-side.
    return jsonify({"message": "Signed out successfully"}), 200
