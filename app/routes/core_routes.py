from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity, get_jwt

core = Blueprint("core", __name__)


@core.get("/")
def root():
    return jsonify({"service": "hopelink-api", "ok": True})


@core.get("/api")
def api_index():
    return jsonify(
        {
            "endpoints": {
                "donations": [
                    "/api/donations/checkout (POST)",
                    "/api/donations?session_id= (GET)",
                    "/api/donations/history (GET, auth)",
                    "/api/donations/recent (GET)",
                    "/api/donations/stats (GET)",
                ],
                "projects": ["/api/projects/<project_id> (GET)"],
                "webhooks": ["/api/stripe/webhook (POST)"],
            }
        }
    )


@core.get("/api/me")
@jwt_required()
def me():
    claims = get_jwt()
    return jsonify({"user_id": get_jwt_identity(), "role": claims.get("role")})
