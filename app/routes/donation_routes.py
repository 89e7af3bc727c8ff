from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required, verify_jwt_in_request

from app.errors import ValidationError
from app.models.donation import (
    list_donations_for_user,
    list_recent_completed,
    serialize_donation,
)
from app.services.donation_service import (
    get_donation_stats,
    start_checkout,
    verify_checkout_session,
)
from app.utils.db import get_db
from app.utils.ids import is_uuid
from app.utils.rate_limit import rate_limited

donations_bp = Blueprint("donations", __name__)

RECENT_DEFAULT_LIMIT = 10
RECENT_MAX_LIMIT = 50


def _gateway():
    return current_app.extensions["payment_gateway"]


def _optional_user_id():
    verify_jwt_in_request(optional=True)
    identity = get_jwt_identity()
    return str(identity) if identity else None


@donations_bp.post("/api/donations/checkout")
@rate_limited("RATE_LIMIT_CHECKOUT_PER_MINUTE", "checkout")
def checkout():
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        raise ValidationError("request body must be a JSON object")
    session_id = start_checkout(
        get_db(),
        _gateway(),
        body,
        user_id=_optional_user_id(),
        app_url=current_app.config["APP_URL"],
    )
    return jsonify({"sessionId": session_id}), 200


# GET /api/donations?session_id=cs_...
@donations_bp.get("/api/donations")
def verify_session():
    session_id = (request.args.get("session_id") or "").strip()
    if not session_id:
        raise ValidationError("session_id is required")
    result = verify_checkout_session(get_db(), _gateway(), session_id)
    if "donation" in result:
        result["donation"] = serialize_donation(result["donation"])
    return jsonify(result), 200


@donations_bp.get("/api/donations/history")
@jwt_required()
def history():
    user_id = str(get_jwt_identity())
    rows = list_donations_for_user(get_db(), user_id)
    return jsonify({"donations": [serialize_donation(d) for d in rows]}), 200


@donations_bp.get("/api/donations/recent")
def recent():
    project_id = (request.args.get("projectId") or "").strip() or None
    if project_id and not is_uuid(project_id):
        raise ValidationError("invalid projectId")
    try:
        limit = int(request.args.get("limit") or RECENT_DEFAULT_LIMIT)
    except ValueError:
        raise ValidationError("limit must be an integer")
    limit = max(1, min(limit, RECENT_MAX_LIMIT))
    rows = list_recent_completed(get_db(), project_id=project_id, limit=limit)
    return jsonify({"donations": [serialize_donation(d, mask=True) for d in rows]}), 200


@donations_bp.get("/api/donations/stats")
def stats():
    project_id = (request.args.get("projectId") or "").strip() or None
    data = get_donation_stats(
        get_db(), project_id, ttl=int(current_app.config["STATS_CACHE_TTL"])
    )
    return jsonify({"stats": data}), 200
