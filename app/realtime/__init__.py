import logging
import os

from flask import request
from flask_socketio import SocketIO, join_room, leave_room, emit

from app.utils.amounts import as_float
from app.utils.masking import mask_email

log = logging.getLogger(__name__)

_raw = os.getenv("SOCKETIO_CORS_ORIGINS", "*").strip()
CORS_ORIGINS = "*" if _raw == "*" else [o.strip() for o in _raw.split(",") if o.strip()]

socketio = SocketIO(
    cors_allowed_origins=CORS_ORIGINS,
    async_mode=os.getenv("SOCKETIO_ASYNC_MODE", "threading"),
)


def project_room(project_id: str) -> str:
    return f"project:{project_id}"


def init_socketio(app):
    socketio.init_app(app)

    @socketio.on("connect")
    def handle_connect():
        log.debug("socket connect origin=%s", request.headers.get("Origin"))
        emit("connected", {"ok": True})

    @socketio.on("join_project")
    def on_join(data):
        pid = (data or {}).get("project_id")
        if not pid:
            emit("error", {"error": "project_id required"})
            return
        room = project_room(pid)
        join_room(room)
        emit("joined", {"room": room})

    @socketio.on("leave_project")
    def on_leave(data):
        pid = (data or {}).get("project_id")
        if not pid:
            return
        room = project_room(pid)
        leave_room(room)
        emit("left", {"room": room})


def broadcast_donation(donation: dict, current_funding) -> None:
    """Tell everyone watching the project about a newly confirmed donation."""
    pid = donation["project_id"]
    payload = {
        "project_id": pid,
        "amount": as_float(donation["amount"]),
        "donor": mask_email(donation.get("donor_email")),
        "donor_name": donation.get("donor_name"),
        "current_funding": as_float(current_funding),
    }
    try:
        socketio.emit("donation", payload, to=project_room(pid))
    except Exception as e:
        log.warning("socket emit failed: %s", e)
