import logging

from flask import Blueprint, current_app, jsonify, request

from app.errors import AppError
from app.services.webhook_service import process_stripe_event
from app.utils.db import get_db

log = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__)


@webhooks_bp.post("/api/stripe/webhook")
def stripe_webhook():
    try:
        status, resp = process_stripe_event(
            get_db(),
            current_app.extensions["payment_gateway"],
            payload=request.get_data(),
            sig_header=request.headers.get("Stripe-Signature"),
        )
        return jsonify(resp), status
    except AppError as e:
        log.warning("webhook rejected: %s", e.message)
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        # Never leak stack traces to Stripe; a 5xx makes it redeliver later.
        log.exception("webhook processing failed")
        return jsonify({"error": "failed to process payment"}), 500
