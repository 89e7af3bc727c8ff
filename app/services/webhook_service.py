import logging
from typing import Any, Dict, Tuple

from app.services.donation_service import confirm_session
from app.services.stripe_gateway import CONFIRMING_EVENTS

log = logging.getLogger(__name__)


def process_stripe_event(
    db, gateway, payload: bytes, sig_header: str | None
) -> Tuple[int, Dict[str, Any]]:
    """
    Verify and handle one Stripe webhook delivery.

    Signature failures raise AuthenticationError before the ledger is touched.
    Database errors propagate so the route answers 5xx and Stripe redelivers;
    redelivery is harmless because confirm_session is idempotent.
    """
    event = gateway.construct_event(payload, sig_header)
    ev_type = event.get("type") or "unknown"

    if ev_type not in CONFIRMING_EVENTS:
        return 200, {"received": True, "ignored": ev_type}

    session = (event.get("data") or {}).get("object") or {}
    donation, _ = confirm_session(db, session, source="webhook")
    if donation is None:
        log.info(
            "webhook %s for session %s did not confirm a donation (payment_status=%s)",
            ev_type,
            session.get("id"),
            session.get("payment_status"),
        )
    return 200, {"received": True}
