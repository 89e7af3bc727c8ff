from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Tuple

from app.errors import ConflictError, NotFoundError
from app.models.donation import (
    donation_stats,
    get_donation_by_session,
    record_completed_donation,
)
from app.models.project import get_goal_and_funding, get_project
from app.models.user import user_exists
from app.realtime import broadcast_donation
from app.services.donation_intent import DonationIntent, parse_intent_payload
from app.utils.amounts import as_float
from app.utils.cache import cache_delete, cache_get_json, cache_set_json, stats_key
from app.utils.masking import mask_email

log = logging.getLogger(__name__)


def start_checkout(
    db,
    gateway,
    body: Dict[str, Any],
    *,
    user_id: Optional[str],
    app_url: str,
) -> str:
    """
    Validate the donation request and open a hosted checkout session for it.
    Nothing is written locally: the ledger row only appears on confirmation.
    """
    intent = parse_intent_payload(body, user_id=user_id)
    project = get_project(db, intent.project_id)
    if not project:
        raise NotFoundError("project not found")

    base = app_url.rstrip("/")
    session = gateway.create_checkout_session(
        intent,
        project_title=project["title"],
        success_url=f"{base}/donations/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base}/projects/{intent.project_id}?canceled=1",
    )
    log.info(
        "checkout session %s created project=%s amount=%s donor=%s",
        session["id"],
        intent.project_id,
        intent.amount,
        mask_email(intent.donor_email),
    )
    return session["id"]


def confirm_session(
    db, session: Dict[str, Any], *, source: str = "poll"
) -> Tuple[Optional[Dict[str, Any]], bool]:
    """
    Record the donation for a paid checkout session, at most once per session.

    Returns (donation, created). donation is None when the session is not paid
    or its metadata cannot be trusted. Safe to call any number of times, from
    the polling endpoint and the webhook concurrently: the unique index on
    donations.stripe_session_id decides which caller inserts, the other gets
    the existing row back.
    """
    session_ref = session.get("id")
    if not session_ref or session.get("payment_status") != "paid":
        return None, False

    existing = get_donation_by_session(db, session_ref)
    if existing:
        return existing, False

    intent = DonationIntent.from_metadata(session.get("metadata"))
    if intent is None:
        log.error("session %s is paid but its metadata is unusable", session_ref)
        return None, False

    user_id = intent.user_id
    if user_id and not user_exists(db, user_id):
        log.info("session %s names unknown user %s; recording as anonymous", session_ref, user_id)
        user_id = None

    try:
        donation, current_funding = record_completed_donation(
            db,
            amount=intent.amount,
            project_id=intent.project_id,
            donor_name=intent.donor_name,
            donor_email=intent.donor_email,
            user_id=user_id,
            stripe_session_id=session_ref,
        )
    except ConflictError:
        log.info("session %s already confirmed by a concurrent request", session_ref)
        return get_donation_by_session(db, session_ref), False

    log.info(
        "donation %s confirmed via %s session=%s project=%s amount=%s",
        donation["id"],
        source,
        session_ref,
        donation["project_id"],
        donation["amount"],
    )
    cache_delete(stats_key(donation["project_id"]), stats_key(None))
    broadcast_donation(donation, current_funding)
    return donation, True


def session_summary(session: Dict[str, Any]) -> Dict[str, Any]:
    details = session.get("customer_details") or {}
    return {
        "id": session.get("id"),
        "status": session.get("status"),
        "payment_status": session.get("payment_status"),
        "customer_email": session.get("customer_email") or details.get("email"),
        "amount_total": session.get("amount_total"),
        "currency": session.get("currency"),
    }


def verify_checkout_session(db, gateway, session_id: str) -> Dict[str, Any]:
    """Polling entry point: ask the gateway, then confirm if paid."""
    session = gateway.retrieve_session(session_id)
    donation, _ = confirm_session(db, session, source="poll")
    out: Dict[str, Any] = {"session": session_summary(session)}
    if donation:
        out["donation"] = donation
    return out


def get_donation_stats(db, project_id: Optional[str], *, ttl: int = 30) -> Dict[str, Any]:
    key = stats_key(project_id)
    cached = cache_get_json(key)
    if cached:
        return cached

    goal_and_funding = None
    if project_id:
        goal_and_funding = get_goal_and_funding(db, project_id)
        if not goal_and_funding:
            raise NotFoundError("project not found")

    totals = donation_stats(db, project_id=project_id)
    stats: Dict[str, Any] = {
        "totalAmount": as_float(totals["total_amount"]),
        "donationCount": int(totals["donation_count"] or 0),
        "averageDonation": as_float(totals["average_donation"]),
        "uniqueDonors": int(totals["unique_donors"] or 0),
    }
    if goal_and_funding:
        goal, current = goal_and_funding
        percentage = 0.0
        if goal and goal > 0:
            percentage = round(float(current) / float(goal) * 100.0, 2)
        stats["goalProgress"] = {
            "current": as_float(current),
            "target": as_float(goal),
            "percentage": percentage,
        }

    cache_set_json(key, stats, ttl)
    return stats
