"""
Payment Gateway Client: the three Stripe calls the donation flow needs.

Stripe SDK errors never leave this module; they are translated to the app's
error taxonomy so routes and services only deal with AppError subclasses.
"""

from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional

import stripe

from app.errors import AuthenticationError, NotFoundError, UpstreamError, ValidationError
from app.services.donation_intent import DonationIntent
from app.utils.amounts import to_cents

log = logging.getLogger(__name__)

CONFIRMING_EVENTS = (
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
)


def _guess_stripe_mode(api_key: Optional[str]) -> str:
    if not api_key:
        return "disabled"
    if api_key.startswith(("sk_live_", "rk_live_")):
        return "live"
    if api_key.startswith(("sk_test_", "rk_test_")):
        return "test"
    return "unknown"


def _plain(obj: Any) -> Dict[str, Any]:
    if hasattr(obj, "to_dict_recursive"):
        return obj.to_dict_recursive()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


class StripeGateway:
    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        *,
        currency: str = "usd",
        max_network_retries: int = 2,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency
        stripe.max_network_retries = max_network_retries
        log.info("Stripe gateway ready (%s mode)", _guess_stripe_mode(secret_key))

    def create_checkout_session(
        self,
        intent: DonationIntent,
        *,
        project_title: str,
        success_url: str,
        cancel_url: str,
    ) -> Dict[str, Any]:
        """Returns {"id", "url"} of the hosted payment page."""
        if not self.secret_key:
            raise UpstreamError("payment gateway is not configured")
        try:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product_data": {"name": f"Donation to {project_title}"},
                            "unit_amount": to_cents(intent.amount),
                        },
                        "quantity": 1,
                    }
                ],
                customer_email=intent.donor_email,
                metadata=intent.to_metadata(),
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as e:
            log.error("checkout session create failed: %s", e)
            raise UpstreamError("failed to create checkout session") from e
        return {"id": session.id, "url": getattr(session, "url", None)}

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        if not self.secret_key:
            raise UpstreamError("payment gateway is not configured")
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.secret_key)
        except stripe.InvalidRequestError as e:
            if getattr(e, "http_status", None) == 404 or getattr(e, "code", None) == "resource_missing":
                raise NotFoundError("checkout session not found") from e
            log.error("checkout session retrieve rejected: %s", e)
            raise UpstreamError("failed to retrieve checkout session") from e
        except stripe.StripeError as e:
            log.error("checkout session retrieve failed: %s", e)
            raise UpstreamError("failed to retrieve checkout session") from e
        return _plain(session)

    def construct_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        """
        Verify the Stripe-Signature header against the raw body and return the
        event as plain dicts.
        """
        if not self.webhook_secret:
            raise AuthenticationError("webhook signing secret is not configured")
        if not sig_header:
            raise AuthenticationError("missing signature")
        try:
            stripe.Webhook.construct_event(
                payload=payload,
                sig_header=sig_header,
                secret=self.webhook_secret,
            )
        except stripe.SignatureVerificationError as e:
            raise AuthenticationError("invalid signature") from e
        except ValueError as e:
            raise ValidationError("invalid payload") from e
        event = json.loads(payload.decode("utf-8") if isinstance(payload, bytes) else payload)
        if not isinstance(event, dict):
            raise ValidationError("invalid payload")
        return event
