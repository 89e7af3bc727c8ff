"""
DonationIntent: what a donor asked to give, before the gateway confirms it.

It is never stored. It travels inside the checkout session metadata, which
only holds strings, so the wire form is:

    {projectId, donorName, donorEmail, userId ("" when anonymous), amount ("25.00")}

parse_intent_payload() validates a client request and raises ValidationError.
DonationIntent.from_metadata() reads the gateway's copy back and returns None
instead of raising: a session whose metadata cannot be trusted is simply not
confirmable.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

from app.errors import ValidationError
from app.utils.amounts import check_bounds, format_amount, parse_amount
from app.utils.ids import is_uuid

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# metadata strings that mean "no user"
_NO_USER = {"", "null", "none", "undefined"}


def decode_user_ref(raw: Any) -> Optional[str]:
    """Translate the metadata userId convention into an optional id."""
    if raw is None:
        return None
    value = str(raw).strip()
    if value.lower() in _NO_USER:
        return None
    return value


def encode_user_ref(user_id: Optional[str]) -> str:
    return str(user_id) if user_id else ""


@dataclass(frozen=True)
class DonationIntent:
    amount: Decimal
    project_id: str
    donor_name: str
    donor_email: str
    user_id: Optional[str] = None

    def to_metadata(self) -> dict[str, str]:
        return {
            "projectId": self.project_id,
            "donorName": self.donor_name,
            "donorEmail": self.donor_email,
            "userId": encode_user_ref(self.user_id),
            "amount": format_amount(self.amount),
        }

    @classmethod
    def from_metadata(cls, metadata: Optional[Mapping[str, Any]]) -> Optional["DonationIntent"]:
        if not metadata:
            return None
        try:
            return _build_intent(metadata, decode_user_ref(metadata.get("userId")))
        except ValidationError:
            return None


def _build_intent(fields: Mapping[str, Any], user_id: Optional[str]) -> DonationIntent:
    """Field rules shared by the checkout body and the metadata read back from the gateway."""
    raw_amount = fields.get("amount")
    if raw_amount is None or raw_amount == "":
        raise ValidationError("amount is required")
    problem = check_bounds(raw_amount)
    if problem:
        raise ValidationError(problem)
    amount = parse_amount(raw_amount)

    project_id = str(fields.get("projectId") or "").strip()
    donor_name = str(fields.get("donorName") or "").strip()
    donor_email = str(fields.get("donorEmail") or "").strip()
    missing = [
        name
        for name, value in (
            ("projectId", project_id),
            ("donorName", donor_name),
            ("donorEmail", donor_email),
        )
        if not value
    ]
    if missing:
        raise ValidationError(f"missing required fields: {', '.join(missing)}")
    if not is_uuid(project_id):
        raise ValidationError("projectId is not a valid id")
    # gateway metadata values are capped at 500 characters
    if len(donor_name) > 200:
        raise ValidationError("donorName is too long")
    if len(donor_email) > 254 or not EMAIL_RE.match(donor_email):
        raise ValidationError("donorEmail is not a valid email address")

    return DonationIntent(
        amount=amount,
        project_id=project_id,
        donor_name=donor_name,
        donor_email=donor_email,
        user_id=user_id or None,
    )


def parse_intent_payload(body: Mapping[str, Any], user_id: Optional[str] = None) -> DonationIntent:
    return _build_intent(body, user_id)
