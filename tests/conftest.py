import hashlib
import hmac
import json
import threading
import time
import uuid
from copy import deepcopy
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from app import create_app
from app.errors import ConflictError, NotFoundError
from app.services.stripe_gateway import StripeGateway
from app.utils.rate_limit import reset_rate_limits

WEBHOOK_SECRET = "whsec_test_secret"

PROJECT_ID = "11111111-1111-4111-8111-111111111111"
OTHER_PROJECT_ID = "22222222-2222-4222-8222-222222222222"
USER_ID = "33333333-3333-4333-8333-333333333333"


class FakeDatabase:
    """Stands in for app.utils.db.Database; the store below replaces the SQL."""

    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class LedgerStore:
    """
    In-memory projects/users/donations with the same contract as the model
    functions, including the unique stripe_session_id constraint.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.projects = {}
        self.users = set()
        self.donations = []
        self.funding_increments = 0
        self.lookups = 0
        self.race_barrier = None
        self._raced_threads = set()
        self.fail_record_with = None

    # seeding
    def add_project(self, project_id=PROJECT_ID, *, title="Clean Water Initiative", goal="50000.00", funding="0.00"):
        now = datetime.now(timezone.utc)
        self.projects[project_id] = {
            "id": project_id,
            "title": title,
            "description": f"{title} description",
            "goal": Decimal(goal),
            "current_funding": Decimal(funding),
            "start_date": now.date(),
            "end_date": None,
            "status": "active",
            "created_at": now,
            "updated_at": now,
        }
        return self.projects[project_id]

    def add_user(self, user_id=USER_ID):
        self.users.add(user_id)
        return user_id

    def add_donation(self, *, project_id=PROJECT_ID, amount="10.00", email="a@example.com", user_id=None, status="completed", created_at=None):
        d = {
            "id": str(uuid.uuid4()),
            "amount": Decimal(amount),
            "project_id": project_id,
            "donor_name": "Donor",
            "donor_email": email,
            "user_id": user_id,
            "stripe_session_id": f"cs_seed_{uuid.uuid4().hex[:10]}",
            "status": status,
            "created_at": created_at or datetime.now(timezone.utc),
        }
        self.donations.append(d)
        return d

    def funding(self, project_id=PROJECT_ID):
        return self.projects[project_id]["current_funding"]

    def donations_for_session(self, session_ref):
        return [d for d in self.donations if d["stripe_session_id"] == session_ref]

    # model contract
    def get_donation_by_session(self, db, session_ref):
        self.lookups += 1
        if self.race_barrier is not None:
            me = threading.get_ident()
            with self._lock:
                first = me not in self._raced_threads
                self._raced_threads.add(me)
            if first:
                self.race_barrier.wait(timeout=5)
                return None
        with self._lock:
            for d in self.donations:
                if d["stripe_session_id"] == session_ref:
                    return deepcopy(d)
        return None

    def record_completed_donation(self, db, *, amount, project_id, donor_name, donor_email, user_id, stripe_session_id):
        if self.fail_record_with is not None:
            raise self.fail_record_with
        with self._lock:
            if any(d["stripe_session_id"] == stripe_session_id for d in self.donations):
                raise ConflictError(f"donation already recorded for {stripe_session_id}")
            project = self.projects.get(project_id)
            if project is None:
                raise NotFoundError("project not found")
            d = {
                "id": str(uuid.uuid4()),
                "amount": amount,
                "project_id": project_id,
                "donor_name": donor_name,
                "donor_email": donor_email,
                "user_id": user_id,
                "stripe_session_id": stripe_session_id,
                "status": "completed",
                "created_at": datetime.now(timezone.utc),
            }
            self.donations.append(d)
            project["current_funding"] += amount
            self.funding_increments += 1
            return deepcopy(d), project["current_funding"]

    def user_exists(self, db, user_id):
        return user_id in self.users

    def get_project(self, db, project_id):
        p = self.projects.get(project_id)
        return deepcopy(p) if p else None

    def get_goal_and_funding(self, db, project_id):
        p = self.projects.get(project_id)
        return (p["goal"], p["current_funding"]) if p else None

    def _completed(self, project_id):
        return [
            d
            for d in self.donations
            if d["status"] == "completed" and (not project_id or d["project_id"] == project_id)
        ]

    def donation_stats(self, db, *, project_id=None):
        rows = self._completed(project_id)
        total = sum((d["amount"] for d in rows), Decimal("0"))
        donors = {d["user_id"] or d["donor_email"].lower() for d in rows}
        return {
            "total_amount": total,
            "donation_count": len(rows),
            "average_donation": (total / len(rows)) if rows else Decimal("0"),
            "unique_donors": len(donors),
        }

    def list_recent_completed(self, db, *, project_id=None, limit=10):
        rows = sorted(self._completed(project_id), key=lambda d: d["created_at"], reverse=True)[:limit]
        out = []
        for d in rows:
            d = deepcopy(d)
            d["project"] = {"id": d["project_id"], "title": self.projects[d["project_id"]]["title"]}
            out.append(d)
        return out

    def list_donations_for_user(self, db, user_id):
        rows = sorted(
            (d for d in self.donations if d["user_id"] == user_id),
            key=lambda d: d["created_at"],
            reverse=True,
        )
        out = []
        for d in rows:
            d = deepcopy(d)
            p = self.projects[d["project_id"]]
            d["project"] = {
                "id": p["id"],
                "title": p["title"],
                "description": p["description"],
                "status": p["status"],
            }
            out.append(d)
        return out

    def install(self, monkeypatch):
        targets = {
            "app.services.donation_service": [
                "get_donation_by_session",
                "record_completed_donation",
                "user_exists",
                "get_project",
                "get_goal_and_funding",
                "donation_stats",
            ],
            "app.routes.donation_routes": ["list_donations_for_user", "list_recent_completed"],
            "app.routes.project_routes": ["get_project"],
        }
        for module, names in targets.items():
            for name in names:
                monkeypatch.setattr(f"{module}.{name}", getattr(self, name))


class FakeGateway(StripeGateway):
    """Checkout sessions kept in memory; webhook verification is the real one."""

    def __init__(self, webhook_secret=WEBHOOK_SECRET):
        super().__init__("sk_test_fake", webhook_secret)
        self.sessions = {}
        self.created = []
        self.retrieve_error = None
        self.create_error = None

    def create_checkout_session(self, intent, *, project_title, success_url, cancel_url):
        if self.create_error is not None:
            raise self.create_error
        session_id = f"cs_test_{uuid.uuid4().hex}"
        self.sessions[session_id] = {
            "id": session_id,
            "object": "checkout.session",
            "status": "open",
            "payment_status": "unpaid",
            "customer_email": intent.donor_email,
            "amount_total": int(intent.amount * 100),
            "currency": self.currency,
            "metadata": intent.to_metadata(),
        }
        self.created.append(
            {
                "id": session_id,
                "project_title": project_title,
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        return {"id": session_id, "url": f"https://checkout.stripe.test/{session_id}"}

    def retrieve_session(self, session_id):
        if self.retrieve_error is not None:
            raise self.retrieve_error
        if session_id not in self.sessions:
            raise NotFoundError("checkout session not found")
        return deepcopy(self.sessions[session_id])

    def mark_paid(self, session_id):
        self.sessions[session_id]["payment_status"] = "paid"
        self.sessions[session_id]["status"] = "complete"

    def add_session(self, session_id, *, metadata, payment_status="paid"):
        self.sessions[session_id] = {
            "id": session_id,
            "object": "checkout.session",
            "status": "complete" if payment_status == "paid" else "open",
            "payment_status": payment_status,
            "customer_email": metadata.get("donorEmail"),
            "metadata": dict(metadata),
        }
        return self.sessions[session_id]


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode("utf-8") + payload
    sig = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def checkout_event(session: dict, event_type: str = "checkout.session.completed") -> bytes:
    return json.dumps(
        {
            "id": f"evt_{uuid.uuid4().hex[:16]}",
            "object": "event",
            "type": event_type,
            "data": {"object": session},
        }
    ).encode("utf-8")


def metadata_for(project_id=PROJECT_ID, *, amount="25.00", user_id="", name="Jane Doe", email="jane@example.com"):
    return {
        "projectId": project_id,
        "donorName": name,
        "donorEmail": email,
        "userId": user_id,
        "amount": amount,
    }


@pytest.fixture
def store(monkeypatch):
    s = LedgerStore()
    s.add_project()
    s.install(monkeypatch)
    return s


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def app(store, gateway, fake_db):
    reset_rate_limits()
    app = create_app(
        {
            "TESTING": True,
            "JWT_SECRET_KEY": "test-jwt-secret-with-enough-length-0123",
            "APP_URL": "https://hopelink.test/",
            "CACHE_ENABLED": False,
            "RATE_LIMIT_ENABLED": False,
        },
        db=fake_db,
        gateway=gateway,
    )
    yield app
    reset_rate_limits()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    def _make(user_id=USER_ID, role="DONOR"):
        with app.app_context():
            token = create_access_token(identity=user_id, additional_claims={"role": role})
        return {"Authorization": f"Bearer {token}"}

    return _make
