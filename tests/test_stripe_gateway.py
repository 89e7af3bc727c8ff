from decimal import Decimal
from types import SimpleNamespace

import pytest
import stripe

from app.errors import AuthenticationError, NotFoundError, UpstreamError
from app.services.donation_intent import DonationIntent
from app.services.stripe_gateway import StripeGateway, _guess_stripe_mode
from tests.conftest import PROJECT_ID, WEBHOOK_SECRET

INTENT = DonationIntent(
    amount=Decimal("12.34"),
    project_id=PROJECT_ID,
    donor_name="Jane Doe",
    donor_email="jane@example.com",
)


def make_gateway(key="sk_test_abc", secret=WEBHOOK_SECRET):
    return StripeGateway(key, secret)


def create(gw):
    return gw.create_checkout_session(
        INTENT,
        project_title="Clean Water Initiative",
        success_url="https://hopelink.test/ok",
        cancel_url="https://hopelink.test/cancel",
    )


def test_create_sends_cents_and_metadata(monkeypatch):
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    assert create(make_gateway()) == {"id": "cs_test_1", "url": "https://checkout.stripe.com/c/cs_test_1"}
    [kw] = calls
    [item] = kw["line_items"]
    assert item["price_data"]["unit_amount"] == 1234
    assert item["price_data"]["currency"] == "usd"
    assert item["price_data"]["product_data"]["name"] == "Donation to Clean Water Initiative"
    assert kw["metadata"] == INTENT.to_metadata()
    assert kw["mode"] == "payment"
    assert kw["api_key"] == "sk_test_abc"


def test_create_failure_is_upstream_error(monkeypatch):
    def boom(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "create", boom)
    with pytest.raises(UpstreamError):
        create(make_gateway())


def test_missing_secret_key_is_upstream_error():
    with pytest.raises(UpstreamError):
        create(make_gateway(key=""))
    with pytest.raises(UpstreamError):
        make_gateway(key="").retrieve_session("cs_x")


def test_retrieve_returns_plain_dict(monkeypatch):
    monkeypatch.setattr(
        stripe.checkout.Session,
        "retrieve",
        lambda sid, **kw: {"id": sid, "payment_status": "paid", "metadata": {}},
    )
    assert make_gateway().retrieve_session("cs_1") == {
        "id": "cs_1",
        "payment_status": "paid",
        "metadata": {},
    }


def test_retrieve_unknown_session_is_not_found(monkeypatch):
    def missing(sid, **kw):
        raise stripe.InvalidRequestError(
            "No such checkout.session", "id", code="resource_missing", http_status=404
        )

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", missing)
    with pytest.raises(NotFoundError):
        make_gateway().retrieve_session("cs_nope")


def test_retrieve_other_failures_are_upstream(monkeypatch):
    def boom(sid, **kw):
        raise stripe.APIError("stripe is down")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", boom)
    with pytest.raises(UpstreamError):
        make_gateway().retrieve_session("cs_1")


def test_construct_event_requires_secret_and_header():
    with pytest.raises(AuthenticationError):
        make_gateway(secret="").construct_event(b"{}", "t=1,v1=abc")
    with pytest.raises(AuthenticationError):
        make_gateway().construct_event(b"{}", None)


@pytest.mark.parametrize(
    "key,mode",
    [
        ("sk_live_1", "live"),
        ("rk_test_1", "test"),
        ("sk_test_1", "test"),
        ("", "disabled"),
        ("whatever", "unknown"),
    ],
)
def test_guess_stripe_mode(key, mode):
    assert _guess_stripe_mode(key) == mode
