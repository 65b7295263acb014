"""Shared test fixtures for the donations test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- smtp: patched smtplib.SMTP (autouse — no test talks to a real server)
- openai_post: patched requests.post returning a well-formed completion (autouse)
- admin_user / admin_client: an admin account and a logged-in client
- make_event: builder for checkout.session.completed events
- stripe_sessions: mocked StripeClient sessions service on the gateway
- sign_payload: a real Stripe-Signature header for a payload
"""

import hashlib
import hmac
import json
import time
from unittest.mock import MagicMock, patch

import pytest

from donations import create_app
from donations.extensions import db as _db
from donations.models.user import User


MODEL_REPLY = (
    "Here is your copy:\n"
    + json.dumps({
        "subject": "Ada, your gift is already at work",
        "body": "Dear Ada,\nThank you for standing with us.",
        "impact": "Your $20.00 provides 40 school meals.",
    })
    + "\nLet me know if you need changes."
)


WEBHOOK_SECRET = "whsec_test_fake"


def openai_response(content, status_code=200):
    """Fake requests.Response for the chat completions endpoint."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = {
        "choices": [{"message": {"role": "assistant", "content": content}}],
    }
    response.text = content
    return response


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def services(app):
    """The app's wired collaborators (gateways, notifier, copy generator, CMS)."""
    return app.extensions["donations"]


@pytest.fixture(autouse=True)
def smtp():
    """Patch SMTP; `smtp.return_value.__enter__.return_value` is the server."""
    with patch("donations.services.email_service.smtplib.SMTP") as mock_smtp:
        yield mock_smtp


@pytest.fixture
def smtp_server(smtp):
    return smtp.return_value.__enter__.return_value


@pytest.fixture(autouse=True)
def openai_post():
    with patch("donations.services.copy_service.requests.post") as mock_post:
        mock_post.return_value = openai_response(MODEL_REPLY)
        yield mock_post


@pytest.fixture
def admin_user(app, db_session):
    with app.app_context():
        admin = User(email="admin@donations.local", is_admin=True)
        admin.set_password("admin123")
        _db.session.add(admin)
        _db.session.commit()
        return admin.id


@pytest.fixture
def admin_client(client, admin_user):
    resp = client.post(
        "/auth/login",
        json={"email": "admin@donations.local", "password": "admin123"},
    )
    assert resp.status_code == 200
    return client


@pytest.fixture
def make_event():
    """Build a Stripe checkout.session.completed event dict."""

    def _make(event_id="evt_test_001", payment_intent="pi_test_001",
              session_id="cs_test_001", amount=2000, currency="usd",
              email="a@example.com", name="Ada", message="Keep it up",
              event_type="checkout.session.completed"):
        return {
            "id": event_id,
            "type": event_type,
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "payment_intent": payment_intent,
                    "amount_total": amount,
                    "currency": currency,
                    "customer_email": email,
                    "customer_details": {"email": email},
                    "payment_status": "paid",
                    "metadata": {"name": name, "message": message},
                }
            },
        }

    return _make


def sign_payload(payload, secret=WEBHOOK_SECRET, timestamp=None):
    """Stripe-Signature header value: HMAC-SHA256 over "{t}.{payload}"."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def stripe_sessions(services, monkeypatch):
    """Swap the gateway's StripeClient; returns `client.v1.checkout.sessions`."""
    client = MagicMock()
    monkeypatch.setattr(services.gateway("stripe"), "_client", client)
    return client.v1.checkout.sessions
