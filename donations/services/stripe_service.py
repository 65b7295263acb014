"""Stripe service — all Stripe API calls and webhook parsing.

Responsible for:
- Creating one-off Stripe Checkout Sessions for donations
- Retrieving a session for the thank-you page
- Verifying webhook signatures and constructing events
- Mapping checkout.session.completed into DonationFacts
"""

import logging

import stripe

from donations.services.payment_gateway import (
    CheckoutSession,
    DonationFacts,
    GatewayError,
    PaymentGateway,
    WebhookVerificationError,
)

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


def as_dict(obj):
    """Plain-dict view of a StripeObject.

    StripeObject stopped subclassing dict in stripe 15; read fields from
    the returned dict, never from the object itself.
    """
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


class StripeGateway(PaymentGateway):
    """Stripe Checkout adapter.

    Owns its StripeClient (API key and HTTP timeout); nothing is set on
    the stripe module.
    """

    name = "stripe"

    def __init__(self, secret_key, webhook_secret, public_base_url,
                 default_currency="usd", timeout=20):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.public_base_url = (public_base_url or "").rstrip("/")
        self.default_currency = default_currency
        self.timeout = timeout
        self._client = None

    @property
    def client(self):
        """Lazily built so a missing key only fails the calls that need it."""
        if self._client is None:
            if not self.secret_key:
                raise GatewayError("STRIPE_SECRET_KEY is not configured")
            self._client = stripe.StripeClient(
                self.secret_key,
                http_client=stripe.RequestsClient(timeout=self.timeout),
            )
        return self._client

    # ──────────────────────────────────────────────
    # Checkout Sessions
    # ──────────────────────────────────────────────

    def create_session(self, amount, currency, email, name="", message=""):
        """Create a one-time payment Checkout Session for a donation.

        Returns CheckoutSession(id, url).
        Raises GatewayError on Stripe API failures.
        """
        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "customer_email": email,
            "line_items": [
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": {"name": "Donation"},
                        "unit_amount": amount,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": (
                f"{self.public_base_url}/thank-you"
                f"?session_id={{CHECKOUT_SESSION_ID}}"
            ),
            "cancel_url": f"{self.public_base_url}/donate?canceled=true",
            "metadata": {
                "name": name or "",
                "message": message or "",
            },
        }
        try:
            session = as_dict(self.client.v1.checkout.sessions.create(params=params))
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session creation failed: {e}")
            raise GatewayError(str(e)) from e

        return CheckoutSession(id=session["id"], url=session.get("url"))

    def retrieve_session(self, session_id):
        """Fetch a Checkout Session and return display-safe fields."""
        try:
            cs = as_dict(self.client.v1.checkout.sessions.retrieve(session_id))
        except stripe.StripeError as e:
            logger.info(f"Stripe session {session_id} lookup failed: {e}")
            raise GatewayError(str(e)) from e

        metadata = as_dict(cs.get("metadata") or {})
        return {
            "id": cs.get("id"),
            "amount": cs.get("amount_total"),
            "currency": cs.get("currency"),
            "email": _session_email(cs),
            "name": metadata.get("name") or None,
            "message": metadata.get("message") or None,
            "status": cs.get("payment_status"),
        }

    # ──────────────────────────────────────────────
    # Webhook Handling
    # ──────────────────────────────────────────────

    def verify_and_parse_webhook(self, payload, signature):
        """Verify the Stripe webhook signature and return the event as a dict.

        Raises WebhookVerificationError on a bad payload or signature.
        """
        try:
            event = stripe.Webhook.construct_event(
                payload, signature, self.webhook_secret
            )
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookVerificationError(str(e)) from e
        return as_dict(event)

    def completed_donation(self, event):
        """Map checkout.session.completed onto DonationFacts."""
        if event.get("type") != CHECKOUT_COMPLETED:
            return None

        data = as_dict(event.get("data") or {})
        session = as_dict(data.get("object") or {})
        metadata = as_dict(session.get("metadata") or {})

        # Sessions paid without a PaymentIntent (e.g. 100% discounts) still
        # need a stable key; fall back to the session id.
        payment_intent = session.get("payment_intent")
        if payment_intent is not None and not isinstance(payment_intent, str):
            payment_intent = as_dict(payment_intent).get("id")

        return DonationFacts(
            payment_intent_id=str(payment_intent or session.get("id")),
            checkout_session_id=str(session.get("id") or ""),
            email=_session_email(session) or "",
            amount=int(session.get("amount_total") or 0),
            currency=(session.get("currency") or self.default_currency).lower(),
            name=metadata.get("name") or "",
            message=metadata.get("message") or "",
        )


def _session_email(session):
    details = as_dict(session.get("customer_details") or {})
    return details.get("email") or session.get("customer_email")
