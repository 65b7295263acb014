"""Webhooks blueprint — /webhook/<provider>

Receives payment provider webhook events. CSRF-exempt.
Raw body is required for signature verification.
"""

import logging

from flask import Blueprint, abort, request, jsonify
from sqlalchemy.exc import SQLAlchemyError

from donations.extensions import db
from donations.services.payment_gateway import WebhookVerificationError
from donations.services.registry import get_services

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/webhook")

SIGNATURE_HEADERS = {
    "stripe": "Stripe-Signature",
}


@webhooks_bp.route("/<provider>", methods=["POST"])
def provider_webhook(provider):
    """Receive and finalize a payment provider webhook event.

    1. Get raw body (required for signature verification)
    2. Verify signature with the provider's webhook secret
    3. Finalize the donation (idempotent via donations.payment_intent_id)
    4. Return 200 to acknowledge receipt; 500 only when persistence fails

    CSRF is exempted for this blueprint in create_app().
    """
    finalizer = get_services().finalizer(provider)
    if finalizer is None:
        abort(404)

    payload = request.get_data(as_text=True)
    sig_header = request.headers.get(SIGNATURE_HEADERS.get(provider, "Webhook-Signature"))

    if not sig_header:
        logger.warning(f"{provider} webhook received without signature header")
        return jsonify({"error": "Missing signature"}), 400

    try:
        outcome = finalizer.handle_webhook(payload, sig_header)
    except WebhookVerificationError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        return jsonify({"error": "Invalid signature"}), 400
    except SQLAlchemyError as e:
        logger.error(f"Webhook processing failed: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({"error": "Webhook processing failed"}), 500

    return jsonify({"received": True, "status": outcome.status}), 200
