"""Donate blueprint — public JSON API for the donation form.

Called cross-origin by the one-page frontend, so every response carries
CORS headers for CORS_ORIGIN. CSRF-exempt; no local state is written.

Route Map:
  POST    /donate/create-checkout-session — validate, create provider session
  OPTIONS /donate/create-checkout-session — CORS preflight
  GET     /donate/session/<session_id>    — session status for the thank-you page
  GET     /content                        — proxied CMS page copy
"""

import logging
import re

import requests
from flask import Blueprint, current_app, jsonify, make_response, request

from donations.extensions import limiter
from donations.services.payment_gateway import GatewayError
from donations.services.registry import get_services

donate_bp = Blueprint("donate", __name__)

logger = logging.getLogger(__name__)

# Simple email regex, a sanity check only
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")

MAX_NAME_LENGTH = 200
MAX_MESSAGE_LENGTH = 2000

DEFAULT_PROVIDER = "stripe"


@donate_bp.after_request
def _cors_response(response):
    """Add CORS headers so the cross-origin donation form works."""
    response.headers["Access-Control-Allow-Origin"] = current_app.config.get("CORS_ORIGIN", "*")
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    response.headers["Vary"] = "Origin"
    return response


def validate_checkout_request(data, config):
    """Validate a create-checkout-session body.

    Returns (cleaned: dict | None, errors: list[str]).
    """
    errors = []

    amount = data.get("amount")
    min_amount = config["MIN_DONATION_AMOUNT"]
    max_amount = config["MAX_DONATION_AMOUNT"]
    if isinstance(amount, bool) or not isinstance(amount, int):
        errors.append("Amount must be a whole number of minor currency units.")
    elif amount < min_amount:
        errors.append(f"Amount must be at least {min_amount}.")
    elif amount > max_amount:
        errors.append(f"Amount must be at most {max_amount}.")

    currency = data.get("currency")
    if currency is None or currency == "":
        currency = config["DEFAULT_CURRENCY"]
    elif not isinstance(currency, str) or not CURRENCY_RE.match(currency):
        errors.append("Currency must be a three-letter code.")

    email = data.get("email")
    email = email.strip() if isinstance(email, str) else ""
    if not email or not EMAIL_RE.match(email):
        errors.append("A valid email is required.")

    name = data.get("name") or ""
    message = data.get("message") or ""
    if not isinstance(name, str):
        errors.append("Name must be text.")
    elif len(name) > MAX_NAME_LENGTH:
        errors.append("Name is too long.")
    if not isinstance(message, str):
        errors.append("Message must be text.")
    elif len(message) > MAX_MESSAGE_LENGTH:
        errors.append("Message is too long.")

    if errors:
        return None, errors

    return {
        "amount": amount,
        "currency": currency.lower(),
        "email": email,
        "name": name.strip(),
        "message": message.strip(),
    }, []


@donate_bp.route("/donate/create-checkout-session", methods=["OPTIONS"])
def create_checkout_session_preflight():
    """Handle CORS preflight requests."""
    return make_response("", 204)


@donate_bp.route("/donate/create-checkout-session", methods=["POST"])
@limiter.limit("10 per minute")
def create_checkout_session():
    """
    Create a provider checkout session for a donation.

    Expects: { amount (minor units), currency?, email, name?, message? }
    Returns: { id, url } or { error: "..." }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(error="Invalid request."), 400

    cleaned, errors = validate_checkout_request(data, current_app.config)
    if errors:
        return jsonify(error=" ".join(errors)), 400

    gateway = get_services().gateway(DEFAULT_PROVIDER)
    try:
        session = gateway.create_session(**cleaned)
    except GatewayError:
        return jsonify(error="Unable to create checkout session"), 502

    logger.info(
        f"Checkout session {session.id} created: {cleaned['amount']} "
        f"{cleaned['currency']} for {cleaned['email']}"
    )
    return jsonify(id=session.id, url=session.url), 200


@donate_bp.route("/donate/session/<session_id>")
def session_status(session_id):
    """Display-safe session details for the thank-you page. Never cached."""
    gateway = get_services().gateway(DEFAULT_PROVIDER)
    try:
        details = gateway.retrieve_session(session_id)
    except GatewayError:
        return jsonify(error="Session not found"), 404

    response = jsonify(details)
    response.headers["Cache-Control"] = "no-store"
    return response


@donate_bp.route("/content")
def content():
    """Proxy the one-page copy from the CMS."""
    provider = get_services().content_provider
    try:
        page = provider.fetch_content()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"CMS content fetch failed: {e}")
        return jsonify(error="Failed to fetch content"), 500
    return jsonify(content=page)
