"""Pages blueprint — donation form, thank-you page, health check."""

from flask import Blueprint, current_app, jsonify, render_template

pages_bp = Blueprint("pages", __name__)


@pages_bp.route("/")
@pages_bp.route("/donate")
def donate_page():
    return render_template(
        "donate.html",
        default_currency=current_app.config["DEFAULT_CURRENCY"],
        min_amount=current_app.config["MIN_DONATION_AMOUNT"],
    )


@pages_bp.route("/thank-you")
def thank_you_page():
    """Polls /donate/session/<id> client-side for display fields."""
    return render_template("thank_you.html")


@pages_bp.route("/health")
def health():
    return jsonify(ok=True)
