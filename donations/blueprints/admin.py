"""Admin blueprint — /admin/*

Donation listing and manual email resend.
All routes protected by @admin_required decorator.

Route Map:
  GET  /admin/donations                 — All donations, newest first
  GET  /admin/donations/<id>            — Donation detail
  POST /admin/donations/<id>/resend     — Re-send stored thank-you email
"""

import logging

from flask import Blueprint, abort, jsonify
from flask_login import current_user

from donations.decorators import admin_required
from donations.extensions import db
from donations.models.donation import Donation
from donations.services import donation_service
from donations.services.registry import get_services

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _get_donation_or_404(donation_id):
    donation = db.session.get(Donation, donation_id)
    if donation is None:
        abort(404)
    return donation


@admin_bp.route("/donations")
@admin_required
def list_donations():
    """All donation records, newest first."""
    donations = donation_service.list_donations()
    return jsonify([d.to_dict() for d in donations])


@admin_bp.route("/donations/<int:donation_id>")
@admin_required
def donation_detail(donation_id):
    return jsonify(_get_donation_or_404(donation_id).to_dict())


@admin_bp.route("/donations/<int:donation_id>/resend", methods=["POST"])
@admin_required
def resend(donation_id):
    """Re-send the stored subject/body — copy is not regenerated."""
    donation = _get_donation_or_404(donation_id)

    sent = donation_service.resend_donation(donation, get_services().notifier)
    if not sent:
        return jsonify(ok=False, error="Email could not be sent."), 502

    logger.info(f"Donation {donation.id} email resent by {current_user.email}")
    return jsonify(ok=True), 200
