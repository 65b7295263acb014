"""Donation service — webhook finalization and donation store queries.

Responsible for:
- Verifying provider webhooks and filtering for completed checkouts
- Idempotency via the unique payment_intent_id on the donations table
- Drafting copy (LLM with deterministic fallback), persisting, emailing
- Best-effort impact write-back to the CMS
- Admin listing and resend of stored emails
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from donations.extensions import db
from donations.models.donation import Donation
from donations.services.copy_service import fallback_copy
from donations.services.email_service import render_thank_you_html

logger = logging.getLogger(__name__)

PROCESSED = "processed"
ALREADY_PROCESSED = "already_processed"
IGNORED = "ignored"


@dataclass
class FinalizeOutcome:
    status: str
    donation: Optional[Donation] = None


# ──────────────────────────────────────────────
# Store queries
# ──────────────────────────────────────────────

def get_by_payment_intent(payment_intent_id):
    return Donation.query.filter_by(payment_intent_id=payment_intent_id).first()


def list_donations():
    """All donations, newest first."""
    return (
        Donation.query
        .order_by(Donation.created_at.desc(), Donation.id.desc())
        .all()
    )


def resend_donation(donation, notifier):
    """Re-send the stored subject/body. No regeneration, no new record.

    Returns True when the email went out.
    """
    sent = notifier.send(donation.donor_email, donation.email_subject, donation.email_body)
    if sent and not donation.emailed:
        donation.mark_emailed()
        db.session.commit()
    return sent


# ──────────────────────────────────────────────
# Finalizer
# ──────────────────────────────────────────────

class DonationFinalizer:
    """Turns a completed-checkout webhook into exactly one donation + email.

    Collaborators are injected so alternate providers can be swapped in.
    """

    def __init__(self, gateway, copy_generator, notifier, content_provider=None):
        self.gateway = gateway
        self.copy_generator = copy_generator
        self.notifier = notifier
        self.content_provider = content_provider

    def handle_webhook(self, payload, signature):
        """Process a raw webhook delivery.

        Raises WebhookVerificationError on a bad signature (nothing written).
        Raises SQLAlchemyError when the donation cannot be persisted, so the
        provider sees a 5xx and redelivers.
        """
        event = self.gateway.verify_and_parse_webhook(payload, signature)

        facts = self.gateway.completed_donation(event)
        if facts is None:
            logger.info(f"Ignoring {self.gateway.name} event {event.get('type')}")
            return FinalizeOutcome(IGNORED)

        return self.finalize(facts)

    def finalize(self, facts):
        # --- Idempotency check ---
        if get_by_payment_intent(facts.payment_intent_id):
            logger.info(f"Duplicate delivery for {facts.payment_intent_id}, skipping")
            return FinalizeOutcome(ALREADY_PROCESSED)

        # --- Copy (never aborts finalization) ---
        impact_copy = self.copy_generator.impact_copy()
        result = self.copy_generator.generate(facts, impact_copy=impact_copy)
        if result.ok:
            copy = result.data
        else:
            logger.warning(
                f"Copy generation failed for {facts.payment_intent_id} "
                f"({result.reason}), using fallback"
            )
            copy = fallback_copy(facts, impact_copy)

        html = render_thank_you_html(facts, copy)

        # --- Persist (unique index resolves concurrent duplicates) ---
        donation = Donation(
            payment_intent_id=facts.payment_intent_id,
            checkout_session_id=facts.checkout_session_id,
            donor_email=facts.email,
            amount=facts.amount,
            currency=facts.currency,
            name=facts.name or None,
            message=facts.message or None,
            impact_summary=copy.impact,
            email_subject=copy.subject,
            email_body=html,
            emailed=False,
        )
        db.session.add(donation)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.info(
                f"Concurrent delivery already stored {facts.payment_intent_id}, skipping"
            )
            return FinalizeOutcome(ALREADY_PROCESSED)

        logger.info(
            f"Donation {donation.id} stored: {facts.amount} {facts.currency} "
            f"from {facts.email}"
        )

        # --- Email ---
        if self.notifier.send(facts.email, copy.subject, html):
            donation.mark_emailed()
            db.session.commit()
        else:
            logger.error(
                f"Thank-you email for donation {donation.id} not sent; "
                f"use resend once SMTP is healthy"
            )

        # --- CMS write-back ---
        self._push_impact(facts, copy.impact)

        return FinalizeOutcome(PROCESSED, donation)

    def _push_impact(self, facts, impact_summary):
        if self.content_provider is None:
            return
        try:
            self.content_provider.write_impact(
                email=facts.email,
                amount=facts.amount,
                currency=facts.currency,
                impact_summary=impact_summary,
            )
        except Exception as e:
            # Never let the CMS break the webhook response
            logger.warning(f"Impact write to CMS failed: {e}")
