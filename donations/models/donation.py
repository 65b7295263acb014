"""Donation model — the single persisted business record.

One row per payment intent. payment_intent_id carries a unique index: it
is the idempotency key for webhook deliveries (at-least-once) and the only
cross-request concurrency guard. Rows are immutable after insert except
for `emailed`, which flips false -> true once the thank-you email is sent.
"""

from donations.extensions import db


class Donation(db.Model):
    __tablename__ = "donations"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    payment_intent_id = db.Column(
        db.String(255), unique=True, nullable=False, index=True
    )  # e.g. "pi_3Abc..."
    checkout_session_id = db.Column(db.String(255))  # e.g. "cs_test_..."
    donor_email = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Integer, nullable=False)  # minor units (cents)
    currency = db.Column(db.String(3), nullable=False, default="usd")
    name = db.Column(db.String(200))
    message = db.Column(db.Text)
    impact_summary = db.Column(db.Text)
    email_subject = db.Column(db.Text)  # model output, length not bounded
    email_body = db.Column(db.Text)  # rendered HTML
    emailed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now(), index=True
    )

    def mark_emailed(self):
        """Flip the emailed flag. No-op when already sent."""
        if not self.emailed:
            self.emailed = True

    def to_dict(self):
        return {
            "id": self.id,
            "payment_intent_id": self.payment_intent_id,
            "checkout_session_id": self.checkout_session_id,
            "donor_email": self.donor_email,
            "amount": self.amount,
            "currency": self.currency,
            "name": self.name,
            "message": self.message,
            "impact_summary": self.impact_summary,
            "email_subject": self.email_subject,
            "email_body": self.email_body,
            "emailed": bool(self.emailed),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Donation {self.payment_intent_id} {self.amount} {self.currency}>"
