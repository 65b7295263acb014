"""
Email service — thank-you emails over SMTP.

Sends synchronously: the finalizer needs to know whether delivery worked
before it flips a donation's `emailed` flag.

Usage:
    notifier = get_services().notifier
    html = render_thank_you_html(donation_facts, copy)
    ok = notifier.send("donor@example.com", "Thank you!", html)
"""

import html as html_lib
import logging
import re
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import render_template
from markupsafe import Markup, escape

from donations.services.copy_service import format_amount

logger = logging.getLogger(__name__)


class Notifier:
    """SMTP sender configured once per app."""

    def __init__(self, host, port, username=None, password=None,
                 from_name="Donations", from_address=None,
                 use_ssl=False, timeout=30):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_name = from_name
        self.from_address = from_address or username or ""
        self.use_ssl = use_ssl
        self.timeout = timeout

    def is_configured(self):
        return bool(self.username and self.password)

    def build_message(self, to, subject, html):
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_address}>"
        msg["To"] = to if isinstance(to, str) else ", ".join(to)
        msg.attach(MIMEText(_html_to_text(html), "plain"))
        msg.attach(MIMEText(html, "html"))
        return msg

    def send(self, to, subject, html):
        """Send an HTML email. Returns True on success, False otherwise.

        Failures are logged, never raised.
        """
        if not self.is_configured():
            logger.warning("Email not sent — MAIL_USERNAME or MAIL_PASSWORD not configured.")
            return False

        msg = self.build_message(to, subject, html)

        try:
            if self.use_ssl:
                with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as server:
                    server.login(self.username, self.password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                    server.ehlo()
                    server.starttls()
                    server.ehlo()
                    server.login(self.username, self.password)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {msg['To']}: {e}")
            return False

        logger.info(f"Email sent to {msg['To']} — {msg['Subject']}")
        return True


def render_thank_you_html(facts, copy):
    """Render the thank-you email for a donation.

    `facts` is a DonationFacts, `copy` an EmailCopy. Requires an app context.
    """
    body_html = Markup("<br/>").join(
        escape(line) for line in copy.body.split("\n")
    )
    return render_template(
        "emails/donation_thank_you.html",
        name=facts.name,
        amount_display=format_amount(facts.amount, facts.currency),
        body_html=body_html,
        impact=copy.impact,
    )


_TAG_RE = re.compile(r"<[^>]+>")


def _html_to_text(markup):
    text = markup.replace("<br/>", "\n").replace("<br>", "\n")
    text = html_lib.unescape(_TAG_RE.sub("", text))
    return "\n".join(line.strip() for line in text.splitlines() if line.strip())
