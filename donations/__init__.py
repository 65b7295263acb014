import os
import logging

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from donations.config import config_by_name
from donations.extensions import db, migrate, login_manager, csrf, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from donations import models  # noqa: F401

    # --- External collaborators (Stripe, OpenAI, SMTP, Sanity) ---
    from donations.services.registry import init_services
    init_services(app)

    # --- Register blueprints ---
    from donations.blueprints.auth import auth_bp
    from donations.blueprints.admin import admin_bp
    from donations.blueprints.donate import donate_bp
    from donations.blueprints.pages import pages_bp
    from donations.blueprints.webhooks import webhooks_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(donate_bp)
    app.register_blueprint(pages_bp)
    app.register_blueprint(webhooks_bp)

    # Exempt webhooks from CSRF; the raw body is needed for signature verification
    csrf.exempt(webhooks_bp)
    # Exempt the donate API from CSRF; it is called by the cross-origin form
    csrf.exempt(donate_bp)

    # --- Error handlers (JSON API) ---
    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify(error=e.description or e.name), e.code

    @app.errorhandler(500)
    def server_error(e):
        return jsonify(error="Internal server error"), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Control referrer information
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Permissions Policy (restrict browser features)
        response.headers["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=(), payment=(self)"
        )
        # Content Security Policy
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline' https://js.stripe.com; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            "connect-src 'self' https://api.stripe.com; "
            "frame-src https://js.stripe.com https://hooks.stripe.com; "
            "base-uri 'self'; "
            "form-action 'self' https://checkout.stripe.com; "
            "frame-ancestors 'none';"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-admin")
    @click.option("--email", default="admin@donations.local", help="Admin email")
    @click.option("--password", default="admin123", help="Admin password")
    def seed_admin(email, password):
        """Create (or promote) an admin user.

        Usage:
            flask seed-admin
            flask seed-admin --email admin@example.com --password s3cret
        """
        from donations.models.user import User

        email = email.lower().strip()
        existing = User.query.filter_by(email=email).first()
        if existing:
            existing.is_admin = True
            db.session.commit()
            click.echo(f"Admin user already exists: {email}")
            return

        admin = User(email=email, is_admin=True)
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
        click.echo(f"Created admin user: {email}")

    @app.cli.command("resend-unsent")
    @click.option("--dry-run", is_flag=True, help="Show what would be sent without actually sending.")
    def resend_unsent(dry_run):
        """Re-send stored thank-you emails for donations with emailed=False.

        Usage:
            flask resend-unsent
            flask resend-unsent --dry-run
        """
        from donations.models.donation import Donation
        from donations.services.donation_service import resend_donation
        from donations.services.registry import get_services

        pending = (
            Donation.query
            .filter_by(emailed=False)
            .order_by(Donation.id.asc())
            .all()
        )
        if not pending:
            click.echo("No unsent donation emails.")
            return

        notifier = get_services().notifier
        sent = 0
        for donation in pending:
            if dry_run:
                click.echo(f"  [dry-run] #{donation.id} -> {donation.donor_email}")
                continue
            if resend_donation(donation, notifier):
                sent += 1
                click.echo(f"  sent #{donation.id} -> {donation.donor_email}")
            else:
                click.echo(f"  FAILED #{donation.id} -> {donation.donor_email}")

        if not dry_run:
            click.echo(f"Sent {sent} of {len(pending)} pending emails.")
