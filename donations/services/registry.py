"""Per-app service wiring.

Builds every external collaborator once from app.config and stores them
on app.extensions["donations"]. Routes fetch them with get_services();
tests swap individual collaborators on the returned object.
"""

from dataclasses import dataclass, field

from flask import current_app

from donations.services.cms_service import SanityContentProvider
from donations.services.copy_service import CopyGenerator
from donations.services.donation_service import DonationFinalizer
from donations.services.email_service import Notifier
from donations.services.stripe_service import StripeGateway

EXTENSION_KEY = "donations"


@dataclass
class Services:
    gateways: dict = field(default_factory=dict)
    content_provider: object = None
    copy_generator: object = None
    notifier: object = None

    def gateway(self, provider):
        """Payment gateway by provider name, or None."""
        return self.gateways.get(provider)

    def finalizer(self, provider):
        gateway = self.gateway(provider)
        if gateway is None:
            return None
        return DonationFinalizer(
            gateway=gateway,
            copy_generator=self.copy_generator,
            notifier=self.notifier,
            content_provider=self.content_provider,
        )


def build_services(config):
    content_provider = SanityContentProvider(
        project_id=config.get("SANITY_PROJECT_ID"),
        dataset=config.get("SANITY_DATASET"),
        token=config.get("SANITY_TOKEN"),
        api_version=config.get("SANITY_API_VERSION", "2023-10-10"),
        timeout=config.get("SANITY_TIMEOUT", 10),
    )
    stripe_gateway = StripeGateway(
        secret_key=config.get("STRIPE_SECRET_KEY"),
        webhook_secret=config.get("STRIPE_WEBHOOK_SECRET"),
        public_base_url=config.get("PUBLIC_BASE_URL"),
        default_currency=config.get("DEFAULT_CURRENCY", "usd"),
        timeout=config.get("STRIPE_TIMEOUT", 20),
    )
    return Services(
        gateways={stripe_gateway.name: stripe_gateway},
        content_provider=content_provider,
        copy_generator=CopyGenerator(
            api_key=config.get("OPENAI_API_KEY"),
            model=config.get("OPENAI_MODEL", "gpt-4o-mini"),
            api_base=config.get("OPENAI_API_BASE", "https://api.openai.com/v1"),
            timeout=config.get("OPENAI_TIMEOUT", 30),
            content_provider=content_provider,
        ),
        notifier=Notifier(
            host=config.get("MAIL_SMTP_HOST", "smtp.gmail.com"),
            port=config.get("MAIL_SMTP_PORT", 587),
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            from_name=config.get("MAIL_FROM_NAME", "Donations"),
            from_address=config.get("MAIL_FROM_ADDRESS"),
            use_ssl=config.get("MAIL_USE_SSL", False),
            timeout=config.get("MAIL_SMTP_TIMEOUT", 30),
        ),
    )


def init_services(app):
    app.extensions[EXTENSION_KEY] = build_services(app.config)


def get_services():
    return current_app.extensions[EXTENSION_KEY]
