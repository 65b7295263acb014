"""Payment gateway port (abstract interface).

Defines the contract every payment provider adapter implements, so the
donation finalizer and the donate blueprint never talk to a provider SDK
directly. StripeGateway (stripe_service.py) is the production adapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


class GatewayError(Exception):
    """Provider call failed (network, timeout, API error)."""


class WebhookVerificationError(GatewayError):
    """Webhook payload or signature failed verification."""


@dataclass(frozen=True)
class CheckoutSession:
    """Result of creating a hosted checkout session."""

    id: str
    url: str


@dataclass(frozen=True)
class DonationFacts:
    """Everything the finalizer needs from a completed checkout event."""

    payment_intent_id: str
    checkout_session_id: str
    email: str
    amount: int
    currency: str
    name: str = ""
    message: str = ""


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name = ""

    @abstractmethod
    def create_session(
        self,
        amount: int,
        currency: str,
        email: str,
        name: str = "",
        message: str = "",
    ) -> CheckoutSession:
        """Create a provider-hosted checkout session.

        Raises GatewayError on provider failure.
        """
        ...

    @abstractmethod
    def retrieve_session(self, session_id: str) -> dict:
        """Return display-safe fields of a checkout session.

        Keys: id, amount, currency, email, name, message, status.
        Raises GatewayError when the session cannot be fetched.
        """
        ...

    @abstractmethod
    def verify_and_parse_webhook(self, payload: str, signature: str) -> Any:
        """Verify the webhook signature and return the parsed event.

        Raises WebhookVerificationError on a bad payload or signature.
        """
        ...

    @abstractmethod
    def completed_donation(self, event: Any) -> Optional[DonationFacts]:
        """Extract donation facts from a checkout-completed event.

        Returns None for every other event type.
        """
        ...
