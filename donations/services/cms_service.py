"""CMS service — page copy and impact entries from Sanity.

ContentProvider is the capability contract the app depends on;
SanityContentProvider talks to the Sanity HTTP API. When the project
is not configured, reads return None and writes are skipped without a
network call.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

import requests

logger = logging.getLogger(__name__)

LANDING_QUERY = (
    '*[_type == "landing"][0]{title, heroText, impactCopy, impactCalculator}'
)


class ContentProvider(ABC):
    """Source of one-page copy and sink for donation impact entries."""

    @abstractmethod
    def fetch_content(self):
        """Return the landing-page content dict, or None when unavailable."""
        ...

    @abstractmethod
    def write_impact(self, email, amount, currency, impact_summary):
        """Store a donation impact entry. Returns the created result or None."""
        ...


class SanityContentProvider(ContentProvider):
    """Sanity query/mutate API adapter (raises requests errors to callers)."""

    def __init__(self, project_id=None, dataset=None, token=None,
                 api_version="2023-10-10", timeout=10):
        self.project_id = project_id
        self.dataset = dataset
        self.token = token
        self.api_version = api_version
        self.timeout = timeout

    def is_configured(self):
        return bool(self.project_id and self.dataset)

    def _base_url(self):
        return f"https://{self.project_id}.api.sanity.io/v{self.api_version}/data"

    def fetch_content(self):
        if not self.is_configured():
            return None

        resp = requests.get(
            f"{self._base_url()}/query/{self.dataset}",
            params={"query": LANDING_QUERY},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return _json_body(resp).get("result")

    def write_impact(self, email, amount, currency, impact_summary):
        if not self.is_configured() or not self.token:
            return None

        payload = {
            "mutations": [
                {
                    "create": {
                        "_type": "donationImpact",
                        "email": email,
                        "amount": amount,
                        "currency": currency,
                        "impactSummary": impact_summary,
                        "createdAt": datetime.now(timezone.utc).isoformat(),
                    }
                }
            ]
        }
        resp = requests.post(
            f"{self._base_url()}/mutate/{self.dataset}",
            json=payload,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        results = _json_body(resp).get("results") or []
        logger.info(f"Impact entry written to Sanity for {email}")
        return results[0] if results else None


def _json_body(resp):
    """Response JSON as a dict; ValueError for anything else."""
    body = resp.json()
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValueError(f"Unexpected Sanity response: {type(body).__name__}")
    return body
