"""Copy generator — LLM-drafted thank-you email and impact summary.

Calls the OpenAI chat completions endpoint and returns a GenerationResult
instead of raising, so the finalizer has exactly one fallback branch.
Model output is untrusted: the first balanced JSON object is pulled out of
whatever prose surrounds it, and missing fields get defaults.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_IMPACT_COPY = "Your donation fuels our mission to create measurable change."

DEFAULT_SUBJECT = "Thank you for your gift!"
DEFAULT_BODY = "Thank you so much for your support."
DEFAULT_IMPACT = "Your gift makes a real difference."
FALLBACK_IMPACT = "Your support powers tangible outcomes in our programs."

SYSTEM_PROMPT = (
    "You are a helpful nonprofit communications assistant. Write concise, "
    "warm, donor-centric copy. Keep paragraph lengths short."
)

# Stripe's zero-decimal currencies: amounts are already in whole units.
ZERO_DECIMAL_CURRENCIES = {
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
    "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
}

CURRENCY_SYMBOLS = {
    "usd": "$",
    "cad": "CA$",
    "aud": "A$",
    "eur": "€",
    "gbp": "£",
    "jpy": "¥",
    "inr": "₹",
}


@dataclass(frozen=True)
class EmailCopy:
    subject: str
    body: str
    impact: str


@dataclass(frozen=True)
class GenerationResult:
    """{ok: True, data} | {ok: False, reason}."""

    ok: bool
    data: Optional[EmailCopy] = None
    reason: str = ""

    @classmethod
    def success(cls, data):
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, reason):
        return cls(ok=False, reason=reason)


def format_amount(amount, currency):
    """Render minor units for display, e.g. (2000, "usd") -> "$20.00"."""
    code = (currency or "usd").lower()
    amount = int(amount or 0)
    if code in ZERO_DECIMAL_CURRENCIES:
        value = f"{amount:,}"
    else:
        value = f"{amount / 100:,.2f}"

    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{symbol}{value}"
    return f"{value} {code.upper()}"


def extract_json_object(text):
    """Return the first balanced {...} substring of `text`, or None.

    Braces inside JSON strings (including escaped quotes) are ignored.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next opening brace.
        start = text.find("{", start + 1)
    return None


def parse_model_output(text):
    """Turn raw model output into a GenerationResult."""
    if not isinstance(text, str):
        return GenerationResult.failure("no_json_object")
    candidate = extract_json_object(text)
    if candidate is None:
        return GenerationResult.failure("no_json_object")

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return GenerationResult.failure("invalid_json")

    if not isinstance(parsed, dict):
        return GenerationResult.failure("invalid_json")

    def _field(key, default):
        value = parsed.get(key)
        if value is None or not str(value).strip():
            return default
        return str(value).strip()

    return GenerationResult.success(EmailCopy(
        subject=_field("subject", DEFAULT_SUBJECT),
        body=_field("body", DEFAULT_BODY),
        impact=_field("impact", DEFAULT_IMPACT),
    ))


def build_prompt(facts, impact_copy):
    display = format_amount(facts.amount, facts.currency)
    return (
        "Donor details:\n"
        f"- Name: {facts.name or 'friend'}\n"
        f"- Email: {facts.email}\n"
        f"- Donation: {display} ({facts.currency})\n"
        f"- Note from donor: {facts.message or '—'}\n\n"
        "Context about our impact (from CMS):\n"
        f"{impact_copy}\n\n"
        "Tasks:\n"
        "1) Write an email subject line (<=55 chars) that is specific and personal.\n"
        "2) Write a short thank-you email (120–180 words) addressed to the donor "
        "by first name if provided.\n"
        "3) Write a 2–3 sentence impact summary translating the donation into "
        "tangible outcomes (assume reasonable conversions if not provided).\n\n"
        "Return as JSON with keys: subject, body, impact."
    )


def fallback_copy(facts, impact_copy=DEFAULT_IMPACT_COPY):
    """Deterministic copy used whenever generation fails."""
    display = format_amount(facts.amount, facts.currency)
    return EmailCopy(
        subject=DEFAULT_SUBJECT,
        body=f"We deeply appreciate your donation of {display}. {impact_copy}",
        impact=FALLBACK_IMPACT,
    )


class CopyGenerator:
    """OpenAI-backed copy generator."""

    def __init__(self, api_key=None, model="gpt-4o-mini",
                 api_base="https://api.openai.com/v1", timeout=30,
                 content_provider=None):
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.content_provider = content_provider

    def is_configured(self):
        return bool(self.api_key)

    def impact_copy(self):
        """Impact context from the CMS, or the default line."""
        if self.content_provider is None:
            return DEFAULT_IMPACT_COPY
        try:
            content = self.content_provider.fetch_content()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"CMS content fetch failed, using default impact copy: {e}")
            return DEFAULT_IMPACT_COPY
        if not isinstance(content, dict):
            return DEFAULT_IMPACT_COPY
        impact = content.get("impactCopy")
        if not isinstance(impact, str) or not impact.strip():
            return DEFAULT_IMPACT_COPY
        return impact

    def generate(self, facts, impact_copy=None):
        """Draft subject/body/impact for a donation. Never raises."""
        if not self.is_configured():
            return GenerationResult.failure("not_configured")

        if impact_copy is None:
            impact_copy = self.impact_copy()

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(facts, impact_copy)},
            ],
            "temperature": 0.7,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            response = requests.post(
                f"{self.api_base}/chat/completions",
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.Timeout:
            logger.warning("OpenAI request timed out")
            return GenerationResult.failure("timeout")
        except requests.RequestException as e:
            logger.warning(f"OpenAI request failed: {e}")
            return GenerationResult.failure("network_error")

        if response.status_code != 200:
            logger.warning(f"OpenAI error: status={response.status_code}")
            return GenerationResult.failure(f"http_{response.status_code}")

        try:
            data = response.json()
        except ValueError:
            return GenerationResult.failure("invalid_response")
        if not isinstance(data, dict):
            return GenerationResult.failure("invalid_response")

        content = _completion_content(data)
        if content is None:
            return GenerationResult.failure("invalid_response")
        return parse_model_output(content)


def _completion_content(data):
    """choices[0].message.content as a string, or None when the shape is off."""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if content is None:
        return ""
    if not isinstance(content, str):
        return None
    return content
