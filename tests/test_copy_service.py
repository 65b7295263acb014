"""Tests for the copy generator: JSON extraction, defaults, fallback."""

import json

import pytest
import requests

from donations.services.copy_service import (
    DEFAULT_BODY,
    DEFAULT_IMPACT,
    DEFAULT_IMPACT_COPY,
    DEFAULT_SUBJECT,
    FALLBACK_IMPACT,
    CopyGenerator,
    extract_json_object,
    fallback_copy,
    format_amount,
    parse_model_output,
)
from donations.services.payment_gateway import DonationFacts

from tests.conftest import openai_response

FACTS = DonationFacts(
    payment_intent_id="pi_1",
    checkout_session_id="cs_1",
    email="a@example.com",
    amount=2000,
    currency="usd",
    name="Ada",
    message="Keep it up",
)


class TestExtractJsonObject:

    def test_object_surrounded_by_prose(self):
        text = 'Sure! {"subject": "Hi"} Hope that helps.'
        assert extract_json_object(text) == '{"subject": "Hi"}'

    def test_nested_object(self):
        text = 'x {"a": {"b": 1}, "c": 2} y'
        assert json.loads(extract_json_object(text)) == {"a": {"b": 1}, "c": 2}

    def test_braces_inside_strings_are_ignored(self):
        text = '{"body": "Use {name} and \\"quotes\\" freely"}'
        assert json.loads(extract_json_object(text))["body"] == 'Use {name} and "quotes" freely'

    def test_unbalanced_prefix_skipped(self):
        text = 'Oops { not closed ... {"subject": "Hi"}'
        # The first brace never closes; the scan restarts at the next one
        assert extract_json_object(text) == '{"subject": "Hi"}'

    @pytest.mark.parametrize("text", ["", None, "no braces here", "{ never closed"])
    def test_no_object(self, text):
        assert extract_json_object(text) is None


class TestParseModelOutput:

    def test_missing_fields_get_defaults(self):
        result = parse_model_output('{"subject": "Thanks, Ada"}')
        assert result.ok
        assert result.data.subject == "Thanks, Ada"
        assert result.data.body == DEFAULT_BODY
        assert result.data.impact == DEFAULT_IMPACT

    def test_blank_fields_get_defaults(self):
        result = parse_model_output('{"subject": "  ", "body": null, "impact": ""}')
        assert result.data.subject == DEFAULT_SUBJECT

    def test_no_object(self):
        result = parse_model_output("I can't do that.")
        assert not result.ok
        assert result.reason == "no_json_object"

    def test_invalid_json(self):
        result = parse_model_output("{'subject': 'single quotes'}")
        assert not result.ok
        assert result.reason == "invalid_json"


class TestFormatAmount:

    @pytest.mark.parametrize("amount,currency,expected", [
        (2000, "usd", "$20.00"),
        (123456, "usd", "$1,234.56"),
        (500, "EUR", "€5.00"),
        (1500, "jpy", "¥1,500"),
        (999, "chf", "9.99 CHF"),
    ])
    def test_display(self, amount, currency, expected):
        assert format_amount(amount, currency) == expected


def test_fallback_copy():
    copy = fallback_copy(FACTS)
    assert copy.subject == DEFAULT_SUBJECT
    assert copy.impact == FALLBACK_IMPACT
    assert copy.body == f"We deeply appreciate your donation of $20.00. {DEFAULT_IMPACT_COPY}"


class TestCopyGenerator:

    def test_not_configured(self, openai_post):
        result = CopyGenerator(api_key=None).generate(FACTS)
        assert not result.ok
        assert result.reason == "not_configured"
        openai_post.assert_not_called()

    def test_success_sends_prompt(self, openai_post):
        generator = CopyGenerator(api_key="sk-x", model="gpt-test")
        result = generator.generate(FACTS, impact_copy="Every $2 buys a meal.")

        assert result.ok
        assert result.data.subject == "Ada, your gift is already at work"

        args, kwargs = openai_post.call_args
        assert args[0] == "https://api.openai.com/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-x"
        assert kwargs["json"]["model"] == "gpt-test"
        prompt = kwargs["json"]["messages"][1]["content"]
        assert "Ada" in prompt
        assert "$20.00" in prompt
        assert "Every $2 buys a meal." in prompt
        assert kwargs["timeout"] == 30

    def test_timeout(self, openai_post):
        openai_post.side_effect = requests.Timeout()
        result = CopyGenerator(api_key="sk-x").generate(FACTS, impact_copy="x")
        assert result.reason == "timeout"

    def test_http_error(self, openai_post):
        openai_post.return_value = openai_response("", status_code=500)
        result = CopyGenerator(api_key="sk-x").generate(FACTS, impact_copy="x")
        assert result.reason == "http_500"

    def test_unexpected_response_body(self, openai_post):
        response = openai_response("")
        response.json.side_effect = ValueError("not json")
        openai_post.return_value = response
        result = CopyGenerator(api_key="sk-x").generate(FACTS, impact_copy="x")
        assert result.reason == "invalid_response"

    @pytest.mark.parametrize("body", [
        {"choices": ["unexpected"]},
        {"choices": {"0": {"message": {"content": "{}"}}}},
        {"choices": []},
        {"choices": [{"message": "plain string"}]},
        {"choices": [{"message": {"content": {"subject": "Hi"}}}]},
        {"choices": [{"message": {"content": 42}}]},
    ])
    def test_malformed_completion_is_a_failure(self, openai_post, body):
        response = openai_response("")
        response.json.return_value = body
        openai_post.return_value = response

        result = CopyGenerator(api_key="sk-x").generate(FACTS, impact_copy="x")

        assert not result.ok
        assert result.reason == "invalid_response"

    def test_non_string_output_is_a_failure(self):
        assert parse_model_output(None).reason == "no_json_object"

    def test_impact_copy_from_cms(self):
        class Cms:
            def fetch_content(self):
                return {"impactCopy": "Every $2 buys a meal."}

        generator = CopyGenerator(api_key="sk-x", content_provider=Cms())
        assert generator.impact_copy() == "Every $2 buys a meal."

    @pytest.mark.parametrize("content", [
        ["not", "a", "dict"],
        "just text",
        {"impactCopy": 123},
        {"impactCopy": {"text": "nested"}},
        {"impactCopy": "   "},
    ])
    def test_impact_copy_defaults_on_odd_content(self, content):
        class Cms:
            def fetch_content(self):
                return content

        generator = CopyGenerator(api_key="sk-x", content_provider=Cms())
        assert generator.impact_copy() == DEFAULT_IMPACT_COPY

    def test_impact_copy_defaults_when_cms_empty(self):
        class Cms:
            def fetch_content(self):
                return None

        generator = CopyGenerator(api_key="sk-x", content_provider=Cms())
        assert generator.impact_copy() == DEFAULT_IMPACT_COPY
