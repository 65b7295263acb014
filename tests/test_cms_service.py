"""Tests for the Sanity content provider."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from donations.services.cms_service import LANDING_QUERY, SanityContentProvider

REQUESTS = "donations.services.cms_service.requests"


def make_provider(**overrides):
    options = {
        "project_id": "abc123",
        "dataset": "production",
        "token": "sk-sanity",
    }
    options.update(overrides)
    return SanityContentProvider(**options)


def fake_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


class TestFetchContent:

    @patch(REQUESTS)
    def test_unconfigured_makes_no_call(self, mock_requests):
        assert make_provider(project_id=None).fetch_content() is None
        mock_requests.get.assert_not_called()

    @patch(REQUESTS)
    def test_returns_result(self, mock_requests):
        mock_requests.get.return_value = fake_response(
            {"result": {"title": "Help us", "impactCopy": "Every $2 buys a meal."}}
        )

        content = make_provider().fetch_content()

        assert content["impactCopy"] == "Every $2 buys a meal."
        args, kwargs = mock_requests.get.call_args
        assert args[0] == "https://abc123.api.sanity.io/v2023-10-10/data/query/production"
        assert kwargs["params"] == {"query": LANDING_QUERY}
        assert kwargs["timeout"] == 10

    @patch(REQUESTS)
    def test_http_error_propagates(self, mock_requests):
        mock_requests.get.return_value.raise_for_status.side_effect = requests.HTTPError("500")
        with pytest.raises(requests.HTTPError):
            make_provider().fetch_content()


    @patch(REQUESTS)
    def test_non_object_body_is_a_value_error(self, mock_requests):
        mock_requests.get.return_value = fake_response(["unexpected"])
        with pytest.raises(ValueError):
            make_provider().fetch_content()

class TestWriteImpact:

    @patch(REQUESTS)
    def test_without_token_skips(self, mock_requests):
        assert make_provider(token=None).write_impact("a@example.com", 2000, "usd", "x") is None
        mock_requests.post.assert_not_called()

    @patch(REQUESTS)
    def test_creates_impact_document(self, mock_requests):
        mock_requests.post.return_value = fake_response({"results": [{"id": "doc1"}]})

        result = make_provider().write_impact(
            email="a@example.com", amount=2000, currency="usd",
            impact_summary="Plants 4 trees.",
        )

        assert result == {"id": "doc1"}
        args, kwargs = mock_requests.post.call_args
        assert args[0].endswith("/data/mutate/production")
        assert kwargs["headers"]["Authorization"] == "Bearer sk-sanity"
        document = kwargs["json"]["mutations"][0]["create"]
        assert document["_type"] == "donationImpact"
        assert document["email"] == "a@example.com"
        assert document["amount"] == 2000
        assert document["impactSummary"] == "Plants 4 trees."
        assert document["createdAt"]
