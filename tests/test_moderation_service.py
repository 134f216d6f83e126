"""Tests for ModerationService."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from carrental.errors import ModerationError
from carrental.services.moderation_service import ModerationService


def make_response(content):
    response = MagicMock()
    response.json.return_value = {"choices": [{"message": {"content": content}}]}
    return response


class TestModerationService:
    @pytest.fixture
    def moderation_service(self):
        return ModerationService(api_url="https://llm.example/chat", api_key="secret", model="test-model")

    @pytest.fixture
    def mock_post(self):
        with patch("carrental.services.moderation_service.requests.post") as mock_post:
            yield mock_post

    def test_approved(self, moderation_service, mock_post):
        """Test an APPROVED reply without reason."""
        mock_post.return_value = make_response("APPROVED")

        result = moderation_service.moderate("Great service")

        assert result == {"verdict": "APPROVED", "reason": ""}

    def test_rejected_with_reason(self, moderation_service, mock_post):
        """Test the reason after '|' is returned with a REJECTED verdict."""
        mock_post.return_value = make_response("REJECTED|Impolite language")

        result = moderation_service.moderate("this place sucks")

        assert result == {"verdict": "REJECTED", "reason": "Impolite language"}

    def test_request_payload(self, moderation_service, mock_post):
        """Test a single call with bearer auth, model, prompt and latency routing."""
        mock_post.return_value = make_response("APPROVED")

        moderation_service.moderate("Great service")

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == "https://llm.example/chat"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["json"]["model"] == "test-model"
        assert kwargs["json"]["provider"] == {"sort": "latency"}
        assert len(kwargs["json"]["messages"]) == 1
        assert kwargs["json"]["messages"][0]["content"].endswith("Great service")
        assert "timeout" not in kwargs

    def test_malformed_response(self, moderation_service, mock_post):
        """Test a reply without choices is an error, not a rejection."""
        response = MagicMock()
        response.json.return_value = {"error": "quota exceeded"}
        mock_post.return_value = response

        with pytest.raises(ModerationError, match="Malformed moderation response"):
            moderation_service.moderate("Great service")

    def test_unexpected_verdict(self, moderation_service, mock_post):
        """Test free text instead of a verdict token is an error."""
        mock_post.return_value = make_response("I think this review is fine")

        with pytest.raises(ModerationError, match="Unexpected moderation verdict"):
            moderation_service.moderate("Great service")

    def test_network_error(self, moderation_service, mock_post):
        """Test network failures are wrapped and not retried."""
        mock_post.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(ModerationError, match="connection refused"):
            moderation_service.moderate("Great service")

        assert mock_post.call_count == 1

    def test_http_error(self, moderation_service, mock_post):
        """Test an HTTP error status is a moderation failure."""
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized")
        mock_post.return_value = response

        with pytest.raises(ModerationError):
            moderation_service.moderate("Great service")
