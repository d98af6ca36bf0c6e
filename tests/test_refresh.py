"""Tests for the refresh-token flow."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs

import pytest
from google.auth import exceptions as google_exceptions

from auth.errors import RefreshError
from auth.models import ClientIdentity
from auth.refresh import RefreshFlow

IDENTITY = ClientIdentity("abc.apps.googleusercontent.com", "s3cret")
SCOPE = "https://www.googleapis.com/auth/calendar.readonly"


def _response(status: int, body: dict) -> MagicMock:
    return MagicMock(status=status, data=json.dumps(body).encode("utf-8"))


def _sent_body(mock_request_cls) -> dict:
    body = mock_request_cls.return_value.call_args.kwargs["body"]
    return {k: v[0] for k, v in parse_qs(body.decode("utf-8")).items()}


class TestRefresh:
    @patch("auth.refresh.Request")
    def test_sends_refresh_grant(self, mock_request_cls) -> None:
        mock_request_cls.return_value.return_value = _response(
            200, {"access_token": "ya29.new", "token_type": "Bearer", "expires_in": 3599}
        )

        RefreshFlow(token_endpoint="https://example.test/token", timeout=7).refresh(IDENTITY, "1//r", scope=SCOPE)

        call = mock_request_cls.return_value.call_args
        assert call.kwargs["method"] == "POST"
        assert call.kwargs["url"] == "https://example.test/token"
        assert call.kwargs["timeout"] == 7
        body = _sent_body(mock_request_cls)
        assert body["grant_type"] == "refresh_token"
        assert body["refresh_token"] == "1//r"
        assert body["client_id"] == IDENTITY.client_id
        assert body["client_secret"] == IDENTITY.client_secret

    @patch("auth.refresh.Request")
    def test_keeps_refresh_token_and_scope_when_not_rotated(self, mock_request_cls) -> None:
        mock_request_cls.return_value.return_value = _response(
            200, {"access_token": "ya29.new", "token_type": "Bearer", "expires_in": 3599}
        )

        record = RefreshFlow().refresh(IDENTITY, "1//r", scope=SCOPE)

        assert record.access_token == "ya29.new"
        assert record.token_type == "Bearer"
        assert record.refresh_token == "1//r"
        assert record.scope == SCOPE

    @patch("auth.refresh.Request")
    def test_expires_in_comes_from_expiry(self, mock_request_cls) -> None:
        mock_request_cls.return_value.return_value = _response(
            200, {"access_token": "ya29.new", "token_type": "Bearer", "expires_in": 3599}
        )

        record = RefreshFlow().refresh(IDENTITY, "1//r")

        # a second or two may pass between the response and the stamp
        assert 3595 <= record.expires_in <= 3599
        assert datetime.fromisoformat(record.issued_at).tzinfo == timezone.utc

    @patch("auth.refresh.Request")
    def test_takes_rotated_refresh_token(self, mock_request_cls) -> None:
        mock_request_cls.return_value.return_value = _response(200, {
            "access_token": "ya29.new", "token_type": "Bearer", "expires_in": 3599,
            "refresh_token": "1//rotated",
        })
        assert RefreshFlow().refresh(IDENTITY, "1//r").refresh_token == "1//rotated"

    @patch("auth.refresh.Request")
    def test_missing_refresh_token_makes_no_call(self, mock_request_cls) -> None:
        with pytest.raises(RefreshError, match="no refresh token"):
            RefreshFlow().refresh(IDENTITY, None)
        mock_request_cls.return_value.assert_not_called()

    @patch("auth.refresh.Request")
    def test_revoked_token(self, mock_request_cls) -> None:
        mock_request_cls.return_value.return_value = _response(
            400, {"error": "invalid_grant", "error_description": "Token has been expired or revoked."}
        )
        with pytest.raises(RefreshError) as exc_info:
            RefreshFlow().refresh(IDENTITY, "1//revoked")
        assert exc_info.value.error_code == "invalid_grant"
        assert isinstance(exc_info.value.__cause__, google_exceptions.RefreshError)

    @patch("auth.refresh.Request")
    def test_transport_failure(self, mock_request_cls) -> None:
        mock_request_cls.return_value.side_effect = google_exceptions.TransportError("connection reset")
        with pytest.raises(RefreshError, match="connection reset") as exc_info:
            RefreshFlow().refresh(IDENTITY, "1//r")
        assert exc_info.value.error_code is None
