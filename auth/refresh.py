"""Refresh Flow - non-interactive refresh-token grant via google-auth."""

import functools
import logging
from datetime import datetime, timezone

from google.auth import exceptions as google_exceptions
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from auth.errors import RefreshError
from auth.models import DEFAULT_TIMEOUT, GOOGLE_TOKEN_ENDPOINT, ClientIdentity, TokenRecord

logger = logging.getLogger(__name__)


class RefreshFlow:
    """Exchanges a stored refresh token for a new access token."""

    def __init__(self, token_endpoint: str = GOOGLE_TOKEN_ENDPOINT, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.token_endpoint = token_endpoint
        self.timeout = timeout

    def refresh(
        self,
        identity: ClientIdentity,
        refresh_token: str | None,
        scope: str | None = None,
    ) -> TokenRecord:
        """Trade ``refresh_token`` for a new token record.

        The provider does not always rotate the refresh token, so when the
        response omits one the token we sent is kept in the new record.
        ``scope`` is carried forward the same way.

        Args:
            identity: OAuth client identity.
            refresh_token: Refresh token from the cached record.
            scope: Scope of the cached record.

        Returns:
            A new TokenRecord stamped with the current time.

        Raises:
            RefreshError: If there is no refresh token, the provider rejects
                it, or the call fails.
        """
        if not refresh_token:
            raise RefreshError("Cached token has no refresh token")

        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=self.token_endpoint,
            client_id=identity.client_id,
            client_secret=identity.client_secret,
        )

        logger.info("Refreshing expired token...")
        try:
            creds.refresh(functools.partial(Request(), timeout=self.timeout))
        except google_exceptions.RefreshError as e:
            raise RefreshError(f"Token refresh failed: {e}", error_code=_error_code(e)) from e
        except google_exceptions.TransportError as e:
            raise RefreshError(f"Token refresh failed: {e}") from e

        if not creds.token or creds.expiry is None:
            raise RefreshError("Token refresh returned no access token or expiry")

        issued_at = datetime.now(timezone.utc)
        # google-auth keeps expiry as naive UTC
        expiry = creds.expiry.replace(tzinfo=timezone.utc)
        expires_in = max(0, round((expiry - issued_at).total_seconds()))

        if creds.refresh_token in (None, refresh_token):
            logger.debug("Provider did not rotate the refresh token; keeping the previous one")

        granted = getattr(creds, "granted_scopes", None)

        return TokenRecord.from_token_response(
            {
                "access_token": creds.token,
                "token_type": "Bearer",
                "expires_in": expires_in,
                "refresh_token": creds.refresh_token,
                "scope": " ".join(granted) if granted else None,
            },
            issued_at=issued_at,
            fallback_refresh_token=refresh_token,
            fallback_scope=scope,
        )


def _error_code(error: google_exceptions.RefreshError) -> str | None:
    """Pull the OAuth ``error`` field out of google-auth's response payload, if any."""
    if len(error.args) > 1 and isinstance(error.args[1], dict):
        return error.args[1].get("error")
    return None
