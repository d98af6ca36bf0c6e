"""Data model for the token lifecycle.

ClientIdentity and TokenRecord cross the filesystem boundary, so they
carry their own dict conversions. AuthorizationSession lives only for a
single authorization attempt and is never serialized.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

GOOGLE_AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
CALENDAR_READONLY_SCOPE = "https://www.googleapis.com/auth/calendar.readonly"
DEFAULT_TIMEOUT = 30


@dataclass(frozen=True)
class ClientIdentity:
    """OAuth client id/secret supplied by the provisioner."""

    client_id: str
    client_secret: str

    def __repr__(self) -> str:
        return f"ClientIdentity(client_id={self.client_id!r}, client_secret='***')"


@dataclass(frozen=True)
class AccessTokenView:
    """What callers get back: a TokenRecord without its issue timestamp."""

    access_token: str
    token_type: str
    expires_in: int
    refresh_token: str | None = None
    scope: str | None = None


@dataclass(frozen=True)
class TokenRecord:
    """A cached token response stamped with the time it was issued.

    ``issued_at`` is kept as the RFC 3339 string that was written to disk,
    so a corrupt value survives loading and is judged by the validator
    instead of crashing the loader.
    """

    access_token: str
    token_type: str
    expires_in: int
    issued_at: str
    refresh_token: str | None = None
    scope: str | None = None

    @classmethod
    def from_token_response(
        cls,
        payload: dict[str, Any],
        issued_at: datetime,
        fallback_refresh_token: str | None = None,
        fallback_scope: str | None = None,
    ) -> "TokenRecord":
        """Build a record from a token endpoint response.

        Args:
            payload: Parsed JSON body from the token endpoint.
            issued_at: Offset-aware time the response was received.
            fallback_refresh_token: Used when the response carries no refresh token.
            fallback_scope: Used when the response carries no scope.

        Returns:
            A new TokenRecord.
        """
        return cls(
            access_token=payload["access_token"],
            token_type=payload["token_type"],
            expires_in=int(payload["expires_in"]),
            issued_at=issued_at.isoformat(),
            refresh_token=payload.get("refresh_token") or fallback_refresh_token,
            scope=payload.get("scope") or fallback_scope,
        )

    @classmethod
    def from_dict(cls, data: Any) -> "TokenRecord":
        """Rebuild a record from its cached JSON form.

        Raises:
            ValueError: If a required field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError("token record must be a JSON object")

        for key in ("access_token", "token_type", "issued_at"):
            if not isinstance(data.get(key), str):
                raise ValueError(f"token record field '{key}' must be a string")

        expires_in = data.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, int) or expires_in < 0:
            raise ValueError("token record field 'expires_in' must be a non-negative integer")

        for key in ("refresh_token", "scope"):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ValueError(f"token record field '{key}' must be a string or null")

        return cls(
            access_token=data["access_token"],
            token_type=data["token_type"],
            expires_in=expires_in,
            issued_at=data["issued_at"],
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_view(self) -> AccessTokenView:
        return AccessTokenView(
            access_token=self.access_token,
            token_type=self.token_type,
            expires_in=self.expires_in,
            refresh_token=self.refresh_token,
            scope=self.scope,
        )


@dataclass(frozen=True)
class AuthorizationSession:
    """PKCE pair, anti-forgery token and URL for one authorization attempt.

    ``oauth_flow`` is the google_auth_oauthlib Flow that generated the
    verifier; the code exchange must go through the same object.
    """

    pkce_verifier: str
    pkce_challenge: str
    authorization_url: str
    csrf_token: str
    oauth_flow: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class TokenManagerConfig:
    """Everything the TokenManager needs that would otherwise be a global."""

    identity_path: str
    cache_path: str
    token_endpoint: str = GOOGLE_TOKEN_ENDPOINT
    auth_endpoint: str = GOOGLE_AUTH_ENDPOINT
    redirect_uri: str = OOB_REDIRECT_URI
    scope: str = CALENDAR_READONLY_SCOPE
    expiry_leeway: int = 0
    timeout: int = DEFAULT_TIMEOUT
