"""Authorization Flow - interactive authorization-code grant with PKCE.

Start -> Present -> Collect -> Exchange. The redirect URI is the
out-of-band value, so the operator copies the code from the provider's
page and pastes it at the prompt; no local server is started. PKCE,
the state token and the code exchange are handled by google_auth_oauthlib.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable
from urllib.parse import parse_qs, urlparse

import requests
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2 import OAuth2Error

from auth.errors import AuthorizationError
from auth.models import (
    CALENDAR_READONLY_SCOPE,
    DEFAULT_TIMEOUT,
    GOOGLE_AUTH_ENDPOINT,
    GOOGLE_TOKEN_ENDPOINT,
    OOB_REDIRECT_URI,
    AuthorizationSession,
    ClientIdentity,
    TokenRecord,
)

logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]
Display = Callable[[str], None]


class AuthorizationFlow:
    """Drives one interactive authorization attempt per ``authorize`` call."""

    def __init__(
        self,
        auth_endpoint: str = GOOGLE_AUTH_ENDPOINT,
        token_endpoint: str = GOOGLE_TOKEN_ENDPOINT,
        redirect_uri: str = OOB_REDIRECT_URI,
        scope: str = CALENDAR_READONLY_SCOPE,
        prompt: Prompt = input,
        display: Display = print,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the AuthorizationFlow.

        Args:
            auth_endpoint: Provider authorization endpoint URL.
            token_endpoint: Provider token endpoint URL.
            redirect_uri: Redirect URI registered for the client.
            scope: Scope to request (read-only calendar access).
            prompt: Reads one line of operator input. Swap out in tests.
            display: Shows text to the operator.
            timeout: Token endpoint timeout in seconds.
        """
        self.auth_endpoint = auth_endpoint
        self.token_endpoint = token_endpoint
        self.redirect_uri = redirect_uri
        self.scope = scope
        self.prompt = prompt
        self.display = display
        self.timeout = timeout

    def start(self, identity: ClientIdentity) -> AuthorizationSession:
        """Create a fresh session: PKCE pair, state token and authorization URL."""
        flow = Flow.from_client_config(
            {
                "installed": {
                    "client_id": identity.client_id,
                    "client_secret": identity.client_secret,
                    "auth_uri": self.auth_endpoint,
                    "token_uri": self.token_endpoint,
                },
            },
            scopes=[self.scope],
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=True,
        )
        auth_url, state = flow.authorization_url()
        challenge = parse_qs(urlparse(auth_url).query)["code_challenge"][0]

        return AuthorizationSession(
            pkce_verifier=flow.code_verifier,
            pkce_challenge=challenge,
            authorization_url=auth_url,
            csrf_token=state,
            oauth_flow=flow,
        )

    def collect_code(self, session: AuthorizationSession) -> str:
        """Show the authorization URL and block until the operator pastes a code.

        Raises:
            AuthorizationError: If input is closed or empty, or carries a
                state token that does not match the session.
        """
        self.display("Open the following URL in your browser and approve access:")
        self.display(session.authorization_url)
        try:
            raw = self.prompt("Paste the authorization code and press Enter: ")
        except EOFError as e:
            raise AuthorizationError("No authorization code was entered") from e
        return extract_code(raw, session.csrf_token)

    def exchange(self, session: AuthorizationSession, code: str) -> TokenRecord:
        """Exchange the authorization code for a token record.

        Raises:
            AuthorizationError: If the token endpoint call fails or the
                granted scope does not cover the requested one.
        """
        try:
            token = session.oauth_flow.fetch_token(code=code, timeout=self.timeout)
        except (OAuth2Error, requests.RequestException, ValueError) as e:
            raise AuthorizationError(f"Authorization code exchange failed: {e}") from e
        except Warning as e:
            # oauthlib signals a narrowed scope by raising Warning
            raise AuthorizationError(f"Provider changed the granted scope: {e}") from e

        payload = _token_payload(token)
        granted = payload.get("scope")
        if granted and self.scope not in granted.split():
            raise AuthorizationError(
                f"Provider did not grant the requested scope {self.scope!r} (granted: {granted!r})"
            )

        return TokenRecord.from_token_response(payload, issued_at=datetime.now(timezone.utc))

    def authorize(self, identity: ClientIdentity) -> TokenRecord:
        """Run the whole interactive grant once. No retries.

        The session is local to this call, so its verifier is gone once the
        exchange finishes.

        Raises:
            AuthorizationError: On any failure.
        """
        session = self.start(identity)
        code = self.collect_code(session)
        logger.info("Authorization code received, exchanging for a token")
        record = self.exchange(session, code)
        logger.info("Authorization completed")
        return record


def _token_payload(token: dict[str, Any]) -> dict[str, Any]:
    """Normalize an oauthlib token dict into token endpoint response form.

    oauthlib splits ``scope`` into a list and adds bookkeeping keys such as
    ``expires_at``; the record wants the space-separated string.
    """
    payload = dict(token)

    scope = payload.get("scope")
    if isinstance(scope, (list, tuple)):
        payload["scope"] = " ".join(scope)

    try:
        payload["expires_in"] = int(payload["expires_in"])
    except (KeyError, TypeError, ValueError) as e:
        raise AuthorizationError("Token response has no valid 'expires_in'") from e
    if payload["expires_in"] < 0:
        raise AuthorizationError("Token response has a negative 'expires_in'")

    return payload


def extract_code(raw: str, expected_state: str) -> str:
    """Get the authorization code out of operator input.

    Accepts the bare code or the full redirect URL. When the input has a
    ``state`` parameter it must match ``expected_state``.

    Raises:
        AuthorizationError: If no code is present or the state mismatches.
    """
    text = (raw or "").strip()

    if "code=" in text:
        query = parse_qs(urlparse(text).query or text.split("?", 1)[-1])
        if query.get("error"):
            raise AuthorizationError(f"Provider returned an error: {query['error'][0]}")
        state = query.get("state", [None])[0]
        if state is not None and state != expected_state:
            raise AuthorizationError("State token mismatch; the pasted response is not from this attempt")
        text = query.get("code", [""])[0].strip()

    if not text:
        raise AuthorizationError("No authorization code was entered")
    return text
