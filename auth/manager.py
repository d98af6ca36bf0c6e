"""Token Manager - the single entry point for obtaining an access token.

Strategies are tried in order and each returns a tagged TokenOutcome:

1. cache          -> FRESH if the cached record has not expired
2. refresh        -> REFRESHED if the refresh grant succeeds
3. authorization  -> REAUTHORIZED after the interactive grant

A FAILED outcome moves on to the next strategy. Only configuration and
authorization failures escape to the caller; a corrupt cache, a rejected
refresh and a failed cache write are logged and absorbed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from auth.authorization import AuthorizationFlow, Display, Prompt
from auth.errors import CacheCorruptError, RefreshError, StorageError
from auth.models import AccessTokenView, ClientIdentity, TokenManagerConfig, TokenRecord
from auth.refresh import RefreshFlow
from auth.store import CredentialStore
from auth.validator import is_fresh

logger = logging.getLogger(__name__)


class TokenSource(str, Enum):
    """Where a token came from."""

    FRESH = "fresh"
    REFRESHED = "refreshed"
    REAUTHORIZED = "reauthorized"
    FAILED = "failed"


@dataclass
class TokenOutcome:
    """Result of one strategy. ``record`` is None only when FAILED."""

    source: TokenSource
    record: TokenRecord | None = None
    reason: str = ""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager:
    """Orchestrates cache, refresh and interactive authorization."""

    def __init__(
        self,
        config: TokenManagerConfig,
        prompt: Prompt = input,
        display: Display = print,
        store: CredentialStore | None = None,
        authorization_flow: AuthorizationFlow | None = None,
        refresh_flow: RefreshFlow | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the TokenManager.

        Args:
            config: Paths, endpoints and scope for this run.
            prompt: Operator input provider for the authorization code.
            display: Output for the authorization URL.
            store: Credential store override.
            authorization_flow: Authorization flow override.
            refresh_flow: Refresh flow override.
            clock: Returns the current offset-aware time.
        """
        self.config = config
        self.store = store or CredentialStore(config.identity_path, config.cache_path)
        self.authorization_flow = authorization_flow or AuthorizationFlow(
            auth_endpoint=config.auth_endpoint,
            token_endpoint=config.token_endpoint,
            redirect_uri=config.redirect_uri,
            scope=config.scope,
            prompt=prompt,
            display=display,
            timeout=config.timeout,
        )
        self.refresh_flow = refresh_flow or RefreshFlow(
            token_endpoint=config.token_endpoint,
            timeout=config.timeout,
        )
        self.clock = clock
        self.last_source: TokenSource | None = None

    def get_access_token(self) -> AccessTokenView:
        """Return a usable access token, prompting the operator only if needed.

        Returns:
            The AccessTokenView for the current run.

        Raises:
            ConfigurationError: If the client identity cannot be loaded.
                Raised before any network call.
            AuthorizationError: If the interactive grant fails.
        """
        identity = self.store.load_client_identity()
        cached = self._load_cache()

        outcome = None
        for strategy in (self._from_cache, self._from_refresh):
            attempt = strategy(identity, cached)
            if attempt.source is not TokenSource.FAILED:
                outcome = attempt
                break
            logger.info("Skipping %s: %s", strategy.__name__.removeprefix("_from_"), attempt.reason)

        # last resort; raises AuthorizationError instead of returning FAILED
        if outcome is None:
            outcome = self._from_authorization(identity)

        if outcome.source is not TokenSource.FRESH:
            self._persist(outcome.record)

        self.last_source = outcome.source
        logger.info("Access token obtained (%s)", outcome.source.value)
        return outcome.record.to_view()

    def _load_cache(self) -> TokenRecord | None:
        try:
            return self.store.load_cached_token()
        except CacheCorruptError as e:
            logger.warning("Ignoring token cache: %s", e)
            return None

    def _from_cache(self, identity: ClientIdentity, cached: TokenRecord | None) -> TokenOutcome:
        if cached is None:
            return TokenOutcome(TokenSource.FAILED, reason="no cached token")
        if not is_fresh(cached, self.clock(), leeway=self.config.expiry_leeway):
            return TokenOutcome(TokenSource.FAILED, reason="cached token has expired")
        return TokenOutcome(TokenSource.FRESH, record=cached)

    def _from_refresh(self, identity: ClientIdentity, cached: TokenRecord | None) -> TokenOutcome:
        if cached is None:
            return TokenOutcome(TokenSource.FAILED, reason="no cached token")
        if not cached.refresh_token:
            return TokenOutcome(TokenSource.FAILED, reason="cached token has no refresh token")

        try:
            record = self.refresh_flow.refresh(identity, cached.refresh_token, scope=cached.scope)
        except RefreshError as e:
            logger.warning("Refresh rejected, falling back to authorization: %s", e)
            return TokenOutcome(TokenSource.FAILED, reason=str(e))
        return TokenOutcome(TokenSource.REFRESHED, record=record)

    def _from_authorization(self, identity: ClientIdentity) -> TokenOutcome:
        record = self.authorization_flow.authorize(identity)
        return TokenOutcome(TokenSource.REAUTHORIZED, record=record)

    def _persist(self, record: TokenRecord) -> None:
        """Save ``record``; a failure only costs us the cache for next run."""
        try:
            self.store.save_cached_token(record)
        except StorageError as e:
            logger.error("Could not cache token, continuing with it anyway: %s", e)
