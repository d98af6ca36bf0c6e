"""Error taxonomy for the OAuth token lifecycle.

Only ConfigurationError and AuthorizationError are meant to reach the
operator. The others are absorbed by the TokenManager, which falls back
to the next strategy.
"""


class TokenError(Exception):
    """Base class for every token lifecycle failure."""


class ConfigurationError(TokenError):
    """Identity file or settings are missing or malformed. Fatal."""


class CacheCorruptError(TokenError):
    """Token cache exists but cannot be parsed. Treated as a cache miss."""


class AuthorizationError(TokenError):
    """Interactive authorization-code exchange failed. Fatal."""


class RefreshError(TokenError):
    """Refresh grant rejected or impossible. Falls back to authorization."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class StorageError(TokenError):
    """Token cache could not be written. Logged, never fatal."""

