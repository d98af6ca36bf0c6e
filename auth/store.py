"""Credential Store - reads the client identity and reads/writes the token cache.

The identity file is provisioner-supplied and only ever read. The token
cache is replaced wholesale on every save via write-to-temp-then-rename,
so a concurrent reader sees either the old file or the new one.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from auth.errors import CacheCorruptError, ConfigurationError, StorageError
from auth.models import ClientIdentity, TokenRecord

logger = logging.getLogger(__name__)


class CredentialStore:
    """File-backed storage for the client identity and cached token."""

    def __init__(self, identity_path: str, cache_path: str) -> None:
        """Initialize the CredentialStore.

        Args:
            identity_path: Path to the OAuth client credentials.json.
            cache_path: Path to the cached token JSON file.
        """
        self.identity_path = Path(identity_path)
        self.cache_path = Path(cache_path)

    def load_client_identity(self) -> ClientIdentity:
        """Read the ``{"installed": {client_id, client_secret}}`` identity file.

        Returns:
            The ClientIdentity.

        Raises:
            ConfigurationError: If the file is missing or malformed.
        """
        try:
            data = json.loads(self.identity_path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Client credentials not found at {self.identity_path}. "
                "Download the OAuth client JSON for an installed app and save it there."
            ) from e
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Client credentials at {self.identity_path} are unreadable: {e}"
            ) from e

        installed = data.get("installed") if isinstance(data, dict) else None
        if not isinstance(installed, dict):
            raise ConfigurationError(
                f"Client credentials at {self.identity_path} have no 'installed' section."
            )

        client_id = installed.get("client_id")
        client_secret = installed.get("client_secret")
        if not isinstance(client_id, str) or not client_id:
            raise ConfigurationError("Client credentials are missing 'client_id'.")
        if not isinstance(client_secret, str) or not client_secret:
            raise ConfigurationError("Client credentials are missing 'client_secret'.")

        return ClientIdentity(client_id=client_id, client_secret=client_secret)

    def load_cached_token(self) -> TokenRecord | None:
        """Read the cached token record.

        Returns:
            The TokenRecord, or None if no cache file exists.

        Raises:
            CacheCorruptError: If the file exists but cannot be parsed.
        """
        try:
            raw = self.cache_path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheCorruptError(f"Token cache at {self.cache_path} is unreadable: {e}") from e

        try:
            # UnicodeDecodeError is a ValueError, so bad bytes land here too
            return TokenRecord.from_dict(json.loads(raw.decode("utf-8")))
        except ValueError as e:
            raise CacheCorruptError(f"Token cache at {self.cache_path} is corrupt: {e}") from e

    def save_cached_token(self, record: TokenRecord) -> None:
        """Atomically replace the token cache with ``record``.

        Creates the parent directory if needed. The temp file lives in the
        same directory so the final rename never crosses filesystems.

        Raises:
            StorageError: If the directory or file cannot be written.
        """
        payload = json.dumps(record.to_dict(), indent=2)
        tmp_name = None
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.cache_path.parent,
                prefix=f".{self.cache_path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.cache_path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write token cache {self.cache_path}: {e}") from e

        logger.info("Token cached at %s", self.cache_path)
