"""Google Calendar OAuth Setup.

Run this once to authenticate with Google Calendar and cache a token.
Prints an authorization URL, reads the code you paste back, and saves
the token for future runs of main.py. If a cached token is still valid
(or can be refreshed) no prompt is shown.

Usage:
    python authorize.py
"""

import logging
import sys

from auth.errors import AuthorizationError, ConfigurationError
from auth.manager import TokenManager
from config.settings import load_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%H:%M:%S",
)


def main() -> None:
    """Obtain a token and report where it was cached."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print("Starting Google Calendar authentication...")
    print(f"Using credentials from: {settings.google_credentials_path}")
    print()

    manager = TokenManager(settings.token_manager_config())
    try:
        manager.get_access_token()
    except (ConfigurationError, AuthorizationError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print()
    print(f"Token ready ({manager.last_source.value}), cached at: {settings.google_token_path}")
    print("You can now run: python main.py")


if __name__ == "__main__":
    main()
