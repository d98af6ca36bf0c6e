"""Token Cache Validator - decides whether a cached record is still usable."""

import logging
from datetime import datetime, timedelta

from auth.models import TokenRecord

logger = logging.getLogger(__name__)


def parse_issued_at(value: str) -> datetime | None:
    """Parse an RFC 3339 timestamp, returning None unless it is offset-aware."""
    try:
        # fromisoformat on older interpreters rejects a trailing "Z"
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        return None
    return parsed


def is_fresh(record: TokenRecord, now: datetime, leeway: int = 0) -> bool:
    """Check whether ``now`` falls before the record's expiry.

    Expiry is ``issued_at + expires_in - leeway``. An unparseable or naive
    ``issued_at`` means expired; this never raises for a bad timestamp.

    Args:
        record: The cached token record.
        now: Offset-aware current time.
        leeway: Seconds to treat the token as expired early. Zero by default.

    Returns:
        True if the access token can still be used.
    """
    issued_at = parse_issued_at(record.issued_at)
    if issued_at is None:
        logger.warning("Cached token has an unparseable issued_at; treating it as expired")
        return False

    try:
        expiry = issued_at + timedelta(seconds=record.expires_in - leeway)
    except OverflowError:
        # past datetime.max, so it has not expired yet
        return True
    return now < expiry
