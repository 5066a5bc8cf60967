"""Clock helpers.

All persisted timestamps are naive UTC, matching the ``DateTime`` columns.
Services take a ``clock`` callable so expiry logic can be exercised in tests.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
