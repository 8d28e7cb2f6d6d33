"""UUID and timestamp helpers.

Every stored timestamp is an integer count of seconds since the epoch (UTC).
"""

import uuid
from datetime import datetime

import pytz


def now_ts() -> int:
    """Current time as integer epoch seconds."""
    return int(datetime.now(pytz.utc).timestamp())


def expires_in(seconds: int) -> int:
    """Epoch seconds ``seconds`` from now."""
    return now_ts() + seconds


def generate_uuid() -> str:
    return str(uuid.uuid4())
