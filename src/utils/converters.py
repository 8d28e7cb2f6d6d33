"""Row conversion helpers shared by the managers.

Rows come back from the adapter as plain dicts of column values. JSON blob
columns are stored as text and booleans as 0/1; these helpers turn them back
into Python values.
"""

import json
import logging
from typing import Any, Iterable, Optional

from core.database import Row

logger = logging.getLogger(__name__)


def dump_json(value: Any) -> Optional[str]:
    """Serialize a JSON blob column value; None stays NULL."""
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def load_json(raw: Any, column: str = "") -> Any:
    """Parse a JSON blob column.

    A value that fails to parse is logged and read back as None; blob
    columns hold display content, so a bad blob must not break the row.
    """
    if raw is None or raw == "":
        return None
    if not isinstance(raw, (str, bytes, bytearray)):
        return raw
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.error("Failed to parse %s: %s", column or "JSON column", exc)
        return None


def to_db_bool(value: Any) -> int:
    return 1 if value else 0


def convert_row(
    row: Optional[Row],
    json_fields: Iterable[str] = (),
    bool_fields: Iterable[str] = (),
) -> Optional[Row]:
    """Decode JSON and boolean columns of a row in place and return it."""
    if row is None:
        return None
    for name in json_fields:
        if name in row:
            row[name] = load_json(row[name], name)
    for name in bool_fields:
        if name in row and row[name] is not None:
            row[name] = bool(row[name])
    return row


def strip_credentials(user: Optional[Row]) -> Optional[Row]:
    """Return a copy of a user row without its password hash."""
    if user is None:
        return None
    public = dict(user)
    public.pop("password_hash", None)
    return public
