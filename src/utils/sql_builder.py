"""Partial UPDATE statement builder.

Managers receive a pydantic partial-update model where every field is
optional. Only fields the caller actually set become column assignments;
everything else in the row stays untouched. ``updated_at`` is always stamped.
"""

from typing import Any, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from core.clock import now_ts
from utils.converters import dump_json, to_db_bool


def build_update(
    table: str,
    row_id: str,
    updates: BaseModel,
    json_fields: Iterable[str] = (),
    bool_fields: Iterable[str] = (),
    timestamp_column: Optional[str] = "updated_at",
) -> Optional[Tuple[str, List[Any]]]:
    """Build ``UPDATE <table> SET ... WHERE id = ?`` from set fields only.

    Column names come from the model's declared fields, never from input
    values, and every value is bound positionally.

    Args:
        table: Table name.
        row_id: Primary key of the row to update.
        updates: Partial-update model; unset fields are skipped.
        json_fields: Columns that hold serialized JSON.
        bool_fields: Columns stored as 0/1.
        timestamp_column: Column stamped with the current time, or None.

    Returns:
        ``(sql, params)``, or None when no field was set.
    """
    values = updates.model_dump(exclude_unset=True)
    if not values:
        return None

    json_fields = set(json_fields)
    bool_fields = set(bool_fields)
    allowed = set(type(updates).model_fields)

    assignments = []
    params: List[Any] = []
    for column, value in values.items():
        if column not in allowed:
            raise ValueError(f"Unknown column for {table}: {column}")
        if column in json_fields:
            value = dump_json(value)
        elif column in bool_fields and value is not None:
            value = to_db_bool(value)
        assignments.append(f"{column} = ?")
        params.append(value)

    if timestamp_column:
        assignments.append(f"{timestamp_column} = ?")
        params.append(now_ts())

    params.append(row_id)
    sql = f"UPDATE {table} SET {', '.join(assignments)} WHERE id = ?"
    return sql, params
