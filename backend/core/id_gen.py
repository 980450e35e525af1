"""Time-sortable string IDs for calculated columns.

IDs are a short type prefix plus a 32-char UUIDv7 hex string (fits the
64-char id columns). UUIDv7 embeds a millisecond timestamp, so an id
created later sorts after one created earlier; the store relies on this
to break created_at ties when listing newest-first.
"""

from uuid_extensions import uuid7

CALCULATED_COLUMN_PREFIX = "calc_"


def generate_id(prefix: str = "") -> str:
    uid = uuid7().hex  # no hyphens
    return f"{prefix}{uid}"


def new_calculated_column_id() -> str:
    return generate_id(CALCULATED_COLUMN_PREFIX)
