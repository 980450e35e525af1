"""Dataset access — read-only queries over ingested uploads and their rows.

Ingestion owns the writes; the formula engine only needs an upload's column
names and a page of its rows. All queries are scoped by owner.
"""

import json
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.core.database import DataRowRecord, UploadRecord, as_utc
from backend.core.exceptions import NotFoundError
from backend.core.models import UploadMetadata


def _to_upload_metadata(record: UploadRecord) -> UploadMetadata:
    return UploadMetadata(
        id=record.id,
        owner_id=record.user_id,
        filename=record.filename,
        row_count=record.row_count,
        column_names=json.loads(record.column_names) if record.column_names else [],
        uploaded_at=as_utc(record.uploaded_at),
    )


def get_upload_metadata(
    session: Session,
    upload_id: str,
    owner_id: int,
) -> Optional[UploadMetadata]:
    """Fetch an upload visible to owner_id. Returns None if not found."""
    stmt = select(UploadRecord).where(
        UploadRecord.id == upload_id,
        UploadRecord.user_id == owner_id,
    )
    record = session.scalars(stmt).first()
    if record is None:
        return None
    return _to_upload_metadata(record)


def get_data_rows(
    session: Session,
    upload_id: str,
    owner_id: int,
    page: int = 1,
    limit: int = 100,
) -> list[dict[str, Any]]:
    """Fetch one page of rows for an upload, ordered by row_index.

    Raises:
        NotFoundError: If the upload does not exist or belongs to another owner.
    """
    if get_upload_metadata(session, upload_id, owner_id) is None:
        raise NotFoundError("Upload not found or access denied")

    offset = (max(page, 1) - 1) * limit
    stmt = (
        select(DataRowRecord.row_data)
        .where(DataRowRecord.upload_id == upload_id)
        .order_by(DataRowRecord.row_index.asc())
        .limit(limit)
        .offset(offset)
    )
    return [json.loads(raw) for raw in session.scalars(stmt)]
