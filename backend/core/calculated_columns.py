"""Calculated Column Store — persists named formula definitions per upload.

A calculated column is created once and deleted once; there is no update
in place (an edit is a delete followed by a new save). Every operation is
scoped by owner, and delete does not distinguish "missing" from "owned by
someone else" so column ids never leak across users.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.database import CalculatedColumnRecord, as_utc
from backend.core.exceptions import FormulaRejectedError, NotFoundError, PersistenceError
from backend.core.formula_validator import validate_formula
from backend.core.id_gen import new_calculated_column_id
from backend.core.models import CalculatedColumnModel

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Calculated column not found or access denied"


def _to_model(record: CalculatedColumnRecord) -> CalculatedColumnModel:
    return CalculatedColumnModel(
        id=record.id,
        owner_id=record.user_id,
        upload_id=record.upload_id,
        column_name=record.column_name,
        formula=record.formula,
        created_at=as_utc(record.created_at),
    )


class CalculatedColumnStore:
    """Owner-scoped CRUD over the calculated_columns table."""

    def __init__(self, session: Session):
        self._session = session

    def save(
        self,
        owner_id: int,
        upload_id: str,
        column_name: str,
        formula: str,
        known_columns: Sequence[str],
    ) -> CalculatedColumnModel:
        """Validate and insert a calculated column.

        Raises:
            FormulaRejectedError: If the formula does not validate against known_columns.
            PersistenceError: If the insert fails.
        """
        validation = validate_formula(formula, known_columns)
        if not validation.is_valid:
            logger.info(
                f"Rejected calculated column '{column_name}' for upload {upload_id}: "
                f"{validation.errors}"
            )
            raise FormulaRejectedError(validation.errors)

        record = CalculatedColumnRecord(
            id=new_calculated_column_id(),
            user_id=owner_id,
            upload_id=upload_id,
            column_name=column_name,
            formula=formula,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self._session.add(record)
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error(f"Failed to save calculated column '{column_name}': {e}")
            raise PersistenceError(f"Failed to save calculated column: {e}") from e

        logger.info(f"Saved calculated column {record.id} ('{column_name}') for upload {upload_id}")
        return _to_model(record)

    def list(self, owner_id: int, upload_id: Optional[str] = None) -> list[CalculatedColumnModel]:
        """List calculated columns newest-first, optionally for a single upload."""
        stmt = select(CalculatedColumnRecord).where(CalculatedColumnRecord.user_id == owner_id)
        if upload_id is not None:
            stmt = stmt.where(CalculatedColumnRecord.upload_id == upload_id)
        # ids are UUIDv7, so id order breaks created_at ties in creation order
        stmt = stmt.order_by(
            CalculatedColumnRecord.created_at.desc(),
            CalculatedColumnRecord.id.desc(),
        )
        try:
            records = self._session.scalars(stmt).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list calculated columns for owner {owner_id}: {e}")
            raise PersistenceError(f"Failed to retrieve calculated columns: {e}") from e
        return [_to_model(r) for r in records]

    def delete(self, owner_id: int, column_id: str) -> None:
        """Delete a calculated column owned by owner_id.

        Raises:
            NotFoundError: If no row matched (missing id or another owner's column).
            PersistenceError: If the delete fails.
        """
        stmt = delete(CalculatedColumnRecord).where(
            CalculatedColumnRecord.id == column_id,
            CalculatedColumnRecord.user_id == owner_id,
        )
        try:
            result = self._session.execute(stmt)
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error(f"Failed to delete calculated column {column_id}: {e}")
            raise PersistenceError(f"Failed to delete calculated column: {e}") from e

        if result.rowcount == 0:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        logger.info(f"Deleted calculated column {column_id}")
