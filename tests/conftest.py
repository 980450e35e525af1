"""Shared test fixtures for the TradeCalc test suite."""

import json
from typing import Any, Optional

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from backend.core.database import (
    DataRowRecord,
    UploadRecord,
    create_db_engine,
    create_session_factory,
    init_db,
)
from backend.core.id_gen import generate_id


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads (TestClient runs handlers in a threadpool)."""
    eng = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


def make_upload(
    session: Session,
    owner_id: int = 1,
    column_names: Optional[list[str]] = None,
    rows: Optional[list[dict[str, Any]]] = None,
    upload_id: Optional[str] = None,
    filename: str = "trades.csv",
) -> str:
    """Helper to insert an upload and its rows the way ingestion would."""
    upload_id = upload_id or generate_id("upl_")
    rows = rows or []
    if column_names is None:
        column_names = list(rows[0].keys()) if rows else ["price", "quantity"]

    session.add(UploadRecord(
        id=upload_id,
        user_id=owner_id,
        filename=filename,
        row_count=len(rows),
        column_names=json.dumps(column_names),
    ))
    for i, row in enumerate(rows):
        session.add(DataRowRecord(
            user_id=owner_id,
            upload_id=upload_id,
            row_index=i,
            row_data=json.dumps(row),
        ))
    session.commit()
    return upload_id
