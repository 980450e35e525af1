"""Relational storage — SQLAlchemy engine, session factory and table models.

Tables:
- uploads:            one row per ingested CSV (column_names as a JSON string)
- data_rows:          one row per CSV record (row_data as a JSON string)
- calculated_columns: saved formula definitions, scoped to (user_id, upload_id)

The upload and row tables are written by ingestion; this service only reads
them. The engine and session factory are created at app startup and kept on
app.state rather than in module globals.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from backend.core.config import settings

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive timestamp read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Base(DeclarativeBase):
    pass


class UploadRecord(Base):
    __tablename__ = "uploads"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    column_names: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON string
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class DataRowRecord(Base):
    __tablename__ = "data_rows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    upload_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("uploads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    row_index: Mapped[int] = mapped_column(Integer, nullable=False)
    row_data: Mapped[str] = mapped_column(Text, nullable=False)  # JSON string


class CalculatedColumnRecord(Base):
    __tablename__ = "calculated_columns"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    upload_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("uploads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    column_name: Mapped[str] = mapped_column(String(255), nullable=False)
    formula: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


# ---------------------------------------------------------------------------
# Engine / session lifecycle
# ---------------------------------------------------------------------------

def create_db_engine(database_url: Optional[str] = None, **kwargs) -> Engine:
    """Create the SQLAlchemy engine. Extra kwargs go to create_engine()."""
    url = make_url(database_url or settings.database_url)

    if url.get_backend_name() == "sqlite":
        # Request handlers run in a threadpool; SQLite must allow cross-thread use
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=settings.database_echo, **kwargs)
    logger.info(f"Database engine created for {url.render_as_string(hide_password=True)}")
    return engine


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(engine)
    logger.info("Database schema initialized")


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


def check_connection(engine: Optional[Engine]) -> bool:
    """Check if the database is reachable."""
    try:
        if engine is None:
            return False
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
