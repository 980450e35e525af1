"""FastAPI dependencies for caller identity and database sessions."""

from collections.abc import Generator
from typing import Optional

from fastapi import Header, HTTPException, Request
from sqlalchemy.orm import Session


async def get_owner_id(
    x_user_id: Optional[str] = Header(None, description="Authenticated user ID set by the auth gateway"),
) -> int:
    """Extract and validate the caller's user id from the X-User-Id header.

    Authentication happens upstream; this only checks the id is well-formed.
    Raises 401 if the header is missing or not a positive integer.
    """
    if x_user_id is None or not x_user_id.isdigit() or int(x_user_id) <= 0:
        raise HTTPException(status_code=401, detail="Missing or invalid user identity")
    return int(x_user_id)


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a request-scoped session; commit on success, roll back on error."""
    session = request.app.state.session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
