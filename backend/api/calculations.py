"""Owner-scoped calculation endpoints — formula validation, preview, execution
and calculated column management.

All routes resolve the upload first so a caller can never validate against,
or attach columns to, another user's data.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from backend.api.deps import get_db, get_owner_id
from backend.core.calculated_columns import CalculatedColumnStore
from backend.core.config import settings
from backend.core.datasets import get_data_rows, get_upload_metadata
from backend.core.exceptions import FormulaRejectedError, NotFoundError, PersistenceError
from backend.core.formula_evaluator import execute_formula
from backend.core.formula_parser import parse_formula
from backend.core.formula_preview import generate_preview
from backend.core.formula_validator import validate_formula
from backend.core.models import (
    CalculatedColumnCreate,
    CalculatedColumnModel,
    CalculationResult,
    ExecuteRequest,
    FormulaPreview,
    FormulaRequest,
    FormulaValidationResult,
    UploadMetadata,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_upload(db: Session, upload_id: str, owner_id: int) -> UploadMetadata:
    upload = get_upload_metadata(db, upload_id, owner_id)
    if upload is None:
        raise HTTPException(status_code=404, detail="Upload not found")
    return upload


@router.post("/validate", response_model=FormulaValidationResult)
async def validate(
    body: FormulaRequest,
    owner_id: int = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Validate a formula against the upload's columns."""
    upload = _require_upload(db, body.upload_id, owner_id)
    return validate_formula(body.formula, upload.column_names)


@router.post("/preview", response_model=FormulaPreview)
async def preview(
    body: FormulaRequest,
    owner_id: int = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Evaluate a formula over the first rows of the upload."""
    upload = _require_upload(db, body.upload_id, owner_id)
    rows = get_data_rows(db, body.upload_id, owner_id, page=1, limit=settings.preview_row_limit)
    return generate_preview(body.formula, rows, upload.column_names)


@router.post("/execute", response_model=CalculationResult)
async def execute(
    body: ExecuteRequest,
    owner_id: int = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Evaluate a formula over one page of the upload's rows.

    - **limit**: rows per page, capped at MAX_ROWS_PER_CALL
    """
    upload = _require_upload(db, body.upload_id, owner_id)

    validation = validate_formula(body.formula, upload.column_names)
    if not validation.is_valid:
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid formula", "details": validation.errors},
        )

    limit = min(body.limit, settings.max_rows_per_call)
    rows = get_data_rows(db, body.upload_id, owner_id, page=body.page, limit=limit)
    return execute_formula(parse_formula(body.formula), rows)


@router.post("/columns", response_model=CalculatedColumnModel, status_code=201)
async def create_calculated_column(
    body: CalculatedColumnCreate,
    owner_id: int = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Save a calculated column after validating its formula."""
    upload = _require_upload(db, body.upload_id, owner_id)
    store = CalculatedColumnStore(db)
    try:
        return store.save(
            owner_id=owner_id,
            upload_id=body.upload_id,
            column_name=body.column_name,
            formula=body.formula,
            known_columns=upload.column_names,
        )
    except FormulaRejectedError as e:
        raise HTTPException(status_code=400, detail={"error": "Invalid formula", "details": e.errors})
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/columns", response_model=list[CalculatedColumnModel])
async def list_all_calculated_columns(
    owner_id: int = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """List every calculated column owned by the caller, newest first."""
    try:
        return CalculatedColumnStore(db).list(owner_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/columns/{upload_id}", response_model=list[CalculatedColumnModel])
async def list_calculated_columns(
    upload_id: str,
    owner_id: int = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """List calculated columns for an upload, newest first."""
    _require_upload(db, upload_id, owner_id)
    try:
        return CalculatedColumnStore(db).list(owner_id, upload_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/columns/{column_id}", status_code=204)
async def delete_calculated_column(
    column_id: str,
    owner_id: int = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Delete a calculated column owned by the caller."""
    try:
        CalculatedColumnStore(db).delete(owner_id, column_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return Response(status_code=204)
