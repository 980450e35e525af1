"""Pydantic models for formula results, calculated columns and API request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# --- Formula engine results ---


class FormulaValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = []
    warnings: list[str] = []


class CalculationResult(BaseModel):
    values: list[Optional[float]] = []  # aligned 1:1 with input rows
    errors: list[str] = []


class FormulaPreview(BaseModel):
    column_name: str = ""
    formula: str
    preview_values: list[Optional[float]] = []
    errors: list[str] = []


# --- Persisted entities ---


class CalculatedColumnModel(BaseModel):
    id: str
    owner_id: int
    upload_id: str
    column_name: str
    formula: str
    created_at: datetime


class UploadMetadata(BaseModel):
    id: str
    owner_id: int
    filename: str
    row_count: int = 0
    column_names: list[str] = []
    uploaded_at: Optional[datetime] = None


# --- API request models ---


class FormulaRequest(BaseModel):
    formula: str = Field(..., min_length=1, description="Formula text, e.g. 'price * quantity'")
    upload_id: str = Field(..., min_length=1, max_length=64)


class ExecuteRequest(FormulaRequest):
    page: int = Field(1, ge=1)
    limit: int = Field(100, ge=1, description="Rows per page; capped at MAX_ROWS_PER_CALL")


class CalculatedColumnCreate(BaseModel):
    column_name: str = Field(..., min_length=1, max_length=255)
    formula: str = Field(..., min_length=1)
    upload_id: str = Field(..., min_length=1, max_length=64)
