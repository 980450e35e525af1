"""Preview Generator — bounded formula evaluation for interactive feedback."""

from typing import Any, Mapping, Optional, Sequence

from backend.core.config import settings
from backend.core.formula_evaluator import execute_formula
from backend.core.formula_parser import parse_formula
from backend.core.formula_validator import validate_formula
from backend.core.models import FormulaPreview


def generate_preview(
    formula: str,
    rows: Sequence[Mapping[str, Any]],
    known_columns: Sequence[str],
    limit: Optional[int] = None,
) -> FormulaPreview:
    """Validate a formula, then evaluate it over at most `limit` leading rows.

    If validation fails, the validator's errors are returned with no values.
    Otherwise the evaluator's values and per-row errors are returned as-is.
    """
    if limit is None:
        limit = settings.preview_row_limit

    validation = validate_formula(formula, known_columns)
    if not validation.is_valid:
        return FormulaPreview(formula=formula, preview_values=[], errors=validation.errors)

    result = execute_formula(parse_formula(formula), list(rows[:limit]))
    return FormulaPreview(
        formula=formula,
        preview_values=result.values,
        errors=result.errors,
    )
