"""Formula Validator — checks a formula against an upload's column set.

Validation never raises for user input; every problem is reported in the
returned FormulaValidationResult so callers can render it directly.
"""

import logging
from typing import Sequence

from backend.core.formula_evaluator import RowStatus, evaluate_row
from backend.core.formula_parser import ParseError, parse_formula
from backend.core.models import FormulaValidationResult

logger = logging.getLogger(__name__)

NO_COLUMN_REFERENCES_WARNING = "Formula contains no column references"


def unknown_column_message(name: str) -> str:
    return f"Column '{name}' not found in dataset"


def validate_formula(formula: str, known_columns: Sequence[str]) -> FormulaValidationResult:
    """Validate a formula against the known columns of a dataset.

    Steps:
    1. Parse; a parse failure returns immediately
    2. Every referenced column must exist in known_columns
    3. Dry-run against a synthetic row where every known column is 1.
       Only runs when step 2 found nothing, so a formula with unknown
       columns reports exactly the "not found in dataset" errors.
    4. Warn when the formula references no columns at all
    """
    errors: list[str] = []
    warnings: list[str] = []

    # Step 1: Parse
    try:
        parsed = parse_formula(formula)
    except ParseError as e:
        return FormulaValidationResult(is_valid=False, errors=[str(e)])

    # Step 2: Column membership
    known = set(known_columns)
    for name in parsed.variables:
        if name not in known:
            errors.append(unknown_column_message(name))

    # Step 3: Dry run. Skipped when columns are unknown, since the synthetic
    # row cannot bind them and the failure would repeat step 2.
    if not errors:
        sample_row = {name: 1 for name in known_columns}
        outcome = evaluate_row(parsed, sample_row)
        if outcome.status == RowStatus.ERROR:
            errors.append(f"Formula evaluation error: {outcome.error}")

    # Step 4: Warnings
    if not parsed.variables:
        warnings.append(NO_COLUMN_REFERENCES_WARNING)

    if errors:
        logger.debug(f"Formula '{formula}' rejected: {errors}")

    return FormulaValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
    )
