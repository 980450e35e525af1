"""Formula Evaluator — tree-walking evaluation of parsed formulas over rows.

Each row is evaluated independently and yields a RowOutcome:
- OK:        finite numeric result
- UNDEFINED: division by zero; value is None and no error is reported
- INVALID:   non-numeric cell or non-finite result
- ERROR:     evaluation failed (e.g. the row has no value for a column)

execute_formula() folds outcomes into a CalculationResult whose `values`
always line up 1:1 with the input rows.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from backend.core.formula_parser import (
    BinaryOpNode,
    ColumnRefNode,
    Node,
    NumberNode,
    ParsedFormula,
    UnaryOpNode,
)
from backend.core.models import CalculationResult

logger = logging.getLogger(__name__)

INVALID_RESULT_MESSAGE = "Invalid calculation result"


class EvaluationError(ValueError):
    """Raised while walking the tree when a row cannot be evaluated."""


class RowStatus(str, Enum):
    OK = "ok"
    UNDEFINED = "undefined"
    INVALID = "invalid"
    ERROR = "error"


@dataclass(frozen=True)
class RowOutcome:
    """Result of evaluating a formula against a single row."""
    status: RowStatus
    value: Optional[float] = None
    error: Optional[str] = None


def _to_number(value: Any) -> float:
    """Coerce a cell value to float; NaN if it is not numeric."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            # int beyond float range
            return math.nan
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return math.nan
    return math.nan


def _eval(node: Node, row: Mapping[str, Any]) -> float:
    if isinstance(node, NumberNode):
        return node.value

    if isinstance(node, ColumnRefNode):
        if node.name not in row:
            raise EvaluationError(f"Column '{node.name}' is missing from row")
        return _to_number(row[node.name])

    if isinstance(node, UnaryOpNode):
        return -_eval(node.operand, row)

    if isinstance(node, BinaryOpNode):
        left = _eval(node.left, row)
        right = _eval(node.right, row)
        op = node.operator
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if op == "/":
            # NaN wins over division by zero so bad cells are still reported
            if math.isnan(left) or math.isnan(right):
                return math.nan
            return left / right  # ZeroDivisionError handled per row
        raise EvaluationError(f"Unsupported operator: {op}")

    raise EvaluationError(f"Unsupported expression node: {type(node).__name__}")


def evaluate_row(parsed: ParsedFormula, row: Mapping[str, Any]) -> RowOutcome:
    """Evaluate a parsed formula against one row without raising."""
    try:
        result = _eval(parsed.tree, row)
    except ZeroDivisionError:
        return RowOutcome(status=RowStatus.UNDEFINED)
    except EvaluationError as e:
        return RowOutcome(status=RowStatus.ERROR, error=str(e))

    if not math.isfinite(result):
        return RowOutcome(status=RowStatus.INVALID, error=INVALID_RESULT_MESSAGE)
    return RowOutcome(status=RowStatus.OK, value=result)


def execute_formula(
    parsed: ParsedFormula,
    rows: Sequence[Mapping[str, Any]],
) -> CalculationResult:
    """Evaluate a parsed formula over a batch of rows.

    One bad row never aborts the batch: it contributes a None value and,
    unless it was a division by zero, a "Row <n>: ..." message (1-indexed).
    """
    values: list[Optional[float]] = []
    errors: list[str] = []

    for position, row in enumerate(rows, start=1):
        outcome = evaluate_row(parsed, row)
        values.append(outcome.value)
        if outcome.error is not None:
            errors.append(f"Row {position}: {outcome.error}")

    if errors:
        logger.debug(
            f"Formula '{parsed.expression}': {len(errors)} of {len(values)} rows failed"
        )
    return CalculationResult(values=values, errors=errors)
