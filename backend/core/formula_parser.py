"""Formula Parser — turns a formula string into a typed expression tree.

The grammar covers only numeric literals, column references,
the four arithmetic operators, unary sign and parentheses. Anything else
(function calls, comparisons, string literals) fails to parse, so a
formula can never express more than arithmetic over column values.

Column references come in two forms:
- bare identifiers:   price * quantity
- bracketed names:    [Entry Price] * [Qty]   (for CSV headers with spaces)
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Union

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken


FORMULA_GRAMMAR = r"""
    ?start: sum

    ?sum: product
        | sum "+" product -> add
        | sum "-" product -> sub

    ?product: unary
        | product "*" unary -> mul
        | product "/" unary -> div

    ?unary: atom
        | "-" unary -> neg
        | "+" unary -> pos

    ?atom: NUMBER -> number
        | NAME -> column
        | BRACKETED_NAME -> bracketed_column
        | "(" sum ")"

    NAME: /[A-Za-z_][A-Za-z0-9_]*/

    // [Column Name]: at least one non-space character, no nested brackets
    BRACKETED_NAME: /\[[^\[\]]*[^\[\]\s][^\[\]]*\]/

    // Sign is handled by the unary rule, not here
    NUMBER: /(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?/

    %import common.WS
    %ignore WS
"""


class ParseError(ValueError):
    """Raised when a formula is not valid arithmetic over column references."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Formula parsing failed: {reason}")


# ---------------------------------------------------------------------------
# AST node types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NumberNode:
    value: float


@dataclass(frozen=True)
class ColumnRefNode:
    name: str


@dataclass(frozen=True)
class UnaryOpNode:
    operator: str  # "-" only; unary "+" is dropped at parse time
    operand: "Node"


@dataclass(frozen=True)
class BinaryOpNode:
    operator: str  # one of + - * /
    left: "Node"
    right: "Node"


Node = Union[NumberNode, ColumnRefNode, UnaryOpNode, BinaryOpNode]


@dataclass(frozen=True)
class ParsedFormula:
    """A parsed formula: original text, referenced columns and expression tree."""
    expression: str
    variables: tuple[str, ...]
    tree: Node


class _FormulaTransformer(Transformer):
    """Transform the Lark parse tree into AST nodes."""

    @v_args(inline=True)
    def number(self, token):
        return NumberNode(float(token))

    @v_args(inline=True)
    def column(self, token):
        return ColumnRefNode(str(token))

    @v_args(inline=True)
    def bracketed_column(self, token):
        return ColumnRefNode(str(token)[1:-1].strip())

    @v_args(inline=True)
    def add(self, left, right):
        return BinaryOpNode("+", left, right)

    @v_args(inline=True)
    def sub(self, left, right):
        return BinaryOpNode("-", left, right)

    @v_args(inline=True)
    def mul(self, left, right):
        return BinaryOpNode("*", left, right)

    @v_args(inline=True)
    def div(self, left, right):
        return BinaryOpNode("/", left, right)

    @v_args(inline=True)
    def neg(self, operand):
        return UnaryOpNode("-", operand)

    @v_args(inline=True)
    def pos(self, operand):
        return operand


_parser = Lark(FORMULA_GRAMMAR, parser="lalr", transformer=_FormulaTransformer())


def _describe_syntax_error(formula: str, error: UnexpectedInput) -> str:
    """Build a one-line, user-facing reason from a Lark error."""
    unbalanced = formula.count("(") != formula.count(")")

    if isinstance(error, UnexpectedCharacters):
        return f"unexpected character {error.char!r} at position {error.column}"

    if isinstance(error, UnexpectedToken):
        if error.token.type == "$END":
            return "unbalanced parentheses" if unbalanced else "unexpected end of formula"
        if str(error.token) == ")" and unbalanced:
            return "unbalanced parentheses"
        return f"unexpected {str(error.token)!r} at position {error.column}"

    if isinstance(error, UnexpectedEOF):
        return "unexpected end of formula"

    return str(error).splitlines()[0]


def collect_variables(node: Node) -> tuple[str, ...]:
    """Collect distinct column names in left-to-right order of first use."""
    names: list[str] = []
    _collect(node, names)
    return tuple(dict.fromkeys(names))


def _collect(node: Node, names: list[str]) -> None:
    if isinstance(node, ColumnRefNode):
        names.append(node.name)
    elif isinstance(node, UnaryOpNode):
        _collect(node.operand, names)
    elif isinstance(node, BinaryOpNode):
        _collect(node.left, names)
        _collect(node.right, names)


@lru_cache(maxsize=512)
def parse_formula(formula: str) -> ParsedFormula:
    """Parse a formula string.

    Results are cached by exact formula text; ParsedFormula is immutable,
    so sharing cached instances between requests is safe.

    Raises:
        ParseError: If the formula is empty or not valid arithmetic.
    """
    if formula is None or not formula.strip():
        raise ParseError("formula is empty")

    try:
        tree = _parser.parse(formula)
    except UnexpectedInput as e:
        raise ParseError(_describe_syntax_error(formula, e)) from e

    return ParsedFormula(
        expression=formula,
        variables=collect_variables(tree),
        tree=tree,
    )
