"""Condition expressions for template elements.

A condition is a single comparison between a payload value and a literal::

    points > 0
    payment_method == "Cash"
    show_logo != false
    store.name == 'Acme'

The left side is a dotted path into the payload. The literal is a number, a
quoted string or ``true``/``false``. A blank condition is always true.
"""

import math
import operator
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from receiptable.templates.engine import MISSING, EvalError, resolve_path

_COMPARISON = re.compile(
    r"""^\s*
    (?P<ident>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)
    \s*(?P<op>>=|<=|==|!=|>|<)\s*
    (?P<literal>.+?)
    \s*$""",
    re.VERBOSE,
)

_OPERATORS = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}

_EQUALITY_OPS = frozenset({"==", "!="})


@dataclass(frozen=True)
class Comparison:
    """A parsed ``identifier op literal`` expression."""

    identifier: str
    op: str
    literal: str | float | bool

    def evaluate(self, payload: dict[str, Any]) -> bool:
        value = resolve_path(payload, self.identifier)
        if value is MISSING:
            raise EvalError(f"Unknown identifier '{self.identifier}'")
        return _compare(value, self.op, self.literal, self.identifier)


def _parse_literal(text: str) -> str | float | bool:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        number = float(text)
    except ValueError:
        raise EvalError(f"Invalid literal '{text}'") from None
    if not math.isfinite(number):
        raise EvalError(f"Invalid literal '{text}'")
    return number


@lru_cache(maxsize=256)
def parse(expression: str) -> Comparison:
    """Parse a condition expression.

    Raises:
        EvalError: If the expression is not a single comparison.
    """
    match = _COMPARISON.match(expression)
    if not match:
        raise EvalError(f"Malformed condition: '{expression}'")
    return Comparison(
        identifier=match.group("ident"),
        op=match.group("op"),
        literal=_parse_literal(match.group("literal")),
    )


def _as_number(value: Any) -> float | None:
    """Return value as a finite float if it is numeric-looking, else None."""
    if isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _kind(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "null"
    return type(value).__name__


def _compare(value: Any, op: str, literal: str | float | bool, identifier: str) -> bool:
    compare = _OPERATORS[op]

    if isinstance(value, bool) or isinstance(literal, bool):
        if not (isinstance(value, bool) and isinstance(literal, bool)):
            raise EvalError(f"Cannot compare {_kind(value)} '{identifier}' with {_kind(literal)} {literal!r}")
        if op not in _EQUALITY_OPS:
            raise EvalError(f"Operator '{op}' is not supported for booleans")
        return compare(value, literal)

    if not isinstance(value, (str, int, float)):
        raise EvalError(f"Cannot compare {_kind(value)} '{identifier}' with {literal!r}")

    value_is_number = isinstance(value, (int, float))
    literal_is_number = isinstance(literal, float)
    if value_is_number or literal_is_number or (_as_number(value) is not None and _as_number(literal) is not None):
        left, right = _as_number(value), _as_number(literal)
        if left is None or right is None:
            raise EvalError(f"Cannot compare {_kind(value)} '{identifier}' with {_kind(literal)} {literal!r}")
        return compare(left, right)

    return compare(value, literal)


def evaluate(expression: str | None, payload: dict[str, Any]) -> bool:
    """Evaluate a condition against a payload.

    Args:
        expression: Condition text; None or blank means "always".
        payload: Data payload.

    Returns:
        Result of the comparison.

    Raises:
        EvalError: On malformed syntax, unknown identifiers or type mismatches.
    """
    if expression is None or not expression.strip():
        return True
    return parse(expression.strip()).evaluate(payload)
