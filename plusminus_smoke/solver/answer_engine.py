"""Infer the correct answer to a displayed problem from its snapshot.

Classification is an ordered rule table: the first rule whose predicate
matches decides the shape. Snapshots can satisfy more than one predicate (a
two-span snapshot could look like a partial operation), so the order below is
part of the contract:

    1. COUNTING          only child is the answer box, unit markers present
    2. COMPARISON        exactly two spans, neither is "="
    3. MISSING_ADDEND    answer box comes before "="
    4. BINARY_OPERATION  at least three spans: a, op, b
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from plusminus_smoke.errors import InterpretationError, UnrecognizedProblemError
from plusminus_smoke.solver.problem_reader import ProblemSnapshot

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")

PLUS = "+"
MINUS_GLYPHS = ("-", "−")


class ProblemShape(Enum):
    COUNTING = "counting"
    COMPARISON = "comparison"
    MISSING_ADDEND = "missing_addend"
    BINARY_OPERATION = "binary_operation"


class ActionKind(Enum):
    NUMBER = "num"
    COMPARE = "cmp"


@dataclass(frozen=True)
class AnswerAction:
    kind: ActionKind
    value: int | float | str
    shape: ProblemShape

    @property
    def keys(self) -> str:
        """Text to key in, or the comparison symbol to click."""
        if isinstance(self.value, float) and self.value.is_integer():
            return str(int(self.value))
        return str(self.value)


def parse_number(text: str) -> float | None:
    """Parse a decimal literal; None for anything that is not a finite number."""
    text = text.strip()
    if not _NUMBER_RE.match(text):
        return None
    value = float(text)
    return value if math.isfinite(value) else None


def _as_int_if_integral(value: float) -> int | float:
    return int(value) if value.is_integer() else value


# ---------------------------------------------------------------------------
# Shape predicates
# ---------------------------------------------------------------------------

def _is_counting(s: ProblemSnapshot, equals_symbol: str) -> bool:
    return len(s.tokens) == 1 and s.ans_index == 0 and s.dots > 0


def _is_comparison(s: ProblemSnapshot, equals_symbol: str) -> bool:
    return len(s.spans) == 2 and equals_symbol not in s.spans


def _is_missing_addend(s: ProblemSnapshot, equals_symbol: str) -> bool:
    return s.eq_index >= 0 and s.ans_index >= 0 and s.ans_index < s.eq_index


def _is_binary_operation(s: ProblemSnapshot, equals_symbol: str) -> bool:
    return len(s.spans) >= 3


SHAPE_RULES: tuple[tuple[ProblemShape, Callable[[ProblemSnapshot, str], bool]], ...] = (
    (ProblemShape.COUNTING, _is_counting),
    (ProblemShape.COMPARISON, _is_comparison),
    (ProblemShape.MISSING_ADDEND, _is_missing_addend),
    (ProblemShape.BINARY_OPERATION, _is_binary_operation),
)


def classify(snapshot: ProblemSnapshot, equals_symbol: str = "=") -> ProblemShape:
    for shape, matches in SHAPE_RULES:
        if matches(snapshot, equals_symbol):
            return shape
    raise UnrecognizedProblemError(
        f"Cannot interpret problem: {snapshot.eq_text!r}", eq_text=snapshot.eq_text
    )


# ---------------------------------------------------------------------------
# Per-shape solvers
# ---------------------------------------------------------------------------

def _solve_counting(s: ProblemSnapshot) -> AnswerAction:
    return AnswerAction(ActionKind.NUMBER, s.dots, ProblemShape.COUNTING)


def _solve_comparison(s: ProblemSnapshot) -> AnswerAction:
    a = parse_number(s.spans[0])
    b = parse_number(s.spans[1])
    if a is None or b is None:
        raise InterpretationError(
            f"Invalid comparison: {s.eq_text!r}", eq_text=s.eq_text
        )
    sign = "=" if a == b else (">" if a > b else "<")
    return AnswerAction(ActionKind.COMPARE, sign, ProblemShape.COMPARISON)


def _solve_missing_addend(s: ProblemSnapshot) -> AnswerAction:
    a = parse_number(s.spans[0]) if s.spans else None
    b = parse_number(s.spans[-1]) if s.spans else None
    if a is None or b is None:
        raise InterpretationError(
            f"Invalid missing-addend problem: {s.eq_text!r}", eq_text=s.eq_text
        )
    return AnswerAction(ActionKind.NUMBER, _as_int_if_integral(b - a), ProblemShape.MISSING_ADDEND)


def _solve_binary_operation(s: ProblemSnapshot) -> AnswerAction:
    a = parse_number(s.spans[0])
    op = s.spans[1]
    b = parse_number(s.spans[2])
    if a is None or b is None:
        raise InterpretationError(f"Invalid operation: {s.eq_text!r}", eq_text=s.eq_text)
    if op == PLUS:
        result = a + b
    elif op in MINUS_GLYPHS:
        result = a - b
    else:
        raise InterpretationError(
            f"Unknown operator {op!r} in: {s.eq_text!r}", eq_text=s.eq_text
        )
    return AnswerAction(ActionKind.NUMBER, _as_int_if_integral(result), ProblemShape.BINARY_OPERATION)


_SOLVERS: dict[ProblemShape, Callable[[ProblemSnapshot], AnswerAction]] = {
    ProblemShape.COUNTING: _solve_counting,
    ProblemShape.COMPARISON: _solve_comparison,
    ProblemShape.MISSING_ADDEND: _solve_missing_addend,
    ProblemShape.BINARY_OPERATION: _solve_binary_operation,
}


def infer_answer(snapshot: ProblemSnapshot, equals_symbol: str = "=") -> AnswerAction:
    """Classify *snapshot* and compute the response the page expects.

    Raises:
        UnrecognizedProblemError: no shape rule matched.
        InterpretationError: the shape matched but an operand is not a finite
            number, or the operator is not plus/minus.
    """
    shape = classify(snapshot, equals_symbol)
    action = _SOLVERS[shape](snapshot)
    logger.info("Problem %r -> %s %s", snapshot.eq_text, shape.value, action.keys)
    return action
