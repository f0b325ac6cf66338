"""DOM snapshotting and answer inference for generated arithmetic problems."""

from __future__ import annotations

from plusminus_smoke.solver.answer_engine import (
    ActionKind,
    AnswerAction,
    ProblemShape,
    classify,
    infer_answer,
)
from plusminus_smoke.solver.problem_reader import (
    EquationToken,
    ProblemSnapshot,
    get_problem_signature,
    read_problem,
)

__all__ = [
    "ActionKind",
    "AnswerAction",
    "EquationToken",
    "ProblemShape",
    "ProblemSnapshot",
    "classify",
    "get_problem_signature",
    "infer_answer",
    "read_problem",
]
