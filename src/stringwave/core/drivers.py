"""Left-boundary drives.

Three policies supply the left-end displacement of a string at a given time:

    - ManualDrive: A held scalar set by external drag input, independent of t
    - SuperpositionDrive: Sum of every applied row expression (primary string)
    - ExpressionDrive: The single applied expression of one row (auxiliary string)

The primary string shows the combined response to all user-defined drives
while each auxiliary string shows the response to one component alone.

A term that fails to evaluate contributes zero to the drive value. The
failure is passed to an ``on_error`` hook, which by default emits an
:class:`~stringwave.core.expressions.ExpressionEvaluationWarning`.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable, Sequence

from stringwave.core.expressions import (
    BoundaryExpression,
    ExpressionEvaluationError,
    ExpressionEvaluationWarning,
)

ErrorHook = Callable[[ExpressionEvaluationError], None]


def warn_evaluation_error(error: ExpressionEvaluationError) -> None:
    """Default error hook: report the failure as a warning."""
    warnings.warn(str(error), ExpressionEvaluationWarning, stacklevel=3)


class ManualDrive:
    """Left end held at a scalar value set from outside.

    Args:
        value: Initial displacement (default: 0.0)
    """

    def __init__(self, value: float = 0.0):
        self.value = float(value)

    def set(self, value: float) -> None:
        """Move the held end to ``value``."""
        self.value = float(value)

    def value_at(self, t: float) -> float:
        return self.value

    def __repr__(self) -> str:
        return f"ManualDrive(value={self.value})"


class ExpressionDrive:
    """Left end following a single applied expression.

    Args:
        expression: Applied expression of the owning row
        on_error: Hook called with each evaluation failure
    """

    def __init__(
        self,
        expression: BoundaryExpression,
        on_error: ErrorHook | None = None,
    ):
        self.expression = expression
        self.on_error = on_error or warn_evaluation_error

    def value_at(self, t: float) -> float:
        result = self.expression.evaluate(t)
        if result.error is not None:
            self.on_error(result.error)
        return result.value

    def __repr__(self) -> str:
        return f"ExpressionDrive({self.expression.text!r})"


class SuperpositionDrive:
    """Left end following the sum of all applied expressions.

    The set of expressions is read from ``expressions`` on every evaluation,
    so expressions applied by an external action show up at the next
    evaluation. Callers that need a stable set for the duration of a step
    pass a pre-captured snapshot to :meth:`value_at` instead.

    Args:
        expressions: Callable returning the currently applied expressions
        on_error: Hook called with each evaluation failure
    """

    def __init__(
        self,
        expressions: Callable[[], Sequence[BoundaryExpression]],
        on_error: ErrorHook | None = None,
    ):
        self._expressions = expressions
        self.on_error = on_error or warn_evaluation_error

    def terms(self) -> tuple[BoundaryExpression, ...]:
        """Snapshot of the applied expressions."""
        return tuple(self._expressions())

    def value_at(
        self,
        t: float,
        snapshot: Sequence[BoundaryExpression] | None = None,
    ) -> float:
        terms = self.terms() if snapshot is None else snapshot
        total = 0.0
        for expression in terms:
            result = expression.evaluate(t)
            if result.error is not None:
                self.on_error(result.error)
            total += result.value
        return total

    def __repr__(self) -> str:
        return f"SuperpositionDrive(terms={len(self.terms())})"


BoundaryDriver = ManualDrive | ExpressionDrive | SuperpositionDrive
