"""Time-parametrized boundary drive expressions.

A drive row's text (for example ``"0.5*sin(2*pi*t)"``) is parsed once, at
the moment the row is applied, into a :class:`BoundaryExpression` holding a
compiled closure of ``t``. Evaluation never raises: failures come back as an
:class:`EvaluationResult` carrying the error, so a bad expression cannot
escape the step loop.

Parsing uses sympy with implicit multiplication and ``^`` as power, without
symbolic evaluation. Every number becomes a float, and the result is
compiled with ``lambdify(t, expr, "math")``.

Example:
    >>> expr = BoundaryExpression.parse("0.5*sin(2*pi*t)")
    >>> expr.evaluate(0.25).value
    0.5
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from tokenize import TokenError

import sympy
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication_application,
    parse_expr,
    standard_transformations,
)

T = sympy.Symbol("t", real=True)

_TRANSFORMATIONS = standard_transformations + (
    implicit_multiplication_application,
    convert_xor,
)

# Names an expression may refer to besides t
_NAMESPACE: dict[str, object] = {
    "t": T,
    "pi": sympy.pi,
    "e": sympy.E,
    "sin": sympy.sin,
    "cos": sympy.cos,
    "tan": sympy.tan,
    "asin": sympy.asin,
    "acos": sympy.acos,
    "atan": sympy.atan,
    "sinh": sympy.sinh,
    "cosh": sympy.cosh,
    "tanh": sympy.tanh,
    "exp": sympy.exp,
    "log": sympy.log,
    "ln": sympy.log,
    "sqrt": sympy.sqrt,
    "abs": sympy.Abs,
    "sign": sympy.sign,
    "floor": sympy.floor,
    "ceil": sympy.ceiling,
}

# Constructors emitted by the parser with evaluate=False. Nothing else from
# sympy and no builtins are reachable from the text.
_GLOBALS: dict[str, object] = {
    "Integer": sympy.Integer,
    "Float": sympy.Float,
    "Rational": sympy.Rational,
    "Symbol": sympy.Symbol,
    "Add": sympy.Add,
    "Mul": sympy.Mul,
    "Pow": sympy.Pow,
    "__builtins__": {},
}


class ExpressionEvaluationError(ValueError):
    """Raised (or reported) when a drive expression cannot be parsed or evaluated.

    Attributes:
        text: Source text of the offending expression
        t: Time at which evaluation failed, or None for parse errors
    """

    def __init__(self, message: str, text: str, t: float | None = None):
        super().__init__(message)
        self.text = text
        self.t = t


class ExpressionEvaluationWarning(UserWarning):
    """Emitted when a failing drive term is skipped during a step."""

    pass


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of evaluating one expression at one instant.

    ``value`` is 0.0 whenever ``error`` is set, so failing terms contribute
    nothing to a sum.
    """

    value: float
    error: ExpressionEvaluationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BoundaryExpression:
    """Immutable, compiled drive expression of time.

    Use :meth:`parse` to build one from text. The live text a user is editing
    is kept elsewhere; this object is the snapshot captured at apply time.
    """

    text: str
    expr: sympy.Expr = field(repr=False, compare=False)
    _func: Callable[[float], object] = field(repr=False, compare=False)

    @classmethod
    def parse(cls, text: str) -> BoundaryExpression:
        """Parse and compile ``text`` as a function of ``t``.

        Raises:
            ExpressionEvaluationError: If the text is not a valid expression
                or refers to names other than ``t`` and the math functions.
        """
        source = text.strip()
        if not source:
            raise ExpressionEvaluationError("Empty drive expression", text)

        try:
            expr = parse_expr(
                source,
                local_dict=dict(_NAMESPACE),
                global_dict=dict(_GLOBALS),
                transformations=_TRANSFORMATIONS,
                evaluate=False,
            )
        except (SyntaxError, TokenError, TypeError, ValueError, AttributeError, NameError) as e:
            raise ExpressionEvaluationError(
                f"Cannot parse drive expression '{text}': {e}", text
            ) from e

        if not isinstance(expr, sympy.Expr):
            raise ExpressionEvaluationError(
                f"Drive expression '{text}' is not a scalar expression", text
            )

        unknown = expr.free_symbols - {T}
        if unknown:
            names = ", ".join(sorted(str(s) for s in unknown))
            raise ExpressionEvaluationError(
                f"Drive expression '{text}' uses unknown names: {names}", text
            )

        try:
            # Exact integer arithmetic such as 10^10^10 never finishes. Left
            # unevaluated in floating point it overflows at evaluation instead.
            with sympy.evaluate(False):
                expr = expr.xreplace({n: sympy.Float(n) for n in expr.atoms(sympy.Rational)})
            func = sympy.lambdify(T, expr, "math")
        except (ArithmeticError, NotImplementedError, TypeError, ValueError, SyntaxError) as e:
            raise ExpressionEvaluationError(
                f"Cannot compile drive expression '{text}': {e}", text
            ) from e
        return cls(text=source, expr=expr, _func=func)

    @classmethod
    def constant(cls, value: float) -> BoundaryExpression:
        """Expression that always evaluates to ``value``."""
        return cls.parse(repr(float(value)))

    def evaluate(self, t: float) -> EvaluationResult:
        """Evaluate at time ``t``; never raises."""
        try:
            value = self._func(t)
            value = float(value)
        except (ArithmeticError, ValueError, TypeError, NameError) as e:
            return EvaluationResult(
                0.0,
                ExpressionEvaluationError(
                    f"Cannot evaluate '{self.text}' at t={t}: {e}", self.text, t
                ),
            )

        if not math.isfinite(value):
            return EvaluationResult(
                0.0,
                ExpressionEvaluationError(
                    f"'{self.text}' is not finite at t={t}", self.text, t
                ),
            )
        return EvaluationResult(value)

    def __call__(self, t: float) -> float:
        """Evaluate at time ``t``, raising on failure."""
        result = self.evaluate(t)
        if result.error is not None:
            raise result.error
        return result.value
