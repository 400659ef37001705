"""
Call targets and builtin function preludes.

A Call node holds a target that decides whether it can be applied to its
(already evaluated) arguments and computes the replacement expression:

    sqrt = EXACT_PRELUDE["sqrt"]
    expr = sqrt(Constant(9) + 7)      # Call node (sqrt (+ 7 9))
    evaluate(expr)                    # => 4

Targets never let an exception escape into the evaluator. invoke() returns
a CallResult that is either a value (possibly None, meaning "no
replacement") or the error raised by the handler; the evaluator records
the error as an EvaluationFault and leaves the call unevaluated.
"""

from fractions import Fraction
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
import math

from .expr import Call, Constant, Expression, as_expr, real_pow

# FoldHandler: receives list of exact values, returns result or None (can't fold)
FoldHandler = Callable[[List[Fraction]], Any]
PreludeType = Dict[str, 'Function']


# ============================================================
# Call results and faults
# ============================================================

class CallResult:
    """Outcome of invoking a call target: a value or an error, never both."""

    __slots__ = ('value', 'error')

    def __init__(self, value: Optional[Expression] = None, error: Optional[Exception] = None):
        self.value = value
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:
        if self.error is not None:
            return f"CallResult(error={self.error!r})"
        return f"CallResult(value={self.value!r})"


class EvaluationFault:
    """
    A recoverable failure recorded while evaluating a call.

    Attributes:
        call: The call node that was left unevaluated
        error: The exception raised by the call target
    """

    __slots__ = ('call', 'error')

    def __init__(self, call: Call, error: Exception):
        self.call = call
        self.error = error

    def __str__(self) -> str:
        return f"{self.call}: {type(self.error).__name__}: {self.error}"

    def __repr__(self) -> str:
        return f"EvaluationFault({str(self.call)!r}, {self.error!r})"


# ============================================================
# Call targets
# ============================================================

class Function:
    """
    A named function over exact constant arguments.

    Args:
        name: Name used when printing and parsing calls
        handler: Receives the argument values as Fractions and returns a
            number, a bool, an Expression, or None when it cannot fold
        arity: Optional required argument count
    """

    def __init__(self, name: str, handler: Optional[FoldHandler], arity: Optional[int] = None):
        self.name = name
        self.handler = handler
        self.arity = arity

    def can_call(self, args: Sequence[Expression]) -> bool:
        """True when every argument is a constant and the arity matches."""
        if self.arity is not None and len(args) != self.arity:
            return False
        return all(isinstance(a, Constant) for a in args)

    def call(self, args: Sequence[Expression]) -> Optional[Expression]:
        """Apply the handler. May raise whatever the handler raises."""
        result = self.handler([a.value for a in args])
        if result is None:
            return None
        return as_expr(result)

    def invoke(self, args: Sequence[Expression]) -> CallResult:
        """Apply the handler, capturing any error in the result."""
        try:
            return CallResult(value=self.call(args))
        except Exception as e:
            return CallResult(error=e)

    def __call__(self, *args: Any) -> Call:
        """Build a call node: sqrt(x) -> (sqrt x)."""
        return Call.new(self, args)

    def __eq__(self, other):
        if not isinstance(other, Function):
            return NotImplemented
        return (type(self) is type(other)
                and self.name == other.name
                and self.handler is other.handler)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.name))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class UndefinedFunction(Function):
    """A name with no definition; calls to it are never evaluated."""

    def __init__(self, name: str):
        super().__init__(name, None)

    def can_call(self, args: Sequence[Expression]) -> bool:
        return False


# ============================================================
# Fold Handler Builders
# ============================================================

def nary_fold(
    identity: Any,
    binary_op: Callable[[Any, Any], Any],
) -> FoldHandler:
    """Create an n-ary folder with identity element.

    Examples:
        nary_fold(0, lambda a, b: a + b)  # (sum) = 0, (sum x y z) = x+y+z
    """
    def handler(args: List[Fraction]) -> Any:
        result = identity
        for a in args:
            result = binary_op(result, a)
        return result
    return handler


def unary_only(f: Callable[[Fraction], Any]) -> FoldHandler:
    """Create a unary-only folder (e.g., abs, floor)."""
    def handler(args: List[Fraction]) -> Any:
        if len(args) != 1:
            return None  # Can't fold non-unary
        return f(args[0])
    return handler


def binary_only(f: Callable[[Fraction, Fraction], Any]) -> FoldHandler:
    """Create a binary-only folder (e.g., mod, gcd)."""
    def handler(args: List[Fraction]) -> Any:
        if len(args) != 2:
            return None  # Can't fold non-binary
        return f(args[0], args[1])
    return handler


# ============================================================
# Exact handlers
# ============================================================

def _as_integer(value: Fraction, what: str) -> int:
    if value.denominator != 1:
        raise ValueError(f"{what} is only defined for integers, got {value}")
    return value.numerator


def _sign(value: Fraction) -> int:
    return (value > 0) - (value < 0)


def _sqrt(value: Fraction) -> Optional[Fraction]:
    if value < 0:
        raise ValueError(f"math domain error: sqrt({value})")
    return real_pow(value, Fraction(1, 2))


def _inv(value: Fraction) -> Fraction:
    return 1 / value


def _factorial(value: Fraction) -> int:
    return math.factorial(_as_integer(value, "factorial"))


def _gcd(a: Fraction, b: Fraction) -> int:
    return math.gcd(_as_integer(a, "gcd"), _as_integer(b, "gcd"))


# ============================================================
# Standard Preludes
# ============================================================

def make_prelude(handlers: Dict[str, Union['Function', FoldHandler]]) -> PreludeType:
    """
    Build a prelude from a dict of names to handlers or Functions.

    Example:
        PRELUDE = make_prelude({**EXACT_PRELUDE, "double": unary_only(lambda a: 2 * a)})
    """
    prelude: PreludeType = {}
    for name, handler in handlers.items():
        if isinstance(handler, Function):
            prelude[name] = handler
        else:
            prelude[name] = Function(name, handler)
    return prelude


# Exact prelude: functions that stay exact over rationals
EXACT_PRELUDE: PreludeType = make_prelude({
    "abs": unary_only(abs),
    "sign": unary_only(_sign),
    "floor": unary_only(math.floor),
    "ceil": unary_only(math.ceil),
    "min": binary_only(min),
    "max": binary_only(max),
    "mod": binary_only(lambda a, b: a % b),
    "inv": unary_only(_inv),
    "sqrt": unary_only(_sqrt),
    "factorial": unary_only(_factorial),
    "gcd": binary_only(_gcd),
})

# Empty prelude (every call stays unevaluated)
NO_PRELUDE: PreludeType = {}
