"""
Expression evaluation: constant folding and canonical simplification.

The Evaluator is a CachedRecursiveVisitor that, in one bottom-up pass,

* folds constants and combines like terms in sums and like factors in
  products (see symfold.collect),
* simplifies powers: (x*y)^z -> x^z*y^z, (x^y)^z -> x^(y*z), and the
  identities 0^x = 0, 1^x = 1, x^0 = 1, x^1 = x,
* applies call targets whose arguments allow it, recording failures as
  faults instead of raising,
* folds relations and logic on constants, x = x and x != x,
* performs substitutions written as (:= expr (set (-> x 1) ...)).

Usage:
    from symfold import evaluate, symbols

    x, y = symbols("x y")
    evaluate(x + 2*x + 3)              # => (+ 3 (* 3 x))
    evaluate(x * y, {x: 2, y: 5})      # => 10

    faults = []
    evaluate(expr, faults=faults)      # faults receives any call failures
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging
import operator

from .collect import collect_factors, collect_terms
from .expr import (
    Expression, Sum, Product, Power, Binary, Unary, Call, Set, Arrow,
    Constant, ZERO, ONE, TRUE, FALSE,
    EQUAL, NOT_EQUAL, LESS, LESS_EQUAL, GREATER, GREATER_EQUAL,
    AND, OR, NOT, SUBSTITUTE,
    as_expr, as_real, factors_of, terms_of, real_pow,
)
from .functions import EvaluationFault
from .visitor import CachedRecursiveVisitor

logger = logging.getLogger(__name__)

BindingsType = Any  # Mapping, sequence of Arrows or (variable, value) pairs, or a Set

COMPARISONS = {
    EQUAL: operator.eq,
    NOT_EQUAL: operator.ne,
    LESS: operator.lt,
    LESS_EQUAL: operator.le,
    GREATER: operator.gt,
    GREATER_EQUAL: operator.ge,
}


def make_substitutions(bindings: BindingsType) -> Dict[Expression, Expression]:
    """
    Normalise bindings into a substitution map.

    Accepts a mapping, a Set of Arrows, or a sequence whose items are
    Arrows or (variable, value) pairs. Keys and values are coerced with
    as_expr, so {"x": 2} binds the symbol x to the constant 2.
    """
    if bindings is None:
        return {}
    if isinstance(bindings, Set):
        bindings = bindings.members
    elif isinstance(bindings, Arrow):
        bindings = [bindings]
    elif isinstance(bindings, Expression):
        raise TypeError(f"Expected a set of bindings, got {bindings}")

    if isinstance(bindings, Mapping):
        pairs = bindings.items()
    else:
        pairs = []
        for binding in bindings:
            if isinstance(binding, Arrow):
                pairs.append((binding.left, binding.right))
            elif isinstance(binding, Expression):
                raise TypeError(f"Expected a binding (-> var value), got {binding}")
            else:
                variable, value = binding
                pairs.append((variable, value))

    return {as_expr(variable): as_expr(value) for variable, value in pairs}


def _is_true(value) -> bool:
    return value is not None and value != 0


def _is_false(value) -> bool:
    return value is not None and value == 0


class Evaluator(CachedRecursiveVisitor):
    """
    Simplifying visitor.

    One instance keeps its memo cache and fault list across calls, so it
    can evaluate many related expressions cheaply. It is not safe to use
    one instance from several threads at once.

    Attributes:
        faults: EvaluationFaults recorded by failing calls, in order
    """

    def __init__(self):
        super().__init__()
        self.faults: List[EvaluationFault] = []

    def evaluate(self, expr: Any, bindings: BindingsType = None) -> Expression:
        """Substitute bindings into expr (if given), then simplify it."""
        expr = as_expr(expr)
        if bindings:
            expr = expr.substitute(make_substitutions(bindings))
        return self.visit(expr)

    def evaluate_all(self, exprs: Iterable[Any], bindings: BindingsType = None) -> List[Expression]:
        """Evaluate several expressions at the same bindings, sharing the cache."""
        substitutions = make_substitutions(bindings)
        results = []
        for expr in exprs:
            expr = as_expr(expr)
            if substitutions:
                expr = expr.substitute(substitutions)
            results.append(self.visit(expr))
        return results

    __call__ = evaluate

    def visit_sum(self, expr: Sum) -> Expression:
        return collect_terms(t for term in expr.terms for t in terms_of(self.visit(term)))

    def visit_product(self, expr: Product) -> Expression:
        return collect_factors(f for factor in expr.factors for f in factors_of(self.visit(factor)))

    def visit_power(self, expr: Power) -> Expression:
        base = self.visit(expr.base)

        # (x*y)^z => x^z*y^z
        if isinstance(base, Product):
            return self.visit(Product.new(*(Power.new(f, expr.exponent) for f in base.factors)))

        exponent = self.visit(expr.exponent)

        # (x^y)^z => x^(y*z)
        if isinstance(base, Power):
            exponent = self.visit(Product.new(exponent, base.exponent))
            base = base.base

        left, right = as_real(base), as_real(exponent)
        if left is not None and left == 0:
            return ZERO
        if left is not None and left == 1:
            return ONE
        if right is not None and right == 0:
            return ONE
        if right is not None and right == 1:
            return base

        if left is not None and right is not None:
            value = real_pow(left, right)
            if value is not None:
                return Constant(value)
        return Power.new(base, exponent)

    def visit_call(self, expr: Call) -> Expression:
        call = self.visit_default(expr)
        if not call.target.can_call(call.args):
            return call

        result = call.target.invoke(call.args)
        if not result.ok:
            logger.debug("Leaving %s unevaluated: %r", call, result.error)
            self.faults.append(EvaluationFault(call, result.error))
            return call
        if result.value is None:
            return call
        return result.value

    def visit_binary(self, expr: Binary) -> Expression:
        left = self.visit(expr.left)
        right = self.visit(expr.right)

        if expr.operator == SUBSTITUTE:
            return self.visit(left.substitute(make_substitutions(right)))

        lvalue, rvalue = as_real(left), as_real(right)
        if lvalue is not None and rvalue is not None and expr.operator in COMPARISONS:
            return Constant(COMPARISONS[expr.operator](lvalue, rvalue))

        if expr.operator == AND:
            if _is_false(lvalue) or _is_false(rvalue):
                return FALSE
            if _is_true(lvalue) and _is_true(rvalue):
                return TRUE
        elif expr.operator == OR:
            if _is_true(lvalue) or _is_true(rvalue):
                return TRUE
            if _is_false(lvalue) and _is_false(rvalue):
                return FALSE
        elif expr.operator == EQUAL:
            if left == right:
                return TRUE
        elif expr.operator == NOT_EQUAL:
            if left == right:
                return FALSE

        return Binary.new(expr.operator, left, right)

    def visit_unary(self, expr: Unary) -> Expression:
        operand = self.visit(expr.operand)
        value = as_real(operand)
        if expr.operator == NOT:
            if _is_true(value):
                return FALSE
            if _is_false(value):
                return TRUE
        return Unary.new(expr.operator, operand)


def evaluate(expr: Any, bindings: BindingsType = None,
             faults: Optional[List[EvaluationFault]] = None) -> Expression:
    """
    Simplify a single expression with a fresh Evaluator.

    Args:
        expr: Expression (or number/name) to evaluate
        bindings: Optional values to substitute first, e.g. {x: 2}
        faults: Optional list that receives the faults raised by calls
            during this evaluation

    Returns:
        The simplified expression
    """
    evaluator = Evaluator()
    result = evaluator.evaluate(expr, bindings)
    if faults is not None:
        faults.extend(evaluator.faults)
    return result


def evaluate_all(exprs: Iterable[Any], bindings: BindingsType = None,
                 faults: Optional[List[EvaluationFault]] = None) -> List[Expression]:
    """Simplify several expressions with one shared Evaluator."""
    evaluator = Evaluator()
    results = evaluator.evaluate_all(exprs, bindings)
    if faults is not None:
        faults.extend(evaluator.faults)
    return results
