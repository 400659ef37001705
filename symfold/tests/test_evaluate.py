"""Tests for the evaluator."""

from fractions import Fraction
import logging
import pytest

from symfold.evaluate import Evaluator, evaluate, evaluate_all, make_substitutions
from symfold.expr import (
    Constant, Symbol, Sum, Product, Power, Binary, Unary, Call, Set, Arrow,
    ZERO, ONE, TRUE, FALSE, symbols,
)
from symfold.functions import EXACT_PRELUDE, UndefinedFunction
from symfold.sexpr import parse_sexpr

x, y, z = symbols("x y z")


def ev(text):
    """Parse and evaluate an s-expression, returning its text."""
    return str(evaluate(parse_sexpr(text)))


class TestConstantFolding:
    """Tests for folding constant arithmetic."""

    def test_sum(self):
        """2 + 3 = 5."""
        assert evaluate(Constant(2) + 3) == 5

    def test_product(self):
        """2 * 3 = 6."""
        assert evaluate(Constant(2) * 3) == 6

    def test_power(self):
        """2 ^ 3 = 8."""
        assert evaluate(Constant(2) ** 3) == 8

    def test_division_is_exact(self):
        """1 / 3 stays a rational."""
        assert evaluate(Constant(1) / 3) == Constant(Fraction(1, 3))

    def test_nested(self):
        """Nested constant arithmetic folds completely."""
        assert ev("(+ (* 2 (^ 3 2)) (/ 1 2) (- 4))") == "29/2"

    def test_plain_numbers(self):
        """Numbers are accepted directly."""
        assert evaluate(5) == Constant(5)


class TestCollection:
    """Tests for like terms and like factors."""

    def test_like_terms(self):
        """x + x = 2x."""
        assert evaluate(x + x) == 2 * x

    def test_like_terms_with_constant(self):
        """x + 2x + 3 = 3x + 3."""
        assert evaluate(x + 2 * x + 3) == Sum.new(Product.new(3, x), 3)

    def test_cancellation(self):
        """x - x = 0."""
        assert evaluate(x - x) == ZERO

    def test_like_factors(self):
        """x * x = x^2."""
        assert evaluate(x * x) == Power.new(x, 2)

    def test_inverse_factors(self):
        """x^2 * x^-2 = 1."""
        assert evaluate(x ** 2 * x ** -2) == ONE
        assert evaluate(x / x) == ONE

    def test_nested_sums_flatten(self):
        """(x + (y + x)) = 2x + y."""
        assert ev("(+ x (+ y x))") == "(+ y (* 2 x))"

    def test_compound_terms(self):
        """2xy + 3yx = 5xy."""
        assert evaluate(2 * x * y + 3 * y * x) == Product.new(5, x, y)


class TestPowers:
    """Tests for power simplification."""

    def test_zero_exponent(self):
        """x^0 = 1."""
        assert evaluate(Power(x, ZERO)) == ONE

    def test_unit_exponent(self):
        """x^1 = x."""
        assert evaluate(Power(x, ONE)) == x

    def test_zero_base(self):
        """0^x = 0."""
        assert evaluate(Power(ZERO, x)) == ZERO

    def test_zero_to_the_zero(self):
        """0^0 = 0, since the zero-base rule is checked first."""
        assert evaluate(Power(ZERO, ZERO)) == ZERO

    def test_unit_base(self):
        """1^x = 1."""
        assert evaluate(Power(ONE, x)) == ONE

    def test_product_base(self):
        """(xy)^2 = x^2 y^2."""
        assert evaluate((x * y) ** 2) == Product.new(x ** 2, y ** 2)

    def test_power_base(self):
        """(x^2)^3 = x^6."""
        assert evaluate((x ** 2) ** 3) == Power.new(x, 6)

    def test_symbolic_exponents_multiply(self):
        """(x^y)^z = x^(yz)."""
        assert evaluate((x ** y) ** z) == Power.new(x, Product.new(y, z))

    def test_exact_root(self):
        """4^(1/2) = 2, 2^(1/2) stays."""
        assert ev("(^ 4 1/2)") == "2"
        assert ev("(^ 2 1/2)") == "(^ 2 1/2)"

    def test_negative_exponent(self):
        """2^-2 = 1/4."""
        assert ev("(^ 2 -2)") == "1/4"


class TestDistribution:
    """Tests for distributing constants over sums."""

    def test_distribute(self):
        """2(x + y) = 2x + 2y."""
        assert evaluate(2 * (x + y)) == Sum.new(2 * x, 2 * y)

    def test_distribute_combines(self):
        """2(x + 1) - 2 = 2x."""
        assert evaluate(2 * (x + 1) - 2) == 2 * x

    def test_negate_sum(self):
        """-(x - y) = y - x."""
        assert ev("(- (- x y))") == "(+ y (* -1 x))"


IDEMPOTENCE_CASES = [
    x + 2 * x + 3,
    (x * y) ** 2,
    (x ** 2) ** 3,
    2 * (x + y),
    (x + 1) * (x + 1),
    (x + 1) / (2 * (x + 1)),
    3 / (x + y),
    x / y - x / y,
    (2 * x) ** Fraction(1, 2),
    Power.new(2, Fraction(1, 2)) * Power.new(2, Fraction(3, 2)),
    x * (y + z) + x * (y + z),
    1 / (x + y) + 1 / (x + y),
    Power.new(2, Fraction(1, 2)) + Power.new(2, Fraction(1, 2)),
    Power.new(2, Fraction(1, 2)) * 2 + Power.new(2, Fraction(3, 2)),
    Binary.new("<", x + x, 2 * x),
    Binary.new("and", x, Binary.new("=", y, y)),
    EXACT_PRELUDE["sqrt"](x * x),
    EXACT_PRELUDE["inv"](Constant(4) - 4),
]


class TestIdempotence:
    """evaluate(evaluate(e)) == evaluate(e)."""

    @pytest.mark.parametrize("expr", IDEMPOTENCE_CASES, ids=str)
    def test_idempotent(self, expr):
        """A second evaluation changes nothing."""
        once = evaluate(expr)
        assert evaluate(once) == once


class TestRelations:
    """Tests for relational and logical folding."""

    def test_equal_constants(self):
        """3 = 3 is true, 1 = 2 is false."""
        assert ev("(= 3 3)") == "1"
        assert ev("(= 1 2)") == "0"

    def test_identical_sides(self):
        """x = x is true and x != x is false."""
        assert evaluate(Binary.new("=", x + y, y + x)) == TRUE
        assert evaluate(Binary.new("!=", x, x)) == FALSE

    def test_different_symbols_stay(self):
        """x = y cannot be decided."""
        assert evaluate(Binary.new("=", x, y)) == Binary.new("=", x, y)

    def test_less_than(self):
        """3 < 5 is true."""
        assert evaluate(Binary.new("<", 3, 5)) == TRUE

    def test_ordering_not_swapped(self):
        """< and > (and <= and >=) keep their usual meaning."""
        assert evaluate(Binary.new("<", 3, 5)) == TRUE
        assert evaluate(Binary.new("<", 5, 3)) == FALSE
        assert evaluate(Binary.new(">", 5, 3)) == TRUE
        assert evaluate(Binary.new(">", 3, 5)) == FALSE
        assert evaluate(Binary.new("<=", 3, 3)) == TRUE
        assert evaluate(Binary.new("<=", 5, 3)) == FALSE
        assert evaluate(Binary.new(">=", 3, 3)) == TRUE
        assert evaluate(Binary.new(">=", 3, 5)) == FALSE

    def test_relation_after_simplification(self):
        """Sides are simplified before comparing."""
        assert ev("(< (+ 1 1) (* 2 2))") == "1"

    def test_and(self):
        """and folds when decidable."""
        assert ev("(and true false)") == "0"
        assert ev("(and true true)") == "1"
        assert ev("(and x false)") == "0"
        assert ev("(and x true)") == "(and x 1)"

    def test_or(self):
        """or folds when decidable."""
        assert ev("(or x true)") == "1"
        assert ev("(or false false)") == "0"
        assert ev("(or x false)") == "(or x 0)"

    def test_not(self):
        """not folds only on constants."""
        assert ev("(not true)") == "0"
        assert ev("(not 0)") == "1"
        assert ev("(not x)") == "(not x)"
        assert ev("(not (< 1 2))") == "0"


class TestSubstitution:
    """Tests for bindings and :=."""

    def test_bindings_mapping(self):
        """A mapping of symbols to values."""
        assert evaluate(x ** 2 + y, {x: 3}) == Sum.new(9, y)
        assert evaluate(x * y, {x: 2, y: 5}) == 10

    def test_bindings_by_name(self):
        """Names and numbers are coerced."""
        assert evaluate(x + 1, {"x": 1}) == 2

    def test_bindings_arrows(self):
        """A list of arrows, or a set of them."""
        assert evaluate(x + y, [Arrow.new(x, 1), Arrow.new(y, 2)]) == 3
        assert evaluate(x + y, Set.new(Arrow.new(x, 1))) == Sum.new(1, y)

    def test_bindings_pairs(self):
        """(variable, value) pairs."""
        assert evaluate(x * y, [(x, 2), (y, z)]) == Product.new(2, z)

    def test_substitute_operator(self):
        """(:= expr bindings) substitutes then simplifies."""
        assert ev("(:= (* x y) (set (-> x 2)))") == "(* 2 y)"
        assert ev("(:= (+ x 1) (-> x 4))") == "5"

    def test_substitute_compound_key(self):
        """Bindings may replace compound subtrees."""
        assert ev("(:= (+ (* x y) 1) (-> (* x y) 3))") == "4"

    def test_bad_bindings(self):
        """Non-binding right-hand sides raise TypeError."""
        with pytest.raises(TypeError):
            evaluate(parse_sexpr("(:= x y)"))
        with pytest.raises(TypeError):
            make_substitutions(x)
        with pytest.raises(TypeError):
            make_substitutions([x])

    def test_make_substitutions(self):
        """All binding forms normalise to a dict."""
        expected = {x: Constant(1)}
        assert make_substitutions({"x": 1}) == expected
        assert make_substitutions(Arrow.new(x, 1)) == expected
        assert make_substitutions([("x", 1)]) == expected
        assert make_substitutions(None) == {}


class TestCalls:
    """Tests for call evaluation and faults."""

    def test_call_folds(self):
        """Calls with constant arguments evaluate."""
        assert ev("(+ (sqrt 16) (* x x))") == "(+ 4 (^ x 2))"

    def test_arguments_simplified_first(self):
        """Arguments are evaluated before the call."""
        assert ev("(sqrt (+ 7 9))") == "4"

    def test_symbolic_call_stays(self):
        """Calls with symbolic arguments stay unevaluated."""
        assert ev("(sqrt (* x x))") == "(sqrt (^ x 2))"

    def test_no_replacement(self):
        """A handler returning None leaves the call."""
        faults = []
        assert str(evaluate(parse_sexpr("(sqrt 2)"), faults=faults)) == "(sqrt 2)"
        assert faults == []

    def test_undefined_function(self):
        """Undefined functions never evaluate."""
        assert ev("(f 1 2)") == "(f 1 2)"

    def test_fault_leaves_call(self):
        """A failing call is left unevaluated and reported once."""
        faults = []
        result = evaluate(parse_sexpr("(+ 1 (inv 0))"), faults=faults)
        assert str(result) == "(+ 1 (inv 0))"
        assert len(faults) == 1
        assert faults[0].call == parse_sexpr("(inv 0)")
        assert isinstance(faults[0].error, ZeroDivisionError)

    def test_one_fault_per_failing_call(self):
        """Each distinct failing call adds exactly one fault."""
        faults = []
        result = evaluate(parse_sexpr("(+ (inv 0) (sqrt -4) (sqrt 9))"), faults=faults)
        assert str(result) == "(+ 3 (inv 0) (sqrt -4))"
        assert len(faults) == 2
        assert {str(f.call) for f in faults} == {"(inv 0)", "(sqrt -4)"}

    def test_fault_after_simplification(self):
        """Arguments that simplify to a bad value fault too."""
        faults = []
        result = evaluate(parse_sexpr("(inv (- x x))"), faults=faults)
        assert str(result) == "(inv 0)"
        assert len(faults) == 1

    def test_fault_is_logged(self, caplog):
        """Faults are logged at debug level."""
        with caplog.at_level(logging.DEBUG, logger="symfold.evaluate"):
            evaluate(parse_sexpr("(inv 0)"))
        assert "inv 0" in caplog.text

    def test_faults_without_list(self):
        """Without a faults list the result is still best effort."""
        assert ev("(* 2 (inv 0) (inv 0))") == "(* 2 (^ (inv 0) 2))"


class TestCycleSafety:
    """Tests for self-referential input."""

    def test_cyclic_call(self):
        """A call whose argument is itself terminates."""
        node = Call(UndefinedFunction("f"), [x])
        node.args = (node,)
        assert evaluate(node) is node

    def test_cyclic_sum(self):
        """A sum that contains itself terminates with a stable result."""
        node = Sum.new(x, y)
        node.terms = (x, node)
        result = evaluate(node)
        assert isinstance(result, Sum)
        assert evaluate(node) == result


class TestEvaluatorInstance:
    """Tests for a reusable Evaluator."""

    def test_faults_accumulate(self):
        """One evaluator collects faults across calls."""
        evaluator = Evaluator()
        evaluator.evaluate(parse_sexpr("(inv 0)"))
        evaluator.evaluate(parse_sexpr("(sqrt -1)"))
        assert len(evaluator.faults) == 2

    def test_callable(self):
        """An Evaluator can be called directly."""
        evaluator = Evaluator()
        assert evaluator(x + x) == 2 * x

    def test_evaluate_all(self):
        """Several expressions at the same bindings."""
        assert evaluate_all([x + 1, x * x], {x: 3}) == [Constant(4), Constant(9)]

    def test_evaluate_all_faults(self):
        """evaluate_all reports faults to the caller."""
        faults = []
        evaluate_all([parse_sexpr("(inv 0)"), x], faults=faults)
        assert len(faults) == 1
