"""Tests for like-term and like-factor collection."""

from fractions import Fraction

from symfold.collect import (
    accumulate, split_coefficient, collect_terms, collect_factors, distribute,
)
from symfold.expr import Constant, Sum, Product, Power, ZERO, ONE, symbols

x, y = symbols("x y")


class TestHelpers:
    """Tests for accumulate and split_coefficient."""

    def test_accumulate_missing_key(self):
        """A missing key starts from 0."""
        mapping = {}
        accumulate(mapping, x, 2)
        accumulate(mapping, x, Fraction(1, 2))
        assert mapping == {x: Fraction(5, 2)}

    def test_split_coefficient(self):
        """The first constant factor is the coefficient."""
        assert split_coefficient(Product.new(3, x, y)) == (3, Product.new(x, y))
        assert split_coefficient(Product.new(3, x)) == (3, x)

    def test_split_without_constant(self):
        """No constant factor means coefficient 1."""
        assert split_coefficient(x) == (1, x)

    def test_split_removes_one_position(self):
        """Only the first constant is removed."""
        term = Product((Constant(2), Constant(3), x))
        assert split_coefficient(term) == (2, Product((Constant(3), x)))


class TestCollectTerms:
    """Tests for collect_terms."""

    def test_combines_like_terms(self):
        """x + 2x + 3 + 4 = 7 + 3x."""
        result = collect_terms([x, Product.new(2, x), Constant(3), Constant(4)])
        assert str(result) == "(+ 7 (* 3 x))"

    def test_cancelling_terms(self):
        """x - x = 0."""
        assert collect_terms([x, Product.new(-1, x)]) == ZERO

    def test_single_term(self):
        """A lone term is returned bare."""
        assert collect_terms([x, Constant(0)]) == x

    def test_constants_only(self):
        """Constants fold to one constant."""
        assert collect_terms([Constant(1), Constant(Fraction(1, 2))]) == Fraction(3, 2)


class TestCollectFactors:
    """Tests for collect_factors."""

    def test_combines_like_factors(self):
        """x * x * 2 * y^-1 = 2 x^2 y^-1."""
        result = collect_factors([x, x, Constant(2), Power.new(y, -1)])
        assert str(result) == "(* 2 (^ x 2) (^ y -1))"

    def test_cancelling_factors(self):
        """x^2 * x^-2 = 1."""
        assert collect_factors([Power.new(x, 2), Power.new(x, -2)]) == ONE

    def test_zero_factor(self):
        """A zero constant makes the product zero."""
        assert collect_factors([x, Constant(0), y]) == ZERO

    def test_distributes_constant(self):
        """2 (x + y) = 2x + 2y."""
        result = collect_factors([Constant(2), Sum.new(x, y)])
        assert str(result) == "(+ (* 2 x) (* 2 y))"

    def test_distributes_into_inverse(self):
        """2 / (x + y) = ((x + y) / 2)^-1."""
        result = collect_factors([Constant(2), Power.new(Sum.new(x, y), -1)])
        assert str(result) == "(^ (+ (* 1/2 x) (* 1/2 y)) -1)"

    def test_no_distribution_into_square(self):
        """A squared sum keeps the constant outside."""
        result = collect_factors([Constant(2), Power.new(Sum.new(x, y), 2)])
        assert str(result) == "(* 2 (^ (+ x y) 2))"

    def test_folds_constant_base(self):
        """2^(1/2) * 2^(1/2) = 2."""
        root = Power.new(2, Fraction(1, 2))
        assert collect_factors([root, root]) == Constant(2)

    def test_keeps_irrational_constant_base(self):
        """2^(1/2) alone stays a power."""
        root = Power.new(2, Fraction(1, 2))
        assert collect_factors([root]) == root


class TestDistribute:
    """Tests for distribute."""

    def test_scales_coefficients(self):
        """Existing coefficients are multiplied, constants scaled."""
        addends = Sum.new(1, Product.new(3, x))
        assert str(distribute(Fraction(2), addends)) == "(+ 2 (* 6 x))"


class TestScaledTerms:
    """Coefficients put back by collect_terms go through collect_factors."""

    def test_constant_base_absorbs_coefficient(self):
        """2^(1/2) + 2^(1/2) = 2^(3/2)."""
        root = Power.new(2, Fraction(1, 2))
        assert str(collect_terms([root, root])) == "(^ 2 3/2)"

    def test_coefficient_distributes_into_inverse(self):
        """1/(x + y) + 1/(x + y) = ((x + y) / 2)^-1."""
        inverse = Power.new(Sum.new(x, y), -1)
        result = collect_terms([inverse, inverse])
        assert str(result) == "(^ (+ (* 1/2 x) (* 1/2 y)) -1)"

    def test_coefficient_distributes_into_sum_factor(self):
        """x(x + y) + x(x + y) = x(2x + 2y)."""
        term = Product.new(x, Sum.new(x, y))
        result = collect_terms([term, term])
        assert result == Product.new(x, Sum.new(Product.new(2, x), Product.new(2, y)))

    def test_distribute_scales_through_factors(self):
        """Distributing into a constant-base term merges the exponents."""
        addends = Sum.new(x, Power.new(2, Fraction(1, 2)))
        expected = Sum.new(Product.new(2, x), Power.new(2, Fraction(3, 2)))
        assert distribute(Fraction(2), addends) == expected

    def test_reshaped_term_meets_like_term(self):
        """2^(1/2) + 2^(1/2) + 2^(3/2) = 2^(5/2)."""
        root = Power.new(2, Fraction(1, 2))
        result = collect_terms([root, root, Power.new(2, Fraction(3, 2))])
        assert str(result) == "(^ 2 5/2)"
