"""
Like-term and like-factor collection.

Both collectors take operands that are already simplified and flattened,
and return the canonical sum or product in a single pass:

    collect_terms([x, 2*x, 3, 4])     # => (+ 7 (* 3 x))
    collect_factors([x, x, 2, y^-1])  # => (* 2 (^ x 2) (^ y -1))

A constant multiplying a sum raised to +1 or -1 is distributed into the
sum's terms instead of being kept as a separate factor:

    collect_factors([2, x + y])       # => (+ (* 2 x) (* 2 y))
"""

from fractions import Fraction
from typing import Dict, Iterable, Optional, Tuple

from .expr import (
    Expression, Constant, Sum, Product, Power, ZERO,
    factors_of, terms_of, real_pow,
)


def accumulate(mapping: Dict[Expression, Fraction], key: Expression, amount) -> None:
    """Add amount to mapping[key], treating a missing key as 0."""
    mapping[key] = mapping.get(key, 0) + amount


def split_coefficient(term: Expression) -> Tuple[Fraction, Expression]:
    """
    Split a term into its leading constant and the remaining factors.

    Only the first constant factor is taken; it is removed by position, so
    any other constant factor stays part of the bare term.

    Returns:
        (coefficient, bare term); the coefficient is 1 if term has no
        constant factor
    """
    factors = factors_of(term)
    for index, factor in enumerate(factors):
        if isinstance(factor, Constant):
            rest = factors[:index] + factors[index + 1:]
            return factor.value, Product.new(*rest)
    return Fraction(1), term


def collect_terms(terms: Iterable[Expression]) -> Expression:
    """
    Sum flattened terms, folding constants and combining like terms.

    Terms with the same bare part have their coefficients added; entries
    whose coefficient ends up zero are dropped.
    """
    coefficients: Dict[Expression, Fraction] = {}
    constant = Fraction(0)

    for term in terms:
        if isinstance(term, Constant):
            constant += term.value
        else:
            coefficient, bare = split_coefficient(term)
            accumulate(coefficients, bare, coefficient)

    if constant != 0:
        accumulate(coefficients, Constant(constant), 1)

    collected = []
    reshaped = False
    for bare, coefficient in coefficients.items():
        if coefficient == 0:
            continue
        if coefficient == 1:
            collected.append(bare)
            continue
        term = scale(coefficient, bare)
        # 2 * 2^(1/2) becomes 2^(3/2), which may now match another term.
        reshaped = reshaped or split_coefficient(term) != (coefficient, bare)
        collected.extend(terms_of(term))

    if reshaped:
        return collect_terms(collected)
    return Sum.new(*collected)


def scale(coefficient: Fraction, bare: Expression) -> Expression:
    """Put a coefficient back onto a bare term through the factor collector."""
    return collect_factors((Constant(coefficient),) + factors_of(bare))


def distribute(coefficient: Fraction, addends: Sum) -> Expression:
    """Multiply every term of a sum by a constant."""
    terms = []
    for term in addends.terms:
        value, bare = split_coefficient(term)
        terms.extend(terms_of(scale(coefficient * value, bare)))
    return collect_terms(terms)


def _distributable(exponents: Dict[Expression, Fraction]) -> Optional[Expression]:
    for base, exponent in exponents.items():
        if isinstance(base, Sum) and abs(exponent) == 1:
            return base
    return None


def collect_factors(factors: Iterable[Expression]) -> Expression:
    """
    Multiply flattened factors, folding constants and combining like factors.

    Factors with the same base have their exponents added; entries whose
    exponent ends up zero are dropped. A zero constant makes the whole
    product zero.
    """
    exponents: Dict[Expression, Fraction] = {}
    constant = Fraction(1)

    for factor in factors:
        if isinstance(factor, Constant):
            constant *= factor.value
        elif isinstance(factor, Power) and isinstance(factor.exponent, Constant):
            accumulate(exponents, factor.base, factor.exponent.value)
        else:
            accumulate(exponents, factor, 1)

    # Constant bases whose combined power became rational, e.g. 2^(1/2) * 2^(1/2).
    for base in [b for b in exponents if isinstance(b, Constant) and b.value != 0]:
        value = real_pow(base.value, Fraction(exponents[base]))
        if value is not None:
            constant *= value
            del exponents[base]

    if constant == 0:
        return ZERO

    if constant != 1:
        addends = _distributable(exponents)
        if addends is not None:
            exponent = exponents.pop(addends)
            accumulate(exponents, distribute(real_pow(constant, exponent), addends), exponent)
        else:
            accumulate(exponents, Constant(constant), 1)

    return Product.new(*(
        base if exponent == 1 else Power.new(base, Constant(exponent))
        for base, exponent in exponents.items()
        if exponent != 0
    ))
