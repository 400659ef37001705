"""
Example custom prelude for SYMFOLD.

This file demonstrates how to create custom preludes that extend
the functions SYMFOLD can evaluate exactly.

Usage:
    symfold -p examples/custom_prelude.py -e "(lcm 4 6)"

Or in scripts:
    :prelude examples/custom_prelude.py
    (+ x (sum 1 2 3))
"""

from symfold import binary_only, unary_only, nary_fold, EXACT_PRELUDE


def _lcm(a, b):
    if a == 0 or b == 0:
        return 0
    return abs(a * b) / EXACT_PRELUDE["gcd"].handler([a, b])


# Start with the exact prelude and extend it
PRELUDE = {
    **EXACT_PRELUDE,

    # Number theory
    "lcm": binary_only(_lcm),
    "even?": unary_only(lambda x: x % 2 == 0),
    "odd?": unary_only(lambda x: x % 2 == 1),

    # N-ary folds
    "sum": nary_fold(0, lambda a, b: a + b),
    "prod": nary_fold(1, lambda a, b: a * b),

    # Rounding
    "round": unary_only(round),
    "numer": unary_only(lambda x: x.numerator),
    "denom": unary_only(lambda x: x.denominator),
}
