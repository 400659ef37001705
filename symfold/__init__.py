"""
SYMFOLD - Symbolic Folding of Expression Trees

Exact simplification of symbolic expressions and symbolic matrix inversion.

Quick Start:
    from symfold import evaluate, symbols, Matrix

    x, y = symbols("x y")

    evaluate(x + 2*x + 3)          # => (+ 3 (* 3 x))
    evaluate((x * y) ** 2)         # => (* (^ x 2) (^ y 2))
    evaluate(2 * (x + y))          # => (+ (* 2 x) (* 2 y))
    evaluate(x ** 2 + y, {x: 3})   # => (+ 9 y)

    A = Matrix.from_rows([[2, 1], [1, 1]])
    A ** -1                        # => [[1, -1], [-1, 2]]

S-expressions:
    from symfold import parse_sexpr, format_sexpr

    expr = parse_sexpr("(+ (sqrt 16) (* x x))")
    format_sexpr(evaluate(expr))   # => "(+ 4 (^ x 2))"

Faults:
    Calls whose function fails (e.g. (inv 0)) are left unevaluated and
    reported instead of raising:

        faults = []
        evaluate(parse_sexpr("(+ 1 (inv 0))"), faults=faults)
        # => (+ 1 (inv 0)), faults == [EvaluationFault(...)]
"""

__version__ = "0.1.0"

# Expression model
from .expr import (
    Expression,
    Constant,
    Symbol,
    Sum,
    Product,
    Power,
    Binary,
    Unary,
    Call,
    Set,
    Arrow,
    ZERO,
    ONE,
    TRUE,
    FALSE,
    EQUAL,
    NOT_EQUAL,
    LESS,
    LESS_EQUAL,
    GREATER,
    GREATER_EQUAL,
    AND,
    OR,
    NOT,
    SUBSTITUTE,
    as_expr,
    symbols,
    terms_of,
    factors_of,
    to_real,
    real_pow,
)

# Call targets and preludes
from .functions import (
    Function,
    UndefinedFunction,
    CallResult,
    EvaluationFault,
    nary_fold,
    unary_only,
    binary_only,
    make_prelude,
    EXACT_PRELUDE,
    NO_PRELUDE,
)

# Traversal and evaluation
from .visitor import CachedRecursiveVisitor
from .collect import collect_terms, collect_factors
from .evaluate import Evaluator, evaluate, evaluate_all, make_substitutions

# Matrices
from .matrix import (
    Matrix,
    MatrixError,
    DimensionMismatchError,
    NonSquareMatrixError,
    UnsupportedExponentError,
    SingularMatrixError,
    NotAVectorError,
)

# S-expressions
from .sexpr import parse_sexpr, format_sexpr

# Public API
__all__ = [
    # Version
    "__version__",
    # Expressions
    "Expression",
    "Constant",
    "Symbol",
    "Sum",
    "Product",
    "Power",
    "Binary",
    "Unary",
    "Call",
    "Set",
    "Arrow",
    "ZERO",
    "ONE",
    "TRUE",
    "FALSE",
    # Operators
    "EQUAL",
    "NOT_EQUAL",
    "LESS",
    "LESS_EQUAL",
    "GREATER",
    "GREATER_EQUAL",
    "AND",
    "OR",
    "NOT",
    "SUBSTITUTE",
    # Helpers
    "as_expr",
    "symbols",
    "terms_of",
    "factors_of",
    "to_real",
    "real_pow",
    # Call targets
    "Function",
    "UndefinedFunction",
    "CallResult",
    "EvaluationFault",
    "nary_fold",
    "unary_only",
    "binary_only",
    "make_prelude",
    "EXACT_PRELUDE",
    "NO_PRELUDE",
    # Evaluation
    "CachedRecursiveVisitor",
    "collect_terms",
    "collect_factors",
    "Evaluator",
    "evaluate",
    "evaluate_all",
    "make_substitutions",
    # Matrices
    "Matrix",
    "MatrixError",
    "DimensionMismatchError",
    "NonSquareMatrixError",
    "UnsupportedExponentError",
    "SingularMatrixError",
    "NotAVectorError",
    # S-expressions
    "parse_sexpr",
    "format_sexpr",
]
