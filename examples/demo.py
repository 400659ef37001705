#!/usr/bin/env python3
"""
SYMFOLD Feature Demonstration

This script demonstrates the major features of the SYMFOLD library.
"""

from symfold import (
    Matrix, SingularMatrixError,
    evaluate, symbols, parse_sexpr, format_sexpr,
    EXACT_PRELUDE,
)


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def demo_simplification():
    """Demonstrate constant folding and collection."""
    section("Simplification")

    x, y = symbols("x y")

    examples = [
        x + 2*x + 3,
        x * x * y ** -1 * y,
        (x * y) ** 2,
        (x ** 2) ** 3,
        2 * (x + y),
        (x + 1) / (x + 1),
    ]

    for expr in examples:
        print(f"  {format_sexpr(expr)} => {format_sexpr(evaluate(expr))}")


def demo_sexpr():
    """Demonstrate the S-expression reader."""
    section("S-expressions")

    examples = [
        "(+ (sqrt 16) (* x x))",
        "(/ 1 3)",
        "(^ 8 1/3)",
        "(- (* 2 x) x)",
        "(:= (* x y) (set (-> x 2) (-> y 5)))",
    ]

    for expr_str in examples:
        result = evaluate(parse_sexpr(expr_str))
        print(f"  {expr_str} => {format_sexpr(result)}")


def demo_relations():
    """Demonstrate relational and logical folding."""
    section("Relations and Logic")

    examples = [
        "(< 3 5)",
        "(> 3 5)",
        "(<= 2 2)",
        "(= x x)",
        "(and (< 1 2) (!= 3 4))",
        "(or x true)",
        "(not (= x y))",
    ]

    for expr_str in examples:
        result = evaluate(parse_sexpr(expr_str))
        print(f"  {expr_str} => {format_sexpr(result)}")


def demo_bindings():
    """Demonstrate evaluation at a point."""
    section("Bindings")

    x, y = symbols("x y")
    expr = x ** 2 + 2*x*y + y ** 2

    print(f"  expr = {format_sexpr(evaluate(expr))}")
    for point in ({x: 1}, {x: 1, y: 2}, {"x": "y"}):
        shown = ", ".join(f"{k} = {v}" for k, v in point.items())
        print(f"  at {shown}: {format_sexpr(evaluate(expr, point))}")


def demo_faults():
    """Demonstrate fault-tolerant call evaluation."""
    section("Faults")

    faults = []
    expr = parse_sexpr("(+ (sqrt 9) (inv 0) (sqrt -4))", EXACT_PRELUDE)
    result = evaluate(expr, faults=faults)

    print(f"  result: {format_sexpr(result)}")
    for fault in faults:
        print(f"  fault:  {fault}")


def demo_matrices():
    """Demonstrate symbolic matrix inversion."""
    section("Matrices")

    x, = symbols("x")
    A = Matrix.from_rows([[x, 1], [1, 0]])
    print(f"  A          = {A}")
    print(f"  A ** -1    = {A ** -1}")
    print(f"  A * A ** -1 = {A * A ** -1}")

    B = Matrix.from_rows([[2, 1, 0], [1, 3, 1], [0, 1, 4]])
    print(f"  B ** -1    = {B ** -1}")

    try:
        Matrix.from_rows([[1, 2], [2, 4]]) ** -1
    except SingularMatrixError as e:
        print(f"  [[1, 2], [2, 4]] ** -1 raised: {e}")


def main():
    """Run all demonstrations."""
    print("SYMFOLD Feature Demonstration")
    print("Symbolic Folding of Expression Trees")

    demo_simplification()
    demo_sexpr()
    demo_relations()
    demo_bindings()
    demo_faults()
    demo_matrices()

    print("\n" + "="*60)
    print(" Demo complete!")
    print("="*60 + "\n")


if __name__ == "__main__":
    main()
