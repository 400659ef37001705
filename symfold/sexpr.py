"""
S-expression reader and printer.

Syntax:
    (+ a b ...)          sum
    (* a b ...)          product
    (- a) / (- a b)      negation / subtraction
    (/ a b)              division
    (^ a b)              power
    (= a b)  (!= a b)  (< a b)  (<= a b)  (> a b)  (>= a b)
    (and a b)  (or a b)  (not a)
    (:= expr bindings)   substitution, bindings being (-> x 1) or (set ...)
    (set a b ...)        set
    (-> a b)             arrow
    (name args ...)      call of a prelude function (or an undefined one)

Atoms:
    3  -1/2  0.25        exact constants
    true  false          1 and 0
    anything else        a symbol

Examples:
    parse_sexpr("(+ x (* 2 y))")           # Sum of x and 2*y
    format_sexpr(evaluate(parse_sexpr("(+ x x)")))  # "(* 2 x)"
"""

from typing import Any, List, Optional, Union

from .expr import (
    Expression, Constant, Symbol, Sum, Product, Power, Binary, Unary,
    Call, Set, Arrow, TRUE, FALSE, BINARY_OPERATORS, UNARY_OPERATORS,
    to_real,
)
from .functions import EXACT_PRELUDE, PreludeType, UndefinedFunction

TreeType = Union[str, List]


def count_parens(text: str) -> int:
    """Count unbalanced parentheses. Returns >0 if more open than close."""
    depth = 0
    for c in text:
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
    return depth


def read_sexpr(s: str) -> Optional[TreeType]:
    """
    Read an S-expression string into nested lists of atom strings.

    Examples:
        "(+ x 1)" -> ["+", "x", "1"]
        "(^ (+ x 1) 2)" -> ["^", ["+", "x", "1"], "2"]

    Raises:
        ValueError: If the parentheses are unbalanced
    """
    s = s.strip()
    if not s:
        return None

    if count_parens(s) != 0:
        raise ValueError(f"Unbalanced parentheses in {s!r}")

    if s.startswith('('):
        depth = 0
        parts = []
        current = ''
        i = 1  # Skip opening paren

        while i < len(s):
            c = s[i]
            if c == '(':
                depth += 1
                current += c
            elif c == ')':
                if depth == 0:
                    if current.strip():
                        parts.append(read_sexpr(current.strip()))
                    break
                depth -= 1
                current += c
            elif c in ' \t\n' and depth == 0:
                if current.strip():
                    parts.append(read_sexpr(current.strip()))
                current = ''
            else:
                current += c
            i += 1

        return parts

    if ')' in s or ' ' in s:
        raise ValueError(f"Unexpected text in {s!r}")
    return s


def _expect(head: str, args: List[Expression], *counts: int) -> None:
    if len(args) not in counts:
        expected = " or ".join(str(n) for n in counts)
        raise ValueError(f"({head} ...) takes {expected} argument(s), got {len(args)}")


def parse_atom(token: str) -> Expression:
    """Parse a number, true/false, or a symbol name."""
    if token == "true":
        return TRUE
    if token == "false":
        return FALSE
    try:
        return Constant(to_real(token))
    except (ValueError, ZeroDivisionError):
        return Symbol(token)


def build_expr(tree: TreeType, functions: PreludeType) -> Expression:
    """Convert a tree from read_sexpr into an expression."""
    if isinstance(tree, str):
        return parse_atom(tree)
    if not tree:
        raise ValueError("Empty expression ()")

    head = tree[0]
    if not isinstance(head, str):
        raise ValueError(f"Operator must be a name, got {format_tree(head)}")
    args = [build_expr(arg, functions) for arg in tree[1:]]

    if head == "+":
        return Sum.new(*args)
    if head == "*":
        return Product.new(*args)
    if head == "-":
        _expect(head, args, 1, 2)
        return -args[0] if len(args) == 1 else args[0] - args[1]
    if head == "/":
        _expect(head, args, 2)
        return args[0] / args[1]
    if head == "^":
        _expect(head, args, 2)
        return Power.new(args[0], args[1])
    if head in BINARY_OPERATORS:
        _expect(head, args, 2)
        return Binary.new(head, args[0], args[1])
    if head in UNARY_OPERATORS:
        _expect(head, args, 1)
        return Unary.new(head, args[0])
    if head == "set":
        return Set.new(*args)
    if head == "->":
        _expect(head, args, 2)
        return Arrow.new(args[0], args[1])

    target = functions.get(head)
    if target is None:
        target = UndefinedFunction(head)
    return Call.new(target, args)


def parse_sexpr(s: str, functions: Optional[PreludeType] = None) -> Optional[Expression]:
    """
    Parse an S-expression string into an expression.

    Args:
        s: Text to parse
        functions: Prelude used to resolve call names (default EXACT_PRELUDE)

    Returns:
        The expression, or None for blank input
    """
    tree = read_sexpr(s)
    if tree is None:
        return None
    return build_expr(tree, EXACT_PRELUDE if functions is None else functions)


def format_tree(tree: Any) -> str:
    """Format a raw tree from read_sexpr."""
    if isinstance(tree, list):
        return "(" + " ".join(format_tree(t) for t in tree) + ")"
    return str(tree)


def _form(head: str, args) -> str:
    return "(" + " ".join([head] + [format_sexpr(a) for a in args]) + ")"


def format_sexpr(expr: Expression) -> str:
    """
    Format an expression as an S-expression string.

    Examples:
        Constant(3)       -> "3"
        Constant(-1/2)    -> "-1/2"
        x + 2*y           -> "(+ x (* 2 y))"
    """
    if isinstance(expr, Constant):
        return str(expr.value)
    if isinstance(expr, Symbol):
        return expr.name
    if isinstance(expr, Sum):
        return _form("+", expr.terms)
    if isinstance(expr, Product):
        return _form("*", expr.factors)
    if isinstance(expr, Power):
        return _form("^", (expr.base, expr.exponent))
    if isinstance(expr, Binary):
        return _form(expr.operator, (expr.left, expr.right))
    if isinstance(expr, Unary):
        return _form(expr.operator, (expr.operand,))
    if isinstance(expr, Call):
        return _form(expr.target.name, expr.args)
    if isinstance(expr, Set):
        return _form("set", expr.members)
    if isinstance(expr, Arrow):
        return _form("->", (expr.left, expr.right))
    raise TypeError(f"Cannot format {type(expr).__name__}")
