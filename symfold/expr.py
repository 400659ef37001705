"""
Expression model for symbolic evaluation.

SYMFOLD - Symbolic Folding of Expression Trees

Expressions are immutable trees built from a closed set of node types:

    Constant(value)             exact rational value (booleans are 1/0)
    Symbol(name)                named leaf
    Sum(terms)                  n-ary addition
    Product(factors)            n-ary multiplication
    Power(base, exponent)       exponentiation
    Binary(operator, l, r)      relations, logic and substitution (:=)
    Unary(operator, operand)    logical negation
    Call(target, args)          invocation of a call target
    Set(members), Arrow(l, r)   substitution maps, e.g. (set (-> x 1))

Nodes are hashable and compare by structure. Each node caches its hash and
a total-order sort key when it is built, so hashing and sorting never walk
the tree again.

Smart constructors (Sum.new, Product.new, Power.new, ...) flatten nested
sums and products, drop identity elements and short-circuit absorbing ones.
They never combine like terms; that is the job of the evaluator.
"""

from fractions import Fraction
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union
import math

# Type aliases
RealType = Fraction
NumericType = Union[int, float, Fraction, bool]


# ============================================================
# Operators
# ============================================================

EQUAL = "="
NOT_EQUAL = "!="
LESS = "<"
LESS_EQUAL = "<="
GREATER = ">"
GREATER_EQUAL = ">="
AND = "and"
OR = "or"
SUBSTITUTE = ":="
NOT = "not"

RELATIONAL_OPERATORS = (EQUAL, NOT_EQUAL, LESS, LESS_EQUAL, GREATER, GREATER_EQUAL)
LOGICAL_OPERATORS = (AND, OR)
BINARY_OPERATORS = RELATIONAL_OPERATORS + LOGICAL_OPERATORS + (SUBSTITUTE,)
UNARY_OPERATORS = (NOT,)


# ============================================================
# Exact real arithmetic
# ============================================================

def to_real(value: Any) -> Fraction:
    """
    Convert a number to an exact real value.

    Args:
        value: int, bool, Fraction, float or a string such as "3", "-1/2"
            or "0.25"

    Returns:
        The value as a Fraction. Floats are converted through their
        shortest decimal representation, so 0.1 becomes 1/10.

    Raises:
        TypeError: If the value is not numeric
        ValueError: If a string or float has no exact rational value
    """
    if isinstance(value, Fraction):
        return value
    if isinstance(value, bool):
        return Fraction(int(value))
    if isinstance(value, int):
        return Fraction(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{value!r} has no exact value")
        return Fraction(repr(value))
    if isinstance(value, str):
        return Fraction(value.strip())
    raise TypeError(f"Cannot convert {type(value).__name__} to an exact real")


def _integer_root(n: int, k: int) -> Optional[int]:
    """Exact k-th root of a non-negative integer, or None."""
    if n < 2:
        return n
    lo, hi = 1, 1 << (n.bit_length() // k + 1)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if mid ** k <= n:
            lo = mid
        else:
            hi = mid - 1
    return lo if lo ** k == n else None


def real_pow(base: Fraction, exponent: Fraction) -> Optional[Fraction]:
    """
    Raise base to exponent exactly.

    Integer exponents always give an exact result. A fractional exponent
    p/q is evaluated only when base has an exact rational q-th root.

    Returns:
        The exact result, or None when it is not rational

    Raises:
        ZeroDivisionError: For a zero base and negative exponent
    """
    if exponent.denominator == 1:
        return base ** int(exponent)

    k = exponent.denominator
    if base < 0 and k % 2 == 0:
        return None
    num = _integer_root(abs(base.numerator), k)
    den = _integer_root(base.denominator, k)
    if num is None or den is None:
        return None
    root = Fraction(-num if base < 0 else num, den)
    return root ** exponent.numerator


# ============================================================
# Expression nodes
# ============================================================

class Expression:
    """
    Base class of all expression nodes.

    Subclasses set ``_hash`` and ``_key`` in their constructor and
    implement ``_fields`` (the values that define structural equality)
    and ``map_children``.
    """

    __slots__ = ('_hash', '_key')

    def _fields(self) -> Tuple:
        raise NotImplementedError

    def map_children(self, fn: Callable[['Expression'], 'Expression']) -> 'Expression':
        """
        Rebuild this node from fn applied to each child.

        Returns this same instance when fn leaves every child unchanged,
        otherwise a new node built through the smart constructor.
        """
        return self

    def substitute(self, mapping: Dict['Expression', 'Expression']) -> 'Expression':
        """Replace every subtree equal to a key of mapping with its value."""
        if self in mapping:
            return mapping[self]
        return self.map_children(lambda child: child.substitute(mapping))

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other):
        if self is other:
            return True
        if isinstance(other, (int, Fraction)):
            other = Constant(other)
        if not isinstance(other, Expression):
            return NotImplemented
        return (type(self) is type(other)
                and self._hash == other._hash
                and self._fields() == other._fields())

    def __str__(self) -> str:
        from .sexpr import format_sexpr
        return format_sexpr(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"

    # Arithmetic builds raw nodes; call evaluate() to simplify them.

    def __add__(self, other):
        other = _operand(other)
        if other is None:
            return NotImplemented
        return Sum.new(self, other)

    def __radd__(self, other):
        other = _operand(other)
        if other is None:
            return NotImplemented
        return Sum.new(other, self)

    def __sub__(self, other):
        other = _operand(other)
        if other is None:
            return NotImplemented
        return Sum.new(self, -other)

    def __rsub__(self, other):
        other = _operand(other)
        if other is None:
            return NotImplemented
        return Sum.new(other, -self)

    def __mul__(self, other):
        other = _operand(other)
        if other is None:
            return NotImplemented
        return Product.new(self, other)

    def __rmul__(self, other):
        other = _operand(other)
        if other is None:
            return NotImplemented
        return Product.new(other, self)

    def __truediv__(self, other):
        other = _operand(other)
        if other is None:
            return NotImplemented
        return Product.new(self, Power.new(other, MINUS_ONE))

    def __rtruediv__(self, other):
        other = _operand(other)
        if other is None:
            return NotImplemented
        return Product.new(other, Power.new(self, MINUS_ONE))

    def __pow__(self, other):
        other = _operand(other)
        if other is None:
            return NotImplemented
        return Power.new(self, other)

    def __rpow__(self, other):
        other = _operand(other)
        if other is None:
            return NotImplemented
        return Power.new(other, self)

    def __neg__(self):
        return Product.new(MINUS_ONE, self)


class Constant(Expression):
    """An exact rational constant."""

    __slots__ = ('value',)

    def __init__(self, value: NumericType):
        self.value = to_real(value)
        # Same hash as the plain number, since Constant(3) == 3.
        self._hash = hash(self.value)
        self._key = (0, self.value)

    def _fields(self) -> Tuple:
        return (self.value,)

    @staticmethod
    def new(value: NumericType) -> 'Constant':
        return Constant(value)


class Symbol(Expression):
    """A named variable."""

    __slots__ = ('name',)

    def __init__(self, name: str):
        self.name = name
        self._hash = hash(('symbol', name))
        self._key = (1, name)

    def _fields(self) -> Tuple:
        return (self.name,)


class Call(Expression):
    """Invocation of a call target (see symfold.functions)."""

    __slots__ = ('target', 'args')

    def __init__(self, target, args: Iterable[Expression]):
        self.target = target
        self.args = tuple(args)
        self._hash = hash(('call', target.name) + tuple(a._hash for a in self.args))
        self._key = (2, target.name, tuple(a._key for a in self.args))

    def _fields(self) -> Tuple:
        return (self.target, self.args)

    def map_children(self, fn):
        args = tuple(fn(a) for a in self.args)
        if all(new is old for new, old in zip(args, self.args)):
            return self
        return Call.new(self.target, args)

    @staticmethod
    def new(target, args: Iterable[Any]) -> 'Call':
        return Call(target, [as_expr(a) for a in args])


class Power(Expression):
    """base ^ exponent."""

    __slots__ = ('base', 'exponent')

    def __init__(self, base: Expression, exponent: Expression):
        self.base = base
        self.exponent = exponent
        self._hash = hash(('^', base._hash, exponent._hash))
        self._key = (3, base._key, exponent._key)

    def _fields(self) -> Tuple:
        return (self.base, self.exponent)

    def map_children(self, fn):
        base, exponent = fn(self.base), fn(self.exponent)
        if base is self.base and exponent is self.exponent:
            return self
        return Power.new(base, exponent)

    @staticmethod
    def new(base: Any, exponent: Any) -> Expression:
        """Build base^exponent; x^0 is 1 and x^1 is x."""
        base, exponent = as_expr(base), as_expr(exponent)
        if isinstance(exponent, Constant):
            if exponent.value == 0:
                return ONE
            if exponent.value == 1:
                return base
        return Power(base, exponent)


class Product(Expression):
    """Product of two or more factors, kept in canonical order."""

    __slots__ = ('factors',)

    def __init__(self, factors: Iterable[Expression]):
        self.factors = tuple(factors)
        self._hash = hash(('*',) + tuple(f._hash for f in self.factors))
        self._key = (4, tuple(f._key for f in self.factors))

    def _fields(self) -> Tuple:
        return self.factors

    def map_children(self, fn):
        factors = tuple(fn(f) for f in self.factors)
        if all(new is old for new, old in zip(factors, self.factors)):
            return self
        return Product.new(*factors)

    @staticmethod
    def new(*factors: Any) -> Expression:
        """
        Build a product.

        Nested products are flattened and ones dropped. Any constant zero
        factor makes the whole product zero. An empty product is 1 and a
        single factor is returned as is.
        """
        flat = []
        for factor in factors:
            factor = as_expr(factor)
            if isinstance(factor, Product):
                flat.extend(factor.factors)
            elif isinstance(factor, Constant):
                if factor.value == 0:
                    return ZERO
                if factor.value != 1:
                    flat.append(factor)
            else:
                flat.append(factor)
        if not flat:
            return ONE
        if len(flat) == 1:
            return flat[0]
        return Product(sorted(flat, key=sort_key))


class Sum(Expression):
    """Sum of two or more terms, kept in canonical order."""

    __slots__ = ('terms',)

    def __init__(self, terms: Iterable[Expression]):
        self.terms = tuple(terms)
        self._hash = hash(('+',) + tuple(t._hash for t in self.terms))
        self._key = (5, tuple(t._key for t in self.terms))

    def _fields(self) -> Tuple:
        return self.terms

    def map_children(self, fn):
        terms = tuple(fn(t) for t in self.terms)
        if all(new is old for new, old in zip(terms, self.terms)):
            return self
        return Sum.new(*terms)

    @staticmethod
    def new(*terms: Any) -> Expression:
        """
        Build a sum.

        Nested sums are flattened and zeros dropped. An empty sum is 0 and
        a single term is returned as is.
        """
        flat = []
        for term in terms:
            term = as_expr(term)
            if isinstance(term, Sum):
                flat.extend(term.terms)
            elif not is_zero(term):
                flat.append(term)
        if not flat:
            return ZERO
        if len(flat) == 1:
            return flat[0]
        return Sum(sorted(flat, key=sort_key))


class Unary(Expression):
    """A prefix operator applied to one operand."""

    __slots__ = ('operator', 'operand')

    def __init__(self, operator: str, operand: Expression):
        self.operator = operator
        self.operand = operand
        self._hash = hash(('unary', operator, operand._hash))
        self._key = (6, operator, operand._key)

    def _fields(self) -> Tuple:
        return (self.operator, self.operand)

    def map_children(self, fn):
        operand = fn(self.operand)
        if operand is self.operand:
            return self
        return Unary.new(self.operator, operand)

    @staticmethod
    def new(operator: str, operand: Any) -> 'Unary':
        if operator not in UNARY_OPERATORS:
            raise ValueError(f"Unknown unary operator: {operator}")
        return Unary(operator, as_expr(operand))


class Binary(Expression):
    """A relational, logical or substitution operator."""

    __slots__ = ('operator', 'left', 'right')

    def __init__(self, operator: str, left: Expression, right: Expression):
        self.operator = operator
        self.left = left
        self.right = right
        self._hash = hash(('binary', operator, left._hash, right._hash))
        self._key = (7, operator, left._key, right._key)

    def _fields(self) -> Tuple:
        return (self.operator, self.left, self.right)

    def map_children(self, fn):
        left, right = fn(self.left), fn(self.right)
        if left is self.left and right is self.right:
            return self
        return Binary.new(self.operator, left, right)

    @staticmethod
    def new(operator: str, left: Any, right: Any) -> 'Binary':
        if operator not in BINARY_OPERATORS:
            raise ValueError(f"Unknown binary operator: {operator}")
        return Binary(operator, as_expr(left), as_expr(right))


class Set(Expression):
    """An unordered collection of distinct members."""

    __slots__ = ('members',)

    def __init__(self, members: Iterable[Expression]):
        self.members = tuple(members)
        self._hash = hash(('set',) + tuple(m._hash for m in self.members))
        self._key = (8, tuple(m._key for m in self.members))

    def _fields(self) -> Tuple:
        return self.members

    def map_children(self, fn):
        members = tuple(fn(m) for m in self.members)
        if all(new is old for new, old in zip(members, self.members)):
            return self
        return Set.new(*members)

    @staticmethod
    def new(*members: Any) -> 'Set':
        unique = []
        for member in members:
            member = as_expr(member)
            if member not in unique:
                unique.append(member)
        return Set(sorted(unique, key=sort_key))


class Arrow(Expression):
    """A binding left -> right, as used by the := operator."""

    __slots__ = ('left', 'right')

    def __init__(self, left: Expression, right: Expression):
        self.left = left
        self.right = right
        self._hash = hash(('->', left._hash, right._hash))
        self._key = (9, left._key, right._key)

    def _fields(self) -> Tuple:
        return (self.left, self.right)

    def map_children(self, fn):
        left, right = fn(self.left), fn(self.right)
        if left is self.left and right is self.right:
            return self
        return Arrow.new(left, right)

    @staticmethod
    def new(left: Any, right: Any) -> 'Arrow':
        return Arrow(as_expr(left), as_expr(right))


ZERO = Constant(0)
ONE = Constant(1)
MINUS_ONE = Constant(-1)
TRUE = ONE
FALSE = ZERO


# ============================================================
# Helpers
# ============================================================

def as_expr(value: Any) -> Expression:
    """
    Coerce a value to an expression.

    Expressions are returned unchanged, numbers become constants and
    strings become symbols.
    """
    if isinstance(value, Expression):
        return value
    if isinstance(value, str):
        return Symbol(value)
    if isinstance(value, (int, float, Fraction)):
        return Constant(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to an expression")


def _operand(value: Any) -> Optional[Expression]:
    """as_expr for operator overloads: None instead of TypeError."""
    try:
        return as_expr(value)
    except TypeError:
        return None


def symbols(names: str) -> Tuple[Symbol, ...]:
    """
    Create several symbols at once.

    Example:
        x, y = symbols("x y")
    """
    return tuple(Symbol(name) for name in names.split())


def sort_key(expr: Expression) -> Tuple:
    """Canonical ordering key: constants, symbols, calls, powers, ..."""
    return expr._key


def terms_of(expr: Expression) -> Tuple[Expression, ...]:
    """The additive terms of expr (expr itself unless it is a Sum)."""
    if isinstance(expr, Sum):
        return expr.terms
    return (expr,)


def factors_of(expr: Expression) -> Tuple[Expression, ...]:
    """The multiplicative factors of expr (expr itself unless it is a Product)."""
    if isinstance(expr, Product):
        return expr.factors
    return (expr,)


def as_real(expr: Expression) -> Optional[Fraction]:
    """The value of a constant, or None for anything else."""
    if isinstance(expr, Constant):
        return expr.value
    return None


def is_zero(expr: Expression) -> bool:
    """True if expr is the constant 0."""
    return isinstance(expr, Constant) and expr.value == 0


def is_one(expr: Expression) -> bool:
    """True if expr is the constant 1."""
    return isinstance(expr, Constant) and expr.value == 1
