"""
Dense matrices of expressions with exact symbolic inversion.

    from symfold import Matrix, symbols

    x, = symbols("x")
    A = Matrix.from_rows([[x, 1], [1, 0]])
    print(A ** -1)                 # [[0, 1], [1, (* -1 x)]]
    print(A * A ** -1)             # [[1, 0], [0, 1]]

Every arithmetic operator returns a new matrix whose entries have been
simplified with an Evaluator. Shape errors, a non-square base for **, an
unsupported exponent and a singular matrix raise MatrixError subclasses.

Failing calls in entries are left unevaluated. The arithmetic operators
discard their faults; pass a list to Matrix.evaluate(faults=...) or
Matrix.inverse(faults=...) to collect them.

Inversion is Gauss-Jordan elimination on [A | I]. A pivot is usable
unless it evaluates to the constant 0; an entry that is zero but cannot be
shown to be zero is accepted as a pivot.
"""

from typing import Any, Callable, List, Optional, Sequence, Tuple
import logging

from .evaluate import BindingsType, Evaluator
from .expr import Expression, Sum, ZERO, ONE, as_expr, is_zero
from .functions import EvaluationFault

logger = logging.getLogger(__name__)


# ============================================================
# Errors
# ============================================================

class MatrixError(ValueError):
    """A structural failure of a matrix operation."""


class DimensionMismatchError(MatrixError):
    """Operand shapes are incompatible."""


class NonSquareMatrixError(MatrixError):
    """The operation needs a square matrix."""


class UnsupportedExponentError(MatrixError):
    """Only A ** 1 and negative integer exponents are supported."""


class SingularMatrixError(MatrixError):
    """No usable pivot was found while inverting."""


class NotAVectorError(MatrixError):
    """Single-index access on a matrix that is not 1xN or Nx1."""


# ============================================================
# Matrix
# ============================================================

class Matrix:
    """
    An M x N grid of expressions.

    Args:
        rows: Number of rows (M)
        cols: Number of columns (N)

    All entries start as the constant 0. Use Matrix.identity(n) for an
    identity matrix and Matrix.from_rows(...) to build from nested lists.
    """

    __slots__ = ('_grid',)

    def __init__(self, rows: int, cols: int):
        if rows < 0 or cols < 0:
            raise ValueError(f"Invalid matrix shape: {rows}x{cols}")
        self._grid: List[List[Expression]] = [[ZERO] * cols for _ in range(rows)]

    @classmethod
    def identity(cls, n: int) -> 'Matrix':
        """Create an n x n identity matrix."""
        result = cls(n, n)
        for i in range(n):
            result._grid[i][i] = ONE
        return result

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]]) -> 'Matrix':
        """
        Create a matrix from nested rows of expressions, numbers or names.

        Raises:
            DimensionMismatchError: If the rows have different lengths
        """
        rows = [list(row) for row in rows]
        cols = len(rows[0]) if rows else 0
        for row in rows:
            if len(row) != cols:
                raise DimensionMismatchError("Rows must all have the same length")
        result = cls(len(rows), cols)
        result._grid = [[as_expr(entry) for entry in row] for row in rows]
        return result

    def copy(self) -> 'Matrix':
        """Return an independent copy."""
        result = Matrix(0, 0)
        result._grid = [list(row) for row in self._grid]
        return result

    @property
    def rows(self) -> int:
        return len(self._grid)

    @property
    def cols(self) -> int:
        return len(self._grid[0]) if self._grid else 0

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    def tolist(self) -> List[List[Expression]]:
        """Return the entries as a new list of rows."""
        return [list(row) for row in self._grid]

    def _vector_position(self, index: int) -> Tuple[int, int]:
        if self.rows == 1:
            return 0, index
        if self.cols == 1:
            return index, 0
        raise NotAVectorError(f"Matrix of shape {self.rows}x{self.cols} is not a vector")

    def __getitem__(self, index) -> Expression:
        """m[i, j] for an entry; m[i] for an element of a row or column vector."""
        i, j = index if isinstance(index, tuple) else self._vector_position(index)
        return self._grid[i][j]

    def __setitem__(self, index, value: Any) -> None:
        i, j = index if isinstance(index, tuple) else self._vector_position(index)
        self._grid[i][j] = as_expr(value)

    def evaluate(self, bindings: BindingsType = None,
                 faults: Optional[List[EvaluationFault]] = None) -> 'Matrix':
        """Evaluate every entry, optionally at the given bindings."""
        evaluator = Evaluator()
        result = Matrix(0, 0)
        result._grid = [evaluator.evaluate_all(row, bindings) for row in self._grid]
        if faults is not None:
            faults.extend(evaluator.faults)
        return result

    def _build(self, rows: int, cols: int, entry: Callable[[int, int], Expression]) -> 'Matrix':
        evaluator = Evaluator()
        result = Matrix(rows, cols)
        for i in range(rows):
            for j in range(cols):
                result._grid[i][j] = evaluator.visit(entry(i, j))
        if evaluator.faults:
            logger.debug("%d call(s) left unevaluated in matrix entries", len(evaluator.faults))
        return result

    def _check_same_shape(self, other: 'Matrix', verb: str) -> None:
        if self.shape != other.shape:
            raise DimensionMismatchError(
                f"Cannot {verb} {self.rows}x{self.cols} and {other.rows}x{other.cols} matrices"
            )

    # Arithmetic

    def __add__(self, other):
        if isinstance(other, Matrix):
            self._check_same_shape(other, "add")
            return self._build(self.rows, self.cols, lambda i, j: self._grid[i][j] + other._grid[i][j])
        scalar = _scalar(other)
        if scalar is None:
            return NotImplemented
        return self._build(self.rows, self.cols, lambda i, j: self._grid[i][j] + scalar)

    def __radd__(self, other):
        scalar = _scalar(other)
        if scalar is None:
            return NotImplemented
        return self._build(self.rows, self.cols, lambda i, j: scalar + self._grid[i][j])

    def __sub__(self, other):
        if isinstance(other, Matrix):
            self._check_same_shape(other, "subtract")
            return self._build(self.rows, self.cols, lambda i, j: self._grid[i][j] - other._grid[i][j])
        scalar = _scalar(other)
        if scalar is None:
            return NotImplemented
        return self._build(self.rows, self.cols, lambda i, j: self._grid[i][j] - scalar)

    def __rsub__(self, other):
        scalar = _scalar(other)
        if scalar is None:
            return NotImplemented
        return self._build(self.rows, self.cols, lambda i, j: scalar - self._grid[i][j])

    def __neg__(self):
        return self._build(self.rows, self.cols, lambda i, j: -self._grid[i][j])

    def __mul__(self, other):
        if isinstance(other, Matrix):
            if self.cols != other.rows:
                raise DimensionMismatchError(
                    f"Cannot multiply {self.rows}x{self.cols} by {other.rows}x{other.cols} matrix"
                )
            inner = range(self.cols)
            return self._build(
                self.rows, other.cols,
                lambda i, j: Sum.new(*(self._grid[i][k] * other._grid[k][j] for k in inner)),
            )
        scalar = _scalar(other)
        if scalar is None:
            return NotImplemented
        return self._build(self.rows, self.cols, lambda i, j: self._grid[i][j] * scalar)

    def __rmul__(self, other):
        scalar = _scalar(other)
        if scalar is None:
            return NotImplemented
        return self._build(self.rows, self.cols, lambda i, j: scalar * self._grid[i][j])

    def __pow__(self, exponent: int):
        """
        Raise a square matrix to an integer power.

        A ** 1 is A itself; A ** -k inverts A and raises the inverse to k.
        Any other exponent raises UnsupportedExponentError.
        """
        if isinstance(exponent, bool) or not isinstance(exponent, int):
            return NotImplemented
        if self.rows != self.cols:
            raise NonSquareMatrixError(f"Cannot raise a {self.rows}x{self.cols} matrix to a power")
        if exponent < 0:
            return _invert(self) ** -exponent
        if exponent != 1:
            raise UnsupportedExponentError(f"Unsupported matrix exponent: {exponent}")
        return self

    def inverse(self, faults: Optional[List[EvaluationFault]] = None) -> 'Matrix':
        """
        Return A ** -1.

        Args:
            faults: Optional list that receives the faults raised by failing
                calls in the entries during elimination
        """
        if self.rows != self.cols:
            raise NonSquareMatrixError(f"Cannot invert a {self.rows}x{self.cols} matrix")
        return _invert(self, faults)

    # Comparison and display

    def __eq__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        return self._grid == other._grid

    __hash__ = None

    def __str__(self) -> str:
        rows = ("[" + ", ".join(str(entry) for entry in row) + "]" for row in self._grid)
        return "[" + ", ".join(rows) + "]"

    def __repr__(self) -> str:
        return f"Matrix({self})"


def _scalar(value: Any) -> Optional[Expression]:
    try:
        return as_expr(value)
    except TypeError:
        return None


# ============================================================
# Gauss-Jordan elimination
# ============================================================

def _swap_rows(a: Matrix, i1: int, i2: int) -> None:
    if i1 != i2:
        a._grid[i1], a._grid[i2] = a._grid[i2], a._grid[i1]


def _scale_row(a: Matrix, i: int, s: Expression, evaluator: Evaluator) -> None:
    a._grid[i] = [evaluator.visit(entry * s) for entry in a._grid[i]]


def _scale_add_row(a: Matrix, i1: int, s: Expression, i2: int, evaluator: Evaluator) -> None:
    """Row i2 += s * row i1."""
    a._grid[i2] = [
        evaluator.visit(target + source * s)
        for target, source in zip(a._grid[i2], a._grid[i1])
    ]


def _invert(a: Matrix, faults: Optional[List[EvaluationFault]] = None) -> Matrix:
    """
    Invert a square matrix by Gauss-Jordan elimination, [A I] ~ [I A^-1].

    Works on private copies; a is never modified. Faults from failing calls
    are appended to faults when it is given.

    Raises:
        SingularMatrixError: If some column has no usable pivot
    """
    n = a.rows
    evaluator = Evaluator()
    work = a.evaluate(faults=faults)
    inverse = Matrix.identity(n)

    for i in range(n):
        # Find pivot row.
        pivot = next((p for p in range(i, n) if not is_zero(work._grid[p][i])), None)
        if pivot is None:
            logger.debug("No pivot in column %d of %dx%d matrix", i, n, n)
            raise SingularMatrixError("Singular matrix")
        if pivot != i:
            logger.debug("Swapping rows %d and %d", i, pivot)

        _swap_rows(work, i, pivot)
        _swap_rows(inverse, i, pivot)

        # Put a 1 in the pivot position.
        s = evaluator.visit(ONE / work._grid[i][i])
        _scale_row(work, i, s, evaluator)
        _scale_row(inverse, i, s, evaluator)

        # Zero the pivot column elsewhere.
        for p in range(n):
            if p != i:
                factor = evaluator.visit(-work._grid[p][i])
                _scale_add_row(work, i, factor, p, evaluator)
                _scale_add_row(inverse, i, factor, p, evaluator)

    if faults is not None:
        faults.extend(evaluator.faults)
    return inverse
