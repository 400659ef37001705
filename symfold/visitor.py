"""
Cached recursive traversal of expression trees.

CachedRecursiveVisitor rewrites a tree bottom-up. Subclasses override the
per-node hooks (visit_sum, visit_product, ...); anything not overridden
falls back to visit_default, which rewrites the children and rebuilds the
node through its smart constructor.

Two guards keep a traversal cheap and finite:

* Completed results are memoised by structural value, so a subtree that
  appears several times (or again in a later call on the same visitor) is
  rewritten once.
* Nodes currently being visited are tracked by identity. Reaching one of
  them again goes to revisit() instead of recursing; the default returns
  the node unchanged.
"""

from typing import Dict, Set as SetType

from .expr import (
    Expression, Constant, Symbol, Sum, Product, Power,
    Binary, Unary, Call, Set, Arrow,
)


class CachedRecursiveVisitor:
    """Memoising bottom-up rewriter with a cycle guard."""

    def __init__(self):
        self._cache: Dict[Expression, Expression] = {}
        self._visiting: SetType[int] = set()

    def visit(self, expr: Expression) -> Expression:
        """Rewrite expr, reusing earlier results for equal subtrees."""
        marker = id(expr)
        if marker in self._visiting:
            return self.revisit(expr)

        cached = self._cache.get(expr)
        if cached is not None:
            return cached

        self._visiting.add(marker)
        try:
            result = self._dispatch(expr)
        finally:
            self._visiting.discard(marker)

        self._cache[expr] = result
        return result

    def revisit(self, expr: Expression) -> Expression:
        """Called when expr is reached while it is still being visited."""
        return expr

    def clear_cache(self) -> None:
        """Forget all memoised results."""
        self._cache.clear()

    def _dispatch(self, expr: Expression) -> Expression:
        if isinstance(expr, Constant):
            return self.visit_constant(expr)
        if isinstance(expr, Symbol):
            return self.visit_symbol(expr)
        if isinstance(expr, Sum):
            return self.visit_sum(expr)
        if isinstance(expr, Product):
            return self.visit_product(expr)
        if isinstance(expr, Power):
            return self.visit_power(expr)
        if isinstance(expr, Binary):
            return self.visit_binary(expr)
        if isinstance(expr, Unary):
            return self.visit_unary(expr)
        if isinstance(expr, Call):
            return self.visit_call(expr)
        if isinstance(expr, Set):
            return self.visit_set(expr)
        if isinstance(expr, Arrow):
            return self.visit_arrow(expr)
        raise TypeError(f"Cannot visit {type(expr).__name__}")

    def visit_default(self, expr: Expression) -> Expression:
        """Rewrite the children of expr and rebuild it."""
        return expr.map_children(self.visit)

    def visit_constant(self, expr: Constant) -> Expression:
        return expr

    def visit_symbol(self, expr: Symbol) -> Expression:
        return expr

    def visit_sum(self, expr: Sum) -> Expression:
        return self.visit_default(expr)

    def visit_product(self, expr: Product) -> Expression:
        return self.visit_default(expr)

    def visit_power(self, expr: Power) -> Expression:
        return self.visit_default(expr)

    def visit_binary(self, expr: Binary) -> Expression:
        return self.visit_default(expr)

    def visit_unary(self, expr: Unary) -> Expression:
        return self.visit_default(expr)

    def visit_call(self, expr: Call) -> Expression:
        return self.visit_default(expr)

    def visit_set(self, expr: Set) -> Expression:
        return self.visit_default(expr)

    def visit_arrow(self, expr: Arrow) -> Expression:
        return self.visit_default(expr)
