"""Helpers for the column references declared on query shapes.

A column reference is anything SQLAlchemy accepts in ``where``/``order_by``:
an ORM attribute (``Item.id``), a ``Column``, a labeled expression or a bare
computed expression. Bare names are not enough to tell two references apart
(``Product.id`` and ``Category.id`` share the key ``id``), so identity checks
go through ``same_column``.
"""

from __future__ import annotations

from typing import Any


def column_key(column: Any) -> str:
    """Return the name a column is known by on result rows.

    Raises:
        ValueError: For unlabeled computed expressions.
    """
    key = getattr(column, "key", None) or getattr(column, "name", None)
    if not key:
        msg = f"Cannot determine a key for column expression {column!r}; label it"
        raise ValueError(msg)
    return str(key)


def has_column_key(column: Any) -> bool:
    try:
        column_key(column)
    except ValueError:
        return False
    return True


def column_element(column: Any) -> Any:
    """Unwrap ORM attributes to their SQL expression."""
    clause = getattr(column, "__clause_element__", None)
    return clause() if clause is not None else column


def same_column(left: Any, right: Any) -> bool:
    """Whether two references denote the same SQL expression.

    Table-qualified: ``Product.id`` and ``Category.id`` differ even though
    both are keyed ``id``.
    """
    if left is right:
        return True
    left, right = column_element(left), column_element(right)
    compare = getattr(left, "compare", None)
    return bool(compare(right)) if compare is not None else False


__all__ = ["column_element", "column_key", "has_column_key", "same_column"]
