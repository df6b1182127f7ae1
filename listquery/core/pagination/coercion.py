"""Conversion of query-string and cursor values to column Python types.

Query strings only carry text and cursor tokens only carry JSON scalars, so
both are converted back to the type the column expects before they are bound
into a predicate. The target type comes from an explicit ``FieldSpec.value_type``
or is inferred from the SQLAlchemy column type.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


def column_python_type(column: Any) -> type | None:
    """Return the Python type a SQLAlchemy column binds, if it is known.

    Computed expressions without a declared type (``NullType``) and custom
    types that do not implement ``python_type`` yield ``None``.
    """
    column_type = getattr(column, "type", None)
    if column_type is None:
        return None
    try:
        return column_type.python_type
    except NotImplementedError:
        return None


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    msg = f"expected a boolean, got {value!r}"
    raise ValueError(msg)


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        msg = f"expected a decimal number, got {value!r}"
        raise ValueError(msg) from e


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _to_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        msg = f"expected an integer, got {value!r}"
        raise ValueError(msg)
    if isinstance(value, int):
        return value
    return int(str(value).strip())


_CONVERTERS: dict[type, Callable[[Any], Any]] = {
    bool: _to_bool,
    int: _to_int,
    float: lambda v: float(str(v).strip()) if not isinstance(v, float) else v,
    Decimal: _to_decimal,
    datetime: _to_datetime,
    date: _to_date,
    time: _to_time,
    UUID: lambda v: v if isinstance(v, UUID) else UUID(str(v)),
    str: str,
}


def coerce_value(value: Any, target_type: type | None) -> Any:
    """Convert ``value`` to ``target_type``.

    ``None`` and values of an unknown target type pass through unchanged.

    Raises:
        ValueError: If the value cannot be represented as ``target_type``.
    """
    if value is None or target_type is None:
        return value

    converter = _CONVERTERS.get(target_type)
    if converter is not None:
        return converter(value)

    if isinstance(target_type, type) and issubclass(target_type, enum.Enum):
        if isinstance(value, target_type):
            return value
        try:
            return target_type(value)
        except ValueError:
            pass
        try:
            return target_type[str(value)]
        except KeyError as e:
            allowed = ", ".join(str(member.value) for member in target_type)
            msg = f"expected one of {allowed}, got {value!r}"
            raise ValueError(msg) from e

    return value


__all__ = ["coerce_value", "column_python_type"]
