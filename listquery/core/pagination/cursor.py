"""Cursor encoding and decoding for pagination.

Cursors are opaque strings that encode the position in a result set.
They contain the values of the sort fields for the last row of a page,
allowing the next query to seek directly past that row.

The cursor format is:
1. JSON object mapping sort field names to values (sorted keys, compact)
2. Base64 URL-safe encoded, padding stripped, for use in query strings

Example cursor payload:
    {"createdAt":"2025-01-15T10:30:00+00:00","id":42}

Encoded: eyJjcmVhdGVkQXQiOiIyMDI1LTAxLTE1VDEwOjMwOjAwKzAwOjAwIiwiaWQiOjQyfQ

The wire format is an implementation detail; clients must treat cursors as
opaque. ``SignedCursorCodec`` adds an HMAC signature so tampered tokens are
rejected before they reach the database.
"""

from __future__ import annotations

import base64
import binascii
import enum
import hashlib
import hmac
import json
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from listquery.core.exceptions import InvalidCursorException, PaginationConfigError
from listquery.core.settings import get_pagination_settings


@runtime_checkable
class CursorCodec(Protocol):
    """Moves named scalar values to and from an opaque token."""

    def encode(self, values: Mapping[str, Any]) -> str:
        """Encode sort field values into a token."""
        ...

    def decode(self, cursor: str) -> dict[str, Any]:
        """Decode a token back into sort field values.

        Raises:
            InvalidCursorException: If the token is malformed.
        """
        ...


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _b64decode(token: str) -> bytes:
    padded = token + "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode(padded.encode())


class JSONCursorCodec:
    """Encode and decode pagination cursors as base64 JSON.

    Usage:
        codec = JSONCursorCodec()
        cursor = codec.encode({"createdAt": datetime.now(UTC), "id": 42})
        codec.decode(cursor)  # {"createdAt": "2025-01-15T10:30:00+00:00", "id": 42}

    Datetimes, dates, times, UUIDs and Decimals are written as strings; the
    seek predicate converts them back using the column type.
    """

    @staticmethod
    def serialize_values(values: Mapping[str, Any]) -> dict[str, Any]:
        """Serialize values to JSON-compatible format."""
        result: dict[str, Any] = {}
        for key, value in values.items():
            if isinstance(value, (datetime, date, time)):
                result[key] = value.isoformat()
            elif isinstance(value, (UUID, Decimal)):
                result[key] = str(value)
            elif isinstance(value, enum.Enum):
                result[key] = value.value
            else:
                result[key] = value
        return result

    def dumps(self, values: Mapping[str, Any]) -> bytes:
        """Serialize values deterministically."""
        payload = self.serialize_values(values)
        return json.dumps(payload, separators=(",", ":"), sort_keys=True).encode()

    def loads(self, raw: bytes) -> dict[str, Any]:
        """Parse a serialized payload, rejecting anything but a JSON object."""
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise InvalidCursorException() from e
        if not isinstance(payload, dict):
            raise InvalidCursorException("Invalid cursor format")
        return payload

    def encode(self, values: Mapping[str, Any]) -> str:
        """Encode cursor values to an opaque string.

        Args:
            values: Sort field values of the last row of a page.

        Returns:
            URL-safe base64 encoded string without padding.
        """
        return _b64encode(self.dumps(values))

    def decode(self, cursor: str) -> dict[str, Any]:
        """Decode a cursor string to cursor values.

        Raises:
            InvalidCursorException: If cursor is invalid or corrupted.
        """
        try:
            raw = _b64decode(cursor)
        except (binascii.Error, ValueError) as e:
            raise InvalidCursorException() from e
        return self.loads(raw)


class SignedCursorCodec(JSONCursorCodec):
    """JSON cursor codec with an HMAC-SHA256 signature.

    Token layout (before base64): ``<json>.<hex signature>``. Tokens whose
    signature does not match are rejected as invalid cursors.

    Usage:
        codec = SignedCursorCodec(secret="change-me")
        token = codec.encode({"id": 5})
        codec.decode(token)  # {"id": 5}
    """

    SIGNATURE_LENGTH = 32

    def __init__(self, secret: str | bytes) -> None:
        if not secret:
            msg = "SignedCursorCodec requires a non-empty secret"
            raise PaginationConfigError(msg)
        self._secret = secret.encode() if isinstance(secret, str) else secret

    def _sign(self, payload: bytes) -> bytes:
        digest = hmac.new(self._secret, payload, hashlib.sha256).hexdigest()
        return digest[: self.SIGNATURE_LENGTH].encode()

    def encode(self, values: Mapping[str, Any]) -> str:
        payload = self.dumps(values)
        return _b64encode(payload + b"." + self._sign(payload))

    def decode(self, cursor: str) -> dict[str, Any]:
        try:
            raw = _b64decode(cursor)
        except (binascii.Error, ValueError) as e:
            raise InvalidCursorException() from e

        payload, sep, signature = raw.rpartition(b".")
        if not sep or not hmac.compare_digest(signature, self._sign(payload)):
            raise InvalidCursorException("Invalid cursor: signature mismatch")
        return self.loads(payload)


def get_cursor_codec() -> CursorCodec:
    """Return the codec configured by ``PaginationSettings``.

    A configured ``cursor_secret`` selects ``SignedCursorCodec``; otherwise
    cursors are plain base64 JSON.
    """
    secret = get_pagination_settings().cursor_secret
    if secret is not None and secret.get_secret_value():
        return SignedCursorCodec(secret.get_secret_value())
    return JSONCursorCodec()


_MISSING = object()


def extract_cursor_values(row: Any, field_names: Sequence[tuple[str, str]]) -> dict[str, Any]:
    """Read the sort field values of ``row`` for a cursor.

    Args:
        row: ORM entity or ``RowMapping`` returned by the query.
        field_names: ``(cursor_key, row_key)`` pairs; ``cursor_key`` names the
            value inside the token, ``row_key`` is the attribute or mapping key
            that holds it on the row.

    Raises:
        PaginationConfigError: If a sort value is not present on the row,
            which means the statement does not select a sorted expression.
    """
    values: dict[str, Any] = {}
    for cursor_key, row_key in field_names:
        if isinstance(row, Mapping):
            value = row.get(row_key, _MISSING)
        else:
            value = getattr(row, row_key, _MISSING)
        if value is _MISSING:
            msg = f"Field '{row_key}' not found in record for cursor generation"
            raise PaginationConfigError(msg, {"cursor_key": cursor_key})
        values[cursor_key] = value
    return values


__all__ = [
    "CursorCodec",
    "JSONCursorCodec",
    "SignedCursorCodec",
    "extract_cursor_values",
    "get_cursor_codec",
]
