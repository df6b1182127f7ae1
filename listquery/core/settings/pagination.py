"""Pagination settings for declared query shapes.

These are the fallbacks a ``PaginationPolicy`` uses for anything its
declaration leaves out, plus the optional secret used to sign cursor tokens.

Environment variables use PAGINATION_ prefix.
Example: PAGINATION_DEFAULT_LIMIT=20, PAGINATION_MAX_LIMIT=200
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PaginationSettings(BaseSettings):
    """Pagination configuration settings.

    Attributes:
        default_limit: Page size used when a policy does not declare one.
        max_limit: Largest page size a client may request when a policy does
            not declare its own maximum.
        default_mode: Pagination mode used when a policy does not declare one.
        allow_custom_limit: Default for ``PaginationPolicy.allow_custom_limit``.
        allow_custom_sort: Default for ``PaginationPolicy.allow_custom_sort``.
        allow_multiple_sort: Default for ``PaginationPolicy.allow_multiple_sort``.
        cursor_secret: When set, cursor tokens are HMAC-signed with this key.

    Example:
        settings = PaginationSettings()
        policy = PaginationPolicy(cursor_key_column=Item.id)
        assert policy.default_limit == settings.default_limit
    """

    default_limit: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Default page size when a policy does not declare one",
    )
    max_limit: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum allowed page size when a policy does not declare one",
    )
    default_mode: Literal["offset", "cursor", "both"] = Field(
        default="both",
        description="Pagination mode when a policy does not declare one",
    )
    allow_custom_limit: bool = Field(
        default=True,
        description="Whether clients may override the page size by default",
    )
    allow_custom_sort: bool = Field(
        default=True,
        description="Whether clients may override the default sort by default",
    )
    allow_multiple_sort: bool = Field(
        default=True,
        description="Whether clients may sort by several fields by default",
    )
    cursor_secret: SecretStr | None = Field(
        default=None,
        description="HMAC key for signing cursor tokens (None disables signing)",
    )

    @field_validator("default_mode", mode="before")
    @classmethod
    def normalize_mode(cls, v: str) -> str:
        """Normalize pagination mode to lowercase."""
        if isinstance(v, str):
            return v.lower()
        return v

    @model_validator(mode="after")
    def check_limits(self) -> PaginationSettings:
        """Reject a default page size larger than the maximum."""
        if self.default_limit > self.max_limit:
            msg = (
                f"default_limit ({self.default_limit}) cannot be greater than "
                f"max_limit ({self.max_limit})"
            )
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )
