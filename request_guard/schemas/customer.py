"""Pydantic schemas that sanitize customer form input before persistence.

Field validators run the sanitizers, so a validated model only ever carries
cleaned values. The persistence layer still binds them as query parameters.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

from request_guard.core.errors import SanitizationError
from request_guard.utils.sanitize import (
    sanitize_email,
    sanitize_free_text,
    sanitize_identifier,
    sanitize_search_term,
    sanitize_url,
)

CUSTOMER_NAME_MAX_LENGTH = 100
DEFAULT_AVATAR_URL = "/customers/default-avatar.png"

# Shape check only; deliverability is not our concern.
_EMAIL_SHAPE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")


class CustomerInput(BaseModel):
    """Create/update payload for a customer record."""

    name: str = Field(
        ...,
        description="Display name; tags and control characters are stripped.",
    )
    email: str = Field(
        ...,
        description="Contact email, lowercased.",
    )
    image_url: str = Field(
        default=DEFAULT_AVATAR_URL,
        description="Absolute http(s) avatar URL; the default avatar when omitted.",
    )

    @field_validator("name")
    @classmethod
    def _clean_name(cls, value: str) -> str:
        cleaned = sanitize_free_text(value, CUSTOMER_NAME_MAX_LENGTH)
        if not cleaned:
            raise ValueError("Please enter a customer name.")
        return cleaned

    @field_validator("email")
    @classmethod
    def _clean_email(cls, value: str) -> str:
        cleaned = sanitize_email(value)
        if not _EMAIL_SHAPE.fullmatch(cleaned):
            raise ValueError("Please enter a valid email address.")
        return cleaned

    @field_validator("image_url", mode="before")
    @classmethod
    def _clean_image_url(cls, value: object) -> str:
        if not value:
            return DEFAULT_AVATAR_URL
        if not isinstance(value, str):
            raise ValueError("Invalid URL")
        try:
            return sanitize_url(value)
        except SanitizationError as exc:
            raise ValueError(exc.message) from exc


class CustomerLookup(BaseModel):
    """Identifier plus optional search filter for customer queries."""

    id: str = Field(..., description="Customer UUID or numeric id.")
    query: str = Field(default="", description="Free-form search filter.")

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        try:
            return sanitize_identifier(value)
        except SanitizationError as exc:
            raise ValueError(exc.message) from exc

    @field_validator("query")
    @classmethod
    def _clean_query(cls, value: str) -> str:
        return sanitize_search_term(value)
