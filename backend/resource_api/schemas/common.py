"""Shared schema definitions."""

from __future__ import annotations

from math import ceil
from typing import Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..db_types import canonical_id

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base model exposing camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiReadModel(ApiModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class PaginationMeta(ApiModel):
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)


class PaginatedResponse(ApiModel, Generic[T]):
    """Standard shape for paginated listings."""

    data: Sequence[T]
    pagination: PaginationMeta

    @classmethod
    def build(cls, items: Sequence[T], total: int, page: int, page_size: int):
        return cls(
            data=items,
            pagination=PaginationMeta(
                page=page,
                page_size=page_size,
                total=total,
                total_pages=ceil(total / page_size),
            ),
        )


class CompanySummary(ApiReadModel):
    id: str
    name: str


class ProjectSummary(ApiReadModel):
    id: str
    name: str


def strip_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def normalize_currency_code(value: Optional[str]) -> Optional[str]:
    """Return an upper-cased three letter currency code, or ``None`` when blank."""

    value = strip_optional(value)
    if value is None:
        return None
    if len(value) != 3 or not value.isalpha():
        raise ValueError("Currency code must be 3 letters")
    return value.upper()


def normalize_reference_id(value: Optional[str]) -> Optional[str]:
    """Strip a referenced id and reduce UUIDs to their canonical lower-case form."""

    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        raise ValueError("Value must not be blank")
    return canonical_id(stripped)

