"""Base schema classes with camelCase alias generation.

All API schemas inherit from these instead of BaseModel directly.
Backend Python code stays snake_case. API JSON output becomes camelCase.
"""
from typing import Callable, Generic, TypeVar
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from drive.services.pagination import Page

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for request schemas (Create/Update). Accepts and outputs camelCase."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "protected_namespaces": (),
    }


class CamelORMModel(BaseModel):
    """Base for response schemas. Reads from SQLAlchemy, outputs camelCase."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
        "protected_namespaces": (),
    }


class PageResponse(CamelModel, Generic[T]):
    contents: list[T]
    current_page: int
    per_page: int
    total_elements: int
    total_page: int


def to_page_response(page: Page, convert: Callable) -> dict:
    """Render a service Page, converting each item with `convert`."""
    return {
        "contents": [convert(item) for item in page.contents],
        "current_page": page.current_page,
        "per_page": page.per_page,
        "total_elements": page.total_elements,
        "total_page": page.total_page,
    }


class DeleteResponse(CamelModel):
    deleted: bool = True
    id: int
