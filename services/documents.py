"""Validation boundary between the schemaless store and the API.

Rows come back from Supabase as plain dicts. Every row handed to a router is
parsed into its versioned Pydantic schema here; rows that do not match are
rejected instead of being passed along as-is.
"""
from typing import Iterable, Type, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)


class DocumentShapeError(Exception):
    """A stored record does not match its expected schema."""

    def __init__(self, kind: str, record_id, errors):
        super().__init__(f"{kind} {record_id} does not match schema")
        self.kind = kind
        self.record_id = record_id
        self.errors = errors


def parse_document(model: Type[T], row: dict) -> T:
    try:
        return model.model_validate(row)
    except ValidationError as e:
        raise DocumentShapeError(model.__name__, (row or {}).get("id"), e.errors()) from e


def parse_documents(model: Type[T], rows: Iterable[dict]) -> list[T]:
    return [parse_document(model, row) for row in rows or []]
