"""User-generated text sanitization.

Posts, listings and responses are plain text; any markup is stripped before storage.
"""
from typing import Optional

import bleach
from fastapi import HTTPException


def sanitize_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


def sanitize_required(value: str, field: str) -> str:
    """Sanitize a field that must keep some text; markup-only input is a 422."""
    cleaned = sanitize_text(value)
    if not cleaned:
        raise HTTPException(status_code=422, detail=f"{field} cannot be empty")
    return cleaned
