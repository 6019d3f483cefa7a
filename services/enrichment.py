"""Author/shop lookups merged into a page of posts or listings.

Only identifiers the caller does not already hold are fetched, each exactly
once, with a single `in` query per table.
"""
from typing import Iterable, Optional


def missing_ids(rows: Iterable[dict], field: str, known: Optional[Iterable[str]] = None) -> list[str]:
    """Distinct non-empty values of `field` not present in `known`, in first-seen order."""
    known_set = set(known or [])
    seen: list[str] = []
    for row in rows:
        value = row.get(field)
        if value and value not in known_set and value not in seen:
            seen.append(value)
    return seen


def fetch_by_ids(db, table: str, ids: list[str]) -> dict[str, dict]:
    if not ids:
        return {}
    response = db.table(table).select("*").in_("id", ids).execute()
    return {row["id"]: row for row in (response.data or []) if row.get("id")}


def resolve_related(db, rows: list[dict], field: str, table: str,
                    cache: Optional[dict[str, dict]] = None,
                    known: Optional[Iterable[str]] = None) -> dict[str, dict]:
    """
    Merge the records referenced by `rows[*][field]` into `cache`.

    Ids already in `cache` or listed in `known` are never fetched again.
    Returns the records fetched by this call.
    """
    cache = cache if cache is not None else {}
    skip = set(cache) | set(known or [])
    fetched = fetch_by_ids(db, table, missing_ids(rows, field, skip))
    cache.update(fetched)
    return fetched
