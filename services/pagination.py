"""Keyset (cursor) pagination over composite sort orders.

A cursor is the last row's values for every sort key, encoded as URL-safe
base64 JSON. Continuation is expressed as a PostgREST logic tree so both the
Supabase and SQLite backends apply it inside the store:

    urgent desc, last_activity_at desc, id desc  after (true, T, X)

    urgent.lt.true,
    and(urgent.eq.true,last_activity_at.lt."T"),
    and(urgent.eq.true,last_activity_at.eq."T",id.lt."X")

The id is always the last key, so rows with equal sort values are still split
cleanly between pages. Which of two such rows comes first is not part of the
contract.
"""
import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Optional, Sequence


@dataclass(frozen=True)
class SortKey:
    column: str
    desc: bool = True


FEED_SORT = (SortKey("urgent"), SortKey("last_activity_at"), SortKey("id"))
LISTING_SORT = (SortKey("created_at"), SortKey("id"))


class InvalidCursor(ValueError):
    """The cursor is malformed or was issued for a different sort order."""


def _sort_signature(sort: Sequence[SortKey]) -> str:
    return ",".join(f"{k.column}:{'d' if k.desc else 'a'}" for k in sort)


def encode_cursor(row: dict, sort: Sequence[SortKey]) -> str:
    payload = {"s": _sort_signature(sort), "v": [row.get(k.column) for k in sort]}
    raw = json.dumps(payload, separators=(",", ":"), default=str).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_cursor(cursor: str, sort: Sequence[SortKey]) -> list[Any]:
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode()))
    except (binascii.Error, ValueError, UnicodeDecodeError) as e:
        raise InvalidCursor("Malformed cursor") from e

    if not isinstance(payload, dict) or payload.get("s") != _sort_signature(sort):
        raise InvalidCursor("Cursor does not belong to this query")
    values = payload.get("v")
    if not isinstance(values, list) or len(values) != len(sort):
        raise InvalidCursor("Malformed cursor")
    if any(v is None for v in values):
        raise InvalidCursor("Malformed cursor")
    return values


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value).replace('"', "")
    return f'"{text}"'


def keyset_filter(sort: Sequence[SortKey], values: Sequence[Any]) -> str:
    """PostgREST `or` tree selecting rows strictly after `values` in `sort` order."""
    branches = []
    for i, key in enumerate(sort):
        op = "lt" if key.desc else "gt"
        conditions = [f"{prev.column}.eq.{_literal(values[j])}" for j, prev in enumerate(sort[:i])]
        conditions.append(f"{key.column}.{op}.{_literal(values[i])}")
        if len(conditions) == 1:
            branches.append(conditions[0])
        else:
            branches.append(f"and({','.join(conditions)})")
    return ",".join(branches)


def fetch_page(query, sort: Sequence[SortKey], page_size: int,
               cursor: Optional[str] = None) -> tuple[list[dict], Optional[str]]:
    """
    Apply sort, cursor and limit to a filtered query and execute it.

    One extra row is requested to learn whether another page exists; the
    returned cursor is None on the last page.
    """
    if cursor:
        query = query.or_(keyset_filter(sort, decode_cursor(cursor, sort)))
    for key in sort:
        query = query.order(key.column, desc=key.desc)
    rows = query.limit(page_size + 1).execute().data or []

    if len(rows) > page_size:
        rows = rows[:page_size]
        return rows, encode_cursor(rows[-1], sort)
    return rows, None
