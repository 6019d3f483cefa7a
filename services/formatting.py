"""Display formatting for prices, phone numbers and relative times."""
import re
from datetime import datetime, UTC
from typing import Optional, Union

MINUTE = 60
HOUR = 3600
DAY = 86400
WEEK = 604800


def format_price(amount: Union[int, float]) -> str:
    """
    Format a price in Ugandan Shillings.

    Examples:
        450000 -> "UGX 450,000"
        1250.5 -> "UGX 1,250.5"
    """
    if float(amount).is_integer():
        return f"UGX {int(amount):,}"
    return f"UGX {amount:,.3f}".rstrip("0").rstrip(".")


def format_phone_number(phone: str) -> str:
    """
    Format a Ugandan number for display.

    "256700123456" -> "+256 700 123 456"; anything else is returned unchanged.
    """
    clean = re.sub(r"\D", "", phone or "")
    if clean.startswith("256") and len(clean) == 12:
        return f"+{clean[0:3]} {clean[3:6]} {clean[6:9]} {clean[9:]}"
    return phone


def _to_datetime(value: Union[datetime, str, int, float]) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value)
    else:
        # epoch milliseconds
        parsed = datetime.fromtimestamp(value / 1000, tz=UTC)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def time_ago(value: Union[datetime, str, int, float], now: Optional[datetime] = None) -> str:
    """Relative time for the feed: "Just now", "5 mins ago", "2 hrs ago", "3 days ago"."""
    date = _to_datetime(value)
    now = _to_datetime(now) if now is not None else datetime.now(UTC)
    seconds = int((now - date).total_seconds())

    if seconds < 30:
        return "Just now"
    if seconds < MINUTE:
        return f"{seconds}s ago"
    if seconds < HOUR:
        mins = seconds // MINUTE
        return f"{mins} min{'s' if mins > 1 else ''} ago"
    if seconds < DAY:
        hrs = seconds // HOUR
        return f"{hrs} hr{'s' if hrs > 1 else ''} ago"
    if seconds < WEEK:
        days = seconds // DAY
        return f"{days} day{'s' if days > 1 else ''} ago"

    # Beyond a week, show the date
    label = f"{date.day} {date.strftime('%b')}"
    if date.year != now.year:
        label += f" {date.year}"
    return label
