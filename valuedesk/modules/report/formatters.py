"""
Display formatting helpers shared by the resolver, calculator and renderer
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional


# Non-ISO layouts seen in older form submissions
_DATE_FORMATS = (
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)

# Report dates read as Indian Standard Time (no daylight saving)
IST = timezone(timedelta(hours=5, minutes=30), "IST")


def _local_date(moment: datetime) -> date:
    return moment.astimezone(IST).date() if moment.tzinfo else moment.date()


def parse_date(value: Any) -> Optional[date]:
    """Best-effort date parsing; None when the value is not a recognisable date"""
    if isinstance(value, datetime):
        return _local_date(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        return _local_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def format_date(value: Any) -> Any:
    """
    Format a date as d/m/yyyy.

    Empty input and the "NA" sentinel give "NA"; anything that does not parse
    is returned unchanged.
    """
    if value is None or value == "" or value == "NA":
        return "NA"
    parsed = parse_date(value)
    if parsed is None:
        return value
    return f"{parsed.day}/{parsed.month}/{parsed.year}"


def to_display(value: Any, default: str = "NA") -> str:
    """Render any resolved value as cell text"""
    if value is None or value == "":
        return default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
