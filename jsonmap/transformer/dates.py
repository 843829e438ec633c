"""Date parsing, formatting and arithmetic for date transformations."""
import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from jsonmap.transformer.coercion import is_number

logger = logging.getLogger(__name__)

# Tried in order after ISO-8601 parsing fails
FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%a %b %d %Y %H:%M:%S",
)

FORMAT_TOKENS = {
    "YYYY": "%Y",
    "MMM": "%b",
    "MM": "%m",
    "DD": "%d",
    "HH": "%H",
    "mm": "%M",
    "ss": "%S",
}
FORMAT_TOKEN_PATTERN = re.compile(r'YYYY|MMM|MM|DD|HH|mm|ss')


def _as_utc(moment: datetime) -> datetime:
    # Naive datetimes are read as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_strptime_format(input_format: str) -> str:
    """Translate "DD/MM/YYYY HH:mm" style tokens to strptime directives."""
    escaped = input_format.replace("%", "%%")
    return FORMAT_TOKEN_PATTERN.sub(lambda match: FORMAT_TOKENS[match.group(0)], escaped)


def _parse_iso(text: str) -> Optional[datetime]:
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_date(value: Any, input_format: Optional[str] = None) -> Optional[datetime]:
    """
    Read value as a point in time

    Args:
        value: datetime/date, epoch milliseconds or a date string
        input_format: Optional token format ("DD/MM/YYYY") tried first

    Returns:
        Timezone-aware UTC datetime, or None when value is not a date
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if is_number(value):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if input_format:
        try:
            return _as_utc(datetime.strptime(text, to_strptime_format(input_format)))
        except ValueError:
            logger.debug(f"Date {text!r} does not match input format {input_format!r}")

    parsed = _parse_iso(text)
    if parsed is not None:
        return _as_utc(parsed)

    for fmt in FALLBACK_FORMATS:
        try:
            return _as_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


def iso_string(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision: 2024-01-05T10:00:00.000Z"""
    moment = _as_utc(moment)
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
        f".{moment.microsecond // 1000:03d}Z"
    )


def _local_string(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return (
        f"{moment.month}/{moment.day}/{moment.year}, "
        f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"
    )


def _default_string(moment: datetime) -> str:
    return moment.strftime("%a %b %d %Y %H:%M:%S UTC")


DATE_FORMATS: Dict[str, Callable[[datetime], str]] = {
    "YYYY-MM-DD": lambda d: f"{d.year:04d}-{d.month:02d}-{d.day:02d}",
    "MM/DD/YYYY": lambda d: f"{d.month:02d}/{d.day:02d}/{d.year:04d}",
    "DD/MM/YYYY": lambda d: f"{d.day:02d}/{d.month:02d}/{d.year:04d}",
    "MMM DD, YYYY": lambda d: f"{d.strftime('%b')} {d.day}, {d.year}",
    "ISO": iso_string,
    "LOCAL": _local_string,
    "TIME": lambda d: d.strftime("%H:%M:%S UTC"),
}


def format_date(moment: datetime, output_format: Optional[str] = None) -> str:
    """Render moment with a named output format; unknown names use the default string."""
    moment = _as_utc(moment)
    formatter = DATE_FORMATS.get(output_format or "ISO")
    if formatter is None:
        logger.debug(f"Unknown date output format {output_format!r}, using default")
        return _default_string(moment)
    return formatter(moment)


def _shift_months(moment: datetime, months: int) -> datetime:
    # Day overflow rolls into the next month: Jan 31 + 1 month -> Mar 2/3
    total = moment.month - 1 + months
    first = moment.replace(year=moment.year + total // 12, month=total % 12 + 1, day=1)
    return first + timedelta(days=moment.day - 1)


def add_to_date(moment: datetime, amount: int, unit: str) -> datetime:
    """
    Shift moment by amount units (days, months, years, hours, minutes)

    Unknown units leave the date unchanged.
    """
    if unit == "days":
        return moment + timedelta(days=amount)
    if unit == "hours":
        return moment + timedelta(hours=amount)
    if unit == "minutes":
        return moment + timedelta(minutes=amount)
    if unit == "months":
        return _shift_months(moment, amount)
    if unit == "years":
        return _shift_months(moment, amount * 12)
    logger.warning(f"Unknown date unit: {unit}")
    return moment
