# pnl_report/utils/time_converter.py
from datetime import datetime, timezone

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"


def string_to_utc_timestamp(time_string: str) -> int:
    """
    Converts a "yyyy-MM-dd HH:mm:ss" string (UTC) to a Unix timestamp with milliseconds.

    Raises:
        ValueError: When the time string format is incorrect.
    """
    try:
        parsed = datetime.strptime(time_string.strip(), TIMESTAMP_FORMAT)
    except (ValueError, AttributeError):
        raise ValueError(f"Invalid time string: {time_string}")
    return int(parsed.replace(tzinfo=timezone.utc).timestamp() * 1000)


def _to_datetime(utc_timestamp: int) -> datetime:
    return datetime.fromtimestamp(utc_timestamp / 1000, tz=timezone.utc)


def utc_time_to_string(utc_timestamp: int) -> str:
    return _to_datetime(utc_timestamp).strftime(TIMESTAMP_FORMAT)


def utc_time_to_date_string(utc_timestamp: int) -> str:
    return _to_datetime(utc_timestamp).strftime(DATE_FORMAT)


def get_utc_year(utc_timestamp: int) -> int:
    return _to_datetime(utc_timestamp).year


def get_year_end_timestamp(year: int) -> int:
    """Timestamp of the last second of the year: yyyy-12-31 23:59:59 UTC."""
    return string_to_utc_timestamp(f"{year}-12-31 23:59:59")


def get_day_start(utc_timestamp: int) -> int:
    """Timestamp of 00:00:00 UTC of the day containing the given timestamp."""
    day = _to_datetime(utc_timestamp).replace(hour=0, minute=0, second=0, microsecond=0)
    return int(day.timestamp() * 1000)
