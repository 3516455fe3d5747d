from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

DEFAULT_TZ_NAME = "Asia/Tehran"


def get_tz(tz_name: str = DEFAULT_TZ_NAME) -> ZoneInfo:
    return ZoneInfo(tz_name)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def from_unix(seconds: Optional[int]) -> datetime:
    if seconds is None:
        return now_utc()
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string or epoch milliseconds into an aware datetime.

    Naive values are taken as UTC. Missing values mean "now". Out-of-range
    or non-finite numbers raise ValueError.
    """

    if value is None or value == "":
        return now_utc()
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"Timestamp out of range: {value!r}") from exc
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_dt(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M")


def format_local(dt: datetime, tz_name: str = DEFAULT_TZ_NAME) -> str:
    return format_dt(dt.astimezone(get_tz(tz_name)))


def isoformat_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()
