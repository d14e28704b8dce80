from datetime import datetime
from typing import Optional

import pytz
from dateutil.parser import parse, ParserError

IST = pytz.timezone("Asia/Kolkata")


def now_utc() -> datetime:
    return datetime.now(pytz.utc)


def now_iso() -> str:
    return now_utc().isoformat()


def parse_datetime(datetime_str: str) -> datetime:
    """
    Parses a provider datetime string into an IST aware datetime, supporting
    the formats couriers send in scan histories.
    """
    date_formats = [
        "%d-%m-%Y %H:%M:%S",
        "%d-%m-%Y %H:%M",
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%d %H:%M",
        "%d-%m-%Y %H:%M:%S.%f",
        "%d %m %Y %H:%M:%S",
        "%d%m%Y %H%M",  # DTDC strActionDate + strActionTime
        "%d%m%Y",
    ]

    for fmt in date_formats:
        try:
            naive = datetime.strptime(datetime_str, fmt)
            return IST.localize(naive)
        except ValueError:
            continue

    raise ValueError(f"Invalid datetime format: {datetime_str}")


def parse_provider_timestamp(value) -> Optional[str]:
    """
    Best effort conversion of any provider timestamp to an ISO string in IST.
    Returns None when the value is empty, the raw string when unparseable.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        value = str(value).strip()
        try:
            dt = parse_datetime(value)
        except ValueError:
            try:
                dt = parse(value)
            except (ParserError, OverflowError, ValueError):
                return value

    if dt.tzinfo is None:
        dt = IST.localize(dt)
    return dt.astimezone(IST).isoformat()
