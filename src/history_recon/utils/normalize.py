"""
Normalization of raw history record fields.

The history API returns loosely typed JSON: amounts arrive as numbers or
numeric strings, dates in whatever format the backend produced. None of
these helpers raise; unusable values collapse to a neutral default.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional
import math
import re
import warnings

from dateutil import parser as date_parser

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Leading numeric prefix, as accepted by a lenient float parse ("12.5NGN" -> 12.5)
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

# Two fill-in dates differing in every date field; text that leaves any of
# them unset parses differently against each and is not a complete date
_FILL_A = datetime(2000, 1, 1)
_FILL_B = datetime(2001, 2, 2)


def record_kind_text(record: Mapping[str, Any], type_fields: Iterable[str]) -> str:
    """Return the lower-cased classifier of a record, or "" when it has none."""
    for field_name in type_fields:
        value = record.get(field_name)
        if isinstance(value, str) and value:
            return value.lower()
    return ""


def parse_amount(value: Any) -> float:
    """
    Parse an amount the way a lenient float parse would.

    Args:
        value: Number, numeric string, or anything else

    Returns:
        The parsed float, or 0.0 for absent / non-numeric / NaN values
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        match = _FLOAT_PREFIX.match(str(value).lstrip())
        if not match:
            return 0.0
        number = float(match.group(0).replace("Infinity", "inf"))

    return 0.0 if math.isnan(number) else number


def is_numeric(value: Any) -> bool:
    """True for numbers and strings that start with a number."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return not math.isnan(float(value))
    if isinstance(value, str):
        return _FLOAT_PREFIX.match(value.lstrip()) is not None
    return False


def parse_instant(value: Any) -> int:
    """
    Parse a transaction date into epoch milliseconds.

    Numbers are taken as epoch milliseconds. Strings are read as ISO-8601,
    falling back to dateutil. Text without a full year/month/day (e.g.
    "10:30", "Jan 5") is unparseable. Naive values are treated as UTC.

    Returns:
        Milliseconds since the epoch, or 0 when the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return 0

    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else 0

    if isinstance(value, datetime):
        return _datetime_ms(value)

    if isinstance(value, date):
        return _datetime_ms(datetime(value.year, value.month, value.day))

    if not isinstance(value, str):
        return 0

    text = value.strip()
    if not text:
        return 0

    iso_text = text[:-1] + "+00:00" if text[-1] in "Zz" else text
    try:
        return _datetime_ms(datetime.fromisoformat(iso_text))
    except ValueError:
        pass

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = date_parser.parse(text, default=_FILL_A)
            if parsed != date_parser.parse(text, default=_FILL_B):
                return 0
    except (ValueError, OverflowError):
        return 0

    return _datetime_ms(parsed)


def _datetime_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    try:
        delta = value - EPOCH
    except OverflowError:
        return 0
    return delta // timedelta(milliseconds=1)


def key_text(value: Any, default: str = "") -> str:
    """Render a field for use inside a group key."""
    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def group_key(record: Mapping[str, Any]) -> str:
    """
    Build the de-duplication key of a main transaction.

    Concatenates reference, transactionDate, amount and debitCreditIndicator
    as received (no date or amount normalization).
    """
    return (
        key_text(record.get("reference"))
        + key_text(record.get("transactionDate") or None)
        + key_text(record.get("amount") or None, "0")
        + key_text(record.get("debitCreditIndicator"))
    )


def reference_of(record: Mapping[str, Any]) -> Any:
    """Reference of a record; absent references compare as ""."""
    reference = record.get("reference")
    return "" if reference is None else reference


def fee_identity(record: Mapping[str, Any]) -> tuple[Any, Optional[Any], Optional[Any]]:
    """Raw (reference, transactionDate, amount) triple used for exact-duplicate checks."""
    return (reference_of(record), record.get("transactionDate"), record.get("amount"))
