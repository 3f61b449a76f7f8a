# =============================================================================
# Utilities
# =============================================================================
# Helpers shared by the rule variants and the executor:
# - slug generation and JSON validity checks
# - numeric detection and coercion
# - record-sequence precondition check
# - Date-token format parsing and formatting
# =============================================================================

import json
import math
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from types import SimpleNamespace
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

__all__ = [
    "text_to_slug",
    "is_json",
    "decode_json",
    "encode_json",
    "is_numeric",
    "to_int",
    "to_float",
    "to_text",
    "is_sequence_of_records",
    "parse_allowed_tags",
    "parse_date",
    "format_date",
]

_NON_SLUG_PATTERN = re.compile(r"[^A-Za-z0-9\s]")
_NUMERIC_PATTERN = re.compile(r"^\s*[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?\s*$")
_INTEGER_PATTERN = re.compile(r"^\s*[+-]?[0-9]+\s*$")
_TAG_NAME_PATTERN = re.compile(r"<\s*/?\s*([A-Za-z][A-Za-z0-9-]*)")


# -----------------------------------------------------------------------------
# Slug and JSON helpers
# -----------------------------------------------------------------------------
def text_to_slug(text: str, delimiter: str = "-") -> str:
    """
    Convert text to a URL slug.

    Drops every character outside ``[A-Za-z0-9]`` and whitespace, lowercases
    the rest and joins whitespace-separated words with ``delimiter``.

    Examples:
        >>> text_to_slug("Hello World!")
        'hello-world'
        >>> text_to_slug("  Data   Optimizer 2 ", "_")
        'data_optimizer_2'
    """
    text = _NON_SLUG_PATTERN.sub("", text).lower()
    return delimiter.join(text.split())


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def decode_json(value: Any) -> Tuple[bool, Any]:
    """
    Decode ``value`` if it is a string holding valid JSON.

    ``NaN`` and ``Infinity`` literals are rejected since they are not part
    of the JSON grammar.

    Returns:
        Tuple of (decoded_ok, decoded_value). ``decoded_value`` is None when
        decoding failed.
    """
    if not isinstance(value, str):
        return False, None
    try:
        return True, json.loads(value, parse_constant=_reject_constant)
    except ValueError:
        return False, None


def is_json(value: Any) -> bool:
    """Return True if ``value`` is a string holding syntactically valid JSON."""
    ok, _ = decode_json(value)
    return ok


def _json_default(obj: Any) -> Any:
    if isinstance(obj, SimpleNamespace):
        return vars(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode_json(value: Any, ensure_ascii: bool = True) -> str:
    """
    Serialize ``value`` to compact JSON.

    Namespace objects are encoded as JSON objects, sets as arrays and
    dates in ISO 8601 form.

    Raises:
        TypeError: If ``value`` contains something that cannot be encoded
        ValueError: If ``value`` contains a circular reference
    """
    return json.dumps(
        value,
        default=_json_default,
        ensure_ascii=ensure_ascii,
        separators=(",", ":"),
    )


# -----------------------------------------------------------------------------
# Numeric helpers
# -----------------------------------------------------------------------------
def is_numeric(value: Any) -> bool:
    """
    Return True for numbers and numeric-looking strings.

    Booleans are not numeric. Strings may carry surrounding whitespace, a
    sign, a decimal part and an exponent (``" 1.5e3 "``).
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return _NUMERIC_PATTERN.match(value) is not None
    return False


def to_int(value: Union[int, float, str]) -> Optional[int]:
    """
    Coerce a numeric value to int, truncating toward zero.

    Returns None for non-finite values.
    """
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER_PATTERN.match(value):
        return int(value.strip())
    number = float(value)
    if not math.isfinite(number):
        return None
    return int(number)


def to_float(value: Union[int, float, str]) -> float:
    return float(value.strip() if isinstance(value, str) else value)


def to_text(value: Any) -> str:
    """String form of ``value``; ``None`` becomes the empty string."""
    if value is None:
        return ""
    return str(value)


# -----------------------------------------------------------------------------
# Record precondition
# -----------------------------------------------------------------------------
def is_sequence_of_records(data: Any) -> bool:
    """
    Return True if ``data`` is an ordered sequence whose items are all mappings.

    Strings and bytes are not sequences of records. An empty sequence is
    accepted.
    """
    if isinstance(data, (str, bytes, bytearray)) or not isinstance(data, Sequence):
        return False
    return all(isinstance(item, Mapping) for item in data)


# -----------------------------------------------------------------------------
# Markup helpers
# -----------------------------------------------------------------------------
def parse_allowed_tags(allowed_tags: Union[str, Iterable[str], None]) -> List[str]:
    """
    Normalize an allowed-tag specification to a list of lowercase tag names.

    Accepts either a string of tags (``"<p><a>"``) or an iterable of names
    with or without angle brackets (``["p", "<a>"]``).
    """
    if allowed_tags is None:
        return []
    if isinstance(allowed_tags, str):
        return [name.lower() for name in _TAG_NAME_PATTERN.findall(allowed_tags)]
    names = []
    for tag in allowed_tags:
        if not isinstance(tag, str):
            raise TypeError(f"Allowed tag names must be strings, got {type(tag).__name__}")
        name = tag.strip().strip("<>/").strip().lower()
        if name:
            names.append(name)
    return names


# -----------------------------------------------------------------------------
# Date formats
# -----------------------------------------------------------------------------
# Format strings use single-letter date tokens (e.g. "Y-m-d H:i:s"). A format that
# contains "%" is taken as a strftime/strptime format instead.

_DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
_MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_STRPTIME_TOKENS: Dict[str, str] = {
    "d": "%d",
    "j": "%d",
    "D": "%a",
    "l": "%A",
    "N": "%u",
    "w": "%w",
    "m": "%m",
    "n": "%m",
    "M": "%b",
    "F": "%B",
    "Y": "%Y",
    "y": "%y",
    "H": "%H",
    "G": "%H",
    "h": "%I",
    "g": "%I",
    "i": "%M",
    "s": "%S",
    "A": "%p",
    "a": "%p",
    "u": "%f",
    "O": "%z",
    "P": "%z",
    "T": "%Z",
    "e": "%Z",
    # Reset markers carry no field.
    "!": "",
    "|": "",
}


def _is_strftime(fmt: str) -> bool:
    return "%" in fmt


def _tokens_to_strptime(fmt: str) -> str:
    parts = []
    escaped = False
    for char in fmt:
        if escaped:
            parts.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        else:
            parts.append(_STRPTIME_TOKENS.get(char, char))
    return "".join(parts)


def _utc_offset(dt: datetime, colon: bool) -> str:
    offset = dt.utcoffset()
    if offset is None:
        return "+00:00" if colon else "+0000"
    minutes = int(offset.total_seconds() // 60)
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}" if colon else f"{sign}{hours:02d}{minutes:02d}"


def _ordinal_suffix(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def _format_token(dt: datetime, token: str) -> Optional[str]:
    hour12 = dt.hour % 12 or 12
    if token == "d":
        return f"{dt.day:02d}"
    if token == "j":
        return str(dt.day)
    if token == "D":
        return _DAY_NAMES[dt.weekday()][:3]
    if token == "l":
        return _DAY_NAMES[dt.weekday()]
    if token == "N":
        return str(dt.isoweekday())
    if token == "w":
        return str(dt.isoweekday() % 7)
    if token == "z":
        return str(dt.timetuple().tm_yday - 1)
    if token == "S":
        return _ordinal_suffix(dt.day)
    if token == "m":
        return f"{dt.month:02d}"
    if token == "n":
        return str(dt.month)
    if token == "M":
        return _MONTH_NAMES[dt.month - 1][:3]
    if token == "F":
        return _MONTH_NAMES[dt.month - 1]
    if token == "Y":
        return str(dt.year)
    if token == "y":
        return f"{dt.year % 100:02d}"
    if token == "H":
        return f"{dt.hour:02d}"
    if token == "G":
        return str(dt.hour)
    if token == "h":
        return f"{hour12:02d}"
    if token == "g":
        return str(hour12)
    if token == "i":
        return f"{dt.minute:02d}"
    if token == "s":
        return f"{dt.second:02d}"
    if token == "u":
        return f"{dt.microsecond:06d}"
    if token == "v":
        return f"{dt.microsecond // 1000:03d}"
    if token == "A":
        return "AM" if dt.hour < 12 else "PM"
    if token == "a":
        return "am" if dt.hour < 12 else "pm"
    if token == "P":
        return _utc_offset(dt, colon=True)
    if token == "O":
        return _utc_offset(dt, colon=False)
    if token in ("T", "e"):
        return dt.tzname() or "UTC"
    if token == "U":
        return str(int(dt.timestamp()))
    if token == "c":
        return dt.strftime("%Y-%m-%dT%H:%M:%S") + _utc_offset(dt, colon=True)
    return None


def parse_date(value: str, fmt: str) -> Optional[datetime]:
    """
    Parse ``value`` with a date-token or strptime format.

    Returns:
        The parsed datetime, or None if ``value`` does not match ``fmt``
    """
    pattern = fmt if _is_strftime(fmt) else _tokens_to_strptime(fmt)
    try:
        return datetime.strptime(value, pattern)
    except ValueError:
        return None


def format_date(value: Union[datetime, date], fmt: str) -> str:
    """
    Format a date or datetime with a date-token or strftime format.

    Examples:
        >>> format_date(datetime(2024, 3, 5, 14, 7), "d/m/Y H:i")
        '05/03/2024 14:07'
        >>> format_date(datetime(2024, 3, 5), "%Y.%m.%d")
        '2024.03.05'
    """
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if _is_strftime(fmt):
        return value.strftime(fmt)

    parts = []
    escaped = False
    for char in fmt:
        if escaped:
            parts.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        else:
            formatted = _format_token(value, char)
            parts.append(char if formatted is None else formatted)
    return "".join(parts)
