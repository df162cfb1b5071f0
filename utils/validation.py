import re
from datetime import datetime, timezone

from utils.errors import BadRequest

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
IPV4_RE = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)

DATE_FORMATS = ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M", "%d/%m/%Y", "%m/%d/%Y")


def is_valid_email(value):
    return bool(value) and bool(EMAIL_RE.match(value))


def is_valid_ipv4(value):
    return bool(value) and bool(IPV4_RE.match(value))


def missing_fields(data, fields):
    return [f for f in fields if not str(data.get(f) or "").strip()]


def require_fields(data, fields, message=None):
    missing = missing_fields(data, fields)
    if missing:
        raise BadRequest(message or "Missing required fields", details=missing)


def parse_date(value):
    """Parse ISO dates (with or without time / trailing Z) and a few spreadsheet formats."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1]
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def number_field(data, field, cast=int, minimum=0):
    """Numeric request field; None when absent or blank."""
    value = data.get(field)
    if value is None or value == "":
        return None
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise BadRequest(f"{field} must be a number")
    if number < minimum:
        raise BadRequest(f"{field} must be at least {minimum}")
    return number
