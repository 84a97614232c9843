import re
from typing import Any, Optional
from urllib.parse import urlparse

# Matches anything that looks like an HTML tag: <b>, </script>, <img src=x>
_TAG_RE = re.compile(r"<[^>]*>")

# ASCII control characters (tab and newline included)
_CONTROL_RE = re.compile(r"[\x00-\x1f]")

# Schemes accepted for absolute URLs; anything else (javascript:, data:, ...) is dropped
_ALLOWED_SCHEMES = {"http", "https"}


def strip_markup(value: Any) -> Any:
    """Remove tag-like substrings and control characters from a string.

    Non-string values are returned unchanged so numeric fields can pass
    through the same helper.
    """
    if not isinstance(value, str):
        return value
    return _CONTROL_RE.sub("", _TAG_RE.sub("", value))


def sanitize_param(value: Any) -> Optional[str]:
    """Clean a free-form query parameter: trimmed, tag-free, lowercased.

    Returns ``None`` for anything that is not a non-empty string.
    """
    if not isinstance(value, str):
        return None
    cleaned = strip_markup(value.strip()).strip().lower()
    return cleaned or None


def safe_url(value: Any) -> str:
    """Return *value* when it is a site-relative path or an absolute http(s) URL.

    Everything else, including malformed URLs, non-strings and disallowed
    schemes, becomes an empty string.
    """
    if not isinstance(value, str):
        return ""
    candidate = value.strip()
    if not candidate:
        return ""
    if candidate.startswith("/"):
        return candidate
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return ""
    if parsed.scheme.lower() not in _ALLOWED_SCHEMES or not parsed.netloc:
        return ""
    return candidate
