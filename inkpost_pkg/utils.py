"""Small helpers shared across the build pipeline."""

import re
from datetime import datetime, date, timezone
from typing import Any

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DATE_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M:%S', '%Y-%m-%d', '%b %d, %Y']

SLUG_REPLACEMENTS = [
    ('c++', 'cpp'),
    ('.net', 'dotnet'),
    ('+', 'plus'),
    ('#', 'sharp'),
    ('@', 'at'),
    ('&', 'and'),
]


def slugify(text: str) -> str:
    """
    Convert text into a URL-safe slug.

    Common tech symbols are spelled out (``c++`` -> ``cpp``, ``#`` -> ``sharp``),
    Unicode letters and digits are kept, whitespace and hyphen runs collapse
    to a single ``-`` and everything else is dropped.
    """
    normalized = text.lower()
    for symbol, word in SLUG_REPLACEMENTS:
        normalized = normalized.replace(symbol, word)

    out = []
    prev_dash = False
    for ch in normalized:
        if ch.isalnum():
            out.append(ch)
            prev_dash = False
        elif ch == '-' or ch.isspace():
            if not prev_dash:
                out.append('-')
                prev_dash = True
    return ''.join(out).strip('-')


def normalize_term(term: Any) -> str:
    """Grouping key for a taxonomy term: trimmed and lowercased."""
    return str(term).strip().lower()


def parse_date(value: Any) -> datetime:
    """
    Parse a front matter date into a timezone-aware datetime.

    Naive values are taken as UTC. Raises ValueError for anything that is
    not a date, a datetime or a recognised date string.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = _parse_date_string(value.strip())
    else:
        raise ValueError(f"Unsupported date value: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_date_string(text):
    iso_text = text[:-1] + '+00:00' if text.endswith('Z') else text
    try:
        return datetime.fromisoformat(iso_text)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date format: {text!r}")


def to_opaque(value: Any, where: str = 'value') -> Any:
    """
    Restrict a YAML-loaded value to the closed set handed to templates.

    Allowed: str, int, float, bool, None, lists and string-keyed mappings of
    those. Dates become ISO strings, tuples become lists. Mapping order is
    preserved.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_opaque(item, f"{where}[{i}]") for i, item in enumerate(value)]
    if isinstance(value, dict):
        return {str(key): to_opaque(item, f"{where}.{key}") for key, item in value.items()}
    raise ValueError(f"Unsupported value type {type(value).__name__} at {where}")


def format_date(value: datetime, fmt: str = '%Y-%m-%d') -> str:
    return value.strftime(fmt)


def strip_date_prefix(stem: str) -> str:
    """Remove a leading ``YYYY-MM-DD-`` from a file stem."""
    return re.sub(r'^\d{4}-\d{2}-\d{2}-?', '', stem)
