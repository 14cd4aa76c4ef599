"""
Field cleanup for Clay callback columns.

Clay sends most enrichment columns as free text: lists arrive either as JSON
arrays or as one string joined by whatever delimiter the enrichment used,
numbers arrive as "1,200" or "$5000000", and empty cells arrive as
placeholders like "N/A". These helpers turn that into typed values.
"""
import re
from typing import Any, Iterable, Optional

# Cell values Clay (or a spreadsheet step before it) uses for "no data"
PLACEHOLDER_VALUES = frozenset({"", "n/a", "na", "none", "null", "undefined", "-"})

# Main enrichment columns are mostly comma lists
LIST_DELIMITERS = (",", "\n", ";", "|")
# Job descriptions contain commas, so newline is tried first
JOB_DELIMITERS = ("\n", "|", ";", ",")

_NUMERIC_PREFIX = re.compile(r"^[+-]?\d+(?:\.\d+)?")


def clean_text(value: Any) -> Optional[str]:
    """Trim a scalar cell; placeholders and non-scalars become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.lower() in PLACEHOLDER_VALUES:
        return None
    return text


def split_list(value: Any, delimiters: Iterable[str] = LIST_DELIMITERS) -> list[str]:
    """
    Normalise a list-ish cell into a list of non-empty trimmed strings.

    Arrays are cleaned item by item. Strings are split on the first delimiter
    (in priority order) that occurs in them; a string with no delimiter is a
    single item.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = (clean_text(item) for item in value)
        return [item for item in items if item]

    text = clean_text(value)
    if not text:
        return []
    for delimiter in delimiters:
        if delimiter in text:
            parts = (part.strip() for part in text.split(delimiter))
            return [part for part in parts if part and part.lower() not in PLACEHOLDER_VALUES]
    return [text]


def parse_string_array(value: Any) -> list[str]:
    return split_list(value, LIST_DELIMITERS)


def parse_job_array(value: Any) -> list[str]:
    return split_list(value, JOB_DELIMITERS)


def pad_array(items: list[str], length: int) -> list[str]:
    """Right-pad with empty strings so parallel arrays line up."""
    return list(items) + [""] * max(length - len(items), 0)


def _numeric_prefix(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None
    text = value.strip().replace(",", "").replace("$", "").replace(" ", "")
    match = _NUMERIC_PREFIX.match(text)
    if not match:
        return None
    return float(match.group(0))


def parse_int(value: Any) -> int:
    """Lenient integer: '1,200 employees' -> 1200, garbage -> 0."""
    number = _numeric_prefix(value)
    return int(number) if number is not None else 0


def parse_float(value: Any) -> float:
    """Lenient float: '12.5%' -> 12.5, garbage -> 0.0."""
    number = _numeric_prefix(value)
    return number if number is not None else 0.0


def determine_tier(employee_count: int, growth: float = 0.0, revenue: int = 0) -> str:
    """Bucket a company by headcount, 6-month headcount growth and revenue."""
    if (
        employee_count > 2000
        or revenue > 100_000_000
        or ((employee_count > 1000 or revenue > 50_000_000) and growth > 0)
    ):
        return "enterprise"
    if employee_count > 1000 or revenue > 50_000_000 or (employee_count > 500 and growth > 10):
        return "growth"
    if employee_count > 200 or revenue > 10_000_000 or growth > 20:
        return "emerging"
    return "startup"
