"""Search, filter and sort helpers for presenting record lists."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .assignment import ACCESS_CARDS_BINDING, ASSETS_BINDING, AssignmentState, assignment_state
from .models import Record

ALL_CATEGORIES = "All"
CATEGORY_FIELDS = ("field_0", "Device Type")
MISSING_VALUE = "-"

OBJECT_TEXT_KEYS = ("Title", "displayName", "name", "LookupValue", "email")
SEARCH_TEXT_KEYS = ("Title", "displayName", "name", "LookupValue")

CATEGORY_PLURALS = {
    "Laptop": "Laptops",
    "Mobile": "Mobiles",
    "Monitor": "Monitors",
    "Watch": "Watches",
    "Tv": "TVs",
    "Tablet": "Tablets",
    "Chest Strap": "Chest Straps",
    "Band": "Bands",
    "Fitness Equipment": "Fitness Equipment",
}

SORT_FIELDS = {
    ASSETS_BINDING.list_name: ("AssetID", ASSETS_BINDING),
    ACCESS_CARDS_BINDING.list_name: ("AccessCardNo", ACCESS_CARDS_BINDING),
}

_NATURAL_CHUNKS = re.compile(r"(\d+)")


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _object_text(value: Dict[str, Any]) -> Optional[str]:
    for key in OBJECT_TEXT_KEYS:
        if value.get(key):
            return str(value[key])
    rendered = json.dumps(value, default=str)
    return rendered if rendered not in ("{}", "null") else None


def _render(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    if isinstance(value, dict):
        return _object_text(value)
    text = str(value).strip()
    if text in ("", "null", "undefined", "None"):
        return None
    return text


def get_field_value(record: Record, field_names: Sequence[str]) -> str:
    """Return the first readable value among ``field_names``, or ``-``.

    Exact keys are tried first, then case-insensitive ones, then any key
    partially matching a name, skipping ID columns.
    """
    lowered_keys = {key.lower(): key for key in record}
    for name in field_names:
        value = record.get(name)
        if _is_blank(value) and name.lower() in lowered_keys:
            value = record[lowered_keys[name.lower()]]
        rendered = _render(value)
        if rendered is not None:
            return rendered

    for name in field_names:
        term = name.lower()
        for key in record:
            key_lower = key.lower()
            if key_lower.endswith("id") or key_lower.endswith("lookupid"):
                continue
            if term in key_lower or key_lower in term:
                rendered = _render(record[key])
                if rendered is not None:
                    return rendered
                break
    return MISSING_VALUE


def matches_search(record: Record, query: str) -> bool:
    """Return whether any non-metadata value contains ``query`` (case-insensitive)."""
    term = query.strip().lower()
    if not term:
        return True

    for key, value in record.items():
        if key == "Id" or key.startswith("_") or key == "__metadata" or value is None:
            continue
        if isinstance(value, dict):
            searchable = next(
                (str(value[k]) for k in SEARCH_TEXT_KEYS if value.get(k)),
                json.dumps(value, default=str),
            )
        elif isinstance(value, list):
            searchable = " ".join(str(item) for item in value)
        else:
            searchable = str(value)
        if term in searchable.lower():
            return True
    return False


def record_category(record: Record) -> str:
    for field in CATEGORY_FIELDS:
        if record.get(field):
            return str(record[field]).strip()
    return ""


def category_counts(records: Sequence[Record]) -> Dict[str, int]:
    """Count records per device category, with the total under ``All``."""
    counts: Dict[str, int] = {ALL_CATEGORIES: len(records)}
    for record in records:
        category = record_category(record) or "Other"
        counts[category] = counts.get(category, 0) + 1
    return counts


def filter_by_category(records: Sequence[Record], category: str) -> List[Record]:
    if category == ALL_CATEGORIES:
        return list(records)
    return [record for record in records if record_category(record) == category]


def filter_records(
    records: Sequence[Record], query: str = "", category: str = ALL_CATEGORIES
) -> List[Record]:
    return filter_by_category(
        [record for record in records if matches_search(record, query)], category
    )


def format_category_name(category: str) -> str:
    if category == ALL_CATEGORIES:
        return category
    formatted = " ".join(word[:1].upper() + word[1:] for word in category.lower().split(" "))
    return CATEGORY_PLURALS.get(formatted, formatted)


def _natural_key(text: str) -> Tuple[Any, ...]:
    return tuple(
        (0, int(chunk), "") if chunk.isdigit() else (1, 0, chunk.lower())
        for chunk in _NATURAL_CHUNKS.split(text)
        if chunk
    )


def _sort_key(record: Record, field: str) -> Tuple[Any, ...]:
    value = get_field_value(record, [field])
    try:
        return (0, int(value), ())
    except ValueError:
        return (1, 0, _natural_key(value))


def sort_records(records: Sequence[Record], list_name: str) -> List[Record]:
    """Put assigned items first, then order by asset ID or card number."""
    if list_name not in SORT_FIELDS:
        return list(records)
    field, binding = SORT_FIELDS[list_name]
    return sorted(
        records,
        key=lambda record: (
            assignment_state(record, binding) is AssignmentState.AVAILABLE,
            _sort_key(record, field),
        ),
    )
