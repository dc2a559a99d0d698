"""Collapse duplicate internal/display keys on SharePoint records."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .field_mapper import lookup_base_name
from .models import LOOKUP_ID_SUFFIX, FieldMapping, Record

LOGGER = logging.getLogger(__name__)


def canonical_value(value: Any) -> str:
    """Serialize ``value`` so equal payloads compare equal regardless of key order."""
    return json.dumps(value, sort_keys=True, default=str)


class RecordNormalizer:
    """Merge display-name duplicates of internal fields into the internal key.

    The internal name is canonical. A display key is only dropped when it
    holds the same serialized value as its internal counterpart; when they
    differ both keys stay on the record and the pair is reported by
    ``conflicts``. No key absent from the source payload is ever added.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or LOGGER

    def normalize(self, record: Record, mapping: FieldMapping) -> Record:
        """Return a copy of ``record`` with agreeing duplicates collapsed."""
        conflicts = self.conflicts(record, mapping)
        normalized = dict(record)
        for _, display_key in self._duplicate_pairs(record, mapping):
            if display_key not in conflicts["display"]:
                normalized.pop(display_key, None)
        if conflicts["internal"]:
            self.logger.debug("Record %s keeps conflicting keys: %s", record.get("Id"), conflicts)
        return normalized

    def conflicts(self, record: Record, mapping: FieldMapping) -> Dict[str, Dict[str, Any]]:
        """Return disagreeing pairs as ``{"internal": {...}, "display": {...}}``.

        Both keys of a pair survive ``normalize``, so this works on raw and
        normalized records alike (before lookup resolution writes display
        fields).
        """
        internal: Dict[str, Any] = {}
        display: Dict[str, Any] = {}
        for internal_key, display_key in self._duplicate_pairs(record, mapping):
            if canonical_value(record[internal_key]) != canonical_value(record[display_key]):
                internal[internal_key] = record[internal_key]
                display[display_key] = record[display_key]
        return {"internal": internal, "display": display}

    def normalize_all(self, records: List[Record], mapping: FieldMapping) -> List[Record]:
        return [self.normalize(record, mapping) for record in records]

    def _duplicate_pairs(
        self, record: Record, mapping: FieldMapping
    ) -> Iterator[Tuple[str, str]]:
        for key in list(record):
            for display_key in self._display_keys(key, mapping):
                if display_key in record:
                    yield key, display_key

    def _display_keys(self, key: str, mapping: FieldMapping) -> List[str]:
        base = lookup_base_name(key)
        if base is None:
            candidates = [mapping.mapping.get(key)]
        else:
            display_base = mapping.mapping.get(base)
            if display_base is None:
                return []
            candidates = [
                f"{display_base}{LOOKUP_ID_SUFFIX}",
                f"{display_base} {LOOKUP_ID_SUFFIX}",
            ]
        return [candidate for candidate in candidates if candidate and candidate != key]
