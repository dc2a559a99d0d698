"""Column metadata: internal-to-display names and lookup detection per list."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import GraphClientError, SessionExpiredError
from .graph_client import GraphClient
from .models import LOOKUP_ID_SUFFIX, ColumnDefinition, FieldMapping

LOGGER = logging.getLogger(__name__)

LOOKUP_COLUMN_TYPES = {"person", "user", "lookup", "personorgroup"}


def lookup_base_name(internal_name: str) -> Optional[str]:
    """Return ``field_2`` for ``field_2LookupId``; ``None`` for other names."""
    stripped = internal_name.strip()
    if stripped.endswith(LOOKUP_ID_SUFFIX) and len(stripped) > len(LOOKUP_ID_SUFFIX):
        return stripped[: -len(LOOKUP_ID_SUFFIX)].strip()
    return None


def is_lookup_column(column: ColumnDefinition) -> bool:
    """Return whether a column references a person or another list's item."""
    declared = (column.type or "").lower()
    if declared in LOOKUP_COLUMN_TYPES:
        return True
    if column.lookup is not None or column.person_or_group is not None:
        return True
    return bool(column.key and lookup_base_name(column.key))


def build_field_mapping(list_name: str, columns: Iterable[ColumnDefinition]) -> FieldMapping:
    """Build the mapping for ``list_name`` from its column definitions."""
    mapping: Dict[str, str] = {}
    lookup_fields: List[str] = []

    for column in columns:
        internal_name = column.key
        display_name = column.label
        if not internal_name or not display_name:
            continue

        mapping[internal_name] = display_name
        base_name = lookup_base_name(internal_name)
        if base_name:
            mapping.setdefault(base_name, display_name)

        if is_lookup_column(column):
            base = base_name or internal_name
            if base not in lookup_fields:
                lookup_fields.append(base)

    return FieldMapping(list_name=list_name, mapping=mapping, lookup_fields=lookup_fields)


class FieldMapper:
    """Fetch and cache the column mapping of each list for the session."""

    def __init__(self, client: GraphClient, logger: Optional[logging.Logger] = None) -> None:
        self.client = client
        self.logger = logger or LOGGER

    def get_field_mapping(self, list_name: str) -> FieldMapping:
        """Return the mapping for ``list_name``.

        A failed fetch caches and returns an empty mapping so callers keep
        working with internal names. Session expiry is re-raised.
        """
        cached = self.client.context.field_mappings.get(list_name)
        if cached is not None:
            return cached

        try:
            columns = self._fetch_columns(list_name)
        except SessionExpiredError:
            raise
        except GraphClientError as exc:
            self.logger.warning("Could not load columns for %s: %s", list_name, exc)
            mapping = FieldMapping(list_name=list_name)
        else:
            mapping = build_field_mapping(list_name, columns)
            self.logger.debug(
                "Mapped %s columns for %s (lookups: %s)",
                len(mapping.mapping),
                list_name,
                ", ".join(mapping.lookup_fields) or "none",
            )

        self.client.context.cache_field_mapping(mapping)
        return mapping

    def _fetch_columns(self, list_name: str) -> List[ColumnDefinition]:
        raw_columns: List[Dict[str, Any]] = self.client.get_paginated(
            f"{self.client.list_path(list_name)}/columns"
        )
        return [ColumnDefinition.model_validate(raw) for raw in raw_columns]
