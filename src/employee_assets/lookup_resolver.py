"""Resolve ``<Field>LookupId`` foreign keys on records into readable identities."""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from .exceptions import GraphClientError, GraphNotFoundError, SessionExpiredError
from .field_mapper import lookup_base_name
from .graph_client import GraphClient
from .models import FieldMapping, Record, ResolvedIdentity
from .name_extraction import (
    employee_name,
    extract_item_name,
    first_present,
    is_badge_code,
    object_email,
    object_identifier,
    object_name,
)

LOGGER = logging.getLogger(__name__)

GUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
LIST_ITEM_ID_PATTERN = re.compile(r"^\d+$")
PLACEHOLDER_TEMPLATE = "[ID: {}]"

# Audit columns every list carries; they point at the User Information List.
SYSTEM_LOOKUP_FIELDS = frozenset({"Author", "Editor", "AppAuthor", "AppEditor"})

EMAIL_KEYS = ("Email", "EMail", "Mail", "email", "mail", "userPrincipalName", "UserPrincipalName")
UPN_KEYS = ("userPrincipalName", "UserPrincipalName")
EMPLOYEE_ID_KEYS = ("EmpID", "EmpId")
USER_SELECT = "id,displayName,mail,userPrincipalName,jobTitle"


def is_guid(raw_id: Any) -> bool:
    return bool(GUID_PATTERN.match(str(raw_id)))


def parse_list_item_id(raw_id: Any) -> Optional[int]:
    """Return ``raw_id`` as a positive list item ID, or ``None``.

    Only all-digit values qualify, so a GUID that happens to start with
    digits is never mistaken for an item ID.
    """
    if isinstance(raw_id, bool):
        return None
    if isinstance(raw_id, int):
        return raw_id if raw_id > 0 else None
    text = str(raw_id).strip()
    if not LIST_ITEM_ID_PATTERN.match(text):
        return None
    value = int(text)
    return value if value > 0 else None


def placeholder(raw_id: Any) -> str:
    return PLACEHOLDER_TEMPLATE.format(raw_id)


def find_cached_employee(
    employees: Optional[Sequence[Dict[str, Any]]], raw_id: Any
) -> Optional[Dict[str, Any]]:
    """Find the cached employee a raw lookup value refers to.

    Tries, in order: GUID match on ``Id``; integer match on ``Id``; ``EmpID``;
    email / UPN; UPN prefix before ``@``.
    """
    if not employees:
        return None
    lookup = str(raw_id)
    lowered = lookup.lower()

    if is_guid(lookup):
        for employee in employees:
            if str(employee.get("Id") or "").lower() == lowered:
                return employee

    item_id = parse_list_item_id(raw_id)
    if item_id is not None:
        for employee in employees:
            if parse_list_item_id(employee.get("Id")) == item_id:
                return employee
        for employee in employees:
            emp_id = str(first_present(employee, EMPLOYEE_ID_KEYS) or "")
            if emp_id in (lookup, str(item_id)):
                return employee

    if "@" in lookup:
        for employee in employees:
            email = str(first_present(employee, EMAIL_KEYS) or "")
            if email.lower() == lowered:
                return employee
        prefix = lookup.split("@")[0]
        for employee in employees:
            upn = str(first_present(employee, UPN_KEYS) or "")
            if upn and upn.split("@")[0] == prefix:
                return employee

    return None


@dataclass
class LookupReference:
    """One ``<Field>LookupId`` value on one record."""

    record: Record
    raw_key: str
    raw_id: str
    base_name: str
    display_field: str


class LookupResolver:
    """Fill the display field of every lookup on a batch of records.

    Strategies, first success wins: a verified expanded sibling object; the
    directory for GUIDs; the Employees then Access Cards list for item IDs;
    the in-memory employee cache. Anything left gets ``[ID: <raw>]``.
    """

    def __init__(
        self,
        client: GraphClient,
        employees_list: str = "Employees",
        access_cards_list: str = "Access Cards",
        max_workers: int = 8,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client
        self.employees_list = employees_list
        self.access_cards_list = access_cards_list
        self.max_workers = max(1, max_workers)
        self.logger = logger or LOGGER

    def resolve_records(
        self,
        records: List[Record],
        mapping: FieldMapping,
        cached_employees: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> List[Record]:
        """Resolve lookups on ``records`` in place and return them."""
        references: List[LookupReference] = []
        for record in records:
            references.extend(self.collect_references(record, mapping))
        if not references:
            return records

        resolved: Dict[int, ResolvedIdentity] = {}
        pending: Set[str] = set()
        for index, reference in enumerate(references):
            identity = self._from_expanded(reference, cached_employees)
            if identity is None:
                identity = self.client.context.cached_identity(reference.raw_id)
            if identity is None:
                pending.add(reference.raw_id)
            else:
                resolved[index] = identity

        identities = self.resolve_ids(pending, cached_employees)

        for index, reference in enumerate(references):
            identity = resolved.get(index) or identities.get(reference.raw_id)
            self._apply(reference, identity)
        return records

    def collect_references(self, record: Record, mapping: FieldMapping) -> List[LookupReference]:
        """Return the lookup references on ``record``, one per display field.

        Columns the mapping declares as lookups win, then other mapped
        internal keys (``field_2LookupId``), then display aliases
        (``AssigneeLookupId``) when several share a display field.
        """
        keys = sorted(record, key=lambda key: self._key_rank(key, mapping))
        claimed: Set[str] = set()
        references: List[LookupReference] = []

        for key in keys:
            base = lookup_base_name(key)
            if base is None or base in SYSTEM_LOOKUP_FIELDS:
                continue
            value = record[key]
            if value is None or value == "" or isinstance(value, (list, dict)):
                continue
            display_field = mapping.display_name(base)
            if display_field in claimed:
                continue
            claimed.add(display_field)
            references.append(
                LookupReference(
                    record=record,
                    raw_key=key,
                    raw_id=str(value),
                    base_name=base,
                    display_field=display_field,
                )
            )
        return references

    @staticmethod
    def _key_rank(key: str, mapping: FieldMapping) -> int:
        base = lookup_base_name(key)
        if base is None:
            return 2
        if mapping.is_lookup(base):
            return 0
        return 1 if base in mapping.mapping else 2

    def resolve_ids(
        self,
        raw_ids: Iterable[str],
        cached_employees: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> Dict[str, ResolvedIdentity]:
        """Resolve distinct raw IDs concurrently and wait for all of them.

        A failure for one ID is logged and leaves it unresolved; session
        expiry is re-raised once every in-flight lookup has finished.
        """
        ids = sorted(set(raw_ids))
        if not ids:
            return {}

        list_paths = self._prepare_list_paths(ids)
        results: Dict[str, ResolvedIdentity] = {}
        expired: Optional[SessionExpiredError] = None

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(ids))) as executor:
            future_map = {
                executor.submit(self.resolve_identity, raw_id, cached_employees, list_paths): raw_id
                for raw_id in ids
            }
            for future in as_completed(future_map):
                raw_id = future_map[future]
                try:
                    identity = future.result()
                except SessionExpiredError as exc:
                    expired = exc
                    continue
                except GraphClientError as exc:
                    self.logger.warning("Could not resolve lookup %s: %s", raw_id, exc)
                    continue
                if identity is None:
                    self.logger.debug("No identity found for lookup %s", raw_id)
                    continue
                results[raw_id] = identity
                self.client.context.cache_identity(raw_id, identity)

        if expired is not None:
            raise expired
        return results

    def resolve_identity(
        self,
        raw_id: str,
        cached_employees: Optional[Sequence[Dict[str, Any]]] = None,
        list_paths: Optional[Dict[str, Optional[str]]] = None,
    ) -> Optional[ResolvedIdentity]:
        """Resolve a single raw lookup value; ``None`` when nothing matches."""
        if is_guid(raw_id):
            return self._resolve_guid(raw_id, cached_employees)

        item_id = parse_list_item_id(raw_id)
        if item_id is not None:
            if list_paths is None:
                list_paths = self._prepare_list_paths([raw_id])
            return self._resolve_list_item(raw_id, item_id, cached_employees, list_paths)

        if "@" in raw_id:
            return self._from_cache(raw_id, cached_employees)
        return None

    def _resolve_guid(
        self, raw_id: str, cached_employees: Optional[Sequence[Dict[str, Any]]]
    ) -> Optional[ResolvedIdentity]:
        identity = self._from_cache(raw_id, cached_employees)
        if identity is not None:
            return identity

        try:
            user = self.client.get(f"users/{raw_id}", params={"$select": USER_SELECT})
        except GraphNotFoundError:
            return None
        if not user.get("displayName"):
            return None
        return ResolvedIdentity(
            id=str(user.get("id") or raw_id),
            display_name=user["displayName"],
            email=user.get("mail") or user.get("userPrincipalName"),
            job_title=user.get("jobTitle"),
            source="directory",
        )

    def _resolve_list_item(
        self,
        raw_id: str,
        item_id: int,
        cached_employees: Optional[Sequence[Dict[str, Any]]],
        list_paths: Dict[str, Optional[str]],
    ) -> Optional[ResolvedIdentity]:
        source = "employees-list"
        item = self._fetch_item(list_paths.get(self.employees_list), item_id)

        if item is None:
            source = "access-cards-list"
            item = self._fetch_item(list_paths.get(self.access_cards_list), item_id)
            card_holder = self._card_holder_name(item)
            if card_holder:
                return ResolvedIdentity(id=raw_id, display_name=card_holder, source=source)

        if item is not None:
            fields = item.get("fields") or {}
            name = extract_item_name(item) or self._person_field_name(fields, cached_employees)
            if name:
                return ResolvedIdentity(
                    id=raw_id,
                    display_name=name,
                    email=first_present(fields, EMAIL_KEYS),
                    job_title=fields.get("JobTitle"),
                    source=source,
                )

        return self._from_cache(raw_id, cached_employees)

    def _fetch_item(self, list_path: Optional[str], item_id: int) -> Optional[Dict[str, Any]]:
        if not list_path:
            return None
        try:
            return self.client.get(f"{list_path}/items/{item_id}", params={"$expand": "fields"})
        except SessionExpiredError:
            raise
        except GraphClientError as exc:
            self.logger.debug("Item %s not readable at %s: %s", item_id, list_path, exc)
            return None

    def _card_holder_name(self, item: Optional[Dict[str, Any]]) -> Optional[str]:
        if not item:
            return None
        fields = item.get("fields") or {}
        holder = fields.get("Employee")
        if not fields.get("AccessCardNo") or not holder:
            return None
        if isinstance(holder, dict):
            return holder.get("displayName") or None
        if isinstance(holder, str) and not is_badge_code(holder):
            return holder
        return None

    def _person_field_name(
        self, fields: Dict[str, Any], cached_employees: Optional[Sequence[Dict[str, Any]]]
    ) -> Optional[str]:
        if not cached_employees:
            return None
        for value in fields.values():
            if not isinstance(value, dict):
                continue
            person_id = first_present(value, ("id", "Id", "email", "mail"))
            if person_id:
                match = find_cached_employee(cached_employees, person_id)
                name = employee_name(match) if match else None
                if name:
                    return name
            display_name = first_present(value, ("displayName", "DisplayName"))
            if display_name:
                return str(display_name)
        return None

    def _from_cache(
        self, raw_id: str, cached_employees: Optional[Sequence[Dict[str, Any]]]
    ) -> Optional[ResolvedIdentity]:
        match = find_cached_employee(cached_employees, raw_id)
        if match is None:
            return None
        name = employee_name(match)
        if not name:
            return None
        return ResolvedIdentity(
            id=str(match.get("Id") or raw_id),
            display_name=name,
            email=first_present(match, EMAIL_KEYS),
            job_title=match.get("jobTitle"),
            source="employee-cache",
        )

    def _from_expanded(
        self,
        reference: LookupReference,
        cached_employees: Optional[Sequence[Dict[str, Any]]],
    ) -> Optional[ResolvedIdentity]:
        record = reference.record
        expanded = next(
            (
                record.get(key)
                for key in (reference.base_name, reference.display_field)
                if isinstance(record.get(key), dict)
            ),
            None,
        )
        if expanded is None or not self._expanded_matches(expanded, reference.raw_id, cached_employees):
            return None

        name = object_name(expanded)
        if not name or is_badge_code(name):
            return None
        return ResolvedIdentity(
            id=reference.raw_id,
            display_name=name,
            email=object_email(expanded),
            job_title=expanded.get("jobTitle"),
            source="expanded",
        )

    def _expanded_matches(
        self,
        expanded: Dict[str, Any],
        raw_id: str,
        cached_employees: Optional[Sequence[Dict[str, Any]]],
    ) -> bool:
        lookup = raw_id.lower()
        object_id = object_identifier(expanded)
        email = object_email(expanded)
        if object_id is None and email is None:
            return True
        if object_id is not None and object_id.lower() == lookup:
            return True
        if email is not None and email.lower() == lookup:
            return True

        match = find_cached_employee(cached_employees, raw_id)
        if match is None:
            return False
        expanded_name = first_present(expanded, ("displayName", "DisplayName", "Title", "title"))
        cached_name = employee_name(match)
        if expanded_name and cached_name and str(expanded_name).lower() == cached_name.lower():
            return True
        cached_email = first_present(match, ("Email", "Mail", "email", "mail"))
        return bool(email and cached_email and email.lower() == str(cached_email).lower())

    def _prepare_list_paths(self, raw_ids: Sequence[str]) -> Dict[str, Optional[str]]:
        """Resolve list paths once, before fanning out, for batches with item IDs."""
        if not any(parse_list_item_id(raw_id) is not None for raw_id in raw_ids):
            return {}
        paths: Dict[str, Optional[str]] = {}
        for list_name in (self.employees_list, self.access_cards_list):
            try:
                paths[list_name] = self.client.list_path(list_name)
            except SessionExpiredError:
                raise
            except GraphClientError as exc:
                self.logger.info("%s list not available for lookup resolution: %s", list_name, exc)
                paths[list_name] = None
        return paths

    def _apply(self, reference: LookupReference, identity: Optional[ResolvedIdentity]) -> None:
        record = reference.record
        if identity is None:
            record[reference.display_field] = placeholder(reference.raw_id)
            return
        record[reference.display_field] = identity.display_name
        record[f"{reference.display_field}Name"] = identity.display_name
