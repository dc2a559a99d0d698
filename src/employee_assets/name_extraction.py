"""Heuristics for picking a person's name out of loosely shaped SharePoint data.

These rules are best-effort, not an authoritative parse. They were tuned on
the Employees and Access Cards lists and can misclassify real names (a
single short name, a name containing digits or hyphens). Every skip rule is
a module-level table so it can be tested and reviewed on its own.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional, Sequence

# Badge codes printed on access cards, e.g. "HPH 0042" or "HPH0042".
BADGE_CODE_PATTERN = re.compile(r"^HPH\s?\d+")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")
DIGITS_PATTERN = re.compile(r"^\d+$")
ALPHA_NAME_PATTERN = re.compile(r"^[A-Za-z\s]+$")
DOTTED_NAME_PATTERN = re.compile(r"^[A-Za-z\s.]+$")

EMPLOYEE_ID_FIELDS = ("EmpID", "EmpId", "EmpID0", "field_1")

# Values that show up in string columns but are never names.
SKIP_VALUES = frozenset(
    {"Assigned", "Available", "Item", "ContentType", "Edit", "Attachments"}
)

# A string column is ignored when its lowercased name contains any of these.
SKIP_FIELD_NAME_PARTS = (
    "cardstatus",
    "contenttype",
    "accesscardno",
    "assets",
    "empid",
    "employeeid",
    "lookupid",
    "id",
    "odata",
    "author",
    "editor",
)
EMPLOYEE_ID_FIELD_NAME_PARTS = ("empid", "emp_id")

MIN_VALUE_LENGTH = 3
MIN_ALPHA_NAME_LENGTH = 5
MIN_SPACED_NAME_LENGTH = 8

# Name-bearing properties of an expanded lookup/person object, by preference.
OBJECT_NAME_KEYS = (
    "displayName",
    "DisplayName",
    "LookupValue",
    "title",
    "Title",
    "Employee",
    "EmployeeName",
    "name",
    "Name",
    "userPrincipalName",
    "UserPrincipalName",
    "email",
    "Email",
    "mail",
    "Mail",
)
NESTED_FIELD_NAME_KEYS = ("Employee", "EmployeeName", "Title", "displayName", "DisplayName")
OBJECT_ID_KEYS = ("id", "Id", "ID")
OBJECT_EMAIL_KEYS = ("email", "mail", "Email", "Mail")

# Name-bearing properties of a cached employee record.
EMPLOYEE_NAME_KEYS = ("Employee", "EmployeeName", "Title", "displayName", "DisplayName")


def is_badge_code(value: str) -> bool:
    return bool(BADGE_CODE_PATTERN.match(value))


def first_present(source: Mapping[str, Any], keys: Sequence[str]) -> Any:
    """Return the first truthy ``source[key]`` in ``keys`` order, else ``None``."""
    for key in keys:
        value = source.get(key)
        if value:
            return value
    return None


def looks_like_name(value: str) -> bool:
    """Return whether ``value`` has the shape of a person's name."""
    if ALPHA_NAME_PATTERN.match(value) and len(value) > MIN_ALPHA_NAME_LENGTH:
        return True
    return (
        " " in value
        and len(value) > MIN_SPACED_NAME_LENGTH
        and bool(DOTTED_NAME_PATTERN.match(value))
    )


def skip_reason(field_name: str, value: Any, employee_id: Any = None) -> Optional[str]:
    """Return why a field is not a name candidate, or ``None`` if it is one."""
    if not isinstance(value, str) or not value.strip():
        return "not a non-empty string"
    lowered = field_name.lower()
    if is_badge_code(value):
        return "badge code"
    if value == employee_id:
        return "employee id value"
    if any(part in lowered for part in EMPLOYEE_ID_FIELD_NAME_PARTS):
        return "employee id field"
    if value in SKIP_VALUES:
        return "reserved value"
    if any(part in lowered for part in SKIP_FIELD_NAME_PARTS):
        return "non-name field"
    if DIGITS_PATTERN.match(value) or len(value) < MIN_VALUE_LENGTH:
        return "numeric or too short"
    if ISO_DATE_PATTERN.match(value):
        return "date"
    if not looks_like_name(value):
        return "not name-shaped"
    return None


def extract_employee_name(fields: Mapping[str, Any]) -> Optional[str]:
    """Return the most plausible person name among a list item's fields.

    Tries ``Title`` (unless it is a badge code, the employee ID, or a reserved
    value), then ``Employee`` (string or person object), then scans every
    string field through ``skip_reason``.
    """
    employee_id = first_present(fields, EMPLOYEE_ID_FIELDS)

    title = fields.get("Title")
    if title:
        title_value = str(title)
        if (
            not is_badge_code(title_value)
            and title_value != employee_id
            and title_value not in SKIP_VALUES
            and title_value.strip()
        ):
            return title_value

    employee = fields.get("Employee")
    if employee:
        if isinstance(employee, dict):
            if employee.get("displayName"):
                return str(employee["displayName"])
        elif isinstance(employee, str) and not is_badge_code(employee) and employee != employee_id:
            return employee

    for field_name, value in fields.items():
        if skip_reason(field_name, value, employee_id) is None:
            return value
    return None


def extract_item_name(item: Mapping[str, Any]) -> Optional[str]:
    """Apply ``extract_employee_name`` to the ``fields`` of a Graph list item."""
    return extract_employee_name(item.get("fields") or {})


def object_name(obj: Mapping[str, Any]) -> Optional[str]:
    """Return the display name carried by an expanded lookup or person object."""
    name = first_present(obj, OBJECT_NAME_KEYS)
    if name:
        return str(name)
    nested = obj.get("fields")
    if isinstance(nested, dict):
        name = first_present(nested, NESTED_FIELD_NAME_KEYS)
        if name:
            return str(name)
    return None


def object_identifier(obj: Mapping[str, Any]) -> Optional[str]:
    value = first_present(obj, OBJECT_ID_KEYS)
    if value is None and isinstance(obj.get("fields"), dict):
        value = first_present(obj["fields"], OBJECT_ID_KEYS)
    return str(value) if value is not None else None


def object_email(obj: Mapping[str, Any]) -> Optional[str]:
    value = first_present(obj, OBJECT_EMAIL_KEYS)
    if value is None and isinstance(obj.get("fields"), dict):
        value = first_present(obj["fields"], OBJECT_EMAIL_KEYS)
    return str(value) if value is not None else None


def employee_name(employee: Dict[str, Any]) -> Optional[str]:
    """Return the display name of a cached employee record."""
    name = first_present(employee, EMPLOYEE_NAME_KEYS)
    return str(name) if name else None
