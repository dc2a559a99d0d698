"""Tests for the person-name heuristics."""

from __future__ import annotations

import pytest

from employee_assets.name_extraction import (
    SKIP_VALUES,
    employee_name,
    extract_employee_name,
    is_badge_code,
    object_email,
    object_identifier,
    object_name,
    skip_reason,
)


@pytest.mark.parametrize("value", ["HPH 0042", "HPH0042", "HPH 7"])
def test_badge_codes(value: str) -> None:
    assert is_badge_code(value)


def test_badge_code_must_lead() -> None:
    assert not is_badge_code("Card HPH 0042")


@pytest.mark.parametrize(
    ("field_name", "value", "reason"),
    [
        ("Notes", 42, "not a non-empty string"),
        ("Notes", "   ", "not a non-empty string"),
        ("Notes", "HPH 0042", "badge code"),
        ("Notes", "E1001", "employee id value"),
        ("Emp_ID", "Someone Else", "employee id field"),
        ("Status", "Assigned", "reserved value"),
        ("CardStatus", "Deactivated", "non-name field"),
        ("EmployeeLookupId", "Someone Else", "non-name field"),
        ("Notes", "12345", "numeric or too short"),
        ("Notes", "Al", "numeric or too short"),
        ("Notes", "2024-01-31", "date"),
        ("Notes", "Ann", "not name-shaped"),
        ("Notes", "R2-D2 unit", "not name-shaped"),
    ],
)
def test_skip_reason_table(field_name: str, value, reason: str) -> None:
    assert skip_reason(field_name, value, employee_id="E1001") == reason


@pytest.mark.parametrize("value", ["Jonathan", "Mary Ann Lee", "J. R. Tolkien"])
def test_skip_reason_accepts_names(value: str) -> None:
    assert skip_reason("FullName", value) is None


def test_skip_values_cover_status_words() -> None:
    assert {"Assigned", "Available"} <= SKIP_VALUES


def test_title_wins_when_it_is_a_name() -> None:
    assert extract_employee_name({"Title": "Jane Doe", "Employee": "Other Person"}) == "Jane Doe"


def test_badge_title_falls_through_to_employee() -> None:
    fields = {"Title": "HPH 0042", "Employee": {"displayName": "Raj Patel"}}

    assert extract_employee_name(fields) == "Raj Patel"


def test_employee_id_title_is_skipped_and_fields_scanned() -> None:
    fields = {"Title": "E1001", "EmpID": "E1001", "CardStatus": "Assigned", "FullName": "Maria Garcia"}

    assert extract_employee_name(fields) == "Maria Garcia"


def test_no_name_found() -> None:
    assert extract_employee_name({"Title": "Available", "Count": "12"}) is None


def test_object_helpers_read_expanded_lookups() -> None:
    expanded = {"fields": {"id": "7", "Title": "Jane Doe"}, "mail": "jane@contoso.com"}

    assert object_name(expanded) == "jane@contoso.com"
    assert object_name({"fields": {"Title": "Jane Doe"}}) == "Jane Doe"
    assert object_identifier(expanded) == "7"
    assert object_email(expanded) == "jane@contoso.com"
    assert object_identifier({"LookupValue": "Jane"}) is None


def test_employee_name_prefers_employee_column() -> None:
    assert employee_name({"Employee": "Jane Doe", "Title": "HPH 1"}) == "Jane Doe"
    assert employee_name({"displayName": "Raj Patel"}) == "Raj Patel"
    assert employee_name({"mail": "x@contoso.com"}) is None
