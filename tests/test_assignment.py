"""Tests for the Available/Assigned state machine."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest

from employee_assets.assignment import (
    ACCESS_CARDS_BINDING,
    ASSETS_BINDING,
    AssignmentManager,
    AssignmentState,
    assignment_state,
    binding_for,
)
from employee_assets.exceptions import ResolutionError
from employee_assets.models import DirectoryUser


class FakeUpdater:
    """Records every PATCH the manager would send."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Any, Dict[str, Any]]] = []

    def update_record(self, list_name: str, item_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((list_name, item_id, fields))
        return fields


class FakeUserResolver:
    def __init__(self, known: Dict[str, str]) -> None:
        self.known = known
        self.queries: List[str] = []

    def __call__(self, id_or_email: str) -> Optional[str]:
        self.queries.append(id_or_email)
        return self.known.get(id_or_email)


@pytest.fixture
def jane(employees) -> DirectoryUser:
    return employees[0]


def test_binding_for_known_lists() -> None:
    assert binding_for("Assets").lookup_key == "field_2LookupId"
    assert binding_for("Access Cards").lookup_key == "EmployeeLookupId"


def test_binding_for_unknown_list() -> None:
    with pytest.raises(ValueError):
        binding_for("Employees")


@pytest.mark.parametrize(
    ("record", "state"),
    [
        ({"Id": "1"}, AssignmentState.AVAILABLE),
        ({"Id": "1", "field_2LookupId": None}, AssignmentState.AVAILABLE),
        ({"Id": "1", "field_2LookupId": ""}, AssignmentState.AVAILABLE),
        ({"Id": "1", "field_2LookupId": "14"}, AssignmentState.ASSIGNED),
    ],
)
def test_assignment_state(record: dict, state: AssignmentState) -> None:
    assert assignment_state(record, ASSETS_BINDING) is state


def test_assign_sends_single_patch(jane: DirectoryUser) -> None:
    updater = FakeUpdater()
    manager = AssignmentManager(updater, FakeUserResolver({jane.id: "14"}))
    record = {"Id": "5", "AssetID": "100", "DeviceStatus": "Available"}

    updated = manager.assign("Assets", record, jane)

    assert updater.calls == [
        ("Assets", "5", {"field_2LookupId": "14", "DeviceStatus": "Assigned"})
    ]
    assert updated["field_2LookupId"] == "14"
    assert assignment_state(updated, ASSETS_BINDING) is AssignmentState.ASSIGNED
    assert record["DeviceStatus"] == "Available"


def test_assign_falls_back_to_email(jane: DirectoryUser) -> None:
    updater = FakeUpdater()
    resolver = FakeUserResolver({jane.mail: "22"})
    manager = AssignmentManager(updater, resolver)

    manager.assign("Access Cards", {"Id": "8"}, jane)

    assert resolver.queries == [jane.id, jane.mail]
    assert updater.calls == [
        ("Access Cards", "8", {"EmployeeLookupId": "22", "CardStatus": "Assigned"})
    ]


def test_assign_without_resolution_sends_nothing(jane: DirectoryUser) -> None:
    updater = FakeUpdater()
    manager = AssignmentManager(updater, FakeUserResolver({}))

    with pytest.raises(ResolutionError):
        manager.assign("Assets", {"Id": "5"}, jane)

    assert updater.calls == []


def test_assign_then_unassign_restores_available(jane: DirectoryUser) -> None:
    updater = FakeUpdater()
    manager = AssignmentManager(updater, FakeUserResolver({jane.id: "14"}))

    assigned = manager.assign("Access Cards", {"Id": "8"}, jane)
    released = manager.unassign("Access Cards", assigned)

    assert released[ACCESS_CARDS_BINDING.lookup_key] is None
    assert released["CardStatus"] == "Available"
    assert assignment_state(released, ACCESS_CARDS_BINDING) is AssignmentState.AVAILABLE
    assert updater.calls[-1] == (
        "Access Cards",
        "8",
        {"EmployeeLookupId": None, "CardStatus": "Available"},
    )
    assert len(updater.calls) == 2
