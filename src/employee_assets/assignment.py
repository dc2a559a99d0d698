"""Assign and unassign assets and access cards to employees."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

from .exceptions import ResolutionError
from .models import LOOKUP_ID_SUFFIX, DirectoryUser, Record

LOGGER = logging.getLogger(__name__)


class AssignmentState(str, enum.Enum):
    AVAILABLE = "Available"
    ASSIGNED = "Assigned"


@dataclass(frozen=True)
class AssignmentBinding:
    """Which lookup and status columns carry the assignment of a list's items."""

    list_name: str
    lookup_field: str
    status_field: str

    @property
    def lookup_key(self) -> str:
        return f"{self.lookup_field}{LOOKUP_ID_SUFFIX}"


ASSETS_BINDING = AssignmentBinding("Assets", "field_2", "DeviceStatus")
ACCESS_CARDS_BINDING = AssignmentBinding("Access Cards", "Employee", "CardStatus")
BINDINGS = {binding.list_name: binding for binding in (ASSETS_BINDING, ACCESS_CARDS_BINDING)}


class RecordUpdater(Protocol):
    def update_record(self, list_name: str, item_id: Any, fields: Dict[str, Any]) -> Any:
        ...


UserIdResolver = Callable[[str], Optional[str]]


def binding_for(list_name: str) -> AssignmentBinding:
    try:
        return BINDINGS[list_name]
    except KeyError as exc:
        raise ValueError(f"Items of {list_name!r} cannot be assigned.") from exc


def assignment_state(record: Record, binding: AssignmentBinding) -> AssignmentState:
    value = record.get(binding.lookup_key)
    if value is None or value == "":
        return AssignmentState.AVAILABLE
    return AssignmentState.ASSIGNED


class AssignmentManager:
    """Move a record between ``Available`` and ``Assigned``.

    Each transition is one PATCH carrying both the lookup and the status
    column. Assigning resolves the employee first; if that fails nothing is
    sent.
    """

    def __init__(
        self,
        updater: RecordUpdater,
        resolve_user_id: UserIdResolver,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.updater = updater
        self.resolve_user_id = resolve_user_id
        self.logger = logger or LOGGER

    def assign(self, list_name: str, record: Record, employee: DirectoryUser) -> Record:
        """Assign ``record`` to ``employee`` and return the updated local copy.

        Raises:
            ResolutionError: If neither the employee's ID nor email maps to a
                site user.
        """
        binding = binding_for(list_name)
        site_user_id = self.resolve_user_id(employee.id)
        if not site_user_id and employee.mail:
            self.logger.debug("Falling back to email %s for %s", employee.mail, employee.id)
            site_user_id = self.resolve_user_id(employee.mail)
        if not site_user_id:
            raise ResolutionError(
                f"Could not resolve {employee.display_name or employee.id} in SharePoint."
            )

        fields = {
            binding.lookup_key: site_user_id,
            binding.status_field: AssignmentState.ASSIGNED.value,
        }
        return self._apply(binding, record, fields)

    def unassign(self, list_name: str, record: Record) -> Record:
        binding = binding_for(list_name)
        fields = {
            binding.lookup_key: None,
            binding.status_field: AssignmentState.AVAILABLE.value,
        }
        return self._apply(binding, record, fields)

    def _apply(self, binding: AssignmentBinding, record: Record, fields: Dict[str, Any]) -> Record:
        self.updater.update_record(binding.list_name, record["Id"], fields)
        self.logger.info(
            "%s item %s is now %s", binding.list_name, record["Id"], fields[binding.status_field]
        )
        return {**record, **fields}
