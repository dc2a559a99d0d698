"""High-level orchestration over the SharePoint lists."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from requests import Session

from .assignment import AssignmentManager
from .auth import GraphAuthenticator
from .config import Settings
from .directory import DirectoryService
from .exceptions import AuthenticationError
from .field_mapper import FieldMapper
from .graph_client import GraphClient
from .lookup_resolver import LookupResolver
from .models import DirectoryUser, Record, SharePointList
from .normalizer import RecordNormalizer
from .session import SessionTimeoutCallback

LOGGER = logging.getLogger(__name__)

ItemId = Union[int, str]
CachedEmployees = Optional[Sequence[Union[DirectoryUser, Dict[str, Any]]]]


class SharePointService:
    """Coordinate fetching, normalization, resolution and mutation of list items."""

    def __init__(
        self,
        client: GraphClient,
        field_mapper: FieldMapper,
        normalizer: RecordNormalizer,
        resolver: LookupResolver,
        directory: DirectoryService,
        authenticator: Optional[GraphAuthenticator] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Create a new service."""
        self.client = client
        self.field_mapper = field_mapper
        self.normalizer = normalizer
        self.resolver = resolver
        self.directory = directory
        self.authenticator = authenticator
        self.assignments = AssignmentManager(self, self.resolve_sharepoint_user_id)
        self.logger = logger or LOGGER

    def authenticate(self) -> str:
        """Sign in and start a fresh session.

        Raises:
            AuthenticationError: If no authenticator is configured or sign-in fails.
        """
        if self.authenticator is None:
            raise AuthenticationError("No authenticator configured for interactive sign-in.")
        token = self.authenticator.authenticate()
        self.set_access_token(token)
        self.logger.info("Signed in to Microsoft Graph")
        return token

    def set_access_token(self, token: str) -> None:
        self.client.context.start(token)

    def get_access_token(self) -> Optional[str]:
        return self.client.context.access_token

    def set_on_session_timeout(self, callback: SessionTimeoutCallback) -> None:
        self.client.context.set_on_timeout(callback)

    def clear_on_session_timeout(self) -> None:
        self.client.context.set_on_timeout(None)

    def get_lists(self) -> List[SharePointList]:
        return self.client.get_lists()

    def get_list(self, list_name: str) -> Dict[str, Any]:
        return self.client.get(self.client.list_path(list_name))

    def get_records(self, list_name: str, cached_employees: CachedEmployees = None) -> List[Record]:
        """Return every item of ``list_name`` normalized and with lookups resolved.

        Args:
            list_name: Display or internal name of the list.
            cached_employees: Directory users (or employee records) already
                loaded by the caller, used to resolve lookups without a request.

        Returns:
            Flat records: ``Id`` plus the item's fields.
        """
        path = self.client.list_path(list_name)
        mapping = self.field_mapper.get_field_mapping(list_name)

        items = self.client.get_paginated(f"{path}/items", params={"$expand": "fields"})
        records = [
            self.normalizer.normalize({"Id": item.get("id"), **(item.get("fields") or {})}, mapping)
            for item in items
        ]
        self.logger.info("Fetched %s records from %s", len(records), list_name)

        employees = self._employee_records(cached_employees)
        return self.resolver.resolve_records(records, mapping, employees)

    def insert_record(self, list_name: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        response = self.client.post(f"{self.client.list_path(list_name)}/items", {"fields": fields})
        return {**response, "fields": response.get("fields") or {}}

    def update_record(self, list_name: str, item_id: ItemId, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.patch(f"{self.client.list_path(list_name)}/items/{item_id}/fields", fields)

    def delete_record(self, list_name: str, item_id: ItemId) -> None:
        self.client.delete(f"{self.client.list_path(list_name)}/items/{item_id}")
        self.logger.info("Deleted item %s from %s", item_id, list_name)

    def assign_record(self, list_name: str, record: Record, employee: DirectoryUser) -> Record:
        return self.assignments.assign(list_name, record, employee)

    def unassign_record(self, list_name: str, record: Record) -> Record:
        return self.assignments.unassign(list_name, record)

    def resolve_sharepoint_user_id(self, id_or_email: str) -> Optional[str]:
        return self.directory.resolve_sharepoint_user_id(id_or_email)

    def get_all_users(self) -> List[DirectoryUser]:
        return self.directory.get_all_users()

    @staticmethod
    def _employee_records(cached_employees: CachedEmployees) -> List[Dict[str, Any]]:
        if not cached_employees:
            return []
        return [
            employee.as_record() if isinstance(employee, DirectoryUser) else dict(employee)
            for employee in cached_employees
        ]


def build_service(
    settings: Settings,
    authenticator: Optional[GraphAuthenticator] = None,
    session: Optional[Session] = None,
) -> SharePointService:
    """Wire a service from settings with one shared session context."""
    client = GraphClient(
        site_url=settings.site_url,
        timeout_seconds=settings.request_timeout_seconds,
        session=session,
    )
    token = settings.get_access_token()
    if token:
        client.context.start(token)

    return SharePointService(
        client=client,
        field_mapper=FieldMapper(client),
        normalizer=RecordNormalizer(),
        resolver=LookupResolver(client, max_workers=settings.max_workers),
        directory=DirectoryService(
            client,
            user_page_limit=settings.user_page_limit,
            user_info_page_limit=settings.user_info_page_limit,
        ),
        authenticator=authenticator,
    )
