"""Directory users, admin roles and the site's User Information List."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Set, Tuple
from urllib.parse import quote

from .exceptions import GraphClientError, GraphNotFoundError, SessionExpiredError
from .graph_client import GraphClient
from .lookup_resolver import USER_SELECT, is_guid
from .models import AdminStatus, AdminUser, CurrentUserStatus, DirectoryUser

LOGGER = logging.getLogger(__name__)

GLOBAL_ADMIN_TEMPLATE_ID = "62e90394-69f5-4237-9190-012177145e10"
ADMIN_ROLE_TEMPLATE_IDS = {
    GLOBAL_ADMIN_TEMPLATE_ID: "Global Administrator",
    "f28a1f50-f6e7-4571-818b-6a12f2af6b6c": "SharePoint Administrator",
    "b0f54661-2d74-4c50-afa3-1ec803f12efe": "Exchange Administrator",
    "29232cdf-9323-42fd-ade2-1d097af3e4de": "User Administrator",
}
DIRECTORY_ROLE_TYPE = "#microsoft.graph.directoryRole"
USER_TYPE = "#microsoft.graph.user"

USER_LIST_SELECT = "id,displayName,userPrincipalName,mail,jobTitle,officeLocation,department"
USER_INFO_EMAIL_KEYS = ("EMail", "Email", "email", "UserName")


def claims_login(value: str) -> str:
    """Return the login part of a claims name like ``i:0#.f|membership|jane@contoso.com``."""
    return value.rsplit("|", 1)[-1]


class DirectoryService:
    """Read organization users and translate them into site user IDs."""

    def __init__(
        self,
        client: GraphClient,
        user_page_limit: int = 50,
        user_info_page_limit: int = 10,
        user_info_list: str = "User Information List",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client
        self.user_page_limit = user_page_limit
        self.user_info_page_limit = user_info_page_limit
        self.user_info_list = user_info_list
        self.logger = logger or LOGGER

    def get_current_user(self) -> DirectoryUser:
        return DirectoryUser.model_validate(self.client.get("me"))

    def is_current_user_admin(self) -> AdminStatus:
        """Return whether the signed-in user holds one of the admin directory roles.

        Any failure other than session expiry reports a non-admin user.
        """
        try:
            memberships = self.client.get_paginated("me/memberOf", max_pages=self.user_page_limit)
        except SessionExpiredError:
            raise
        except GraphClientError as exc:
            self.logger.warning("Could not read role memberships: %s", exc)
            return AdminStatus()

        roles = [
            group.get("displayName") or "Unknown Role"
            for group in memberships
            if group.get("@odata.type") == DIRECTORY_ROLE_TYPE
            and group.get("roleTemplateId") in ADMIN_ROLE_TEMPLATE_IDS
        ]
        return AdminStatus(is_admin=bool(roles), roles=roles)

    def get_all_users(self) -> List[DirectoryUser]:
        """Return every organization user, up to ``user_page_limit`` pages.

        Tenants that withhold ``User.Read.All`` answer 403; that yields an empty list.
        """
        try:
            raw_users = self.client.get_paginated(
                "users",
                params={"$select": USER_LIST_SELECT, "$top": 999},
                max_pages=self.user_page_limit,
            )
        except SessionExpiredError:
            raise
        except GraphClientError as exc:
            self.logger.warning("Could not list directory users: %s", exc)
            return []
        return [DirectoryUser.model_validate(raw) for raw in raw_users if raw.get("id")]

    def get_admin_users(self) -> List[AdminUser]:
        """Return the members of the Global Administrator role."""
        try:
            roles = self.client.get("directoryRoles").get("value", [])
            role = next(
                (entry for entry in roles if entry.get("roleTemplateId") == GLOBAL_ADMIN_TEMPLATE_ID),
                None,
            )
            if role is None:
                return []
            members = self.client.get_paginated(f"directoryRoles/{role['id']}/members")
        except SessionExpiredError:
            raise
        except GraphClientError as exc:
            self.logger.warning("Could not list administrators: %s", exc)
            return []

        return [
            AdminUser.model_validate({**member, "roles": [ADMIN_ROLE_TEMPLATE_IDS[GLOBAL_ADMIN_TEMPLATE_ID]]})
            for member in members
            if member.get("@odata.type") == USER_TYPE and member.get("id")
        ]

    def get_current_user_with_admin_status(self) -> CurrentUserStatus:
        with ThreadPoolExecutor(max_workers=2) as executor:
            user_future = executor.submit(self.get_current_user)
            status_future = executor.submit(self.is_current_user_admin)
            user = user_future.result()
            status = status_future.result()
        return CurrentUserStatus(user=user, is_admin=status.is_admin, roles=status.roles)

    def resolve_sharepoint_user_id(self, id_or_email: str, refresh: bool = False) -> Optional[str]:
        """Map a directory user ID or email to its User Information List item ID.

        Lookup columns store site-scoped item IDs, not directory GUIDs. For a
        GUID the directory user is read first to learn its email, UPN and
        name. Scanned items (at most ``user_info_page_limit`` pages) are kept
        for the session; a miss against kept items rescans once, since users
        join the list on their first visit to the site.

        Returns:
            The item ID, or ``None`` when no item matches.
        """
        logins, names = self._match_keys(id_or_email)
        if not logins and not names:
            return None

        from_cache = not refresh and self.client.context.user_info_items is not None
        item_id = self._find_item(self._user_info_items(refresh=refresh), logins, names)
        if item_id is None and from_cache:
            self.logger.debug("Rescanning User Information List for %s", id_or_email)
            item_id = self._find_item(self._user_info_items(refresh=True), logins, names)

        if item_id is None:
            self.logger.info("No User Information List entry for %s", id_or_email)
        return item_id

    def _find_item(
        self, items: List[Dict[str, Any]], logins: Set[str], names: Set[str]
    ) -> Optional[str]:
        for item in items:
            fields = item.get("fields") or {}
            if self._item_logins(fields) & logins:
                return self._item_id(item)
        for item in items:
            title = str((item.get("fields") or {}).get("Title") or "").lower()
            if title and title in names:
                return self._item_id(item)
        return None

    def _match_keys(self, id_or_email: str) -> Tuple[Set[str], Set[str]]:
        value = str(id_or_email or "").strip()
        if not value:
            return set(), set()
        if not is_guid(value):
            return {value.lower()}, {value.lower()}

        try:
            user = self.client.get(f"users/{value}", params={"$select": USER_SELECT})
        except SessionExpiredError:
            raise
        except GraphNotFoundError:
            return set(), set()
        except GraphClientError as exc:
            self.logger.warning("Could not read directory user %s: %s", value, exc)
            return set(), set()

        logins = {
            str(user[key]).lower() for key in ("mail", "userPrincipalName") if user.get(key)
        }
        names = {str(user["displayName"]).lower()} if user.get("displayName") else set()
        return logins, names

    def _user_info_items(self, refresh: bool = False) -> List[Dict[str, Any]]:
        cached = self.client.context.user_info_items
        if cached is not None and not refresh:
            return cached

        site_id = self.client.get_site_id()
        items = self.client.get_paginated(
            f"sites/{site_id}/lists/{quote(self.user_info_list)}/items",
            params={"$expand": "fields"},
            max_pages=self.user_info_page_limit,
        )
        self.client.context.cache_user_info_items(items)
        return items

    @staticmethod
    def _item_logins(fields: Dict[str, Any]) -> Set[str]:
        logins = {str(fields[key]).lower() for key in USER_INFO_EMAIL_KEYS if fields.get(key)}
        if fields.get("Name"):
            logins.add(claims_login(str(fields["Name"])).lower())
        return logins

    @staticmethod
    def _item_id(item: Dict[str, Any]) -> str:
        return str(item.get("id") or (item.get("fields") or {}).get("id"))
