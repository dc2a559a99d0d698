"""Pydantic models shared across the Employee Assets package."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

Record = Dict[str, Any]

LOOKUP_ID_SUFFIX = "LookupId"


class GraphModel(BaseModel):
    """Base model accepting Graph's camelCase payloads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SharePointList(GraphModel):
    """A list as enumerated under ``sites/{site}/lists``."""

    id: str
    name: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")

    def matches(self, list_name: str) -> bool:
        """Return whether the list's display or internal name equals ``list_name``."""
        wanted = list_name.lower()
        return any(
            candidate is not None and candidate.lower() == wanted
            for candidate in (self.display_name, self.name)
        )

    @property
    def label(self) -> str:
        return self.display_name or self.name or self.id


class ColumnDefinition(GraphModel):
    """A list column definition from ``.../lists/{list}/columns``."""

    name: Optional[str] = None
    internal_name: Optional[str] = Field(default=None, alias="internalName")
    display_name: Optional[str] = Field(default=None, alias="displayName")
    type: Optional[str] = None
    lookup: Optional[Dict[str, Any]] = None
    person_or_group: Optional[Dict[str, Any]] = Field(default=None, alias="personOrGroup")

    @property
    def key(self) -> Optional[str]:
        return self.name or self.internal_name

    @property
    def label(self) -> Optional[str]:
        return self.display_name or self.name


class FieldMapping(GraphModel):
    """Internal-to-display column names of one list plus its lookup columns."""

    list_name: str
    mapping: Dict[str, str] = Field(default_factory=dict)
    lookup_fields: List[str] = Field(default_factory=list)

    def display_name(self, internal_name: str) -> str:
        """Return the display name for ``internal_name``, or the name itself."""
        return self.mapping.get(internal_name, internal_name)

    def is_lookup(self, base_name: str) -> bool:
        return base_name in self.lookup_fields

    @property
    def is_empty(self) -> bool:
        return not self.mapping


class ResolvedIdentity(GraphModel):
    """Canonical shape of any resolved person or lookup reference."""

    id: str
    display_name: str = Field(alias="displayName")
    email: Optional[str] = None
    job_title: Optional[str] = Field(default=None, alias="jobTitle")
    source: str = "unknown"


class DirectoryUser(GraphModel):
    """An organization user from the Graph ``users`` endpoint."""

    id: str
    display_name: str = Field(default="", alias="displayName")
    user_principal_name: str = Field(default="", alias="userPrincipalName")
    mail: str = ""
    job_title: Optional[str] = Field(default=None, alias="jobTitle")
    office_location: Optional[str] = Field(default=None, alias="officeLocation")
    department: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _default_mail_to_upn(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = {key: value for key, value in data.items() if value is not None}
            if not data.get("mail"):
                data["mail"] = data.get("userPrincipalName") or data.get("user_principal_name") or ""
        return data

    def as_record(self) -> Record:
        """Return the user in the flat record shape the resolver matches against."""
        return {
            "Id": self.id,
            "Title": self.display_name,
            "displayName": self.display_name,
            "userPrincipalName": self.user_principal_name,
            "mail": self.mail,
            "jobTitle": self.job_title,
            "department": self.department,
        }


class AdminStatus(GraphModel):
    """Administrative role membership of the signed-in user."""

    is_admin: bool = False
    roles: List[str] = Field(default_factory=list)


class AdminUser(DirectoryUser):
    """A directory user holding an administrator role."""

    roles: List[str] = Field(default_factory=list)


class CurrentUserStatus(GraphModel):
    """The signed-in user together with their admin status."""

    user: DirectoryUser
    is_admin: bool = False
    roles: List[str] = Field(default_factory=list)
