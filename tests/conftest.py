"""Shared pytest fixtures."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, List

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from employee_assets.graph_client import GraphClient  # noqa: E402
from employee_assets.models import DirectoryUser, FieldMapping  # noqa: E402
from employee_assets.session import SessionContext  # noqa: E402

from graph_fakes import SITE_URL, FakeSession, site_routes  # noqa: E402


@pytest.fixture
def fake_session() -> FakeSession:
    """Return a session that already knows the site and its lists."""
    return FakeSession(site_routes())


@pytest.fixture
def make_client() -> Callable[..., GraphClient]:
    """Return a factory building an authenticated client over a fake session."""

    def _make(session: FakeSession, token: str = "token") -> GraphClient:
        return GraphClient(
            site_url=SITE_URL,
            timeout_seconds=5,
            context=SessionContext(access_token=token),
            session=session,
        )

    return _make


@pytest.fixture
def client(fake_session: FakeSession, make_client) -> GraphClient:
    return make_client(fake_session)


@pytest.fixture
def asset_columns() -> List[dict]:
    """Return a representative column payload of the Assets list."""
    return [
        {"name": "Title", "displayName": "Title", "text": {}},
        {"name": "field_0", "displayName": "Device Type", "choice": {}},
        {"name": "field_1", "displayName": "AssetID", "text": {}},
        {
            "name": "field_2",
            "displayName": "Assignee",
            "lookup": {"listId": "list-employees", "columnName": "Title"},
        },
        {"name": "DeviceStatus", "displayName": "Device Status", "choice": {}},
        {"name": "Owner", "displayName": "Owner", "personOrGroup": {}},
    ]


@pytest.fixture
def asset_mapping() -> FieldMapping:
    return FieldMapping(
        list_name="Assets",
        mapping={
            "Title": "Title",
            "field_0": "Device Type",
            "field_1": "AssetID",
            "field_2": "Assignee",
            "DeviceStatus": "Device Status",
        },
        lookup_fields=["field_2"],
    )


@pytest.fixture
def employees() -> List[DirectoryUser]:
    """Return directory users as loaded by the caller."""
    return [
        DirectoryUser.model_validate(
            {
                "id": "11111111-2222-3333-4444-555555555555",
                "displayName": "Jane Doe",
                "userPrincipalName": "jane.doe@contoso.com",
                "mail": "jane.doe@contoso.com",
                "jobTitle": "Engineer",
            }
        ),
        DirectoryUser.model_validate(
            {
                "id": "66666666-7777-8888-9999-000000000000",
                "displayName": "Raj Patel",
                "userPrincipalName": "raj@contoso.com",
                "mail": None,
            }
        ),
    ]
