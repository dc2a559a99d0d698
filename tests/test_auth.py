"""Tests for the MSAL-backed authenticator."""

from __future__ import annotations

from unittest.mock import Mock

import msal
import pytest

from employee_assets.auth import GraphAuthenticator, build_redirect_uri
from employee_assets.config import Settings
from employee_assets.exceptions import AuthenticationError, ConfigurationError


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SHAREPOINT_SITE_URL="https://contoso.sharepoint.com/sites/assets",
        AZURE_CLIENT_ID="client-123",
        AZURE_TENANT_ID="tenant-456",
    )


@pytest.fixture
def app() -> Mock:
    app = Mock(spec=msal.PublicClientApplication)
    app.get_accounts.return_value = []
    return app


def test_build_redirect_uri() -> None:
    assert build_redirect_uri("employee-assets", "auth", True) == "employee-assets://auth"
    assert build_redirect_uri("employee-assets", "/auth/", True) == "employee-assets://auth"
    assert build_redirect_uri("employee-assets", "auth", False) == "http://localhost"


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"AZURE_CLIENT_ID": "YOUR_CLIENT_ID_HERE"}, "Client ID not configured"),
        ({"AZURE_CLIENT_ID": ""}, "Client ID not configured"),
        ({"AZURE_TENANT_ID": "YOUR_TENANT_ID_HERE"}, "Tenant ID not configured"),
    ],
)
def test_placeholder_ids_are_rejected(settings: Settings, overrides: dict, message: str) -> None:
    broken = settings.model_copy(
        update={
            "client_id": overrides.get("AZURE_CLIENT_ID", settings.client_id),
            "tenant_id": overrides.get("AZURE_TENANT_ID", settings.tenant_id),
        }
    )

    with pytest.raises(ConfigurationError, match=message):
        GraphAuthenticator(broken, app=Mock())


def test_authenticate_reuses_cached_account(settings: Settings, app: Mock) -> None:
    app.get_accounts.return_value = [{"username": "jane@contoso.com"}]
    app.acquire_token_silent.return_value = {"access_token": "cached"}

    assert GraphAuthenticator(settings, app=app).authenticate() == "cached"
    app.acquire_token_interactive.assert_not_called()


def test_authenticate_interactive(settings: Settings, app: Mock) -> None:
    app.acquire_token_interactive.return_value = {"access_token": "fresh"}

    token = GraphAuthenticator(settings, app=app).authenticate()

    assert token == "fresh"
    app.acquire_token_interactive.assert_called_once_with(
        scopes=settings.scopes, prompt=msal.Prompt.SELECT_ACCOUNT
    )


@pytest.mark.parametrize(
    ("result", "message"),
    [
        ({"error": "access_denied", "error_description": "User cancelled"}, "cancelled by user"),
        ({"error": "invalid_request", "error_description": "redirect_uri mismatch"}, "Redirect URI mismatch"),
        ({"error": "invalid_grant", "error_description": "AADSTS70008"}, "Authentication error: invalid_grant"),
        (None, "empty token response"),
    ],
)
def test_authenticate_errors(settings: Settings, app: Mock, result, message: str) -> None:
    app.acquire_token_interactive.return_value = result

    with pytest.raises(AuthenticationError, match=message):
        GraphAuthenticator(settings, app=app).authenticate()


def test_custom_scheme_code_flow(settings: Settings, app: Mock) -> None:
    custom = settings.model_copy(update={"allow_custom_scheme": True})
    flow = {"auth_uri": "https://login.microsoftonline.com/...", "state": "s"}
    app.initiate_auth_code_flow.return_value = flow
    app.acquire_token_by_auth_code_flow.return_value = {"access_token": "from-code"}
    authenticator = GraphAuthenticator(custom, app=app)

    assert authenticator.begin_authorization() is flow
    app.initiate_auth_code_flow.assert_called_once_with(
        scopes=custom.scopes, redirect_uri="employee-assets://auth"
    )
    assert authenticator.complete_authorization(flow, {"code": "abc", "state": "s"}) == "from-code"


def test_complete_authorization_requires_code(settings: Settings, app: Mock) -> None:
    authenticator = GraphAuthenticator(settings, app=app)

    with pytest.raises(AuthenticationError, match="Authorization code not received"):
        authenticator.complete_authorization({}, {"state": "s"})


def test_complete_authorization_state_mismatch(settings: Settings, app: Mock) -> None:
    app.acquire_token_by_auth_code_flow.side_effect = ValueError("state mismatch")
    authenticator = GraphAuthenticator(settings, app=app)

    with pytest.raises(AuthenticationError, match="state mismatch"):
        authenticator.complete_authorization({"state": "s"}, {"code": "abc", "state": "t"})
