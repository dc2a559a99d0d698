"""OAuth2 authorization code + PKCE sign-in against Azure AD."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import msal

from .config import PLACEHOLDER_CLIENT_ID, PLACEHOLDER_TENANT_ID, Settings
from .exceptions import AuthenticationError, ConfigurationError

LOGGER = logging.getLogger(__name__)

LOCALHOST_REDIRECT_URI = "http://localhost"


def build_redirect_uri(scheme: str, path: str, allow_custom_scheme: bool) -> str:
    """Return the redirect URI registered for this application.

    Hosts that can receive custom-scheme callbacks use ``<scheme>://<path>``.
    Everything else (a desktop CLI, for one) falls back to the loopback URI,
    which must be registered alongside it in Azure AD.
    """
    if allow_custom_scheme and scheme:
        return f"{scheme}://{path.strip('/')}"
    return LOCALHOST_REDIRECT_URI


class GraphAuthenticator:
    """Acquire delegated Microsoft Graph tokens for the signed-in user."""

    def __init__(
        self,
        settings: Settings,
        app: Optional[msal.PublicClientApplication] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Create the authenticator.

        Args:
            settings: Application settings holding client, tenant and redirect values.
            app: Optional pre-built MSAL application (injected in tests).
            logger: Optional logger for diagnostics.

        Raises:
            ConfigurationError: If the client or tenant ID is missing.
        """
        self._validate(settings)
        self.settings = settings
        self.redirect_uri = build_redirect_uri(
            settings.redirect_scheme, settings.redirect_path, settings.allow_custom_scheme
        )
        self.app = app or msal.PublicClientApplication(
            client_id=settings.client_id,
            authority=settings.authority,
        )
        self.logger = logger or LOGGER

    def authenticate(self) -> str:
        """Run the interactive sign-in and return an access token.

        A cached account is tried silently first. Otherwise MSAL opens the
        system browser and listens on the loopback redirect; it generates the
        PKCE verifier and exchanges the code itself.
        """
        token = self._acquire_silent()
        if token:
            return token

        self.logger.info("Starting interactive sign-in (redirect URI %s)", self.redirect_uri)
        result = self.app.acquire_token_interactive(
            scopes=self.settings.scopes,
            prompt=msal.Prompt.SELECT_ACCOUNT,
        )
        return self._extract_token(result)

    def begin_authorization(self) -> Dict[str, Any]:
        """Start a code flow for a custom-scheme redirect.

        Returns:
            MSAL's flow dictionary. Send the user to ``flow["auth_uri"]`` and pass
            the query parameters of the redirect to ``complete_authorization``.
        """
        return self.app.initiate_auth_code_flow(
            scopes=self.settings.scopes,
            redirect_uri=self.redirect_uri,
        )

    def complete_authorization(
        self, flow: Dict[str, Any], auth_response: Dict[str, str]
    ) -> str:
        """Exchange the authorization code (and PKCE verifier) for a token."""
        if "code" not in auth_response and "error" not in auth_response:
            raise AuthenticationError("Authorization code not received")
        try:
            result = self.app.acquire_token_by_auth_code_flow(flow, auth_response)
        except ValueError as exc:
            raise AuthenticationError(f"Authentication failed: {exc}") from exc
        return self._extract_token(result)

    def _acquire_silent(self) -> Optional[str]:
        accounts = self.app.get_accounts()
        if not accounts:
            return None
        result = self.app.acquire_token_silent(self.settings.scopes, account=accounts[0])
        if result and "access_token" in result:
            self.logger.debug("Reused cached token for %s", accounts[0].get("username"))
            return result["access_token"]
        return None

    def _extract_token(self, result: Optional[Dict[str, Any]]) -> str:
        if not result:
            raise AuthenticationError("Authentication failed: empty token response")
        if "access_token" in result:
            return result["access_token"]

        error = str(result.get("error") or "unknown_error")
        description = str(result.get("error_description") or "")
        detail = f"{error} - {description}" if description else error

        if "redirect" in error or "redirect" in description:
            raise AuthenticationError(
                "Redirect URI mismatch!\n\n"
                f"The redirect URI used: {self.redirect_uri}\n\n"
                "Add this exact URI to the app registration in Azure AD "
                "(Authentication > Mobile and desktop applications) and try again.\n\n"
                f"Error details: {detail}"
            )
        if error == "access_denied" or "cancel" in description.lower():
            raise AuthenticationError("Authentication cancelled by user")
        raise AuthenticationError(f"Authentication error: {detail}")

    @staticmethod
    def _validate(settings: Settings) -> None:
        if not settings.client_id or settings.client_id == PLACEHOLDER_CLIENT_ID:
            raise ConfigurationError(
                "Client ID not configured. Set AZURE_CLIENT_ID to your Azure AD application ID."
            )
        if not settings.tenant_id or settings.tenant_id == PLACEHOLDER_TENANT_ID:
            raise ConfigurationError(
                "Tenant ID not configured. Set AZURE_TENANT_ID to your Azure AD directory ID."
            )
