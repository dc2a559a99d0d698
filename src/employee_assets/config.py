"""Application configuration and environment management."""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_CLIENT_ID = "YOUR_CLIENT_ID_HERE"
PLACEHOLDER_TENANT_ID = "YOUR_TENANT_ID_HERE"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Attributes:
        site_url: Full URL of the SharePoint site holding the lists.
        client_id: Azure AD application (client) ID.
        tenant_id: Azure AD directory (tenant) ID.
        redirect_scheme: Custom URI scheme registered for the OAuth redirect.
        redirect_path: Path component of the custom-scheme redirect URI.
        allow_custom_scheme: Whether the host can receive custom-scheme redirects.
        default_list_name: List shown when no list is requested explicitly.
        request_timeout_seconds: HTTP timeout for outbound Graph requests.
        max_workers: Thread pool size used for concurrent identity lookups.
        user_page_limit: Page cap when listing directory users.
        user_info_page_limit: Page cap when scanning the User Information List.
        access_token: Optional pre-acquired Graph token (skips the OAuth flow).
    """

    site_url: str = Field(..., alias="SHAREPOINT_SITE_URL")
    client_id: str = Field(default=PLACEHOLDER_CLIENT_ID, alias="AZURE_CLIENT_ID")
    tenant_id: str = Field(default=PLACEHOLDER_TENANT_ID, alias="AZURE_TENANT_ID")
    redirect_scheme: str = Field(default="employee-assets", alias="REDIRECT_SCHEME")
    redirect_path: str = Field(default="auth", alias="REDIRECT_PATH")
    allow_custom_scheme: bool = Field(default=False, alias="ALLOW_CUSTOM_SCHEME")
    default_list_name: str = Field(default="Assets", alias="DEFAULT_LIST_NAME")
    request_timeout_seconds: int = Field(default=30, alias="REQUEST_TIMEOUT_SECONDS")
    max_workers: int = Field(default=8, alias="MAX_WORKERS")
    user_page_limit: int = Field(default=50, alias="USER_PAGE_LIMIT")
    user_info_page_limit: int = Field(default=10, alias="USER_INFO_PAGE_LIMIT")
    access_token: Optional[SecretStr] = Field(default=None, alias="GRAPH_ACCESS_TOKEN")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def authority(self) -> str:
        """Return the tenant-specific login authority."""
        return f"https://login.microsoftonline.com/{self.tenant_id}"

    @property
    def scopes(self) -> List[str]:
        """Return the delegated Graph scopes requested at sign-in."""
        return [
            "https://graph.microsoft.com/Sites.ReadWrite.All",
            "https://graph.microsoft.com/User.Read",
        ]

    def get_access_token(self) -> Optional[str]:
        """Return the pre-acquired access token as a plain string, if any."""
        if self.access_token is None:
            return None
        return self.access_token.get_secret_value()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings instance."""
    return Settings()
