"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from employee_assets.config import Settings, get_settings


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SHAREPOINT_SITE_URL", "https://contoso.sharepoint.com/sites/assets")
    monkeypatch.setenv("AZURE_TENANT_ID", "tenant-456")
    monkeypatch.setenv("MAX_WORKERS", "3")
    monkeypatch.setenv("GRAPH_ACCESS_TOKEN", "secret-token")

    settings = Settings()

    assert settings.max_workers == 3
    assert settings.user_info_page_limit == 10
    assert settings.authority == "https://login.microsoftonline.com/tenant-456"
    assert settings.get_access_token() == "secret-token"
    assert "secret-token" not in repr(settings)


def test_settings_read_dotenv_file(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SHAREPOINT_SITE_URL", raising=False)
    (tmp_path / ".env").write_text(
        "SHAREPOINT_SITE_URL=https://fabrikam.sharepoint.com/sites/it\nDEFAULT_LIST_NAME=Access Cards\n",
        encoding="utf-8",
    )

    settings = Settings()

    assert settings.site_url == "https://fabrikam.sharepoint.com/sites/it"
    assert settings.default_list_name == "Access Cards"
    assert settings.get_access_token() is None


def test_site_url_is_required(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SHAREPOINT_SITE_URL", raising=False)

    with pytest.raises(ValidationError):
        Settings()


def test_get_settings_is_cached(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SHAREPOINT_SITE_URL", "https://contoso.sharepoint.com/sites/assets")
    get_settings.cache_clear()

    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
