"""Wrapper around the Microsoft Graph v1.0 REST API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import requests
from requests import Response, Session

from .exceptions import (
    GraphNotFoundError,
    GraphTransportError,
    NotAuthenticatedError,
    SessionExpiredError,
)
from .models import SharePointList
from .session import SessionContext

LOGGER = logging.getLogger(__name__)

TOKEN_ERROR_CODES = ("InvalidAuthenticationToken", "AuthenticationTokenExpired")
TOKEN_ERROR_WORDS = ("token", "expired", "authentication")


class GraphClient:
    """Client responsible for authenticated calls to Microsoft Graph."""

    API_ROOT = "https://graph.microsoft.com/v1.0"

    def __init__(
        self,
        site_url: str,
        timeout_seconds: int,
        context: Optional[SessionContext] = None,
        session: Optional[Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the client.

        Args:
            site_url: SharePoint site URL, e.g. ``https://contoso.sharepoint.com/sites/assets``.
            timeout_seconds: HTTP timeout for each request.
            context: Session state; a fresh unauthenticated one when omitted.
            session: Optional ``requests`` session (injected in tests).
            logger: Optional logger for diagnostics.
        """
        self.site_url = site_url
        self.timeout_seconds = timeout_seconds
        self.context = context or SessionContext()
        self.session = session or requests.Session()
        self.session.headers.update(
            {"Accept": "application/json", "Content-Type": "application/json"}
        )
        self.logger = logger or LOGGER

    def get(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._parse_json(self._request("GET", path, params=params))

    def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._parse_json(self._request("POST", path, json=payload))

    def patch(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._parse_json(self._request("PATCH", path, json=payload))

    def delete(self, path: str) -> None:
        self._request("DELETE", path)

    def get_paginated(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        max_pages: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Follow ``@odata.nextLink`` and collect every ``value`` entry.

        Args:
            path: Graph path relative to the API root.
            params: Query parameters for the first page only; the next link
                already embeds them.
            max_pages: Stop after this many pages even if more are announced.

        Returns:
            The concatenated ``value`` arrays.
        """
        items: List[Dict[str, Any]] = []
        next_path: Optional[str] = path
        query = params
        page_count = 0

        while next_path:
            payload = self.get(next_path, params=query)
            batch = payload.get("value", [])
            if not isinstance(batch, list):
                raise GraphTransportError("Unexpected response format: 'value' is not a list.")
            items.extend(batch)
            page_count += 1

            next_path = payload.get("@odata.nextLink")
            query = None
            if max_pages is not None and page_count >= max_pages:
                if next_path:
                    self.logger.warning(
                        "Stopped paging %s after %s pages; more results were available.",
                        path,
                        page_count,
                    )
                break

        return items

    def get_site_id(self) -> str:
        """Return the Graph ID of the configured site, cached per session."""
        if self.context.site_id:
            return self.context.site_id

        parts = urlsplit(self.site_url.rstrip("/"))
        site_path = parts.hostname or parts.netloc
        if parts.path.strip("/"):
            site_path = f"{site_path}:/{parts.path.strip('/')}"

        data = self.get(f"sites/{site_path}")
        site_id = data.get("id")
        if not site_id:
            raise GraphNotFoundError(f"Site ID not found in response for {self.site_url}.")

        self.context.site_id = str(site_id)
        return self.context.site_id

    def get_lists(self) -> List[SharePointList]:
        """Return every list of the site."""
        site_id = self.get_site_id()
        payload = self.get(f"sites/{site_id}/lists")
        return [SharePointList.model_validate(raw) for raw in payload.get("value", [])]

    def get_list_id(self, list_name: str) -> str:
        """Return the ID of ``list_name`` matched case-insensitively on either name.

        Raises:
            GraphNotFoundError: If no list matches; the message names the lists
                that do exist.
        """
        cached = self.context.list_ids.get(list_name)
        if cached:
            return cached

        lists = self.get_lists()
        match = next((entry for entry in lists if entry.matches(list_name)), None)
        if match is None:
            available = ", ".join(entry.label for entry in lists) or "none"
            raise GraphNotFoundError(
                f'List "{list_name}" not found.\nAvailable lists: {available}'
            )

        self.context.cache_list_id(list_name, match.id)
        return match.id

    def list_path(self, list_name: str) -> str:
        """Return ``sites/{site}/lists/{list}`` for ``list_name``."""
        list_id = self.get_list_id(list_name)
        return f"sites/{self.get_site_id()}/lists/{list_id}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Response:
        token = self.context.access_token
        if not token:
            raise NotAuthenticatedError()

        url = path if path.startswith("http") else f"{self.API_ROOT}/{path.lstrip('/')}"
        self.logger.debug("%s %s", method, url)

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout_seconds,
            )
        except requests.Timeout as exc:
            raise GraphTransportError("Microsoft Graph request timed out.") from exc
        except requests.RequestException as exc:
            raise GraphTransportError(f"Microsoft Graph request failed: {exc}") from exc

        if response.status_code < 400:
            return response

        if response.status_code == 401:
            self._expire_session()

        if response.status_code == 403 and self._is_token_error(response):
            self._expire_session()

        if response.status_code == 404:
            raise GraphNotFoundError(f"Microsoft Graph resource not found: {path}")

        raise GraphTransportError(
            f"Microsoft Graph API error: {response.status_code} - {response.text}",
            status_code=response.status_code,
        )

    def _expire_session(self) -> None:
        self.context.invalidate()
        raise SessionExpiredError()

    def _is_token_error(self, response: Response) -> bool:
        try:
            body = response.json()
        except ValueError:
            return False
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            return False

        code = str(error.get("code") or "")
        message = str(error.get("message") or "").lower()
        if any(marker in code for marker in TOKEN_ERROR_CODES):
            return True
        return any(word in message for word in TOKEN_ERROR_WORDS)

    def _parse_json(self, response: Response) -> Dict[str, Any]:
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise GraphTransportError("Failed to parse Graph response as JSON.") from exc
