"""Test doubles for the requests session used by the Graph client."""

from __future__ import annotations

import json
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

API_ROOT = "https://graph.microsoft.com/v1.0/"

SITE_URL = "https://contoso.sharepoint.com/sites/assets"
SITE_ID = "site-1"
ASSETS_PATH = f"sites/{SITE_ID}/lists/list-assets"
EMPLOYEES_PATH = f"sites/{SITE_ID}/lists/list-employees"
CARDS_PATH = f"sites/{SITE_ID}/lists/list-cards"
USER_INFO_PATH = f"sites/{SITE_ID}/lists/User%20Information%20List/items"


class FakeResponse:
    """Simple stand-in for requests.Response."""

    def __init__(self, payload: Any = None, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = json.dumps(payload) if payload is not None else ""
        self.content = self.text.encode("utf-8")

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


Handler = Callable[[Optional[Dict[str, Any]], Optional[Dict[str, Any]]], FakeResponse]
Route = Union[FakeResponse, Handler]


def not_found(path: str) -> FakeResponse:
    return FakeResponse(
        {"error": {"code": "itemNotFound", "message": f"{path} does not exist"}},
        status_code=404,
    )


class FakeSession:
    """Session routing ``(method, path)`` to canned responses.

    Paths are relative to the Graph API root. A route is either a response
    or a callable receiving ``(params, json)``. Unknown routes answer 404.
    """

    def __init__(self, routes: Optional[Dict[Tuple[str, str], Route]] = None) -> None:
        self.routes: Dict[Tuple[str, str], Route] = dict(routes or {})
        self.headers: Dict[str, str] = {}
        self.requests: List[Tuple[str, str, Optional[Dict[str, Any]], Optional[Dict[str, Any]]]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def add(self, method: str, path: str, route: Route) -> None:
        self.routes[(method, path)] = route

    def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ) -> FakeResponse:
        path = url[len(API_ROOT):] if url.startswith(API_ROOT) else url
        with self._lock:
            self.requests.append((method, path, params, json))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            route = self.routes.get((method, path))
            if route is None:
                return not_found(path)
            if isinstance(route, FakeResponse):
                return route
            return route(params, json)
        finally:
            with self._lock:
                self.in_flight -= 1

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [path for verb, path, _, _ in self.requests if method is None or verb == method]


def site_routes() -> Dict[Tuple[str, str], Route]:
    """Routes for the site lookup and the three lists."""
    return {
        ("GET", "sites/contoso.sharepoint.com:/sites/assets"): FakeResponse({"id": SITE_ID}),
        ("GET", f"sites/{SITE_ID}/lists"): FakeResponse(
            {
                "value": [
                    {"id": "list-assets", "name": "Assets", "displayName": "Assets"},
                    {"id": "list-employees", "name": "Employees", "displayName": "Employees"},
                    {"id": "list-cards", "name": "AccessCards", "displayName": "Access Cards"},
                ]
            }
        ),
    }


def paged(pages: List[List[Dict[str, Any]]], path: str) -> Dict[Tuple[str, str], Route]:
    """Routes serving ``pages`` through ``@odata.nextLink`` chaining."""
    routes: Dict[Tuple[str, str], Route] = {}
    for index, values in enumerate(pages):
        current = path if index == 0 else f"{API_ROOT}{path}?$skiptoken={index}"
        payload: Dict[str, Any] = {"value": values}
        if index + 1 < len(pages):
            payload["@odata.nextLink"] = f"{API_ROOT}{path}?$skiptoken={index + 1}"
        key = current[len(API_ROOT):] if current.startswith(API_ROOT) else current
        routes[("GET", key)] = FakeResponse(payload)
    return routes
