"""Demonstrate normalization and lookup resolution against canned Graph data."""

from __future__ import annotations

import json
import logging

import requests

from employee_assets.field_mapper import FieldMapper
from employee_assets.graph_client import GraphClient
from employee_assets.logging_config import configure_logging
from employee_assets.lookup_resolver import LookupResolver
from employee_assets.normalizer import RecordNormalizer
from employee_assets.session import SessionContext

SITE_URL = "https://contoso.sharepoint.com/sites/assets"
API_ROOT = GraphClient.API_ROOT + "/"

CANNED = {
    "sites/contoso.sharepoint.com:/sites/assets": {"id": "site-1"},
    "sites/site-1/lists": {
        "value": [
            {"id": "assets", "displayName": "Assets"},
            {"id": "employees", "displayName": "Employees"},
            {"id": "cards", "displayName": "Access Cards"},
        ]
    },
    "sites/site-1/lists/assets/columns": {
        "value": [
            {"name": "field_0", "displayName": "Device Type"},
            {"name": "field_2", "displayName": "Assignee", "lookup": {"listId": "employees"}},
        ]
    },
    "sites/site-1/lists/employees/items/7": {"id": "7", "fields": {"Title": "Maria Garcia"}},
    "sites/site-1/lists/cards/items/12": {
        "id": "12",
        "fields": {"AccessCardNo": "HPH 0042", "Employee": "Tom Baker"},
    },
}

RAW_ITEMS = [
    {"Id": "1", "field_0": "Laptop", "Device Type": "Laptop", "field_2LookupId": "7", "AssigneeLookupId": "7"},
    {"Id": "2", "field_0": "Monitor", "field_2LookupId": "12"},
    {"Id": "3", "field_0": "Tv", "field_2LookupId": "404"},
]


class CannedSession(requests.Session):
    """Answer Graph GETs from ``CANNED``; anything else is a 404."""

    def request(self, method, url, **kwargs):  # type: ignore[override]
        response = requests.Response()
        payload = CANNED.get(url[len(API_ROOT):]) if method == "GET" else None
        response.status_code = 200 if payload is not None else 404
        response._content = json.dumps(payload or {"error": {"code": "itemNotFound"}}).encode()
        return response


def main() -> None:
    configure_logging(logging.DEBUG)
    client = GraphClient(
        site_url=SITE_URL,
        timeout_seconds=5,
        context=SessionContext(access_token="offline"),
        session=CannedSession(),
    )
    mapping = FieldMapper(client).get_field_mapping("Assets")
    records = RecordNormalizer().normalize_all(RAW_ITEMS, mapping)
    resolved = LookupResolver(client).resolve_records(records, mapping)
    print(json.dumps(resolved, indent=2))


if __name__ == "__main__":
    main()
