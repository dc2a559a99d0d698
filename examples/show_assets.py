"""Print the Assets list of a real site with every lookup resolved."""

from __future__ import annotations

import logging

from employee_assets.auth import GraphAuthenticator
from employee_assets.config import get_settings
from employee_assets.logging_config import configure_logging
from employee_assets.record_view import get_field_value, sort_records
from employee_assets.service import build_service


def main() -> None:
    """Sign in, load directory users and print the default list."""
    configure_logging(logging.INFO)
    settings = get_settings()

    authenticator = None if settings.get_access_token() else GraphAuthenticator(settings)
    service = build_service(settings, authenticator=authenticator)
    service.set_on_session_timeout(lambda: print("Session expired, run the example again."))
    if not service.get_access_token():
        service.authenticate()

    list_name = settings.default_list_name
    employees = service.get_all_users()
    records = service.get_records(list_name, employees)

    for record in sort_records(records, list_name):
        print(
            record["Id"],
            get_field_value(record, ["AssetID", "AccessCardNo", "Title"]),
            get_field_value(record, ["Assignee", "Employee"]),
            sep="\t",
        )
    print(f"\n{len(records)} records in {list_name}")


if __name__ == "__main__":
    main()
