"""Command-line interface for Employee Assets."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, TypeVar

import typer

from . import get_version
from .auth import GraphAuthenticator
from .config import Settings, get_settings
from .exceptions import (
    ConfigurationError,
    GraphClientError,
    ResolutionError,
    SessionExpiredError,
)
from .logging_config import configure_logging
from .models import DirectoryUser, Record
from .record_view import (
    ALL_CATEGORIES,
    category_counts,
    filter_records,
    format_category_name,
    get_field_value,
    sort_records,
)
from .service import SharePointService, build_service

app = typer.Typer(help="Manage employee assets and access cards stored in SharePoint lists.")

T = TypeVar("T")

SUMMARY_FIELDS = {
    "Assets": ["AssetID", "Device Type", "Assignee", "DeviceStatus"],
    "Access Cards": ["AccessCardNo", "Employee", "EmpID", "CardStatus"],
}


def _show_version(value: bool) -> None:  # pragma: no cover - CLI glue
    if value:
        typer.echo(f"employee-assets {get_version()}")
        raise typer.Exit()


@app.callback()
def main_options(  # pragma: no cover - CLI glue
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show the version and exit."
    ),
) -> None:
    """Configure logging for every command."""
    configure_logging(logging.DEBUG if verbose else logging.INFO)


@app.command("lists")
def show_lists() -> None:  # pragma: no cover - CLI glue
    """Show the lists available on the site."""
    service = _connect()
    for entry in _run(service.get_lists):
        typer.echo(f"{entry.label}\t{entry.id}")


@app.command("records")
def show_records(  # pragma: no cover - CLI glue
    list_name: Optional[str] = typer.Argument(None, help="List to read (defaults to DEFAULT_LIST_NAME)."),
    search: str = typer.Option("", "--search", "-s", help="Only show records containing this text."),
    category: str = typer.Option(ALL_CATEGORIES, "--category", "-c", help="Device category filter."),
) -> None:
    """Print the records of a list with lookups resolved."""
    settings = get_settings()
    name = list_name or settings.default_list_name
    service = _connect(settings)
    employees = _run(service.get_all_users)
    records = _run(lambda: service.get_records(name, employees))

    counts = category_counts(records)
    if len(counts) > 1:
        typer.echo(
            "  ".join(f"{format_category_name(key)}: {value}" for key, value in counts.items())
        )
    for record in sort_records(filter_records(records, search, category), name):
        typer.echo(_summarize(record, SUMMARY_FIELDS.get(name, ["Title"])))


@app.command()
def assign(  # pragma: no cover - CLI glue
    list_name: str = typer.Argument(..., help="Assets or Access Cards."),
    item_id: str = typer.Argument(..., help="Item ID to assign."),
    employee: str = typer.Argument(..., help="Directory user ID or email."),
) -> None:
    """Assign an asset or access card to an employee."""
    service = _connect()
    user = _find_user(service, employee)
    record = _find_record(service, list_name, item_id)
    updated = _run(lambda: service.assign_record(list_name, record, user))
    typer.echo(f"Assigned {list_name} item {updated['Id']} to {user.display_name or user.mail}.")


@app.command()
def unassign(  # pragma: no cover - CLI glue
    list_name: str = typer.Argument(..., help="Assets or Access Cards."),
    item_id: str = typer.Argument(..., help="Item ID to release."),
) -> None:
    """Release an asset or access card."""
    service = _connect()
    record = _find_record(service, list_name, item_id)
    _run(lambda: service.unassign_record(list_name, record))
    typer.echo(f"{list_name} item {item_id} is now available.")


@app.command()
def delete(  # pragma: no cover - CLI glue
    list_name: str = typer.Argument(...),
    item_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete an item from a list."""
    if not yes:
        typer.confirm(f"Delete {list_name} item {item_id}?", abort=True)
    service = _connect()
    _run(lambda: service.delete_record(list_name, item_id))
    typer.echo(f"Deleted {list_name} item {item_id}.")


@app.command()
def whoami() -> None:  # pragma: no cover - CLI glue
    """Show the signed-in user and their admin roles."""
    service = _connect()
    status = _run(service.directory.get_current_user_with_admin_status)
    typer.echo(f"{status.user.display_name} <{status.user.mail}>")
    if status.is_admin:
        typer.echo(f"Admin roles: {', '.join(status.roles)}")


def _connect(settings: Optional[Settings] = None) -> SharePointService:  # pragma: no cover - CLI glue
    settings = settings or get_settings()
    try:
        authenticator = None if settings.get_access_token() else GraphAuthenticator(settings)
    except ConfigurationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    service = build_service(settings, authenticator=authenticator)
    service.set_on_session_timeout(
        lambda: typer.echo("Your session has expired. Please sign in again.", err=True)
    )
    if not service.get_access_token():
        _run(service.authenticate)
    return service


def _run(action: Callable[[], T]) -> T:  # pragma: no cover - CLI glue
    try:
        return action()
    except SessionExpiredError as exc:
        raise typer.Exit(code=2) from exc
    except (GraphClientError, ResolutionError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _find_user(service: SharePointService, employee: str) -> DirectoryUser:  # pragma: no cover
    wanted = employee.lower()
    users = _run(service.get_all_users)
    for user in users:
        if wanted in (user.id.lower(), user.mail.lower(), user.user_principal_name.lower()):
            return user
    typer.echo(f"Employee {employee} not found in the directory.", err=True)
    raise typer.Exit(code=1)


def _find_record(service: SharePointService, list_name: str, item_id: str) -> Record:  # pragma: no cover
    records: List[Record] = _run(lambda: service.get_records(list_name))
    for record in records:
        if str(record.get("Id")) == item_id:
            return record
    typer.echo(f"{list_name} item {item_id} not found.", err=True)
    raise typer.Exit(code=1)


def _summarize(record: Record, fields: List[str]) -> str:
    values = [get_field_value(record, [field]) for field in fields]
    return "\t".join([str(record.get("Id"))] + values)


def main() -> None:  # pragma: no cover - CLI entrypoint
    app()


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
