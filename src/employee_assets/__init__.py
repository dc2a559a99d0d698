"""Employee Assets: SharePoint asset and access card lists over Microsoft Graph.

Typical use::

    from employee_assets import build_service, get_settings

    service = build_service(get_settings())
    records = service.get_records("Assets", service.get_all_users())
"""

from importlib import metadata

DISTRIBUTION_NAME = "employee-assets"


def get_version() -> str:
    """Return the installed distribution version, ``0.0.0`` from a source checkout."""
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0"


__version__ = get_version()

from .config import Settings, get_settings  # noqa: E402
from .service import SharePointService, build_service  # noqa: E402

__all__ = [
    "DISTRIBUTION_NAME",
    "SharePointService",
    "Settings",
    "__version__",
    "build_service",
    "get_settings",
    "get_version",
]
