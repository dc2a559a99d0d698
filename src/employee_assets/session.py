"""Per-client session state: access token and memoized Graph lookups."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .models import FieldMapping, ResolvedIdentity

LOGGER = logging.getLogger(__name__)

SessionTimeoutCallback = Callable[[], None]


class SessionContext:
    """Hold the token and every cache that must die with it.

    All caches are plain memoized maps. They are shared by the resolver's
    worker threads, so mutation goes through ``_lock``.
    """

    def __init__(self, access_token: Optional[str] = None) -> None:
        self.access_token = access_token
        self.site_id: Optional[str] = None
        self.list_ids: Dict[str, str] = {}
        self.field_mappings: Dict[str, FieldMapping] = {}
        self.identities: Dict[str, ResolvedIdentity] = {}
        self.user_info_items: Optional[List[Dict[str, Any]]] = None
        self._on_timeout: Optional[SessionTimeoutCallback] = None
        self._lock = threading.Lock()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def start(self, access_token: str) -> None:
        """Begin a new session with ``access_token``, dropping stale lookups."""
        with self._lock:
            self._clear_caches()
            self.access_token = access_token

    def set_on_timeout(self, callback: Optional[SessionTimeoutCallback]) -> None:
        self._on_timeout = callback

    def invalidate(self) -> None:
        """Clear the token and all caches, then notify the timeout callback."""
        with self._lock:
            self.access_token = None
            self._clear_caches()
        LOGGER.warning("Session invalidated; token and caches cleared.")
        if self._on_timeout is not None:
            self._on_timeout()

    def cache_list_id(self, list_name: str, list_id: str) -> None:
        with self._lock:
            self.list_ids[list_name] = list_id

    def cache_field_mapping(self, mapping: FieldMapping) -> None:
        with self._lock:
            self.field_mappings[mapping.list_name] = mapping

    def cache_identity(self, raw_id: str, identity: ResolvedIdentity) -> None:
        with self._lock:
            self.identities[raw_id] = identity

    def cached_identity(self, raw_id: str) -> Optional[ResolvedIdentity]:
        with self._lock:
            return self.identities.get(raw_id)

    def cache_user_info_items(self, items: List[Dict[str, Any]]) -> None:
        with self._lock:
            self.user_info_items = items

    def _clear_caches(self) -> None:
        self.site_id = None
        self.list_ids.clear()
        self.field_mappings.clear()
        self.identities.clear()
        self.user_info_items = None
