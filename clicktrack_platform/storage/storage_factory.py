"""
Click-record backend selection
==============================

`get_storage()` is how the app factory and `cleanup_clicks.py` obtain the
backend that holds deduplicated click records: the in-process `Storage`
(default, used by tests and local runs) or `DBStorage` on PostgreSQL.

- Backend and DSN are read from the environment when the function is called,
  not at import, so a test can flip CLICKTRACK_STORAGE_BACKEND per case.
- psycopg is imported only when "postgres" is selected.
- Postgres timeouts come from settings unless passed explicitly.

Environment variables
---------------------
- CLICKTRACK_STORAGE_BACKEND: "memory" (default) or "postgres"
- CLICKTRACK_DB_DSN:          DSN string if backend=="postgres"

LLM Prompt
----------
"Add a Redis-backed click store: implement BaseStorage with an atomic
HINCRBY for click_count and register it here under a new backend name."
"""

from typing import Optional
import logging
import os

from clicktrack_platform.storage.base import BaseStorage
from clicktrack_platform.storage.storage import Storage

log = logging.getLogger("clicktrack.storage")

_DB_OPTIONS = ("connect_timeout", "statement_timeout_ms")


def get_storage(backend: Optional[str] = None, **kwargs) -> BaseStorage:
    """
    Build the click-record backend.

    Parameters
    ----------
    backend : str, optional
        "memory" or "postgres", case-insensitive. Falls back to CLICKTRACK_STORAGE_BACKEND.
    kwargs : dict
        Postgres only: dsn (overrides CLICKTRACK_DB_DSN), connect_timeout,
        statement_timeout_ms.

    Raises
    ------
    ValueError
        Unknown backend name, or postgres without a DSN.
    """
    name = (backend or os.getenv("CLICKTRACK_STORAGE_BACKEND", "memory")).strip().lower()
    log.info("Selected storage backend: %r", name)

    if name == "memory":
        return Storage()

    if name == "postgres":
        dsn = kwargs.get("dsn") or os.getenv("CLICKTRACK_DB_DSN", "")
        if not dsn:
            raise ValueError("DB_DSN is required for postgres backend (env CLICKTRACK_DB_DSN)")
        from clicktrack_platform.storage.db_storage import DBStorage
        options = {k: kwargs[k] for k in _DB_OPTIONS if kwargs.get(k) is not None}
        return DBStorage(dsn=dsn, **options)

    raise ValueError(f"Unknown storage backend: {name!r}")
