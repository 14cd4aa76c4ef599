"""
Backend selection and FastAPI dependencies for the shared store.
The backend is built once per process from STORAGE_BACKEND.
"""
import logging
from typing import Optional

from bizintel.config import Settings, get_settings
from bizintel.storage.base import StorageBackend
from bizintel.storage.repositories import CompanyStore, EnrichedCompetitorStore

logger = logging.getLogger(__name__)

_backend: Optional[StorageBackend] = None


def create_backend(settings: Settings) -> StorageBackend:
    kind = settings.storage_backend.lower()
    if kind == "file":
        from bizintel.storage.file import JsonFileBackend
        return JsonFileBackend(
            settings.storage_dir,
            stale_after=settings.lock_stale_seconds,
            retries=settings.lock_max_retries,
            interval=settings.lock_retry_interval_seconds,
        )
    if kind == "memory":
        from bizintel.storage.memory import MemoryBackend
        return MemoryBackend()
    if kind == "database":
        from bizintel.database import get_session_factory
        from bizintel.storage.database import DatabaseBackend
        return DatabaseBackend(get_session_factory())
    raise ValueError(f"Unknown STORAGE_BACKEND '{settings.storage_backend}' (file, memory, database)")


def get_backend() -> StorageBackend:
    global _backend
    if _backend is None:
        _backend = create_backend(get_settings())
        logger.info("Shared store backend: %s", _backend.name, extra={"backend": _backend.name})
    return _backend


def set_backend(backend: Optional[StorageBackend]) -> None:
    """Swap the process backend (None resets to lazy creation)."""
    global _backend
    _backend = backend


def get_company_store() -> CompanyStore:
    """FastAPI dependency for the lead store."""
    return CompanyStore(get_backend())


def get_enriched_store() -> EnrichedCompetitorStore:
    """FastAPI dependency for the enriched profile store."""
    return EnrichedCompetitorStore(get_backend())
